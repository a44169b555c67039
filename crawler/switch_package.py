#!/usr/bin/env python3
"""Command-line utility for switching the MCP for Unity package source."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

from tabulate import tabulate

from config.settings import SwitcherSettings
from engine.errors import (
    InvalidSelectorError,
    NoConsumersFoundError,
    RepositoryIntrospectionError,
)
from engine.switch import run_switch
from models.consumer import ConsumerTarget, SwitchResult
from models.selector import Selector, prompt_for_selector

logger = logging.getLogger(__name__)

REFRESH_REMINDER = (
    "Switch back to Unity so Package Manager re-resolves packages "
    "(use Assets > Refresh or restart the editor if nothing happens)."
)


def make_confirm(
    assume_yes: bool, ask: Optional[Callable[[str], str]] = None
) -> Callable[[List[ConsumerTarget]], bool]:
    """Build the confirmation callback used before touching several projects."""
    ask = ask or input

    def confirm(targets: List[ConsumerTarget]) -> bool:
        print(f"\nFound {len(targets)} Unity projects:")
        for target in targets:
            print(f"  - {target.manifest_path}")
        if assume_yes:
            return True
        try:
            answer = ask("Update all of them? [y/N]: ")
        except EOFError:
            return False
        return answer.strip().lower() in ("y", "yes")

    return confirm


def print_result(result: SwitchResult) -> None:
    """Print the per-file change table and the refresh reminder."""
    if result.cancelled:
        print("Cancelled, no manifest was modified.")
        return

    headers = ["File", "Old", "New", "Status"]
    rows = []
    for report in result.reports:
        rows.append([
            str(report.file_path),
            report.old_value or "-",
            report.new_value,
            report.status.value if not report.message else f"{report.status.value}: {report.message}",
        ])

    print(f"\nPackage source: {result.selector.value} -> {result.dependency_url}")
    print(tabulate(rows, headers=headers, tablefmt="grid"))
    print(f"\n{REFRESH_REMINDER}")


def main(argv: Optional[List[str]] = None) -> int:
    """Run the package switcher from the command line.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = argparse.ArgumentParser(
        description="Point Unity projects at a different MCP for Unity package source"
    )
    parser.add_argument(
        "selector", nargs="?", default=None,
        help=f"Package source: {', '.join(Selector.choices())}"
    )
    parser.add_argument(
        "-y", "--yes", action="store_true",
        help="Update every discovered project without asking"
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Show what would change without writing any file"
    )
    parser.add_argument(
        "--mcp-url", default=None,
        help="MCP for Unity server endpoint used to find running editors"
    )
    parser.add_argument(
        "--cwd", default=None,
        help="Directory to run from (default: current directory)"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable verbose output"
    )

    args = parser.parse_args(argv)

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    settings = SwitcherSettings()
    if args.mcp_url:
        settings.mcp_url = args.mcp_url
    cwd = Path(args.cwd) if args.cwd else Path.cwd()

    try:
        selector = prompt_for_selector(args.selector)
    except InvalidSelectorError as e:
        logger.error(str(e))
        return 2

    try:
        result = asyncio.run(
            run_switch(
                selector,
                cwd,
                settings,
                confirm=make_confirm(args.yes),
                dry_run=args.dry_run,
            )
        )
    except NoConsumersFoundError as e:
        logger.error(str(e))
        return 1
    except RepositoryIntrospectionError as e:
        logger.error(f"Cannot use '{selector.value}': {e}")
        return 1

    print_result(result)
    if result.cancelled or result.failed:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
