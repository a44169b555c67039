"""Switch the package source in every discovered consumer project."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional

from config.settings import SwitcherSettings
from crawler.discovery import discover_consumers
from crawler.instances import McpInstanceClient
from engine.errors import (
    DependencyEntryMissingError,
    NoConsumersFoundError,
    WriteFailureError,
)
from engine.git_ops import RepositoryIntrospector
from engine.resolver import resolve_dependency_url
from engine.rewrite import rewrite_dependency
from models.consumer import ChangeReport, ChangeStatus, ConsumerTarget, SwitchResult
from models.selector import Selector

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[List[ConsumerTarget]], bool]


def _apply(
    target: ConsumerTarget,
    url: str,
    settings: SwitcherSettings,
    dry_run: bool,
) -> ChangeReport:
    try:
        return rewrite_dependency(target, url, settings.package_name, dry_run=dry_run)
    except DependencyEntryMissingError as e:
        logger.warning(f"Skipping {target.manifest_path}: {e}")
        return ChangeReport(
            file_path=target.manifest_path,
            new_value=url,
            status=ChangeStatus.SKIPPED,
            message=str(e),
        )
    except WriteFailureError as e:
        logger.error(f"Write failed for {target.manifest_path}: {e.error_msg}")
        return ChangeReport(
            file_path=target.manifest_path,
            new_value=url,
            status=ChangeStatus.FAILED,
            message=str(e),
        )


async def run_switch(
    selector: Selector,
    cwd: Path,
    settings: SwitcherSettings,
    confirm: ConfirmCallback,
    dry_run: bool = False,
    instance_client: Optional[McpInstanceClient] = None,
    ceiling_dirs: Optional[Path] = None,
) -> SwitchResult:
    """Switch the package source for one selector.

    Steps run strictly in order: repository introspection (only for
    selectors that need it), consumer discovery, URL resolution, the
    multi-target confirmation gate, then one rewrite per target. Rewrites
    are not rolled back when a later target fails.

    Args:
        selector: Requested package source
        cwd: Directory the switch was invoked from
        settings: Switcher settings
        confirm: Called with the targets when more than one was found
        dry_run: Report changes without writing
        instance_client: Optional MCP client for live discovery
        ceiling_dirs: Optional limit for repository discovery

    Returns:
        The SwitchResult with one report per processed target

    Raises:
        RepositoryIntrospectionError: If the selector needs git state that
            could not be resolved
        NoConsumersFoundError: If no consumer project was found
    """
    context = None
    if selector.requires_repository:
        context = RepositoryIntrospector(cwd, ceiling_dirs=ceiling_dirs).introspect()

    targets = await discover_consumers(cwd, settings, client=instance_client)
    if not targets:
        raise NoConsumersFoundError(cwd)

    url = resolve_dependency_url(selector, context, settings)
    result = SwitchResult(selector=selector, dependency_url=url, targets=targets)

    if len(targets) > 1 and not confirm(targets):
        logger.info("Switch cancelled, no manifest was modified")
        result.cancelled = True
        return result

    for target in targets:
        result.reports.append(_apply(target, url, settings, dry_run))

    return result
