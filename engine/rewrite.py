"""Minimal-diff rewrite of the package entry in a Unity manifest."""
from __future__ import annotations

import json
import logging
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Tuple

from engine.errors import DependencyEntryMissingError, WriteFailureError
from models.consumer import ChangeReport, ChangeStatus, ConsumerTarget

logger = logging.getLogger(__name__)


def _replace_file(path: Path, content: str) -> None:
    """Write content next to ``path`` and move it into place.

    The original file stays intact until the new content is fully written.

    Raises:
        OSError: If the temporary file cannot be written or moved
    """
    tmp = tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        newline="",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    )
    tmp_path = Path(tmp.name)
    try:
        with tmp as f:
            f.write(content)
        shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def _entry_pattern(package_name: str) -> re.Pattern[str]:
    return re.compile(
        rf'^(?P<prefix>\s*"{re.escape(package_name)}"\s*:\s*")'
        r'(?P<value>(?:[^"\\]|\\.)*)'
        r'(?P<suffix>".*)$'
    )


def replace_dependency_line(
    content: str, package_name: str, new_value: str
) -> Tuple[str, Optional[str]]:
    """Replace the value of the first line holding the package entry.

    Every other character, line endings included, is kept as is.

    Args:
        content: Full manifest text
        package_name: Dependency key to look for
        new_value: Value to write

    Returns:
        The new text and the old value, or the original text and None when
        no line holds the entry
    """
    pattern = _entry_pattern(package_name)
    # JSON string escaping without the surrounding quotes
    escaped = json.dumps(new_value)[1:-1]

    lines = content.splitlines(keepends=True)
    for index, line in enumerate(lines):
        body = line.rstrip("\r\n")
        match = pattern.match(body)
        if not match:
            continue

        old_value = json.loads(f'"{match.group("value")}"')
        lines[index] = (
            match.group("prefix") + escaped + match.group("suffix") + line[len(body):]
        )
        return "".join(lines), old_value

    return content, None


def rewrite_dependency(
    target: ConsumerTarget,
    new_value: str,
    package_name: str,
    dry_run: bool = False,
) -> ChangeReport:
    """Point one manifest's package entry at a new source.

    Args:
        target: Consumer project to update
        new_value: Dependency URL or path to write
        package_name: Dependency key in the manifest
        dry_run: If True, report the change without writing it

    Returns:
        A ChangeReport with the old and new values

    Raises:
        DependencyEntryMissingError: If the manifest has no entry for the package
        WriteFailureError: If the manifest cannot be read or written
    """
    path = target.manifest_path
    try:
        with open(path, encoding="utf-8", newline="") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise WriteFailureError(path, f"cannot read manifest: {e}") from e

    updated, old_value = replace_dependency_line(content, package_name, new_value)
    if old_value is None:
        raise DependencyEntryMissingError(path, package_name)

    if old_value == new_value:
        logger.info(f"{path} already points at {new_value}")
        return ChangeReport(
            file_path=path,
            old_value=old_value,
            new_value=new_value,
            status=ChangeStatus.UNCHANGED,
        )

    if dry_run:
        return ChangeReport(
            file_path=path,
            old_value=old_value,
            new_value=new_value,
            status=ChangeStatus.PLANNED,
        )

    try:
        _replace_file(path, updated)
    except OSError as e:
        raise WriteFailureError(path, str(e)) from e

    logger.info(
        "Rewrote package dependency",
        extra={"file": str(path), "old_value": old_value, "new_value": new_value},
    )
    return ChangeReport(
        file_path=path,
        old_value=old_value,
        new_value=new_value,
        status=ChangeStatus.CHANGED,
    )
