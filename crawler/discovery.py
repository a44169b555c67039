"""Locate Unity projects whose manifest should be switched."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import httpx

from config.settings import SwitcherSettings
from crawler.instances import McpInstanceClient, McpProtocolError
from models.consumer import ConsumerTarget

logger = logging.getLogger(__name__)

SKIP_DIRS = {"Library", "Temp", "Logs", "obj", "Build", "Builds", "node_modules", "__pycache__"}


def _dedupe(targets: Iterable[ConsumerTarget]) -> List[ConsumerTarget]:
    seen: Dict[Path, ConsumerTarget] = {}
    for target in targets:
        key = target.manifest_path.resolve()
        if key not in seen:
            seen[key] = target
    return list(seen.values())


def _target_for_project(project_root: Path, manifest_relpath: str) -> ConsumerTarget:
    return ConsumerTarget(
        project_root=project_root,
        manifest_path=project_root / manifest_relpath,
    )


async def discover_from_instances(
    client: McpInstanceClient, manifest_relpath: str
) -> List[ConsumerTarget]:
    """Ask running Unity editors for their project roots.

    Args:
        client: MCP client for the MCP for Unity server
        manifest_relpath: Manifest location relative to a project root

    Returns:
        Targets whose manifest exists. Connection or protocol problems are
        logged and produce an empty list.
    """
    try:
        roots = await client.list_project_roots()
    except (httpx.HTTPError, McpProtocolError) as e:
        logger.warning(f"Live instance query failed, falling back to a filesystem scan: {e}")
        return []

    targets = []
    for root in roots:
        target = _target_for_project(root, manifest_relpath)
        if not target.manifest_path.is_file():
            logger.warning(f"Unity instance at {root} has no {manifest_relpath}")
            continue
        targets.append(target)
    return _dedupe(targets)


def discover_from_filesystem(
    cwd: Path, manifest_relpath: str, max_depth: int = 3
) -> List[ConsumerTarget]:
    """Scan around the working directory for Unity project manifests.

    The working directory and up to ``max_depth`` of its ancestors are
    checked first, then the tree below the parent directory is walked to
    ``max_depth`` levels.

    Args:
        cwd: Directory the switch was invoked from
        manifest_relpath: Manifest location relative to a project root
        max_depth: How far to look up and down

    Returns:
        Targets in discovery order, deduplicated
    """
    cwd = cwd.resolve()
    found: List[ConsumerTarget] = []

    for directory in [cwd, *cwd.parents][: max_depth + 1]:
        if (directory / manifest_relpath).is_file():
            found.append(_target_for_project(directory, manifest_relpath))

    base = cwd.parent
    base_depth = len(base.parts)
    for dirpath, dirnames, _ in os.walk(base):
        current = Path(dirpath)
        depth = len(current.parts) - base_depth

        if current != base and (current / manifest_relpath).is_file():
            found.append(_target_for_project(current, manifest_relpath))

        if depth >= max_depth:
            dirnames[:] = []
            continue
        dirnames[:] = sorted(
            d for d in dirnames if not d.startswith(".") and d not in SKIP_DIRS
        )

    return _dedupe(found)


async def discover_consumers(
    cwd: Path,
    settings: SwitcherSettings,
    client: Optional[McpInstanceClient] = None,
) -> List[ConsumerTarget]:
    """Find consumer projects, live editors first and the filesystem second.

    The filesystem is only scanned when no live instance yields a target;
    results of the two strategies are never merged.

    Args:
        cwd: Directory the switch was invoked from
        settings: Switcher settings
        client: Optional MCP client, built from settings when omitted

    Returns:
        Deduplicated consumer targets, possibly empty
    """
    if client is None:
        client = McpInstanceClient(
            settings.mcp_url,
            instances_uri=settings.instances_uri,
            project_info_uri=settings.project_info_uri,
            timeout=settings.mcp_timeout,
        )

    targets = await discover_from_instances(client, settings.manifest_relpath)
    if targets:
        logger.info(f"Discovered {len(targets)} project(s) from running Unity editors")
        return targets

    targets = discover_from_filesystem(cwd, settings.manifest_relpath, settings.search_depth)
    logger.info(f"Discovered {len(targets)} project(s) on disk near {cwd}")
    return targets
