"""Maps a selector to the dependency URL written into manifests."""
from __future__ import annotations

import logging
from typing import Optional

from config.settings import SwitcherSettings
from engine.errors import RepositoryIntrospectionError
from models.repository import RepositoryContext
from models.selector import Selector

logger = logging.getLogger(__name__)

LOCAL_PREFIX = "file:"


def _required(context: Optional[RepositoryContext], field: str) -> str:
    if context is None:
        raise RepositoryIntrospectionError(field, "repository was not introspected")
    value = getattr(context, field if field != "remote" else "remote_url")
    if not value:
        raise RepositoryIntrospectionError(
            field, context.errors.get(field, f"{field} is unavailable")
        )
    return str(value)


def git_dependency_url(repo_url: str, subdir: str, ref: str) -> str:
    """Build a Unity Package Manager git URL for a package subdirectory."""
    return f"{repo_url}?path=/{subdir.strip('/')}#{ref}"


def local_dependency_url(root: str, subdir: str) -> str:
    """Build a ``file:`` reference to the package inside a local checkout.

    The path uses forward slashes and never gets a ``//`` after the prefix.
    """
    path = root.replace("\\", "/").rstrip("/")
    path = f"{path}/{subdir.strip('/')}"
    if path.startswith("//"):
        path = "/" + path.lstrip("/")
    return f"{LOCAL_PREFIX}{path}"


def resolve_dependency_url(
    selector: Selector,
    context: Optional[RepositoryContext],
    settings: SwitcherSettings,
) -> str:
    """Resolve the dependency value for a selector.

    Args:
        selector: Requested package source
        context: Repository state, only consulted for branch and local
        settings: Upstream URL, refs and package subdirectory

    Returns:
        The dependency URL or path string

    Raises:
        RepositoryIntrospectionError: If branch or local needs a field that
            could not be resolved
    """
    if selector == Selector.MAIN:
        url = git_dependency_url(settings.upstream_url, settings.package_subdir, settings.main_ref)
    elif selector == Selector.BETA:
        url = git_dependency_url(settings.upstream_url, settings.package_subdir, settings.beta_ref)
    elif selector == Selector.BRANCH:
        remote_url = _required(context, "remote")
        branch = _required(context, "branch")
        url = git_dependency_url(remote_url, settings.package_subdir, branch)
    else:
        root = _required(context, "root")
        url = local_dependency_url(root, settings.package_subdir)

    logger.info(f"Resolved {selector.value} to {url}")
    return url
