"""Git state of the package repository the switch is run from."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

from pydantic import Field
from pydantic.dataclasses import dataclass


@dataclass(frozen=True)
class RepositoryContext:
    """Read-only snapshot of the invoking repository.

    Attributes:
        root: Working tree root, None if not inside a repository
        branch: Current branch name, None when HEAD is detached
        remote_url: The origin URL in HTTPS form, None without an origin
        errors: Failure message per field that could not be resolved
    """

    root: Optional[Path] = None
    branch: Optional[str] = None
    remote_url: Optional[str] = None
    errors: Dict[str, str] = Field(default_factory=dict)
