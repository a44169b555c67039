"""Consumer projects and the changes made to them."""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.dataclasses import dataclass

from models.selector import Selector


@dataclass(frozen=True)
class ConsumerTarget:
    """A Unity project whose manifest references the package.

    Attributes:
        project_root: Root directory of the Unity project
        manifest_path: Path to its Packages/manifest.json
    """

    project_root: Path
    manifest_path: Path


class ChangeStatus(str, Enum):
    """Outcome of rewriting one manifest."""

    CHANGED = "changed"
    UNCHANGED = "unchanged"
    PLANNED = "planned"
    SKIPPED = "skipped"
    FAILED = "failed"


class ChangeReport(BaseModel):
    """What happened to one manifest."""

    file_path: Path = Field(description="Manifest that was processed")
    old_value: Optional[str] = Field(default=None, description="Dependency value before")
    new_value: str = Field(description="Dependency value requested")
    status: ChangeStatus
    message: Optional[str] = Field(default=None, description="Why it was skipped or failed")


class SwitchResult(BaseModel):
    """Summary of a switch run."""

    selector: Selector
    dependency_url: str
    targets: List[ConsumerTarget] = Field(default_factory=list)
    reports: List[ChangeReport] = Field(default_factory=list)
    cancelled: bool = False

    @property
    def failed(self) -> bool:
        return any(r.status == ChangeStatus.FAILED for r in self.reports)
