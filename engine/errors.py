"""Exceptions raised while switching the package source."""
from __future__ import annotations

from pathlib import Path


class PackageSwitchError(Exception):
    """Base class for package switch failures."""


class InvalidSelectorError(PackageSwitchError):
    """Raised when a selector argument is not one of the known values."""

    def __init__(self, value: str | None, choices: list[str]):
        """Initialize with the rejected value and the valid choices.

        Args:
            value: The selector text that was rejected
            choices: The selector values that would have been accepted
        """
        self.value = value
        self.choices = choices
        super().__init__(
            f"Unrecognized selector {value!r}, expected one of: {', '.join(choices)}"
        )


class RepositoryIntrospectionError(PackageSwitchError):
    """Raised when a git field required by the selector could not be read."""

    def __init__(self, step: str, error_msg: str):
        """Initialize with the failing introspection step.

        Args:
            step: Name of the introspection step (root, branch or remote)
            error_msg: Why the step failed
        """
        self.step = step
        self.error_msg = error_msg
        super().__init__(f"Repository introspection failed at '{step}': {error_msg}")


class NoConsumersFoundError(PackageSwitchError):
    """Raised when discovery finds no Unity project to update."""

    def __init__(self, cwd: Path):
        self.cwd = cwd
        super().__init__(
            f"No Unity project manifest found from {cwd}. "
            "Open the project in Unity with the MCP bridge running, "
            "or run this command from inside or next to a Unity project."
        )


class DependencyEntryMissingError(PackageSwitchError):
    """Raised when a manifest has no line for the package."""

    def __init__(self, path: Path, package_name: str):
        self.path = path
        self.package_name = package_name
        super().__init__(f"No '{package_name}' dependency entry in {path}")


class WriteFailureError(PackageSwitchError):
    """Raised when a manifest cannot be read or written."""

    def __init__(self, path: Path, error_msg: str):
        """Initialize with the manifest path and the OS error text.

        Args:
            path: Manifest that could not be accessed
            error_msg: The underlying error message
        """
        self.path = path
        self.error_msg = error_msg
        super().__init__(f"Failed to update {path}: {error_msg}")
