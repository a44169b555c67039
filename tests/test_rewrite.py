"""Tests for the manifest rewriter."""
from __future__ import annotations

import errno
import stat
import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from engine.errors import DependencyEntryMissingError, WriteFailureError
from engine.rewrite import replace_dependency_line, rewrite_dependency
from models.consumer import ChangeStatus, ConsumerTarget

PACKAGE = "com.coplaydev.unity-mcp"
MAIN_URL = "https://github.com/CoplayDev/unity-mcp.git?path=/MCPForUnity#main"
LOCAL_URL = "file:/home/u/unity-mcp/MCPForUnity"

MANIFEST = """{
  "dependencies": {
    "com.coplaydev.unity-mcp": "https://github.com/CoplayDev/unity-mcp.git?path=/MCPForUnity#main",
    "com.unity.ide.rider": "3.0.31",
    "com.unity.modules.ui": "1.0.0"
  }
}
"""


@pytest.fixture
def target(tmp_path):
    project = tmp_path / "Game"
    (project / "Packages").mkdir(parents=True)
    manifest = project / "Packages" / "manifest.json"
    manifest.write_text(MANIFEST)
    return ConsumerTarget(project_root=project, manifest_path=manifest)


def test_replace_only_touches_dependency_line():
    updated, old = replace_dependency_line(MANIFEST, PACKAGE, LOCAL_URL)
    assert old == MAIN_URL

    before = MANIFEST.splitlines(keepends=True)
    after = updated.splitlines(keepends=True)
    assert len(before) == len(after)
    changed = [i for i, (a, b) in enumerate(zip(before, after)) if a != b]
    assert changed == [2]
    assert after[2] == f'    "{PACKAGE}": "{LOCAL_URL}",\n'


def test_replace_preserves_crlf():
    content = MANIFEST.replace("\n", "\r\n")
    updated, _ = replace_dependency_line(content, PACKAGE, LOCAL_URL)
    assert updated == content.replace(MAIN_URL, LOCAL_URL)


def test_replace_handles_last_entry_without_comma():
    content = '{\n  "dependencies": {\n    "com.coplaydev.unity-mcp" : "file:../old"\n  }\n}'
    updated, old = replace_dependency_line(content, PACKAGE, LOCAL_URL)
    assert old == "file:../old"
    assert updated == content.replace("file:../old", LOCAL_URL)


def test_replace_ignores_similar_keys():
    content = '{\n  "com.coplaydev.unity-mcp-extras": "1.0.0"\n}\n'
    updated, old = replace_dependency_line(content, PACKAGE, LOCAL_URL)
    assert old is None
    assert updated == content


def test_rewrite_changes_file(target):
    report = rewrite_dependency(target, LOCAL_URL, PACKAGE)

    assert report.status == ChangeStatus.CHANGED
    assert report.old_value == MAIN_URL
    assert report.new_value == LOCAL_URL
    assert target.manifest_path.read_text() == MANIFEST.replace(MAIN_URL, LOCAL_URL)


def test_rewrite_twice_reports_unchanged(target):
    rewrite_dependency(target, LOCAL_URL, PACKAGE)
    mtime = target.manifest_path.stat().st_mtime_ns

    with patch("builtins.open", wraps=open) as mock_open:
        report = rewrite_dependency(target, LOCAL_URL, PACKAGE)

    assert report.status == ChangeStatus.UNCHANGED
    assert report.old_value == report.new_value == LOCAL_URL
    assert mock_open.call_count == 1  # read only
    assert target.manifest_path.stat().st_mtime_ns == mtime


def test_rewrite_dry_run_leaves_file(target):
    report = rewrite_dependency(target, LOCAL_URL, PACKAGE, dry_run=True)

    assert report.status == ChangeStatus.PLANNED
    assert report.old_value == MAIN_URL
    assert target.manifest_path.read_text() == MANIFEST


def test_rewrite_missing_entry(target):
    target.manifest_path.write_text('{\n  "dependencies": {}\n}\n')

    with pytest.raises(DependencyEntryMissingError, match=PACKAGE):
        rewrite_dependency(target, LOCAL_URL, PACKAGE)


def test_rewrite_missing_file(tmp_path):
    target = ConsumerTarget(
        project_root=tmp_path, manifest_path=tmp_path / "Packages" / "manifest.json"
    )
    with pytest.raises(WriteFailureError, match="Failed to update"):
        rewrite_dependency(target, LOCAL_URL, PACKAGE)


def test_rewrite_write_failure(target):
    with patch(
        "engine.rewrite.tempfile.NamedTemporaryFile",
        side_effect=PermissionError("Permission denied"),
    ):
        with pytest.raises(WriteFailureError, match="Permission denied") as exc_info:
            rewrite_dependency(target, LOCAL_URL, PACKAGE)

    assert exc_info.value.path == target.manifest_path
    assert target.manifest_path.read_text() == MANIFEST


def test_rewrite_disk_full_keeps_original(target):
    real_tempfile = tempfile.NamedTemporaryFile

    def failing_tempfile(*args, **kwargs):
        tmp = real_tempfile(*args, **kwargs)
        tmp.write = MagicMock(side_effect=OSError(errno.ENOSPC, "No space left on device"))
        return tmp

    original = target.manifest_path.read_bytes()
    with patch("engine.rewrite.tempfile.NamedTemporaryFile", side_effect=failing_tempfile):
        with pytest.raises(WriteFailureError, match="No space left on device"):
            rewrite_dependency(target, LOCAL_URL, PACKAGE)

    assert target.manifest_path.read_bytes() == original
    assert [p.name for p in target.manifest_path.parent.iterdir()] == ["manifest.json"]


def test_rewrite_keeps_file_mode(target):
    target.manifest_path.chmod(0o640)

    rewrite_dependency(target, LOCAL_URL, PACKAGE)

    assert stat.S_IMODE(target.manifest_path.stat().st_mode) == 0o640
    assert [p.name for p in target.manifest_path.parent.iterdir()] == ["manifest.json"]


def test_rewrite_undecodable_manifest(target):
    target.manifest_path.write_bytes(b'{\n  "name": "Caf\xe9"\n}\n')

    with pytest.raises(WriteFailureError, match="cannot read manifest"):
        rewrite_dependency(target, LOCAL_URL, PACKAGE)
