"""Tests for configuration directory generation."""

from __future__ import annotations

import builtins
import json
import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from claude_sandbox.errors import AlreadyInitializedError, WorkspaceError
from claude_sandbox.generator import (
    generate_containerfile,
    generate_orientation,
    generate_settings,
    materialize,
    render_artifacts,
)
from claude_sandbox.paths import ProjectConfig

ARTIFACTS = {"Containerfile", "settings.json", "CLAUDE.md"}


def _fail_on(name: str) -> Any:
    """open() replacement that raises when staging the given artifact."""
    real_open = builtins.open

    def fake_open(path: Any, *args: Any, **kwargs: Any) -> Any:
        if Path(path).name == f".{name}.tmp":
            raise PermissionError(13, "Permission denied", str(path))
        return real_open(path, *args, **kwargs)

    return fake_open



def _fail_replace_into(name: str) -> Any:
    """os.replace() replacement that raises when moving a staged artifact into place."""
    real_replace = os.replace

    def fake_replace(src: Any, dst: Any) -> None:
        if Path(src).name == f".{name}.tmp":
            raise PermissionError(13, "Permission denied", str(dst))
        real_replace(src, dst)

    return fake_replace

class TestTemplates:
    """Tests for artifact content."""

    def test_containerfile(self) -> None:
        content = generate_containerfile()
        assert content.startswith("# syntax=docker/dockerfile:1")
        assert "@anthropic-ai/claude-code" in content
        assert "COPY --chown=claude:claude settings.json" in content
        assert "COPY --chown=claude:claude CLAUDE.md" in content
        assert "WORKDIR /home/claude/code" in content
        assert 'ENTRYPOINT ["claude"]' in content

    def test_containerfile_writes_onboarding_state(self) -> None:
        """Onboarding state is baked into the image, not a fourth artifact."""
        content = generate_containerfile()
        assert "hasCompletedOnboarding" in content
        assert "/home/claude/.claude.json" in content

    def test_settings_json(self) -> None:
        settings = json.loads(generate_settings())
        assert settings["permissions"]["defaultMode"] == "acceptEdits"
        assert "Bash" in settings["permissions"]["allow"]

    def test_orientation(self) -> None:
        content = generate_orientation()
        assert "/home/claude/code" in content
        assert ".claude-sandbox/Containerfile" in content

    def test_render_artifacts(self) -> None:
        assert set(render_artifacts()) == ARTIFACTS


class TestMaterialize:
    """Tests for materialize()."""

    def test_initialize_empty_project(self, project: ProjectConfig) -> None:
        """Configuration directory contains exactly the three artifacts."""
        written = materialize(project)
        assert {p.name for p in written} == ARTIFACTS
        assert {p.name for p in project.config_dir.iterdir()} == ARTIFACTS
        assert project.is_well_formed()

    def test_content_matches_templates(self, project: ProjectConfig) -> None:
        materialize(project)
        for name, content in render_artifacts().items():
            assert (project.config_dir / name).read_text(encoding="utf-8") == content

    def test_refuses_if_already_initialized(self, project: ProjectConfig) -> None:
        materialize(project)
        (project.config_dir / "Containerfile").write_text("FROM custom")
        with pytest.raises(AlreadyInitializedError):
            materialize(project)
        assert (project.config_dir / "Containerfile").read_text() == "FROM custom"

    def test_force_overwrites(self, project: ProjectConfig) -> None:
        materialize(project)
        (project.config_dir / "Containerfile").write_text("modified")
        materialize(project, force=True)
        assert (project.config_dir / "Containerfile").read_text(
            encoding="utf-8"
        ) == generate_containerfile()

    def test_force_removes_extra_entries(self, project: ProjectConfig) -> None:
        """Prior content is fully replaced, not merged."""
        materialize(project)
        (project.config_dir / "notes.txt").write_text("stale")
        (project.config_dir / "subdir").mkdir()
        (project.config_dir / "subdir" / "file").write_text("stale")
        materialize(project, force=True)
        assert {p.name for p in project.config_dir.iterdir()} == ARTIFACTS

    def test_force_on_fresh_project(self, project: ProjectConfig) -> None:
        materialize(project, force=True)
        assert project.is_well_formed()

    def test_writes_only_inside_config_dir(self, project: ProjectConfig) -> None:
        (project.root / "main.py").write_text("print('hi')")
        before = set(os.listdir(project.root))
        materialize(project)
        assert set(os.listdir(project.root)) == before | {".claude-sandbox"}
        assert (project.root / "main.py").read_text() == "print('hi')"

    def test_failed_write_leaves_no_directory(self, project: ProjectConfig) -> None:
        """A failed first init removes the directory it created."""
        with patch("claude_sandbox.generator.open", _fail_on("CLAUDE.md"), create=True):
            with pytest.raises(WorkspaceError) as exc_info:
                materialize(project)
        assert "CLAUDE.md" in str(exc_info.value)
        assert not project.config_dir.exists()

    def test_failed_force_keeps_prior_content(self, project: ProjectConfig) -> None:
        """A failed forced init leaves the previous set untouched."""
        materialize(project)
        (project.config_dir / "Containerfile").write_text("FROM custom")
        with patch("claude_sandbox.generator.open", _fail_on("settings.json"), create=True):
            with pytest.raises(WorkspaceError):
                materialize(project, force=True)
        assert (project.config_dir / "Containerfile").read_text() == "FROM custom"
        assert {p.name for p in project.config_dir.iterdir()} == ARTIFACTS

    def test_failed_replace_restores_prior_set(self, project: ProjectConfig) -> None:
        """A move failing midway puts every previous artifact back, extras included."""
        materialize(project)
        (project.config_dir / "Containerfile").write_text("FROM custom")
        (project.config_dir / "settings.json").write_text("{}")
        (project.config_dir / "notes.txt").write_text("keep me")
        with patch("claude_sandbox.generator.os.replace", _fail_replace_into("settings.json")):
            with pytest.raises(WorkspaceError):
                materialize(project, force=True)
        assert (project.config_dir / "Containerfile").read_text() == "FROM custom"
        assert (project.config_dir / "settings.json").read_text() == "{}"
        assert (project.config_dir / "CLAUDE.md").read_text(
            encoding="utf-8"
        ) == generate_orientation()
        assert {p.name for p in project.config_dir.iterdir()} == ARTIFACTS | {"notes.txt"}

    def test_force_replaces_directory_named_like_artifact(self, project: ProjectConfig) -> None:
        materialize(project)
        (project.config_dir / "CLAUDE.md").unlink()
        (project.config_dir / "CLAUDE.md").mkdir()
        materialize(project, force=True)
        assert project.is_well_formed()
        assert {p.name for p in project.config_dir.iterdir()} == ARTIFACTS

    def test_refuses_symlinked_config_dir(self, project: ProjectConfig, tmp_path: Path) -> None:
        outside = tmp_path / "outside"
        outside.mkdir()
        project.config_dir.symlink_to(outside, target_is_directory=True)
        with pytest.raises(WorkspaceError):
            materialize(project, force=True)
        assert list(outside.iterdir()) == []

    def test_force_replaces_plain_file(self, project: ProjectConfig) -> None:
        project.config_dir.write_text("not a directory")
        materialize(project, force=True)
        assert project.is_well_formed()
