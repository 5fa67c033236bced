"""
Tests for protosync.config — data structures, layout and constants.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from protosync.config import (
    BUILTIN_INCLUDE_MARKER,
    GENERATED_EXTENSION,
    PREF_GRPC_PATH,
    PREF_PROTOC_EXECUTABLE,
    PROTO_EXTENSION,
    UNSET_PATH_SENTINELS,
    CompilationCandidate,
    CompilationResult,
    PreferenceSettings,
    ProjectLayout,
)


# ── Constants ────────────────────────────────────────────────────────


class TestConstants:
    def test_extensions(self):
        assert PROTO_EXTENSION == ".proto"
        assert GENERATED_EXTENSION == ".cs"

    def test_builtin_marker_points_into_package(self):
        assert BUILTIN_INCLUDE_MARKER == os.path.join(
            "com.e7.protobuf-unity", "Editor", ".protoc"
        )

    def test_unset_sentinels_are_the_path_keys(self):
        assert UNSET_PATH_SENTINELS == {PREF_PROTOC_EXECUTABLE, PREF_GRPC_PATH}


# ── PreferenceSettings ───────────────────────────────────────────────


class TestPreferenceSettings:
    def test_defaults(self):
        s = PreferenceSettings()
        assert s.enabled is True
        assert s.log_error is True
        assert s.log_standard is False
        assert s.protoc_executable is None
        assert s.grpc_plugin_path is None

    def test_frozen(self):
        s = PreferenceSettings()
        with pytest.raises(AttributeError):
            s.enabled = False  # type: ignore[misc]

    def test_to_dict(self):
        d = PreferenceSettings(grpc_plugin_path="/tools/grpc").to_dict()
        assert d["grpc_plugin_path"] == "/tools/grpc"
        assert set(d) == {
            "enabled", "protoc_executable", "grpc_plugin_path",
            "log_error", "log_standard",
        }


# ── ProjectLayout ────────────────────────────────────────────────────


class TestProjectLayout:
    def test_package_cache(self, tmp_path: Path):
        layout = ProjectLayout(project_root=tmp_path)
        assert layout.package_cache == tmp_path / "Library" / "PackageCache"
        assert layout.excluded_prefixes == (str(tmp_path / "Library" / "PackageCache"),)

    @patch("protosync.config.DATABASE_URL", "")
    def test_default_database_is_sqlite_in_library(self, tmp_path: Path):
        url = ProjectLayout(project_root=tmp_path).preferences_database_url
        assert url.startswith("sqlite:///")
        assert url.endswith(os.path.join("Library", "protosync_prefs.db"))

    @patch("protosync.config.DATABASE_URL", "postgresql://localhost/prefs")
    def test_database_url_override(self, tmp_path: Path):
        url = ProjectLayout(project_root=tmp_path).preferences_database_url
        assert url == "postgresql://localhost/prefs"

    def test_from_env_explicit_root(self, tmp_path: Path):
        layout = ProjectLayout.from_env(str(tmp_path))
        assert layout.project_root == tmp_path.resolve()

    def test_from_env_reads_environment(self, tmp_path: Path, monkeypatch):
        pkg = tmp_path / "pkg"
        monkeypatch.setenv("PROTOSYNC_PROJECT_ROOT", str(tmp_path))
        monkeypatch.setenv("PROTOSYNC_PACKAGE_DIR", str(pkg))
        layout = ProjectLayout.from_env()
        assert layout.project_root == tmp_path.resolve()
        assert layout.package_directory == pkg.resolve()

    def test_from_env_defaults_to_cwd(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv("PROTOSYNC_PROJECT_ROOT", raising=False)
        monkeypatch.chdir(tmp_path)
        with patch("protosync.config.PROJECT_ROOT", ""):
            layout = ProjectLayout.from_env()
        assert layout.project_root == tmp_path.resolve()


# ── Compilation types ────────────────────────────────────────────────


class TestCompilationCandidate:
    def test_output_directory_is_proto_directory(self):
        c = CompilationCandidate(
            proto_file=os.path.join("/proj", "Assets", "a.proto"),
            include_paths=(),
            executable="protoc",
        )
        assert c.output_directory == os.path.join("/proj", "Assets")


class TestCompilationResult:
    def test_success_on_zero(self):
        assert CompilationResult(proto_file="a.proto", exit_code=0).success is True

    @pytest.mark.parametrize("code", [1, 2, -1])
    def test_failure_on_nonzero(self, code: int):
        assert CompilationResult(proto_file="a.proto", exit_code=code).success is False

    def test_to_dict(self):
        d = CompilationResult(proto_file="a.proto", exit_code=1, stderr="boom").to_dict()
        assert d == {
            "proto_file": "a.proto",
            "exit_code": 1,
            "success": False,
            "stdout": "",
            "stderr": "boom",
        }
