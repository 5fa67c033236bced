"""
Shared fixtures for the protosync test suite.

Provides a throwaway Unity project on disk, a recording stand-in for
protoc, and resets of the process-wide caches so tests stay isolated.
"""

from __future__ import annotations

import os
import stat
import textwrap
import threading
from pathlib import Path
from typing import Callable, Dict, List

import pytest

from protosync.config import (
    CompilationCandidate,
    CompilationResult,
    ProjectLayout,
)
from protosync.db.session import dispose_engines
from protosync.dispatch import main_thread_queue
from protosync.tools import resolve_tool_paths

PACKAGE_FOLDER = "com.e7.protobuf-unity@1.4.0"


# ── Isolation ────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _reset_process_state():
    resolve_tool_paths.cache_clear()
    main_thread_queue.clear()
    yield
    resolve_tool_paths.cache_clear()
    main_thread_queue.clear()
    dispose_engines()


# ── Temporary project fixtures ───────────────────────────────────────


@pytest.fixture
def unity_project(tmp_path: Path) -> Path:
    """
    A minimal Unity project::

        Assets/Proto/common/common.proto
        Assets/Proto/app/player.proto          (imports common.proto)
        Assets/Proto/app/inventory.proto
        Library/PackageCache/com.e7.protobuf-unity@1.4.0/Editor/.protoc/...
        Library/PackageCache/com.vendor.schemas/Proto/vendored.proto
    """
    root = tmp_path / "Game"
    common = root / "Assets" / "Proto" / "common"
    app = root / "Assets" / "Proto" / "app"
    common.mkdir(parents=True)
    app.mkdir(parents=True)

    (common / "common.proto").write_text(
        textwrap.dedent("""\
        syntax = "proto3";
        package game.common;

        message Vec3 { float x = 1; float y = 2; float z = 3; }
        """),
        encoding="utf-8",
    )
    (app / "player.proto").write_text(
        textwrap.dedent("""\
        syntax = "proto3";
        package game.app;

        import "common.proto";
        import "google/protobuf/timestamp.proto";

        message Player {
            string name = 1;
            game.common.Vec3 position = 2;
            google.protobuf.Timestamp joined = 3;
        }
        """),
        encoding="utf-8",
    )
    (app / "inventory.proto").write_text(
        'syntax = "proto3";\nmessage Inventory { repeated string items = 1; }\n',
        encoding="utf-8",
    )

    protoc_root = root / "Library" / "PackageCache" / PACKAGE_FOLDER / "Editor" / ".protoc"
    include = protoc_root / "include" / "google" / "protobuf"
    include.mkdir(parents=True)
    (include / "timestamp.proto").write_text(
        'syntax = "proto3";\npackage google.protobuf;\nmessage Timestamp {}\n',
        encoding="utf-8",
    )
    for folder in ("linux_x64", "linux_x86", "macosx_x64", "windows_x64", "windows_x86"):
        (protoc_root / "bin" / folder).mkdir(parents=True)

    vendored = root / "Library" / "PackageCache" / "com.vendor.schemas" / "Proto"
    vendored.mkdir(parents=True)
    (vendored / "vendored.proto").write_text(
        'syntax = "proto3";\nmessage Vendored {}\n', encoding="utf-8",
    )

    # Not a schema: must never be picked up.
    (root / "Assets" / "README.md").write_text("# Game")
    return root.resolve()


@pytest.fixture
def layout(unity_project: Path) -> ProjectLayout:
    return ProjectLayout(project_root=unity_project)


@pytest.fixture
def package_dir(unity_project: Path) -> Path:
    return unity_project / "Library" / "PackageCache" / PACKAGE_FOLDER


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'prefs.db'}"


# ── protoc stand-ins ─────────────────────────────────────────────────


class RecordingInvoke:
    """Thread-safe fake for :func:`protosync.invoker.invoke`."""

    def __init__(self, exit_codes: Dict[str, int] | None = None) -> None:
        self.exit_codes = exit_codes or {}
        self.candidates: List[CompilationCandidate] = []
        self._lock = threading.Lock()

    def __call__(self, candidate: CompilationCandidate) -> CompilationResult:
        with self._lock:
            self.candidates.append(candidate)
        code = self.exit_codes.get(os.path.basename(candidate.proto_file), 0)
        return CompilationResult(
            proto_file=candidate.proto_file,
            exit_code=code,
            stderr="" if code == 0 else "syntax error",
        )

    @property
    def files(self) -> List[str]:
        return sorted(c.proto_file for c in self.candidates)


@pytest.fixture
def recording_invoke() -> RecordingInvoke:
    return RecordingInvoke()


@pytest.fixture
def make_invoke() -> Callable[..., RecordingInvoke]:
    return RecordingInvoke


@pytest.fixture
def fake_protoc(tmp_path: Path) -> Path:
    """
    A shell script standing in for protoc.

    Writes ``<Stem>.cs`` next to the proto on success and fails for any
    proto whose name contains ``broken``.
    """
    if os.name == "nt":
        pytest.skip("shell-script protoc stand-in needs a POSIX host")
    script = tmp_path / "bin" / "protoc"
    script.parent.mkdir(parents=True)
    script.write_text(
        textwrap.dedent("""\
        #!/bin/sh
        proto="$1"
        case "${proto##*/}" in
            *broken*) echo "$proto:1:1: Expected top-level statement" >&2; exit 1 ;;
        esac
        out="${proto%.proto}.cs"
        echo "// generated" > "$out"
        echo "wrote $out"
        exit 0
        """),
        encoding="utf-8",
    )
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script
