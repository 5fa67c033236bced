"""
protosync — centralised configuration.

All tunables live here so the rest of the codebase stays free of magic numbers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

# ── File conventions ─────────────────────────────────────────────────

#: Extension of schema sources picked up by the compiler.
PROTO_EXTENSION: str = ".proto"

#: Extension of the generated source artifact placed next to each proto.
GENERATED_EXTENSION: str = ".cs"

# ── Package / tool layout ────────────────────────────────────────────

#: Name of the Unity package that ships protoc and its include files.
PACKAGE_NAME: str = "com.e7.protobuf-unity"

#: Where Unity unpacks read-only packages, relative to the project root.
PACKAGE_CACHE_DIR: str = os.path.join("Library", "PackageCache")

#: Folder inside the package holding ``bin/`` and ``include/``.
TOOLS_SUBDIR: Tuple[str, ...] = ("Editor", ".protoc")

#: Any path containing this fragment belongs to the builtin include tree
#: (``google/protobuf/*.proto``) and is never a project schema.
BUILTIN_INCLUDE_MARKER: str = os.path.join(PACKAGE_NAME, *TOOLS_SUBDIR)

PROTOC_NAME: str = "protoc"
GRPC_PLUGIN_NAME: str = "grpc_csharp_plugin"

# ── Preference keys ──────────────────────────────────────────────────

PREF_ENABLE: str = "ProtobufUnity_Enable"
PREF_PROTOC_EXECUTABLE: str = "ProtobufUnity_ProtocExecutable"
PREF_GRPC_PATH: str = "ProtobufUnity_GrpcPath"
PREF_LOG_ERROR: str = "ProtobufUnity_LogError"
PREF_LOG_STANDARD: str = "ProtobufUnity_LogStandard"

#: A path preference that was never written reads back as its own key.
UNSET_PATH_SENTINELS: frozenset[str] = frozenset(
    {PREF_PROTOC_EXECUTABLE, PREF_GRPC_PATH}
)

# ── Environment ──────────────────────────────────────────────────────

#: Unity project to operate on.  Defaults to the working directory.
PROJECT_ROOT: str = os.environ.get("PROTOSYNC_PROJECT_ROOT", "")

#: Explicit package directory; skips the PackageCache lookup when set.
PACKAGE_DIR: str = os.environ.get("PROTOSYNC_PACKAGE_DIR", "")

#: SQLAlchemy URL of the preference store.  Empty means a SQLite file
#: under the project's ``Library`` folder.
DATABASE_URL: str = os.environ.get("PROTOSYNC_DATABASE_URL", "")

#: File name of the default SQLite preference store.
PREFERENCES_DB_FILENAME: str = "protosync_prefs.db"

#: Upper bound on concurrent protoc processes.  ``None`` lets the
#: executor size itself from the CPU count.
MAX_WORKERS: Optional[int] = (
    int(os.environ["PROTOSYNC_MAX_WORKERS"])
    if os.environ.get("PROTOSYNC_MAX_WORKERS")
    else None
)

# ── Host timing ──────────────────────────────────────────────────────

#: Seconds between two drains of the main-thread queue.
TICK_INTERVAL_SECONDS: float = 0.1

#: Quiet period before a burst of file events is compiled as one batch.
WATCH_DEBOUNCE_SECONDS: float = 0.5


# ── Data types ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class PreferenceSettings:
    """Snapshot of the user preferences, taken once per trigger."""

    enabled: bool = True
    #: Replaces the bundled protoc when set.
    protoc_executable: Optional[str] = None
    #: Enables the gRPC clause when set.
    grpc_plugin_path: Optional[str] = None
    log_error: bool = True
    log_standard: bool = False

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "protoc_executable": self.protoc_executable,
            "grpc_plugin_path": self.grpc_plugin_path,
            "log_error": self.log_error,
            "log_standard": self.log_standard,
        }


@dataclass(frozen=True)
class ProjectLayout:
    """Where things live inside one Unity project."""

    project_root: Path
    #: Overrides the ``Library/PackageCache`` lookup of the tool package.
    package_directory: Optional[Path] = None

    @classmethod
    def from_env(cls, project_root: Optional[str] = None) -> "ProjectLayout":
        # Read at call time: ``cli serve`` exports these before the API loads.
        root = project_root or os.environ.get("PROTOSYNC_PROJECT_ROOT", PROJECT_ROOT) or os.getcwd()
        package = os.environ.get("PROTOSYNC_PACKAGE_DIR", PACKAGE_DIR)
        package_dir = Path(package).resolve() if package else None
        return cls(project_root=Path(root).resolve(), package_directory=package_dir)

    @property
    def package_cache(self) -> Path:
        return self.project_root / PACKAGE_CACHE_DIR

    @property
    def excluded_prefixes(self) -> Tuple[str, ...]:
        """Read-only schema roots that are never regenerated in place."""
        return (str(self.package_cache),)

    @property
    def preferences_database_url(self) -> str:
        if DATABASE_URL:
            return DATABASE_URL
        return f"sqlite:///{self.project_root / 'Library' / PREFERENCES_DB_FILENAME}"


@dataclass(frozen=True)
class CompilationCandidate:
    """One proto file plus everything its protoc run needs."""

    proto_file: str
    include_paths: Tuple[str, ...]
    executable: str
    log_standard: bool = False
    log_error: bool = True
    grpc_plugin_path: Optional[str] = None

    @property
    def output_directory(self) -> str:
        return os.path.dirname(self.proto_file)


@dataclass
class CompilationResult:
    """Outcome of a single protoc run.  Only used to decide what to log."""

    proto_file: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    arguments: str = field(default="", repr=False)

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> dict:
        return {
            "proto_file": self.proto_file,
            "exit_code": self.exit_code,
            "success": self.success,
            "stdout": self.stdout,
            "stderr": self.stderr,
        }
