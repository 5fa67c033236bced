"""
Locating the bundled protoc toolchain.

The tool package ships one prebuilt binary folder per host::

    <package>/Editor/.protoc/bin/<platform>_<arch>/protoc[.exe]
    <package>/Editor/.protoc/bin/<platform>_<arch>/grpc_csharp_plugin[.exe]
    <package>/Editor/.protoc/include/google/protobuf/*.proto

Resolution happens once per project and is cached for the life of the
process.  Anything missing here is a configuration problem: no file can
be compiled, so it is raised rather than logged.
"""

from __future__ import annotations

import functools
import logging
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from protosync.config import (
    GRPC_PLUGIN_NAME,
    PACKAGE_CACHE_DIR,
    PACKAGE_NAME,
    PROTOC_NAME,
    TOOLS_SUBDIR,
)

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """The toolchain cannot be located on this host."""


#: ``platform.system()`` → tool folder prefix.
_PLATFORM_FOLDERS: Dict[str, str] = {
    "Darwin": "macosx",
    "Windows": "windows",
    "Linux": "linux",
}

_64BIT_MACHINES = frozenset({"x86_64", "amd64", "arm64", "aarch64", "ia64", "ppc64", "ppc64le", "s390x"})


def platform_folder(system: Optional[str] = None) -> str:
    system = system or platform.system()
    try:
        return _PLATFORM_FOLDERS[system]
    except KeyError:
        raise ConfigurationError(
            f"Platform {system} is not supported by gRPC Tools"
        ) from None


def is_64bit_os(machine: Optional[str] = None) -> bool:
    machine = (machine if machine is not None else platform.machine()).lower()
    return machine in _64BIT_MACHINES or machine.endswith("64")


def arch_folder(is_64bit: Optional[bool] = None) -> str:
    if is_64bit is None:
        is_64bit = is_64bit_os()
    return "x64" if is_64bit else "x86"


def executable_suffix(system: Optional[str] = None) -> str:
    return ".exe" if (system or platform.system()) == "Windows" else ""


def find_package_directory(project_root: Path) -> Path:
    """Return the first ``com.e7.protobuf-unity*`` folder in the package cache."""
    cache = Path(project_root) / PACKAGE_CACHE_DIR
    candidates = (
        sorted(p for p in cache.glob(f"{PACKAGE_NAME}*") if p.is_dir())
        if cache.is_dir()
        else []
    )
    if not candidates:
        raise ConfigurationError(
            f"Could not find PackageCache for {PACKAGE_NAME} under {cache}, "
            "is the package installed correctly?"
        )
    return candidates[0].resolve()


@dataclass(frozen=True)
class ToolPaths:
    """Everything resolved about the toolchain for one project."""

    package_directory: Path
    tools_folder: Path
    include_directory: Path
    protoc: Path
    grpc_plugin: Path

    def to_dict(self) -> dict:
        return {
            "package_directory": str(self.package_directory),
            "tools_folder": str(self.tools_folder),
            "include_directory": str(self.include_directory),
            "protoc": str(self.protoc),
            "grpc_plugin": str(self.grpc_plugin),
        }


def build_tool_paths(
    package_directory: Path,
    system: Optional[str] = None,
    is_64bit: Optional[bool] = None,
) -> ToolPaths:
    """Pure path arithmetic; touches nothing on disk."""
    root = Path(package_directory).joinpath(*TOOLS_SUBDIR)
    folder = root / "bin" / f"{platform_folder(system)}_{arch_folder(is_64bit)}"
    suffix = executable_suffix(system)
    return ToolPaths(
        package_directory=Path(package_directory),
        tools_folder=folder,
        include_directory=root / "include",
        protoc=folder / f"{PROTOC_NAME}{suffix}",
        grpc_plugin=folder / f"{GRPC_PLUGIN_NAME}{suffix}",
    )


@functools.lru_cache(maxsize=None)
def resolve_tool_paths(
    project_root: Path,
    package_directory: Optional[Path] = None,
    system: Optional[str] = None,
    is_64bit: Optional[bool] = None,
) -> ToolPaths:
    """
    Resolve (and cache) the toolchain for *project_root*.

    Raises :class:`ConfigurationError` when the package is missing or the
    host platform has no prebuilt binaries.
    """
    package_dir = package_directory or find_package_directory(project_root)
    paths = build_tool_paths(package_dir, system=system, is_64bit=is_64bit)
    logger.debug("Resolved protoc toolchain: %s", paths.protoc)
    return paths
