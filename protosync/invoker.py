"""
Single protoc invocation.

Builds the argument string for one proto file, runs the compiler and
blocks until it exits, then reports the outcome through the log.  A
nonzero exit is a reported event, never an exception.
"""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Iterable, List, Optional, Union

from protosync.config import (
    UNSET_PATH_SENTINELS,
    CompilationCandidate,
    CompilationResult,
)

logger = logging.getLogger(__name__)

#: Exit code recorded when the compiler process could not be started.
LAUNCH_FAILED: int = -1


def is_path_configured(path: Optional[str]) -> bool:
    """``True`` for a real path, ``False`` for empty or the unset sentinel."""
    return bool(path and path.strip()) and path not in UNSET_PATH_SENTINELS


def build_arguments(
    proto_file: str,
    include_paths: Iterable[str],
    grpc_plugin_path: Optional[str] = None,
) -> str:
    """
    Argument string handed to protoc, e.g.::

        "/a/b.proto" --csharp_out "/a"  --proto_path "/a"  --proto_path "/inc"

    The gRPC clause is appended only when a plugin path is configured.
    """
    output_dir = os.path.dirname(proto_file)
    options = f' --csharp_out "{output_dir}" '
    for include in include_paths:
        options += f' --proto_path "{include}" '
    if is_path_configured(grpc_plugin_path):
        options += f" --grpc_out={output_dir} --plugin=protoc-gen-grpc={grpc_plugin_path}"
    return f'"{proto_file}"' + options


def build_argv(
    executable: str,
    proto_file: str,
    include_paths: Iterable[str],
    grpc_plugin_path: Optional[str] = None,
) -> List[str]:
    """The same options as :func:`build_arguments`, one argv entry each."""
    output_dir = os.path.dirname(proto_file)
    argv = [executable, proto_file, "--csharp_out", output_dir]
    for include in include_paths:
        argv += ["--proto_path", include]
    if is_path_configured(grpc_plugin_path):
        argv += [
            f"--grpc_out={output_dir}",
            f"--plugin=protoc-gen-grpc={grpc_plugin_path}",
        ]
    return argv


def _command(
    candidate: CompilationCandidate, arguments: str,
) -> Union[str, List[str]]:
    # Windows takes the command line verbatim.
    if os.name == "nt":
        return f'"{candidate.executable}" {arguments}'
    return build_argv(
        candidate.executable, candidate.proto_file,
        candidate.include_paths, candidate.grpc_plugin_path,
    )


def _creation_flags() -> int:
    return getattr(subprocess, "CREATE_NO_WINDOW", 0)


def invoke(candidate: CompilationCandidate) -> CompilationResult:
    """Run protoc for *candidate* and log what happened."""
    proto_file = candidate.proto_file
    name = os.path.basename(proto_file)
    arguments = build_arguments(
        proto_file, candidate.include_paths, candidate.grpc_plugin_path,
    )

    if candidate.log_standard:
        logger.debug("Final arguments :\n%s", arguments)

    try:
        proc = subprocess.run(
            _command(candidate, arguments),
            stdout=subprocess.PIPE if candidate.log_standard else subprocess.DEVNULL,
            stderr=subprocess.PIPE if candidate.log_error else subprocess.DEVNULL,
            stdin=subprocess.DEVNULL,
            text=True,
            errors="replace",
            creationflags=_creation_flags(),
        )
    except OSError as exc:
        result = CompilationResult(
            proto_file=proto_file,
            exit_code=LAUNCH_FAILED,
            stderr=f"Could not launch {candidate.executable}: {exc}",
            arguments=arguments,
        )
    else:
        result = CompilationResult(
            proto_file=proto_file,
            exit_code=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            arguments=arguments,
        )

    if candidate.log_standard:
        if result.success:
            logger.info("Compiled %s", name)
        if result.stdout.strip():
            logger.info("%s", result.stdout.strip())

    if candidate.log_error:
        if not result.success:
            logger.error("[Error] Could not compile %s", name)
        if result.stderr.strip():
            logger.error("%s", result.stderr.strip())

    return result
