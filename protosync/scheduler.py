"""
Fan-out of protoc runs across a thread pool.

Each file is an independent unit of work: a failing compile, a missing
executable or even an unexpected error in one unit leaves the others
untouched.  The pool size defaults to what ``ThreadPoolExecutor`` picks
from the CPU count; the work is dominated by process wall time anyway.
"""

from __future__ import annotations

import logging
from collections import Counter
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from protosync.config import (
    MAX_WORKERS,
    CompilationCandidate,
    CompilationResult,
)
from protosync.invoker import LAUNCH_FAILED, invoke

logger = logging.getLogger(__name__)

InvokeFn = Callable[[CompilationCandidate], CompilationResult]


def build_candidates(
    files: Iterable[str],
    include_paths: Sequence[str],
    log_standard: bool,
    log_error: bool,
    executable: str,
    grpc_plugin_path: Optional[str] = None,
) -> List[CompilationCandidate]:
    includes = tuple(include_paths)
    return [
        CompilationCandidate(
            proto_file=f,
            include_paths=includes,
            executable=executable,
            log_standard=log_standard,
            log_error=log_error,
            grpc_plugin_path=grpc_plugin_path,
        )
        for f in files
    ]


def compile_many(
    files: Iterable[str],
    include_paths: Sequence[str],
    log_standard: bool,
    log_error: bool,
    *,
    executable: str,
    grpc_plugin_path: Optional[str] = None,
    invoke_fn: InvokeFn = invoke,
    max_workers: Optional[int] = MAX_WORKERS,
) -> List[CompilationResult]:
    """
    Compile every file concurrently and wait for all of them.

    Returns one :class:`CompilationResult` per file, in input order.
    """
    candidates = build_candidates(
        files, include_paths, log_standard, log_error,
        executable, grpc_plugin_path,
    )
    if not candidates:
        return []

    logger.debug("Compiling %d proto files", len(candidates))
    with ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix="protoc",
    ) as pool:
        futures: List[Tuple[str, Future]] = [
            (c.proto_file, pool.submit(invoke_fn, c)) for c in candidates
        ]

    return [_collect(path, fut) for path, fut in futures]


def _collect(proto_file: str, future: Future) -> CompilationResult:
    exc = future.exception()
    if exc is None:
        return future.result()
    logger.error(
        "Compilation of %s raised unexpectedly", proto_file,
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return CompilationResult(
        proto_file=proto_file, exit_code=LAUNCH_FAILED, stderr=str(exc),
    )


def get_result_summary(results: List[CompilationResult]) -> str:
    """Return a human-readable one-line summary of a batch."""
    counts: Counter[str] = Counter(
        "compiled" if r.success else "failed" for r in results
    )
    parts = [f"{counts[k]} {k}" for k in ("compiled", "failed") if counts.get(k)]
    return ", ".join(parts) if parts else "nothing to compile"
