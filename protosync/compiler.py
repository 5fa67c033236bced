"""
Compile triggers.

Three entry points, all following the same shape:

    1. Snapshot the preferences and resolve the toolchain.
    2. Discover the project's proto files and their include paths.
    3. Pick the files to compile (changed / all / not yet compiled).
    4. Fan them out to protoc and wait for the whole batch.
    5. Schedule a single refresh of the host's generated sources.

Toolchain problems raise :class:`~protosync.tools.ConfigurationError`
before anything is compiled.  Compiler failures are only ever logged.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from protosync.config import (
    MAX_WORKERS,
    PROTO_EXTENSION,
    TOOLS_SUBDIR,
    CompilationResult,
    PreferenceSettings,
    ProjectLayout,
)
from protosync.dispatch import MainThreadQueue, main_thread_queue
from protosync.invoker import invoke
from protosync.resolver import (
    compute_include_paths,
    discover_all_proto_files,
    filter_compilable,
)
from protosync.scheduler import InvokeFn, compile_many, get_result_summary
from protosync.staleness import uncompiled
from protosync.tools import ToolPaths, resolve_tool_paths

logger = logging.getLogger(__name__)


def _log_refresh() -> None:
    logger.info("Generated sources are up to date; host refresh requested.")


@dataclass
class ProtoCompiler:
    """Runs protoc over a Unity project on behalf of a host."""

    layout: ProjectLayout
    #: Called once per trigger to snapshot the preferences.
    settings_loader: Callable[[], PreferenceSettings] = PreferenceSettings
    #: Host side effect run after every batch (asset database refresh).
    refresh: Callable[[], None] = _log_refresh
    #: ``False`` in headless/batch mode: refresh runs right away instead
    #: of waiting for the designated thread to drain the queue.
    run_on_designated_thread: bool = True
    dispatch: MainThreadQueue = field(default=main_thread_queue)
    invoke_fn: InvokeFn = invoke
    max_workers: Optional[int] = MAX_WORKERS

    # ── Helpers ───────────────────────────────────────────────────

    def tool_paths(self) -> ToolPaths:
        return resolve_tool_paths(
            self.layout.project_root, self.layout.package_directory,
        )

    def _executable(self, settings: PreferenceSettings, tools: ToolPaths) -> str:
        return settings.protoc_executable or str(tools.protoc)

    def _schedule_refresh(self) -> None:
        if self.run_on_designated_thread:
            self.dispatch.enqueue(self.refresh)
        else:
            self.refresh()

    def _compile(
        self,
        files: List[str],
        include_paths: List[str],
        settings: PreferenceSettings,
        tools: ToolPaths,
    ) -> List[CompilationResult]:
        results = compile_many(
            files,
            include_paths,
            settings.log_standard,
            settings.log_error,
            executable=self._executable(settings, tools),
            grpc_plugin_path=settings.grpc_plugin_path,
            invoke_fn=self.invoke_fn,
            max_workers=self.max_workers,
        )
        logger.debug("Batch finished: %s", get_result_summary(results))
        return results

    def _discover(self, tools: ToolPaths) -> List[str]:
        bundled = os.path.join(str(tools.package_directory), *TOOLS_SUBDIR) + os.sep
        return discover_all_proto_files(
            self.layout.project_root, builtin_dirs=(bundled,),
        )

    def _absolute(self, path: str) -> str:
        p = Path(path)
        if not p.is_absolute():
            p = self.layout.project_root / p
        # Resolved like discovered paths, so excluded prefixes still match.
        return str(p.resolve())

    # ── Entry points ──────────────────────────────────────────────

    def on_files_changed(self, changed_paths: Iterable[str]) -> List[CompilationResult]:
        """Compile the ``.proto`` files among *changed_paths*."""
        settings = self.settings_loader()
        if not settings.enabled:
            return []

        changed = [
            self._absolute(p) for p in changed_paths
            if os.path.splitext(p)[1] == PROTO_EXTENSION
        ]
        files = filter_compilable(changed, self.layout.excluded_prefixes)
        if not files:
            return []

        tools = self.tool_paths()
        include_paths = compute_include_paths(
            self._discover(tools),
            str(tools.include_directory),
        )
        results = self._compile(files, include_paths, settings, tools)

        logger.info("Compiled changed .proto files")
        self._schedule_refresh()
        return results

    def compile_all(self) -> List[CompilationResult]:
        """Force-compile every proto in the project, enabled or not."""
        settings = self.settings_loader()
        if settings.log_standard:
            logger.info("Compiling all .proto files in the project...")

        tools = self.tool_paths()
        all_files = self._discover(tools)
        include_paths = compute_include_paths(all_files, str(tools.include_directory))
        files = filter_compilable(all_files, self.layout.excluded_prefixes)
        results = self._compile(files, include_paths, settings, tools)

        logger.info("Compiled all .proto files")
        self._schedule_refresh()
        return results

    def compile_uncompiled_only(self) -> List[CompilationResult]:
        """Compile only protos that have no generated ``.cs`` next to them."""
        settings = self.settings_loader()
        if not settings.enabled:
            return []

        tools = self.tool_paths()
        all_files = self._discover(tools)
        files = uncompiled(all_files, self.layout.excluded_prefixes)
        if not files:
            logger.debug("Every .proto file already has generated sources")
            return []

        include_paths = compute_include_paths(all_files, str(tools.include_directory))
        results = self._compile(files, include_paths, settings, tools)

        logger.info("Compiled %d uncompiled .proto files", len(files))
        self._schedule_refresh()
        return results
