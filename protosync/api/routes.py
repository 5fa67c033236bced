"""
REST endpoint definitions for the protosync API.

All endpoints live under ``/api/v1/``.  Compile endpoints block until
the whole batch has finished, so they are plain ``def`` handlers and
run on FastAPI's worker threads.
"""

from __future__ import annotations

import logging
from typing import Callable, List

from fastapi import APIRouter, Depends, HTTPException

from protosync import __version__
from protosync.api.deps import get_compiler, get_layout, get_preference_store
from protosync.api.schemas import (
    ChangedFilesRequest,
    CompilationResultItem,
    CompileResponse,
    HealthResponse,
    PreferencesResponse,
    PreferencesUpdate,
    ToolsResponse,
)
from protosync.compiler import ProtoCompiler
from protosync.config import CompilationResult, ProjectLayout
from protosync.preferences import PreferenceStore, load_settings
from protosync.scheduler import get_result_summary
from protosync.tools import ConfigurationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")


def _run(trigger: str, fn: Callable[[], List[CompilationResult]]) -> CompileResponse:
    try:
        results = fn()
    except ConfigurationError as exc:
        logger.error("%s", exc)
        raise HTTPException(status_code=500, detail=str(exc))

    return CompileResponse(
        trigger=trigger,
        compiled=sum(1 for r in results if r.success),
        failed=sum(1 for r in results if not r.success),
        summary=get_result_summary(results),
        results=[CompilationResultItem(**r.to_dict()) for r in results],
    )


# ── Health ───────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
def health_check(layout: ProjectLayout = Depends(get_layout)):
    """Quick liveness / readiness probe."""
    from protosync.db.session import check_connection

    return HealthResponse(
        status="ok",
        project_root=str(layout.project_root),
        db_connected=check_connection(layout.preferences_database_url),
        version=__version__,
    )


# ── Preferences ──────────────────────────────────────────────────────


@router.get("/preferences", response_model=PreferencesResponse)
def get_preferences(store: PreferenceStore = Depends(get_preference_store)):
    return PreferencesResponse(**load_settings(store).to_dict())


@router.put("/preferences", response_model=PreferencesResponse)
def update_preferences(
    body: PreferencesUpdate,
    store: PreferenceStore = Depends(get_preference_store),
):
    for name, value in body.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        try:
            store.set_named(name, str(value))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
    return PreferencesResponse(**load_settings(store).to_dict())


# ── Toolchain ────────────────────────────────────────────────────────


@router.get("/tools", response_model=ToolsResponse)
def get_tools(compiler: ProtoCompiler = Depends(get_compiler)):
    try:
        return ToolsResponse(**compiler.tool_paths().to_dict())
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc))


# ── Compile triggers ─────────────────────────────────────────────────


@router.post("/compile/all", response_model=CompileResponse)
def compile_all(compiler: ProtoCompiler = Depends(get_compiler)):
    return _run("all", compiler.compile_all)


@router.post("/compile/uncompiled", response_model=CompileResponse)
def compile_uncompiled(compiler: ProtoCompiler = Depends(get_compiler)):
    return _run("uncompiled", compiler.compile_uncompiled_only)


@router.post("/compile/changed", response_model=CompileResponse)
def compile_changed(
    body: ChangedFilesRequest,
    compiler: ProtoCompiler = Depends(get_compiler),
):
    return _run("changed", lambda: compiler.on_files_changed(body.paths))
