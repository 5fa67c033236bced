"""
Pydantic request / response models for the protosync REST API.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


# ── Requests ─────────────────────────────────────────────────────────


class ChangedFilesRequest(BaseModel):
    """POST /api/v1/compile/changed"""

    paths: List[str] = Field(
        ...,
        description=(
            "Changed file paths, absolute or relative to the project root. "
            "Anything that is not a .proto file is ignored."
        ),
    )

    @field_validator("paths")
    @classmethod
    def _non_empty(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("paths must contain at least one entry.")
        return v


class PreferencesUpdate(BaseModel):
    """PUT /api/v1/preferences — only the fields that are sent change.

    Sending an empty string for a path clears the override.
    """

    enabled: Optional[bool] = None
    protoc_executable: Optional[str] = None
    grpc_plugin_path: Optional[str] = None
    log_error: Optional[bool] = None
    log_standard: Optional[bool] = None


# ── Responses ────────────────────────────────────────────────────────


class PreferencesResponse(BaseModel):
    enabled: bool
    protoc_executable: Optional[str] = None
    grpc_plugin_path: Optional[str] = None
    log_error: bool
    log_standard: bool


class CompilationResultItem(BaseModel):
    proto_file: str
    exit_code: int
    success: bool
    stdout: str = ""
    stderr: str = ""


class CompileResponse(BaseModel):
    trigger: str = Field(..., description="Which entry point ran.")
    compiled: int = Field(0, description="Files that compiled successfully.")
    failed: int = Field(0, description="Files that failed to compile.")
    summary: str
    results: List[CompilationResultItem] = Field(default_factory=list)


class ToolsResponse(BaseModel):
    package_directory: str
    tools_folder: str
    include_directory: str
    protoc: str
    grpc_plugin: str


class HealthResponse(BaseModel):
    status: str = "ok"
    project_root: str
    db_connected: bool
    version: str
