"""
Shared dependencies for the FastAPI application.

Provides lazy-loaded singletons and dependency injection helpers
for use with ``Depends()``.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends

from protosync.compiler import ProtoCompiler
from protosync.config import ProjectLayout
from protosync.preferences import PreferenceStore, load_settings

logger = logging.getLogger(__name__)

_layout: Optional[ProjectLayout] = None


def get_layout() -> ProjectLayout:
    """Project served by this process, read from the environment once."""
    global _layout
    if _layout is None:
        _layout = ProjectLayout.from_env()
        logger.info("Serving project %s", _layout.project_root)
    return _layout


def get_preference_store(
    layout: ProjectLayout = Depends(get_layout),
) -> PreferenceStore:
    return PreferenceStore(layout.preferences_database_url)


def get_compiler(
    layout: ProjectLayout = Depends(get_layout),
    store: PreferenceStore = Depends(get_preference_store),
) -> ProtoCompiler:
    """A headless compiler: there is no designated thread behind the API."""
    return ProtoCompiler(
        layout=layout,
        settings_loader=lambda: load_settings(store),
        run_on_designated_thread=False,
    )


def reset_layout() -> None:
    global _layout
    _layout = None
