"""
protosync API — FastAPI entry point.

Start with:
    python -m protosync.api.main

Or:
    uvicorn protosync.api.main:app --reload
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from protosync import __version__
from protosync.api.deps import get_layout
from protosync.api.routes import router
from protosync.db.session import dispose_engines

logger = logging.getLogger("protosync.api")


# ── Lifespan ─────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hooks."""
    layout = get_layout()
    logger.info("protosync API v%s starting  (project=%s)", __version__, layout.project_root)
    yield
    dispose_engines()
    logger.info("protosync API shutting down.")


# ── App factory ──────────────────────────────────────────────────────


app = FastAPI(
    title="protosync — protoc orchestration for Unity projects",
    description=(
        "Compile a Unity project's .proto files to C# and manage the "
        "compiler preferences."
    ),
    version=__version__,
    lifespan=lifespan,
)

# Local tooling only; editor extensions call in from another origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


# ── Convenience: ``python -m protosync.api.main`` ────────────────────

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(name)-20s  %(levelname)-8s  %(message)s",
        datefmt="%H:%M:%S",
    )

    host = os.environ.get("API_HOST", "127.0.0.1")
    port = int(os.environ.get("API_PORT", "8000"))

    uvicorn.run(
        "protosync.api.main:app",
        host=host,
        port=port,
    )
