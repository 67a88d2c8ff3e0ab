from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.application.dtos.common_dto import HealthResponse, ServiceInfo
from src.application.workspace import DesignWorkspace
from src.domain.errors import StoreUnavailableError
from src.infrastructure.api.dependencies import build_workspace
from src.infrastructure.api.middlewares import add_default_middlewares, add_exception_handlers
from src.infrastructure.api.routes.session_routes import router as session_router
from src.infrastructure.api.routes.workspace_routes import router as workspace_router

logger = logging.getLogger(__name__)


def create_app(workspace: DesignWorkspace | None = None) -> FastAPI:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            app.state.workspace.load()
        except StoreUnavailableError as exc:
            # stored sessions are read and merged before the first write reaches the store
            logger.error(f"Starting with an empty workspace: {exc}")
        yield

    app = FastAPI(
        title="ArchiDesigner Backend",
        version="0.1.0",
        lifespan=lifespan,
        description="""
        ## ArchiDesigner Backend API

        Iteratively edit a photograph of a building or scene with a generative
        image model, with undo/redo history that survives restarts.

        ### Features
        - **Sessions**: one project per base image, listed newest first
        - **Redesign**: free-text edits, optionally restricted to a sketch, with a
          product to place or a new background to composite into
        - **Rotate View**: re-render the scene from a camera rotated 45 degrees
        - **History**: undo, redo and revert; a new edit drops the redo versions
        - **Trim / Expand**: reframe the base image before editing

        Images are letterboxed into a 1024 x 1024 square for the model and
        cropped back to their original aspect ratio afterwards.

        ### Error Responses
        Every failure is reported as `{"detail": "<message>"}`:
        - **400 Bad Request**: Unreadable image, no active session, invalid input
        - **404 Not Found**: Session does not exist
        - **409 Conflict**: Another edit is in progress
        - **502 Bad Gateway**: The model returned no image
        - **503 Service Unavailable**: The session store cannot be opened
        - **504 Gateway Timeout**: The model did not respond in time
        """,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )
    app.state.workspace = workspace or build_workspace()
    add_default_middlewares(app)
    add_exception_handlers(app)

    @app.get(
        "/",
        response_model=ServiceInfo,
        summary="API Root",
        description="Get basic information about the ArchiDesigner API",
        response_description="API information including status and version",
    )
    def root():
        """Get API root information."""
        return {"status": "ok", "service": "archidesigner-backend", "version": app.version}

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Report liveness and which session store and image model mode are in use",
        response_description="Health status of the API service",
    )
    def health():
        """Check API health status."""
        ws: DesignWorkspace = app.state.workspace
        return HealthResponse(
            status="healthy",
            store=ws.repository.mode,
            generator=ws.redesign_uc.generator.mode,
            sessions=len(ws.view().sessions),
        )

    app.include_router(session_router)
    app.include_router(workspace_router)
    return app


app = create_app()
