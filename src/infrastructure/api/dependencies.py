from __future__ import annotations

import os

from fastapi import Request

from src.application.use_cases.create_session import CreateSessionUseCase
from src.application.use_cases.edit_canvas import EditCanvasUseCase
from src.application.use_cases.redesign_image import RedesignImageUseCase
from src.application.use_cases.rotate_view import RotateViewUseCase
from src.application.workspace import DesignWorkspace
from src.domain.services.geometry_service import TARGET_SIZE, GeometryService
from src.domain.services.prompt_composer import EditRequestComposer
from src.infrastructure.database.repositories.session_repository import SessionRepository
from src.infrastructure.database.supabase_client import get_supabase_client
from src.infrastructure.genai.gemini_client import GeminiImageClient


def get_session_repo() -> SessionRepository:
    return SessionRepository(get_supabase_client())


def get_generator() -> GeminiImageClient:
    return GeminiImageClient()


def build_workspace(
    repository: SessionRepository | None = None,
    generator: GeminiImageClient | None = None,
) -> DesignWorkspace:
    geometry = GeometryService()
    composer = EditRequestComposer()
    generator = generator or get_generator()
    target_size = int(os.getenv("DESIGN_TARGET_SIZE", str(TARGET_SIZE)))
    return DesignWorkspace(
        repository=repository or get_session_repo(),
        create_session_uc=CreateSessionUseCase(geometry),
        redesign_uc=RedesignImageUseCase(generator, geometry, composer, target_size),
        rotate_uc=RotateViewUseCase(generator, geometry, composer, target_size),
        canvas_uc=EditCanvasUseCase(geometry),
        geometry=geometry,
    )


def get_workspace(request: Request) -> DesignWorkspace:
    return request.app.state.workspace
