from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response

from src.application.dtos.common_dto import DeletedResponse, ErrorResponse
from src.application.dtos.session_dto import (
    CreateSessionResponse,
    ListSessionsResponse,
    SampleSessionResponse,
    SessionSummary,
)
from src.application.workspace import DesignWorkspace
from src.domain.entities.image_asset import ImageAsset
from src.domain.errors import DecodeError
from src.infrastructure.api.dependencies import get_workspace

logger = logging.getLogger(__name__)

SAMPLE_IMAGE_URL = "https://storage.googleapis.com/aistudio-web-public-prod/prompts/v1/exterior.jpeg"
SAMPLE_PROMPT = (
    "Add a modern stone pathway, plant vibrant flowerbeds along the front, "
    "and add a large oak tree on the right."
)

router = APIRouter(
    prefix="/sessions",
    tags=["Design Sessions"],
    responses={
        404: {"model": ErrorResponse, "description": "Not Found - Session does not exist"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


def read_upload(file: UploadFile) -> ImageAsset:
    data = file.file.read()
    if not data:
        raise DecodeError("Uploaded file is empty")
    mime = file.content_type if file.content_type and file.content_type.startswith("image/") else "image/png"
    return ImageAsset(data=data, mime_type=mime)


@router.get(
    "",
    response_model=ListSessionsResponse,
    summary="List Sessions",
    description="""
    List every design session, most recently created first.

    Each entry carries a thumbnail data URL and the original dimensions of its
    base image. The session currently loaded in the workspace is reported as
    `active_session_id`.
    """,
)
def list_sessions(workspace: DesignWorkspace = Depends(get_workspace)):
    """List all sessions, newest first."""
    view = workspace.view()
    return ListSessionsResponse(
        sessions=[SessionSummary.from_entity(s) for s in view.sessions],
        active_session_id=view.active_session_id,
    )


@router.post(
    "",
    response_model=CreateSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Session",
    description="""
    Start a new design project from a photo of a building or scene.

    The uploaded image becomes the session's base image; its native width and
    height are captured once and used to crop every generated version back to
    the true aspect ratio. The new session is placed first in the list and
    activated with an empty history.

    **Supported formats**: anything Pillow can decode (JPEG, PNG, WEBP, ...)
    """,
    responses={400: {"description": "Bad Request - Image dimensions could not be read"}},
)
def create_session(
    file: UploadFile = File(..., description="Base image of the property"),
    workspace: DesignWorkspace = Depends(get_workspace),
):
    """Create and activate a new session."""
    session = workspace.create_session(read_upload(file))
    return CreateSessionResponse(session=SessionSummary.from_entity(session))


@router.post(
    "/sample",
    response_model=SampleSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start With Sample Project",
    description="Create a session from a sample exterior photo and return a prompt to try on it.",
    responses={502: {"description": "Bad Gateway - Sample image could not be downloaded"}},
)
def create_sample_session(workspace: DesignWorkspace = Depends(get_workspace)):
    """Create a session from the sample exterior photo."""
    try:
        res = httpx.get(SAMPLE_IMAGE_URL, timeout=30.0, follow_redirects=True)
        res.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error(f"Failed to load sample image: {exc}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Could not load default image. Details: {exc}",
        ) from exc
    mime = res.headers.get("content-type", "image/jpeg").split(";")[0].strip()
    image = ImageAsset(data=res.content, mime_type=mime)
    session = workspace.create_session(image)
    return SampleSessionResponse(
        session=SessionSummary.from_entity(session), suggested_prompt=SAMPLE_PROMPT
    )


@router.post(
    "/{session_id}/select",
    response_model=CreateSessionResponse,
    summary="Select Session",
    description="""
    Load a session into the workspace.

    Clears any sketch, product or background attachment and places the history
    cursor on the newest generated version.
    """,
)
def select_session(session_id: str, workspace: DesignWorkspace = Depends(get_workspace)):
    """Activate an existing session."""
    session = workspace.select_session(session_id)
    return CreateSessionResponse(session=SessionSummary.from_entity(session))


@router.delete(
    "/{session_id}",
    response_model=DeletedResponse,
    summary="Delete Session",
    description="""
    Delete a session permanently.

    If it was the active session, the front-most remaining session is
    activated, or the workspace is cleared when none remain.
    """,
)
def delete_session(session_id: str, workspace: DesignWorkspace = Depends(get_workspace)):
    """Delete a session by id."""
    workspace.delete_session(session_id)
    return DeletedResponse(deleted_id=session_id)


@router.get(
    "/{session_id}/base",
    summary="Download Base Image",
    description="Return the full-size base image of a session as stored.",
    response_class=Response,
)
def download_base(session_id: str, workspace: DesignWorkspace = Depends(get_workspace)):
    """Download a session's base image."""
    session = next((s for s in workspace.view().sessions if s.id == session_id), None)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return Response(content=session.base_image.data, media_type=session.base_image.mime_type)
