from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response

from src.application.dtos.common_dto import ErrorResponse
from src.application.dtos.session_dto import CreateSessionResponse, SessionSummary
from src.application.dtos.workspace_dto import (
    CanvasEditRequest,
    DebugResponse,
    RedesignRequest,
    RedesignResponse,
    RotateRequest,
    WorkspaceStateResponse,
)
from src.application.workspace import DesignWorkspace
from src.domain.services.geometry_service import Margins
from src.infrastructure.api.dependencies import get_workspace
from src.infrastructure.api.routes.session_routes import read_upload

router = APIRouter(
    prefix="/workspace",
    tags=["Design Workspace"],
    responses={
        400: {"model": ErrorResponse, "description": "Bad Request - No active session or invalid image"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


def _state(workspace: DesignWorkspace) -> WorkspaceStateResponse:
    return WorkspaceStateResponse.from_view(workspace.view())


@router.get(
    "",
    response_model=WorkspaceStateResponse,
    summary="Workspace State",
    description="History cursor, undo/redo availability and attachments of the active session.",
)
def get_state(workspace: DesignWorkspace = Depends(get_workspace)):
    """Get the active session's visible state."""
    return _state(workspace)


@router.get(
    "/image",
    summary="Current Image",
    description="""
    Return the image the next edit starts from, chosen in this order:
    1. the applied sketch overlay
    2. the generated version at the history cursor
    3. the session's base image
    """,
    response_class=Response,
    responses={404: {"description": "Not Found - No active session"}},
)
def get_current_image(workspace: DesignWorkspace = Depends(get_workspace)):
    """Download the current working image."""
    image = workspace.working_image()
    if image is None:
        raise HTTPException(status_code=404, detail="No active session")
    return Response(content=image.data, media_type=image.mime_type)


@router.get(
    "/debug",
    response_model=DebugResponse,
    summary="Debug View",
    description="The padded square image and exact instruction text sent by the last redesign.",
    responses={404: {"description": "Not Found - No redesign has run yet"}},
)
def get_debug(workspace: DesignWorkspace = Depends(get_workspace)):
    """Inspect the last redesign request."""
    debug = workspace.debug
    if debug is None:
        raise HTTPException(status_code=404, detail="No debug information available")
    return DebugResponse(image=debug.image.to_data_url(), prompt=debug.prompt)


@router.post(
    "/redesign",
    response_model=RedesignResponse,
    summary="Redesign",
    description="""
    Edit the current image according to a free-text prompt.

    Any attached sketch restricts edits to the sketched areas; an attached
    product image is integrated into the scene; an attached background image
    replaces the environment around the subject. The result is appended to the
    history (dropping any redo versions) and the attachments are cleared.

    Only one edit may run at a time.
    """,
    responses={
        409: {"description": "Conflict - Another edit is in progress"},
        502: {"description": "Bad Gateway - The model returned no image"},
        504: {"description": "Gateway Timeout - The model did not respond in time"},
    },
)
def redesign(body: RedesignRequest, workspace: DesignWorkspace = Depends(get_workspace)):
    """Run a redesign edit."""
    result = workspace.redesign(body.prompt)
    return RedesignResponse(state=_state(workspace), prompt=result.prompt)


@router.post(
    "/rotate",
    response_model=WorkspaceStateResponse,
    summary="Rotate View",
    description="Re-render the current image from a camera rotated 45 degrees to the left or right.",
    responses={
        409: {"description": "Conflict - Another edit is in progress"},
        502: {"description": "Bad Gateway - The model returned no image"},
        504: {"description": "Gateway Timeout - The model did not respond in time"},
    },
)
def rotate(body: RotateRequest, workspace: DesignWorkspace = Depends(get_workspace)):
    """Run a camera rotation edit."""
    workspace.rotate(body.direction)
    return _state(workspace)


@router.post("/undo", response_model=WorkspaceStateResponse, summary="Undo")
def undo(workspace: DesignWorkspace = Depends(get_workspace)):
    """Move the history cursor back one version."""
    workspace.undo()
    return _state(workspace)


@router.post("/redo", response_model=WorkspaceStateResponse, summary="Redo")
def redo(workspace: DesignWorkspace = Depends(get_workspace)):
    """Move the history cursor forward one version."""
    workspace.redo()
    return _state(workspace)


@router.post(
    "/revert",
    response_model=WorkspaceStateResponse,
    summary="Revert To Original",
    description="Discard every generated version and the sketch; the base image is kept.",
)
def revert(workspace: DesignWorkspace = Depends(get_workspace)):
    """Revert the active session to its base image."""
    workspace.revert_to_original()
    return _state(workspace)


@router.post("/new", response_model=WorkspaceStateResponse, summary="Start New Project")
def new_project(workspace: DesignWorkspace = Depends(get_workspace)):
    """Deactivate the current session without deleting it."""
    workspace.new_project()
    return _state(workspace)


@router.put("/sketch", response_model=WorkspaceStateResponse, summary="Apply Sketch")
def put_sketch(
    file: UploadFile = File(..., description="Current image with the user's sketch drawn on it"),
    workspace: DesignWorkspace = Depends(get_workspace),
):
    """Apply a sketch overlay for the next redesign."""
    workspace.set_sketch(read_upload(file))
    return _state(workspace)


@router.delete("/sketch", response_model=WorkspaceStateResponse, summary="Remove Sketch")
def delete_sketch(workspace: DesignWorkspace = Depends(get_workspace)):
    workspace.remove_sketch()
    return _state(workspace)


@router.put("/product", response_model=WorkspaceStateResponse, summary="Attach Product")
def put_product(
    file: UploadFile = File(..., description="Image of an element to place in the scene"),
    workspace: DesignWorkspace = Depends(get_workspace),
):
    """Attach a product image to the next redesign."""
    workspace.set_product(read_upload(file))
    return _state(workspace)


@router.delete("/product", response_model=WorkspaceStateResponse, summary="Remove Product")
def delete_product(workspace: DesignWorkspace = Depends(get_workspace)):
    workspace.remove_product()
    return _state(workspace)


@router.put("/background", response_model=WorkspaceStateResponse, summary="Attach Background")
def put_background(
    file: UploadFile = File(..., description="New environment for the subject"),
    workspace: DesignWorkspace = Depends(get_workspace),
):
    """Attach a background image to the next redesign."""
    workspace.set_background(read_upload(file))
    return _state(workspace)


@router.delete("/background", response_model=WorkspaceStateResponse, summary="Remove Background")
def delete_background(workspace: DesignWorkspace = Depends(get_workspace)):
    workspace.remove_background()
    return _state(workspace)


@router.post(
    "/canvas",
    response_model=CreateSessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Trim / Expand",
    description="""
    Trim or expand the current image and make the result the session's new
    base image.

    - **trim**: removes a percentage of each edge (at most 45% per edge)
    - **expand**: adds a percentage margin to each edge, filled with a blurred
      stretch of the image, white, black or transparency

    The original dimensions are re-read from the result and the generated
    history is reset, since earlier versions were produced against the old
    geometry.
    """,
)
def edit_canvas(body: CanvasEditRequest, workspace: DesignWorkspace = Depends(get_workspace)):
    """Replace the base image with a trimmed or expanded copy."""
    margins = Margins(top=body.top, bottom=body.bottom, left=body.left, right=body.right)
    session = workspace.edit_canvas(body.mode, margins, body.fill)
    return CreateSessionResponse(session=SessionSummary.from_entity(session))


@router.put(
    "/base",
    response_model=CreateSessionResponse,
    summary="Replace Base Image",
    description="""
    Replace the active session's base image with an image edited elsewhere.

    Same effect as Trim / Expand: new original dimensions, history reset,
    sketch cleared. Session id and name are kept.
    """,
)
def put_base(
    file: UploadFile = File(..., description="New base image"),
    workspace: DesignWorkspace = Depends(get_workspace),
):
    """Replace the base image."""
    session = workspace.replace_base(read_upload(file))
    return CreateSessionResponse(session=SessionSummary.from_entity(session))
