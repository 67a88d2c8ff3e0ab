from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from src.application.workspace import WorkspaceView


class WorkspaceStateResponse(BaseModel):
    """Visible state of the active session: history cursor and attachments."""
    active_session_id: str | None = Field(None, description="ID of the active session, if any")
    cursor: int = Field(..., description="History cursor; -1 shows the base image", example=-1)
    generation_count: int = Field(..., description="Number of generated versions in the history", example=0)
    can_undo: bool = Field(..., description="Whether undo would move the cursor")
    can_redo: bool = Field(..., description="Whether redo would move the cursor")
    has_sketch: bool = Field(..., description="Whether a sketch overlay is applied")
    has_product: bool = Field(..., description="Whether a product image is attached")
    has_background: bool = Field(..., description="Whether a background image is attached")
    has_debug: bool = Field(..., description="Whether debug info of the last redesign is available")
    image_url: str | None = Field(None, description="URL of the image currently shown")

    @classmethod
    def from_view(cls, view: WorkspaceView) -> WorkspaceStateResponse:
        return cls(
            active_session_id=view.active_session_id,
            cursor=view.cursor,
            generation_count=view.generation_count,
            can_undo=view.can_undo,
            can_redo=view.can_redo,
            has_sketch=view.has_sketch,
            has_product=view.has_product,
            has_background=view.has_background,
            has_debug=view.has_debug,
            image_url="/workspace/image" if view.active_session_id else None,
        )


class RedesignRequest(BaseModel):
    """Request body for a redesign edit."""
    prompt: str = Field(
        ...,
        min_length=1,
        description="Free-text description of the desired changes",
        example="Add a modern stone pathway and a large oak tree on the right.",
    )


class RotateRequest(BaseModel):
    """Request body for a camera rotation."""
    direction: Literal["left", "right"] = Field(..., description="Direction to rotate the camera by 45 degrees")


class CanvasEditRequest(BaseModel):
    """Request body for trimming or expanding the working image into a new base image."""
    mode: Literal["trim", "expand"] = Field("expand", description="Crop from the edges or add margins")
    top: float = Field(0, ge=0, le=50, description="Top margin in percent of the image height")
    bottom: float = Field(0, ge=0, le=50, description="Bottom margin in percent of the image height")
    left: float = Field(0, ge=0, le=50, description="Left margin in percent of the image width")
    right: float = Field(0, ge=0, le=50, description="Right margin in percent of the image width")
    fill: Literal["blur", "white", "black", "transparent"] = Field(
        "blur", description="Fill of the added margins (expand only)"
    )


class RedesignResponse(BaseModel):
    """Response for a successful redesign."""
    state: WorkspaceStateResponse
    prompt: str = Field(..., description="The exact instruction text sent to the model")


class DebugResponse(BaseModel):
    """Debug view of the last redesign request."""
    image: str = Field(..., description="Data URL of the padded square image sent to the model")
    prompt: str = Field(..., description="The exact instruction text sent to the model")
