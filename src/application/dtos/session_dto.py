from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.entities.design_session import DesignSession


class SessionSummary(BaseModel):
    """A design session as listed in the history sidebar."""
    id: str = Field(..., description="Unique identifier of the session", example="3f2b9c0e5d7a4e61a2c4b8d90f1e2a3b")
    name: str = Field(..., description="Display name", example="Design 1")
    created_at: datetime = Field(..., description="ISO timestamp when the session was created")
    timestamp: int = Field(..., description="Creation time in milliseconds since the epoch")
    thumbnail: str = Field(..., description="JPEG data URL of the downscaled base image")
    original_width: int = Field(..., description="Width of the base image in pixels", example=1600)
    original_height: int = Field(..., description="Height of the base image in pixels", example=900)
    generation_count: int = Field(..., description="Number of stored generated versions", example=3)
    base_url: str = Field(..., description="URL of the full-size base image")

    @classmethod
    def from_entity(cls, session: DesignSession) -> SessionSummary:
        return cls(
            id=session.id,
            name=session.name,
            created_at=session.created_at,
            timestamp=session.timestamp,
            thumbnail=session.thumbnail,
            original_width=session.original_dimensions.width,
            original_height=session.original_dimensions.height,
            generation_count=len(session.generations),
            base_url=f"/sessions/{session.id}/base",
        )


class ListSessionsResponse(BaseModel):
    """Response model for listing sessions, newest first."""
    sessions: list[SessionSummary] = Field(..., description="All sessions, most recently created first")
    active_session_id: str | None = Field(None, description="ID of the session loaded in the workspace")


class CreateSessionResponse(BaseModel):
    """Response model for session creation."""
    session: SessionSummary = Field(..., description="The newly created and activated session")


class SampleSessionResponse(BaseModel):
    """Response model for the sample project."""
    session: SessionSummary = Field(..., description="The session created from the sample photo")
    suggested_prompt: str = Field(..., description="A design prompt to try on the sample photo")
