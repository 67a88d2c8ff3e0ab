"""Response models shared by every router."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body of every failed request: one message, ready to show to the user."""
    detail: str = Field(..., description="What went wrong", example="Please upload an image of your property first.")


class DeletedResponse(BaseModel):
    ok: bool = Field(True, description="Whether the session was removed")
    deleted_id: str = Field(..., description="ID of the removed session")


class ServiceInfo(BaseModel):
    status: str = Field(..., description="API status", example="ok")
    service: str = Field(..., description="Service name", example="archidesigner-backend")
    version: str = Field(..., description="API version", example="0.1.0")


class HealthResponse(BaseModel):
    """Liveness plus the backends the workspace is wired to."""
    status: str = Field(..., description="Health status", example="healthy")
    store: Literal["postgres", "supabase", "memory"] = Field(..., description="Where sessions are persisted")
    generator: Literal["gemini", "echo", "unconfigured"] = Field(
        ..., description="Image model mode; 'echo' returns the input unchanged"
    )
    sessions: int = Field(..., description="Number of sessions held by the workspace", example=3)
