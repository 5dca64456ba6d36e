"""
API Models

Response schemas for the service's own endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContentStatus(BaseModel):
    """Summary of the snapshot currently being served."""

    posts: int = Field(..., ge=0)
    projects: int = Field(..., ge=0)
    tags: int = Field(..., ge=0)
    resume: bool
    revision: Optional[str] = None
    loaded_at: datetime
    version: int = Field(
        ...,
        ge=1,
        description="Number of snapshots published since startup.",
    )

    model_config = ConfigDict(extra="forbid")


class HealthResponse(BaseModel):
    status: Literal["ok", "loading"]
    content: Optional[ContentStatus] = None
