"""Request/response schemas for user endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class DisplayNameResponse(BaseModel):
    display_name: str | None = None


class DisplayNameUpdateRequest(BaseModel):
    display_name: str = Field(max_length=100)


class DisplayNameUpdateResponse(BaseModel):
    success: bool = True
    display_name: str | None = None
