"""Request / response schemas for the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """Incoming question from the user."""

    message: str = Field(min_length=1)


class IngestTextRequest(BaseModel):
    """Short text ingested as a single chunk."""

    content: str = Field(min_length=10)


class IngestionResponse(BaseModel):
    id: str
    status: str


class StatusResponse(BaseModel):
    status: str
