"""
Pydantic response models for the HTTP API.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class VersionResponse(BaseModel):
    version: str


class DoorStatusResponse(BaseModel):
    door_status: str = Field(..., description="open, closed, or unknown when the sensor read failed")
    error: Optional[str] = None


class CommandResponse(BaseModel):
    status: str


class LogEntry(BaseModel):
    date: str
    time: str
    type: str


class LogsResponse(BaseModel):
    entries: List[LogEntry] = Field(default_factory=list)
