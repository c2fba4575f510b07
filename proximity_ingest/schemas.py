from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from .core.domain.reading import Status


class LogEntryOut(BaseModel):
    id: int
    distance: float
    status: Status
    created_at: datetime


class LatestValueOut(BaseModel):
    distance: float
    status: Status
    updated_at: datetime


class AlertOut(BaseModel):
    id: int
    message: str
    level: Status
    created_at: datetime


class HealthOut(BaseModel):
    status: str
    detail: Optional[dict] = None
