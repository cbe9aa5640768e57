from datetime import datetime, timezone
from enum import Enum
from typing import Dict

from pydantic import BaseModel, Field


class SSEEventType(str, Enum):
    SESSION_STATE = "session:state"
    SESSION_PROGRESS = "session:progress"
    SESSION_FAILED = "session:failed"
    HEARTBEAT = "heartbeat"


class SSEEvent(BaseModel):
    event_type: SSEEventType
    session_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: Dict
