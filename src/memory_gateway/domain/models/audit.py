"""Audit models: analytics usage events and persisted request records."""

import json
from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, field_serializer

from memory_gateway.domain.models.utils import utc_now


class UsageEvent(BaseModel):
    """Payload sent to the analytics collaborator for one completion."""

    model: str
    timestamp: datetime = Field(default_factory=utc_now)
    num_tokens: int
    price: float
    user_id: str

    @field_serializer("timestamp")
    def serialize_timestamp(self, timestamp: datetime) -> str:
        # "2024-01-31 12:00:00.123" in UTC
        return timestamp.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


class RequestRecord(BaseModel):
    """Full request/response pair persisted for later inspection."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    model: str
    request: dict[str, Any]
    response: dict[str, Any]
    num_tokens: int
    duration_ms: float
    user_id: str
    created_at: datetime = Field(default_factory=utc_now)

    def to_neo4j_properties(self) -> dict[str, Any]:
        """Neo4j cannot store nested maps, so payloads are JSON-encoded."""
        return {
            "id": self.id,
            "model": self.model,
            "request": json.dumps(self.request),
            "response": json.dumps(self.response),
            "num_tokens": self.num_tokens,
            "duration_ms": self.duration_ms,
            "user_id": self.user_id,
            "created_at": self.created_at.timestamp(),
        }
