"""
Event envelope published to RabbitMQ
"""
from pydantic import BaseModel, Field
from datetime import datetime, timezone
import uuid


class EventEnvelope(BaseModel):
    """Schema for published event payloads"""
    event_type: str
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_version: str = "1.0"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    source: str = "storefront-service"
    data: dict
