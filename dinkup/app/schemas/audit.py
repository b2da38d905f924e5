"""
Audit Log Schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List


class AuditLogResponse(BaseModel):
    """Schema for audit log entry."""
    id: int
    actor: str
    action: str
    entity_type: Optional[str]
    entity_id: Optional[str]
    meta_data: Optional[dict]
    timestamp: datetime

    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    logs: List[AuditLogResponse]
    total: int
