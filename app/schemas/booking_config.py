from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, UUID4
from datetime import datetime


# POST /admin/booking-configs
class BookingConfigCreate(BaseModel):
    config_key: str
    value: float = Field(ge=0)
    description: str = Field(max_length=500)
    currency: Optional[str] = "INR"
    is_active: bool = True
    metadata: Optional[Dict[str, Any]] = None


# PATCH /admin/booking-configs/{key}
class BookingConfigValueUpdate(BaseModel):
    value: float
    reason: Optional[str] = None


# Public view (cached snapshot)
class BookingConfigValue(BaseModel):
    config_key: str
    value: float
    currency: Optional[str] = None
    is_active: bool
    unit: str


# Admin view - DB response
class BookingConfig(BaseModel):
    id: UUID4
    config_key: str
    value: float
    formatted_value: str
    currency: Optional[str] = None
    description: str
    is_active: bool
    last_updated_by: str
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="config_metadata")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingConfigAuditEntry(BaseModel):
    id: UUID4
    updated_by: str
    previous_value: Optional[float] = None
    new_value: float
    reason: Optional[str] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class SeedResult(BaseModel):
    created: list
    skipped: list
