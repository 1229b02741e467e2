
import enum
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, Float, ForeignKey, Text, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base


class ConfigKey(str, enum.Enum):
    MINIMUM_ORDER_VALUE = "MINIMUM_ORDER_VALUE"
    MAX_RESCHEDULE_COUNT = "MAX_RESCHEDULE_COUNT"
    CANCELLATION_WINDOW_HOURS = "CANCELLATION_WINDOW_HOURS"
    RESCHEDULE_WINDOW_HOURS = "RESCHEDULE_WINDOW_HOURS"
    MAX_SERVICES_PER_BOOKING = "MAX_SERVICES_PER_BOOKING"
    PLATFORM_FEE = "PLATFORM_FEE"
    TRANSPORTATION_FEE = "TRANSPORTATION_FEE"


CRITICAL_CONFIG_KEYS = frozenset({
    ConfigKey.MINIMUM_ORDER_VALUE.value,
    ConfigKey.CANCELLATION_WINDOW_HOURS.value,
    ConfigKey.RESCHEDULE_WINDOW_HOURS.value,
})


class BookingConfig(Base):
    __tablename__ = "booking_configs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    config_key = Column(String(50), unique=True, nullable=False, index=True)
    value = Column(Float, nullable=False)
    currency = Column(String(3), default="INR")
    description = Column(String(500), nullable=False)
    is_active = Column(Boolean, default=True, index=True)
    last_updated_by = Column(String(64), nullable=False)
    # {unit, display_name, help_text, validation_rules: {min, max, step}}
    config_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    audit_log = relationship(
        "BookingConfigAudit",
        back_populates="config",
        cascade="all, delete-orphan",
        order_by="BookingConfigAudit.updated_at",
    )

    @property
    def unit(self) -> str:
        return (self.config_metadata or {}).get("unit", "rupees")

    @property
    def formatted_value(self) -> str:
        value = f"{self.value:g}"
        unit = self.unit
        if unit == "rupees":
            return f"₹{value}"
        if unit in ("hours", "minutes"):
            return f"{value} {unit}"
        if unit == "percentage":
            return f"{value}%"
        return value


class BookingConfigAudit(Base):
    __tablename__ = "booking_config_audit"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    config_id = Column(UUID(as_uuid=True), ForeignKey("booking_configs.id", ondelete="CASCADE"), nullable=False, index=True)
    updated_by = Column(String(64), nullable=False)
    previous_value = Column(Float, nullable=True)
    new_value = Column(Float, nullable=False)
    reason = Column(Text, nullable=True)
    updated_at = Column(DateTime, nullable=False)

    config = relationship("BookingConfig", back_populates="audit_log")
