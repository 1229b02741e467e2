import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import Clock, system_clock
from app.core.errors import ErrorKind, ServiceResult
from app.models.booking_config import (
    BookingConfig,
    BookingConfigAudit,
    ConfigKey,
    CRITICAL_CONFIG_KEYS,
)
from app.services.config_cache import ConfigCache

logger = logging.getLogger(__name__)

INITIAL_CONFIGS: List[Dict[str, Any]] = [
    {
        "config_key": ConfigKey.MINIMUM_ORDER_VALUE.value,
        "value": 999,
        "description": "Minimum order value required to place a booking",
        "metadata": {
            "unit": "rupees",
            "display_name": "Minimum Order Value",
            "help_text": "Users must add services worth at least this amount to place a booking.",
            "validation_rules": {"min": 0, "max": 10000, "step": 1},
        },
    },
    {
        "config_key": ConfigKey.MAX_RESCHEDULE_COUNT.value,
        "value": 3,
        "description": "Maximum number of times a booking can be rescheduled",
        "metadata": {
            "unit": "count",
            "display_name": "Max Reschedule Count",
            "help_text": "Limits how many times a customer can reschedule one booking.",
            "validation_rules": {"min": 0, "max": 10, "step": 1},
        },
    },
    {
        "config_key": ConfigKey.CANCELLATION_WINDOW_HOURS.value,
        "value": 2,
        "description": "Minimum hours before booking time when cancellation is allowed",
        "metadata": {
            "unit": "hours",
            "display_name": "Cancellation Window",
            "help_text": "Customers can cancel only if the booking is more than this many hours away.",
            "validation_rules": {"min": 0, "max": 72, "step": 1},
        },
    },
    {
        "config_key": ConfigKey.RESCHEDULE_WINDOW_HOURS.value,
        "value": 4,
        "description": "Minimum hours before booking time when rescheduling is allowed",
        "metadata": {
            "unit": "hours",
            "display_name": "Reschedule Window",
            "help_text": "Customers can reschedule only if the booking is more than this many hours away.",
            "validation_rules": {"min": 0, "max": 72, "step": 1},
        },
    },
]


def snapshot(config: BookingConfig) -> Dict[str, Any]:
    """Plain, session-independent view of a config row (what gets cached)."""
    return {
        "config_key": config.config_key,
        "value": config.value,
        "currency": config.currency,
        "is_active": bool(config.is_active),
        "unit": config.unit,
    }


class BookingConfigService:
    """
    Admin-adjustable booking thresholds.

    Reads go through ``cache``; every write invalidates the affected key.
    Lookups used by booking rules fail open: an unreachable or inactive
    config yields ``None`` and the caller decides what that means.
    """

    def __init__(self, db: Session, cache: ConfigCache, clock: Clock = system_clock):
        self.db = db
        self.cache = cache
        self.clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _find(self, config_key: str) -> Optional[BookingConfig]:
        return (
            self.db.query(BookingConfig)
            .filter(BookingConfig.config_key == config_key.upper())
            .first()
        )

    def get_config(self, config_key: str) -> ServiceResult[Dict[str, Any]]:
        cache_key = ConfigCache.key_for(config_key)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return ServiceResult.ok(cached, source="cache")

        config = (
            self.db.query(BookingConfig)
            .filter(
                BookingConfig.config_key == config_key.upper(),
                BookingConfig.is_active == True,
            )
            .first()
        )
        if not config:
            return ServiceResult.fail(
                ErrorKind.NOT_FOUND,
                "CONFIG_NOT_FOUND",
                f"Config {config_key} not found or inactive",
            )

        data = snapshot(config)
        self.cache.set(cache_key, data)
        return ServiceResult.ok(data, source="database")

    def get_value(self, config_key: str) -> Optional[float]:
        """Active value for ``config_key``, or None when missing, inactive or unreadable."""
        try:
            result = self.get_config(config_key)
        except SQLAlchemyError:
            logger.exception("Config lookup for %s failed; failing open", config_key)
            self.db.rollback()
            return None
        if not result.success or not result.data.get("is_active"):
            return None
        return result.data["value"]

    def list_active(self) -> List[BookingConfig]:
        return (
            self.db.query(BookingConfig)
            .filter(BookingConfig.is_active == True)
            .order_by(BookingConfig.config_key)
            .all()
        )

    def list_all(self) -> List[BookingConfig]:
        return self.db.query(BookingConfig).order_by(BookingConfig.config_key).all()

    def audit_log(self, config_key: str) -> ServiceResult[BookingConfig]:
        config = self._find(config_key)
        if not config:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "CONFIG_NOT_FOUND", f"Config {config_key} not found")
        return ServiceResult.ok(config)

    # ------------------------------------------------------------------
    # Writes (admin)
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any], admin_id: str) -> ServiceResult[BookingConfig]:
        key = data["config_key"].upper()
        if key not in ConfigKey.__members__:
            return ServiceResult.fail(ErrorKind.VALIDATION, "INVALID_CONFIG_KEY", f"Unknown config key {key}")
        existing = self._find(key)
        if existing:
            return ServiceResult.fail(
                ErrorKind.CONFLICT,
                "CONFIG_ALREADY_EXISTS",
                f"Config {key} already exists",
            )

        config = BookingConfig(
            config_key=key,
            value=data["value"],
            currency=data.get("currency") or "INR",
            description=data["description"],
            is_active=data.get("is_active", True),
            last_updated_by=str(admin_id),
            config_metadata=data.get("metadata"),
        )
        self.db.add(config)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return ServiceResult.fail(ErrorKind.CONFLICT, "DUPLICATE_CONFIG_KEY", "Config with this key already exists")
        self.db.refresh(config)
        self.cache.invalidate(ConfigCache.key_for(key))

        logger.info("Config created: %s = %s", key, config.value)
        return ServiceResult.ok(config, message=f"Config {key} created successfully")

    def update_value(
        self,
        config_key: str,
        new_value: float,
        admin_id: str,
        reason: Optional[str] = None,
    ) -> ServiceResult[BookingConfig]:
        config = self._find(config_key)
        if not config:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "CONFIG_NOT_FOUND", f"Config {config_key} not found")

        if new_value < 0:
            return ServiceResult.fail(ErrorKind.VALIDATION, "INVALID_VALUE", "Config value must be a non-negative number")

        rules = (config.config_metadata or {}).get("validation_rules") or {}
        if rules.get("min") is not None and new_value < rules["min"]:
            return ServiceResult.fail(ErrorKind.VALIDATION, "VALUE_TOO_LOW", f"Value must be at least {rules['min']}")
        if rules.get("max") is not None and new_value > rules["max"]:
            return ServiceResult.fail(ErrorKind.VALIDATION, "VALUE_TOO_HIGH", f"Value cannot exceed {rules['max']}")

        previous_value = config.value
        config.value = new_value
        config.last_updated_by = str(admin_id)
        config.audit_log.append(
            BookingConfigAudit(
                updated_by=str(admin_id),
                previous_value=previous_value,
                new_value=new_value,
                reason=reason or "Updated via admin panel",
                updated_at=self.clock(),
            )
        )
        self.db.commit()
        self.db.refresh(config)
        self.cache.invalidate(ConfigCache.key_for(config.config_key))

        logger.info(
            "Config updated: %s from %s to %s by admin %s",
            config.config_key, previous_value, new_value, admin_id,
        )
        return ServiceResult.ok(
            config,
            message=f"Config {config.config_key} updated successfully",
            previous_value=previous_value,
            new_value=new_value,
        )

    def toggle(self, config_key: str, admin_id: str) -> ServiceResult[BookingConfig]:
        config = self._find(config_key)
        if not config:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "CONFIG_NOT_FOUND", f"Config {config_key} not found")

        previous_status = bool(config.is_active)
        config.is_active = not previous_status
        config.last_updated_by = str(admin_id)
        self.db.commit()
        self.db.refresh(config)
        self.cache.invalidate(ConfigCache.key_for(config.config_key))

        state = "activated" if config.is_active else "deactivated"
        logger.info("Config %s %s by admin %s", config.config_key, state, admin_id)
        return ServiceResult.ok(
            config,
            message=f"Config {config.config_key} {state} successfully",
            previous_status=previous_status,
            new_status=config.is_active,
        )

    def delete(self, config_key: str, admin_id: str) -> ServiceResult[str]:
        config = self._find(config_key)
        if not config:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "CONFIG_NOT_FOUND", f"Config {config_key} not found")
        if config.config_key in CRITICAL_CONFIG_KEYS:
            return ServiceResult.fail(
                ErrorKind.STATE_ILLEGAL,
                "CRITICAL_CONFIG",
                f"Cannot delete critical config {config.config_key}. Consider deactivating it instead.",
            )

        key = config.config_key
        self.db.delete(config)
        self.db.commit()
        self.cache.invalidate(ConfigCache.key_for(key))

        logger.info("Config deleted: %s by admin %s", key, admin_id)
        return ServiceResult.ok(key, message=f"Config {key} deleted successfully")

    def seed(self, admin_id: str) -> ServiceResult[Dict[str, Any]]:
        created, skipped = [], []
        for initial in INITIAL_CONFIGS:
            if self._find(initial["config_key"]):
                skipped.append(initial["config_key"])
                continue
            self.db.add(
                BookingConfig(
                    config_key=initial["config_key"],
                    value=initial["value"],
                    currency="INR",
                    description=initial["description"],
                    is_active=True,
                    last_updated_by=str(admin_id),
                    config_metadata=initial["metadata"],
                )
            )
            created.append(initial["config_key"])
        self.db.commit()
        self.cache.invalidate()

        logger.info("Seeding complete: %d created, %d skipped", len(created), len(skipped))
        return ServiceResult.ok(
            {"created": created, "skipped": skipped},
            message=f"Seeding complete: {len(created)} configs created, {len(skipped)} already existed",
        )
