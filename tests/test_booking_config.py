import json
from unittest.mock import MagicMock

import redis

from app.core.errors import ErrorKind
from app.models.booking_config import BookingConfig
from app.services.booking_config import BookingConfigService, INITIAL_CONFIGS
from app.services.config_cache import ConfigCache


def test_seed_is_idempotent(config_service):
    first = config_service.seed(admin_id="system")
    second = config_service.seed(admin_id="system")

    assert len(first.data["created"]) == len(INITIAL_CONFIGS)
    assert first.data["skipped"] == []
    assert second.data["created"] == []
    assert len(second.data["skipped"]) == len(INITIAL_CONFIGS)


def test_get_config_reads_through_cache(seeded_configs, cache):
    first = seeded_configs.get_config("minimum_order_value")
    second = seeded_configs.get_config("MINIMUM_ORDER_VALUE")

    assert first.details["source"] == "database"
    assert second.details["source"] == "cache"
    assert second.data["value"] == 999
    assert cache.get(ConfigCache.key_for("MINIMUM_ORDER_VALUE")) is not None


def test_cached_value_carries_ttl(seeded_configs, redis_client):
    seeded_configs.get_config("MAX_RESCHEDULE_COUNT")
    key = ConfigCache.key_for("MAX_RESCHEDULE_COUNT")

    assert redis_client.ttl(key) == 3600
    assert json.loads(redis_client.get(key))["value"] == 3

    redis_client.delete(key)
    assert seeded_configs.get_config("MAX_RESCHEDULE_COUNT").details["source"] == "database"


def test_unreachable_redis_falls_back_to_database(db, clock):
    client = MagicMock()
    client.get.side_effect = redis.ConnectionError("refused")
    client.setex.side_effect = redis.ConnectionError("refused")
    client.delete.side_effect = redis.ConnectionError("refused")
    service = BookingConfigService(db, ConfigCache(client, ttl_seconds=3600), clock=clock)
    service.seed(admin_id="system")

    assert service.get_value("MINIMUM_ORDER_VALUE") == 999
    assert service.update_value("MINIMUM_ORDER_VALUE", 1099, admin_id="admin").success
    assert service.get_value("MINIMUM_ORDER_VALUE") == 1099


def test_invalidate_all_only_drops_config_keys(cache, redis_client):
    redis_client.set("session:abc", "keep")
    cache.set(ConfigCache.key_for("MINIMUM_ORDER_VALUE"), {"value": 999})
    cache.set(ConfigCache.key_for("MAX_RESCHEDULE_COUNT"), {"value": 3})

    cache.invalidate()

    assert redis_client.keys("booking:config:*") == []
    assert redis_client.get("session:abc") == "keep"


def test_update_invalidates_and_audits(seeded_configs):
    seeded_configs.get_value("MINIMUM_ORDER_VALUE")

    result = seeded_configs.update_value("MINIMUM_ORDER_VALUE", 1499, admin_id="admin-7", reason="Diwali pricing")

    assert result.details["previous_value"] == 999
    assert seeded_configs.get_value("MINIMUM_ORDER_VALUE") == 1499

    audit = seeded_configs.audit_log("MINIMUM_ORDER_VALUE").data.audit_log
    assert [(a.previous_value, a.new_value, a.updated_by, a.reason) for a in audit] == [
        (999, 1499, "admin-7", "Diwali pricing")
    ]


def test_update_respects_validation_rules(seeded_configs):
    too_high = seeded_configs.update_value("CANCELLATION_WINDOW_HOURS", 100, admin_id="admin")
    negative = seeded_configs.update_value("CANCELLATION_WINDOW_HOURS", -1, admin_id="admin")

    assert too_high.kind == ErrorKind.VALIDATION
    assert too_high.code == "VALUE_TOO_HIGH"
    assert negative.code == "INVALID_VALUE"
    assert seeded_configs.get_value("CANCELLATION_WINDOW_HOURS") == 2


def test_update_unknown_config(seeded_configs):
    assert seeded_configs.update_value("NOPE", 1, admin_id="admin").kind == ErrorKind.NOT_FOUND


def test_toggle_makes_value_unavailable(seeded_configs):
    seeded_configs.get_value("RESCHEDULE_WINDOW_HOURS")

    result = seeded_configs.toggle("RESCHEDULE_WINDOW_HOURS", admin_id="admin")

    assert result.details == {"previous_status": True, "new_status": False}
    assert seeded_configs.get_value("RESCHEDULE_WINDOW_HOURS") is None
    assert "RESCHEDULE_WINDOW_HOURS" not in [c.config_key for c in seeded_configs.list_active()]
    assert "RESCHEDULE_WINDOW_HOURS" in [c.config_key for c in seeded_configs.list_all()]


def test_critical_configs_cannot_be_deleted(seeded_configs):
    result = seeded_configs.delete("MINIMUM_ORDER_VALUE", admin_id="admin")

    assert result.kind == ErrorKind.STATE_ILLEGAL
    assert result.code == "CRITICAL_CONFIG"


def test_delete_non_critical_config(seeded_configs, db):
    deleted = seeded_configs.delete("MAX_RESCHEDULE_COUNT", admin_id="admin")

    assert deleted.success
    assert db.query(BookingConfig).filter(BookingConfig.config_key == "MAX_RESCHEDULE_COUNT").count() == 0
    assert seeded_configs.get_value("MAX_RESCHEDULE_COUNT") is None


def test_create_rejects_unknown_and_duplicate_keys(seeded_configs):
    unknown = seeded_configs.create({"config_key": "happy_hour", "value": 1, "description": "x"}, admin_id="admin")
    duplicate = seeded_configs.create(
        {"config_key": "minimum_order_value", "value": 1, "description": "x"}, admin_id="admin"
    )

    assert unknown.code == "INVALID_CONFIG_KEY"
    assert duplicate.kind == ErrorKind.CONFLICT


def test_create_new_config(seeded_configs):
    result = seeded_configs.create(
        {
            "config_key": "platform_fee",
            "value": 49,
            "description": "Flat platform fee per booking",
            "metadata": {"unit": "rupees", "validation_rules": {"min": 0, "max": 500}},
        },
        admin_id="admin",
    )

    assert result.success
    assert result.data.config_key == "PLATFORM_FEE"
    assert result.data.formatted_value == "₹49"
    assert seeded_configs.get_value("PLATFORM_FEE") == 49


def test_get_value_fails_open_and_rolls_back(db, cache, clock, config_queries_fail):
    service = BookingConfigService(db, cache, clock=clock)

    assert service.get_value("MINIMUM_ORDER_VALUE") is None
    config_queries_fail.assert_called_once()


def test_missing_config_is_none(config_service):
    assert config_service.get_value("MINIMUM_ORDER_VALUE") is None
    assert config_service.get_config("MINIMUM_ORDER_VALUE").code == "CONFIG_NOT_FOUND"
