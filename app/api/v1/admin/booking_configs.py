from typing import List

from fastapi import APIRouter, Depends, status

from app.api.deps import get_config_service, get_current_admin_user
from app.core.errors import raise_for_result
from app.models.user import User
from app.services.booking_config import BookingConfigService
from app.schemas.booking_config import (
    BookingConfig as BookingConfigSchema,
    BookingConfigAuditEntry,
    BookingConfigCreate,
    BookingConfigValueUpdate,
    SeedResult,
)
from app.schemas.common import MessageResponse

router = APIRouter(prefix="/admin/booking-configs", tags=["Admin - Booking Configs"])


@router.get("", response_model=List[BookingConfigSchema])
def list_all_configs(
    configs: BookingConfigService = Depends(get_config_service),
    current_user: User = Depends(get_current_admin_user),
):
    """Every config, active or not."""
    return configs.list_all()


@router.post("", response_model=BookingConfigSchema, status_code=status.HTTP_201_CREATED)
def create_config(
    body: BookingConfigCreate,
    configs: BookingConfigService = Depends(get_config_service),
    current_user: User = Depends(get_current_admin_user),
):
    return raise_for_result(configs.create(body.model_dump(), admin_id=str(current_user.id)))


@router.post("/seed", response_model=SeedResult)
def seed_configs(
    configs: BookingConfigService = Depends(get_config_service),
    current_user: User = Depends(get_current_admin_user),
):
    """Insert the default configs that don't exist yet."""
    return raise_for_result(configs.seed(admin_id=str(current_user.id)))


@router.get("/{config_key}/audit", response_model=List[BookingConfigAuditEntry])
def config_audit_log(
    config_key: str,
    configs: BookingConfigService = Depends(get_config_service),
    current_user: User = Depends(get_current_admin_user),
):
    config = raise_for_result(configs.audit_log(config_key))
    return list(reversed(config.audit_log))


@router.patch("/{config_key}", response_model=BookingConfigSchema)
def update_config_value(
    config_key: str,
    body: BookingConfigValueUpdate,
    configs: BookingConfigService = Depends(get_config_service),
    current_user: User = Depends(get_current_admin_user),
):
    """Change a value. The previous value is kept in the audit log."""
    return raise_for_result(
        configs.update_value(config_key, body.value, admin_id=str(current_user.id), reason=body.reason)
    )


@router.patch("/{config_key}/toggle", response_model=BookingConfigSchema)
def toggle_config(
    config_key: str,
    configs: BookingConfigService = Depends(get_config_service),
    current_user: User = Depends(get_current_admin_user),
):
    return raise_for_result(configs.toggle(config_key, admin_id=str(current_user.id)))


@router.delete("/{config_key}", response_model=MessageResponse)
def delete_config(
    config_key: str,
    configs: BookingConfigService = Depends(get_config_service),
    current_user: User = Depends(get_current_admin_user),
):
    """Critical configs can only be deactivated, not deleted."""
    result = configs.delete(config_key, admin_id=str(current_user.id))
    key = raise_for_result(result)
    return MessageResponse(message=result.message, data=key)
