from typing import List

from fastapi import APIRouter, Depends

from app.api.deps import get_config_service
from app.core.errors import raise_for_result
from app.services.booking_config import BookingConfigService, snapshot
from app.schemas.booking_config import BookingConfigValue

router = APIRouter(prefix="/booking-configs", tags=["Booking Configs"])


@router.get("", response_model=List[BookingConfigValue])
def list_active_configs(configs: BookingConfigService = Depends(get_config_service)):
    return [snapshot(c) for c in configs.list_active()]


@router.get("/{config_key}", response_model=BookingConfigValue)
def get_config(config_key: str, configs: BookingConfigService = Depends(get_config_service)):
    """Served from the config cache when warm. 404 when missing or inactive."""
    return raise_for_result(configs.get_config(config_key))
