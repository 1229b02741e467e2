from uuid import UUID

import redis
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.core.clock import Clock, system_clock
from app.core.config import settings
from app.core.security import decode_token
from app.db.session import get_db
from app.models.user import User
from app.services.booking_config import BookingConfigService
from app.services.booking_lifecycle import BookingLifecycle
from app.services.config_cache import ConfigCache
from app.services.daily_slots import DailySlotStore
from app.services.notifications import LoggingNotifier, Notifier
from app.services.payment_gateway import PaymentGateway
from app.services.slot_automation import SchedulingAutomationJob
from app.services.working_days import WorkingDayCalendar

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

# Shared across requests so cached config survives between them
_config_cache = ConfigCache(
    redis.Redis.from_url(settings.REDIS_URL, decode_responses=True),
    settings.CONFIG_CACHE_TTL_SECONDS,
)
_notifier = LoggingNotifier()


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    subject = decode_token(token)
    if not subject:
        raise credentials_exception
    try:
        user_id = UUID(subject)
    except ValueError:
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return user


def get_current_admin_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="The user doesn't have enough privileges",
        )
    return current_user


# ---------------------------------------------------------------------------
# Collaborators (overridable in tests)
# ---------------------------------------------------------------------------


def get_clock() -> Clock:
    return system_clock


def get_notifier() -> Notifier:
    return _notifier


def get_config_cache() -> ConfigCache:
    return _config_cache


def get_payment_gateway() -> PaymentGateway:
    return PaymentGateway(settings.RAZORPAY_KEY_SECRET)


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


def get_calendar(db: Session = Depends(get_db)) -> WorkingDayCalendar:
    return WorkingDayCalendar(db)


def get_slot_store(db: Session = Depends(get_db)) -> DailySlotStore:
    return DailySlotStore(db)


def get_automation_job(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> SchedulingAutomationJob:
    return SchedulingAutomationJob(db, clock=clock)


def get_config_service(
    db: Session = Depends(get_db),
    cache: ConfigCache = Depends(get_config_cache),
    clock: Clock = Depends(get_clock),
) -> BookingConfigService:
    return BookingConfigService(db, cache, clock=clock)


def get_booking_lifecycle(
    db: Session = Depends(get_db),
    configs: BookingConfigService = Depends(get_config_service),
    notifier: Notifier = Depends(get_notifier),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    clock: Clock = Depends(get_clock),
) -> BookingLifecycle:
    return BookingLifecycle(db, configs, notifier, gateway, clock=clock)
