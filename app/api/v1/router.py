from fastapi import APIRouter

# Public - calendar & slots
from app.api.v1.public.working_days import router as public_working_days_router
from app.api.v1.public.slots import router as public_slots_router

# Public - bookings & configs
from app.api.v1.public.bookings import router as bookings_router
from app.api.v1.public.booking_configs import router as public_booking_configs_router

# Admin
from app.api.v1.admin.working_days import router as working_days_router
from app.api.v1.admin.daily_slots import router as daily_slots_router
from app.api.v1.admin.slot_automation import router as slot_automation_router
from app.api.v1.admin.bookings import router as admin_bookings_router
from app.api.v1.admin.booking_configs import router as booking_configs_router

api_router = APIRouter()

# --- Public: calendar & slots ---
api_router.include_router(public_working_days_router)
api_router.include_router(public_slots_router)

# --- Public: bookings & configs ---
api_router.include_router(bookings_router)
api_router.include_router(public_booking_configs_router)

# --- Admin ---
api_router.include_router(working_days_router)
api_router.include_router(daily_slots_router)
api_router.include_router(slot_automation_router)
api_router.include_router(admin_bookings_router)
api_router.include_router(booking_configs_router)
