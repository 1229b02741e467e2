from app.schemas.common import PaginatedResponse, MessageResponse
from app.schemas.working_day import (
    WorkingDay, WorkingDayUpsert, WorkingDayBulkUpdate, WorkingDayCheck,
    WorkingDaySlotsPreview, WorkingDayStatistics,
)
from app.schemas.daily_slot import (
    SlotInput, DailySlotsCreate, DailySlotsUpdate, TimeSlot, DailySlotSet,
    AvailableSlotsResponse, DeleteSlotsResponse, SlotStatistics,
)
from app.schemas.slot_automation import (
    BulkGenerateRequest, GenerationSummary, GenerationStatusEntry, AutomationSummary,
)
from app.schemas.booking import (
    Booking, AdminBooking, BookingCreate, BookingCancel, BookingReschedule,
    PaymentComplete, BookingStatusUpdate, BookingActionResponse,
    BookingCancelResponse, BookingRescheduleResponse, BookingStats, BookingAnalytics,
)
from app.schemas.booking_config import (
    BookingConfig, BookingConfigCreate, BookingConfigValueUpdate,
    BookingConfigValue, BookingConfigAuditEntry, SeedResult,
)
