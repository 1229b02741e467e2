
from app.models.user import User
from app.models.working_day import WorkingDay
from app.models.daily_slot import DailySlotSet, TimeSlot
from app.models.booking import Booking, BookingStatus, PaymentStatus, PaymentMethod, ActingRole, BookingSource
from app.models.booking_config import BookingConfig, BookingConfigAudit, ConfigKey
