from app.services.auth_gate import AccountStatusView, AuthenticationGate
from app.services.availability import TimeSlot, compute_slots
from app.services.booking_engine import BookingEngine, BookingView
from app.services.resources import ResourceService

__all__ = [
    "AccountStatusView",
    "AuthenticationGate",
    "BookingEngine",
    "BookingView",
    "ResourceService",
    "TimeSlot",
    "compute_slots",
]
