"""Booking form state, validation and rate estimation."""

from .form import BookingForm, BookingFormRegistry, BookingValidationError, FieldError
from .models import BookingDraft, BookingStatus, PaymentMethod, PaymentStatus, RateQuery, RateQuote
from .orchestrator import RateCalculationOrchestrator, RateState

__all__ = [
    "BookingDraft",
    "BookingForm",
    "BookingFormRegistry",
    "BookingStatus",
    "BookingValidationError",
    "FieldError",
    "PaymentMethod",
    "PaymentStatus",
    "RateCalculationOrchestrator",
    "RateQuery",
    "RateQuote",
    "RateState",
]
