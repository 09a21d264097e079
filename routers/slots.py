from datetime import date

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_booking_engine, get_current_principal
from app.security import Principal
from app.services import BookingEngine

router = APIRouter()


@router.get("")
def list_slots(
    resource_id: str = Query(...),
    booking_date: date = Query(..., alias="date"),
    _: Principal = Depends(get_current_principal),
    engine: BookingEngine = Depends(get_booking_engine),
):
    """
    Hourly availability for one resource on one day, 08:00-20:00:
      - available: no APPROVED booking overlaps the slot
      - unavailable: at least one does (PENDING bookings never block)
    """
    return [
        {"start": s.start, "end": s.end, "available": s.available}
        for s in engine.available_slots(resource_id, booking_date)
    ]
