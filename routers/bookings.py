from dataclasses import asdict
from datetime import date, time
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.dependencies import get_booking_engine, get_current_principal, require_admin
from app.security import Principal
from app.services import BookingEngine

router = APIRouter()


class CreateBookingBody(BaseModel):
    resource_id: str
    booking_date: date
    start_time: time
    end_time: time


class RejectBody(BaseModel):
    reason: Optional[str] = None


def _booking_out(b):
    return {
        "id": b.id,
        "user_id": b.user_id,
        "resource_id": b.resource_id,
        "booking_date": b.booking_date,
        "start_time": b.start_time,
        "end_time": b.end_time,
        "status": b.status.value,
        "rejection_reason": b.rejection_reason,
    }


@router.post("", status_code=201)
def create_booking(
    body: CreateBookingBody,
    principal: Principal = Depends(get_current_principal),
    engine: BookingEngine = Depends(get_booking_engine),
):
    """
    Request a booking. Students and staff receive PENDING bookings; admin
    bookings are APPROVED immediately and override overlapping approvals.
    """
    booking = engine.create_booking(
        principal.email, body.resource_id, body.booking_date, body.start_time, body.end_time
    )
    return _booking_out(booking)


@router.get("/my")
def my_bookings(
    principal: Principal = Depends(get_current_principal),
    engine: BookingEngine = Depends(get_booking_engine),
):
    return [asdict(v) for v in engine.list_for_user(principal.email)]


@router.get("")
def all_bookings(
    _: Principal = Depends(require_admin),
    engine: BookingEngine = Depends(get_booking_engine),
):
    return [asdict(v) for v in engine.list_all()]


@router.get("/pending")
def pending_bookings(
    _: Principal = Depends(require_admin),
    engine: BookingEngine = Depends(get_booking_engine),
):
    return [asdict(v) for v in engine.list_pending()]


@router.put("/{booking_id}/approve")
def approve_booking(
    booking_id: str,
    _: Principal = Depends(require_admin),
    engine: BookingEngine = Depends(get_booking_engine),
):
    return _booking_out(engine.approve(booking_id))


@router.put("/{booking_id}/reject")
def reject_booking(
    booking_id: str,
    body: Optional[RejectBody] = None,
    _: Principal = Depends(require_admin),
    engine: BookingEngine = Depends(get_booking_engine),
):
    reason = body.reason if body else None
    return _booking_out(engine.reject(booking_id, reason))


@router.put("/{booking_id}/cancel")
def cancel_booking(
    booking_id: str,
    principal: Principal = Depends(get_current_principal),
    engine: BookingEngine = Depends(get_booking_engine),
):
    return _booking_out(engine.cancel(booking_id, principal.email))
