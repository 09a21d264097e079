from dataclasses import dataclass
from datetime import time
from typing import Iterable, List, Tuple

from app.enums import BookingStatus


@dataclass(frozen=True)
class TimeSlot:
    start: time
    end: time
    available: bool


def day_window(start_hour: int, end_hour: int, slot_minutes: int) -> List[Tuple[time, time]]:
    """
    Split [start_hour, end_hour) into consecutive slot_minutes intervals.
    A trailing remainder shorter than one slot is dropped.
    """
    bounds = []
    cursor = start_hour * 60
    stop = end_hour * 60
    while cursor + slot_minutes <= stop:
        nxt = cursor + slot_minutes
        bounds.append((time(cursor // 60, cursor % 60), time(nxt // 60, nxt % 60)))
        cursor = nxt
    return bounds


def compute_slots(
    bookings: Iterable,
    start_hour: int = 8,
    end_hour: int = 20,
    slot_minutes: int = 60,
) -> List[TimeSlot]:
    """
    Mark each slot of the day window unavailable iff it overlaps an APPROVED
    booking. Pure over its inputs; booking order does not matter.
    """
    approved = [
        (b.start_time, b.end_time) for b in bookings if b.status == BookingStatus.APPROVED
    ]
    slots = []
    for slot_start, slot_end in day_window(start_hour, end_hour, slot_minutes):
        busy = any(slot_start < b_end and slot_end > b_start for b_start, b_end in approved)
        slots.append(TimeSlot(start=slot_start, end=slot_end, available=not busy))
    return slots
