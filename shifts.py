"""Shift calendar: which configured shift an hour belongs to, and its hours"""
from typing import List, Optional, Sequence
import logging

from errors import ValidationError
from models import ShiftDefinition

logger = logging.getLogger(__name__)


def parse_hour(value: str) -> int:
    """Hour part of an 'HH:MM' wall-clock string; minutes are ignored"""
    try:
        hour = int(str(value).split(':')[0])
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid shift time '{value}'")
    if not 0 <= hour <= 23:
        raise ValidationError(f"Invalid shift time '{value}'")
    return hour


def shift_contains(shift: ShiftDefinition, hour: int) -> bool:
    start_hour = parse_hour(shift.start_time)
    end_hour = parse_hour(shift.end_time)
    if start_hour <= end_hour:
        return start_hour <= hour < end_hour
    return hour >= start_hour or hour < end_hour


def shift_containing(shifts: Sequence[ShiftDefinition], hour: int) -> Optional[ShiftDefinition]:
    """First configured shift whose window contains the hour"""
    for shift in shifts:
        if shift_contains(shift, hour):
            return shift
    return None


def hours_in_shift(shift: ShiftDefinition, anchor_hour: int) -> List[int]:
    """
    Hours of the shift that fall on the same calendar day as the anchor hour.

    A midnight-crossing shift only ever yields the part on the anchor's side
    of midnight: [start, 24) for late hours, [0, end) for early ones.
    """
    start_hour = parse_hour(shift.start_time)
    end_hour = parse_hour(shift.end_time)

    if start_hour <= end_hour:
        return list(range(start_hour, end_hour))
    if anchor_hour >= start_hour:
        return list(range(start_hour, 24))
    if anchor_hour < end_hour:
        return list(range(0, end_hour))
    return []


def hours_to_update(shifts: Sequence[ShiftDefinition], hour: int, apply_to_shift: bool) -> List[int]:
    """Hours an assignment touches; falls back to the single hour"""
    if not apply_to_shift:
        return [hour]

    shift = shift_containing(shifts, hour)
    if shift is None:
        logger.info(f"No shift contains hour {hour}, updating that hour only")
        return [hour]

    return hours_in_shift(shift, hour) or [hour]
