"""Operator / mold / defect assignment on hourly slots"""
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence
import logging

from errors import InvalidMoldError, InvalidOperatorError, ValidationError
from models import ProductionRecord, ShiftDefinition, SlotStatus, User
from shifts import hours_to_update
from utils import is_valid_reference

logger = logging.getLogger(__name__)


@dataclass
class Assignment:
    operator_id: Optional[str] = None
    mold_id: Optional[str] = None
    defective_units: Optional[int] = None
    apply_to_shift: bool = False


def resolve_operator(raw: Optional[str], find_user_by_username: Callable[[str], Optional[User]]) -> Optional[str]:
    """Accept a user reference as is, otherwise look the value up as a username"""
    if raw is None or raw.strip() == '':
        return None
    raw = raw.strip()
    if is_valid_reference(raw):
        return raw
    user = find_user_by_username(raw)
    if user is None:
        raise InvalidOperatorError()
    return user.id


def resolve_mold(raw: Optional[str]) -> Optional[str]:
    if raw is None or raw.strip() == '':
        return None
    raw = raw.strip()
    if not is_valid_reference(raw):
        raise InvalidMoldError()
    return raw


def assign(
    record: ProductionRecord,
    hour: int,
    assignment: Assignment,
    shifts: Sequence[ShiftDefinition]
) -> List[int]:
    """
    Apply an assignment to the record and return the hours it touched.

    Operator and mold only seed slots created here; an hour that already
    exists keeps its assignment. Defective units are written on the
    requested hour only.
    """
    if not 0 <= hour <= 23:
        raise ValidationError(f"Hour must be between 0 and 23, got {hour}")
    if assignment.defective_units is not None and assignment.defective_units < 0:
        raise ValidationError('Defective units cannot be negative')

    hours = hours_to_update(shifts, hour, assignment.apply_to_shift)

    for target_hour in hours:
        slot, created = record.find_or_create_slot(target_hour, status=SlotStatus.INACTIVE.value)
        if created:
            if assignment.operator_id:
                slot.operator_id = assignment.operator_id
            if assignment.mold_id:
                slot.mold_id = assignment.mold_id

        if target_hour == hour and assignment.defective_units is not None:
            slot.defective_units = assignment.defective_units

    record.defective_units = sum(s.defective_units for s in record.hourly_data)
    logger.info(f"Assignment applied to machine {record.machine_id} hours {hours}")
    return hours
