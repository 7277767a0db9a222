"""Stoppage reconciliation inside an hourly slot"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import logging
import re

from errors import ValidationError
from models import ProductionRecord, SlotStatus, Stoppage, StoppageReason, STOPPAGE_REASONS
from utils import hour_start, utc_now

logger = logging.getLogger(__name__)

SAP_NUMBER_PATTERN = re.compile(r'^\d+$')


@dataclass
class StoppageInput:
    """What an operator submits when classifying or adding a stoppage"""
    reason: str
    description: Optional[str] = None
    duration: int = 0
    sap_notification_number: Optional[str] = None
    pending_stoppage_id: Optional[str] = None


def validate_sap_number(reason: str, sap_notification_number: Optional[str]) -> Optional[str]:
    """
    Breakdowns must carry a digits-only SAP notification number.

    Returns the trimmed number for breakdowns, None for every other reason.
    """
    if reason != StoppageReason.BREAKDOWN.value:
        return None
    if not sap_notification_number or sap_notification_number.strip() == '':
        raise ValidationError('SAP notification number is required for breakdown stoppages')
    sap_number = sap_notification_number.strip()
    if not SAP_NUMBER_PATTERN.match(sap_number):
        raise ValidationError('SAP notification number must contain only numbers')
    return sap_number


def validate_stoppage_input(hour: int, stoppage_input: StoppageInput) -> Optional[str]:
    if stoppage_input.reason not in STOPPAGE_REASONS:
        raise ValidationError(f"Unknown stoppage reason '{stoppage_input.reason}'")
    if not 0 <= hour <= 23:
        raise ValidationError(f"Hour must be between 0 and 23, got {hour}")
    if stoppage_input.duration is None or stoppage_input.duration < 0:
        raise ValidationError('Stoppage duration must be a non-negative number of minutes')
    return validate_sap_number(stoppage_input.reason, stoppage_input.sap_notification_number)


def _find_pending(stoppages, pending_stoppage_id: str) -> Optional[Stoppage]:
    for stoppage in stoppages:
        if stoppage.id == pending_stoppage_id:
            return stoppage
    for stoppage in stoppages:
        if stoppage.reason == StoppageReason.UNCLASSIFIED.value:
            return stoppage
    return None


def record_stoppage(
    record: ProductionRecord,
    hour: int,
    day,
    stoppage_input: StoppageInput,
    now: Optional[datetime] = None
) -> Stoppage:
    """
    Add a stoppage to the record's slot for `hour`, or finalize the pending
    one it refers to. Returns the stoppage that was written.

    Validation happens before the record is touched.
    """
    sap_number = validate_stoppage_input(hour, stoppage_input)
    now = now or utc_now()

    slot, created = record.find_or_create_slot(hour, status=SlotStatus.STOPPAGE.value)
    if created:
        logger.debug(f"Created hour slot {hour} on machine {record.machine_id}")

    stoppage = None
    if stoppage_input.pending_stoppage_id:
        stoppage = _find_pending(slot.stoppages, stoppage_input.pending_stoppage_id)
        if stoppage is not None:
            # Elapsed wall-clock time replaces whatever estimate the entry had
            elapsed = now - stoppage.start_time
            stoppage.reason = stoppage_input.reason
            stoppage.description = stoppage_input.description
            stoppage.end_time = now
            stoppage.duration = int(elapsed.total_seconds() // 60)
            if sap_number is not None:
                stoppage.sap_notification_number = sap_number
            stoppage.is_pending = False
            stoppage.is_classified = True
            logger.info(f"Finalized pending stoppage {stoppage.id} as {stoppage.reason} ({stoppage.duration} min)")
        else:
            logger.info(f"Pending stoppage {stoppage_input.pending_stoppage_id} not found, recording a new one")

    if stoppage is None:
        start_time = hour_start(day, hour)
        stoppage = Stoppage(
            reason=stoppage_input.reason,
            description=stoppage_input.description,
            start_time=start_time,
            end_time=start_time + timedelta(minutes=stoppage_input.duration),
            duration=stoppage_input.duration,
            is_pending=False,
            is_classified=True,
            sap_notification_number=sap_number,
        )
        slot.stoppages.append(stoppage)

    slot.refresh_stoppage_minutes()
    # Every insertion marks the hour as a stoppage, whatever the reason
    slot.status = SlotStatus.STOPPAGE.value
    return stoppage
