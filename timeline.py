"""Dense per-hour production timeline for a machine"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from models import HourSlot, Mold, ProductionRecord, SlotStatus, User, total_stoppage_minutes
from utils import iter_days, parse_day, utc_now

logger = logging.getLogger(__name__)


def timeline_window(days: int, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """The last `days` days up to now"""
    end = now or utc_now()
    return end - timedelta(days=days), end


def derive_status(running_minutes: int, stoppage_minutes: int) -> str:
    if running_minutes == 0 and stoppage_minutes == 0:
        return SlotStatus.INACTIVE.value
    if stoppage_minutes > running_minutes:
        return SlotStatus.STOPPAGE.value
    return SlotStatus.RUNNING.value


def hour_entry(
    hour: int,
    slot: Optional[HourSlot],
    record: Optional[ProductionRecord] = None,
    operators: Optional[Dict[str, User]] = None,
    molds: Optional[Dict[str, Mold]] = None
) -> Dict:
    """One cell of the timeline; an absent slot yields a zero-filled inactive hour"""
    running_minutes = slot.running_minutes if slot else 0
    # Recomputed from the stoppage list, the stored cache is not trusted here
    stoppage_minutes = total_stoppage_minutes(slot.stoppages) if slot else 0

    if slot is not None and slot.status:
        status = slot.status
    else:
        status = derive_status(running_minutes, stoppage_minutes)

    operator_id = (slot.operator_id if slot else None) or (record.operator_id if record else None)
    mold_id = (slot.mold_id if slot else None) or (record.mold_id if record else None)

    entry = {
        'hour': hour,
        'unitsProduced': slot.units_produced if slot else 0,
        'defectiveUnits': slot.defective_units if slot else 0,
        'status': status,
        'operator': operator_id,
        'mold': mold_id,
        'stoppages': [s.to_dict() for s in slot.stoppages] if slot else [],
        'runningMinutes': running_minutes,
        'stoppageMinutes': stoppage_minutes,
    }
    if operators is not None:
        operator = operators.get(operator_id) if operator_id else None
        entry['operatorName'] = operator.username if operator else None
    if molds is not None:
        mold = molds.get(mold_id) if mold_id else None
        entry['moldName'] = mold.name if mold else None
    return entry


def build_timeline(
    machine_id: str,
    start_date,
    end_date,
    records: Sequence[ProductionRecord],
    operators: Optional[Dict[str, User]] = None,
    molds: Optional[Dict[str, Mold]] = None
) -> List[Dict]:
    """
    Build one entry per calendar day in [start_date, end_date], each with all
    24 hours present whether or not anything was recorded.

    Args:
        machine_id: Machine the records belong to
        start_date: First day (date, datetime or 'YYYY-MM-DD')
        end_date: Last day, inclusive
        records: Stored production records for the machine
        operators: Optional id -> User map used to name operators
        molds: Optional id -> Mold map used to name molds

    Returns:
        List of {"date": "YYYY-MM-DD", "hours": [...]} dictionaries
    """
    records_by_day = {}
    for record in records:
        if record.machine_id != machine_id:
            continue
        records_by_day.setdefault(parse_day(record.start_time), record)

    timeline = []
    for day in iter_days(start_date, end_date):
        day_record = records_by_day.get(day)
        hours = []
        for hour in range(24):
            slot = day_record.get_slot(hour) if day_record else None
            hours.append(hour_entry(hour, slot, day_record, operators, molds))
        timeline.append({'date': day.isoformat(), 'hours': hours})

    logger.debug(f"Timeline for machine {machine_id}: {len(timeline)} days, {len(records_by_day)} with records")
    return timeline
