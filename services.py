"""Business logic: load, mutate and save production records, then describe what to emit"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from assignments import Assignment, assign, resolve_mold, resolve_operator
from auth import check_machine_access
from config import app_settings
from database import record_lock
from errors import NotFoundError
from models import Machine, StoppageReason, User
from notifications import BreakdownAlert, send_breakdown_notification
from oee import compute_stats, period_window
from record_store import ProductionRecordStore, collect_reference_ids
from stoppages import StoppageInput, record_stoppage, validate_stoppage_input
from timeline import build_timeline, timeline_window
from utils import parse_day, utc_now

logger = logging.getLogger(__name__)


@dataclass
class WriteResult:
    """A saved write plus the side effects to dispatch after it"""
    event: str
    payload: Dict[str, Any]
    hours: List[int] = field(default_factory=list)
    alert: Optional[BreakdownAlert] = None
    department_id: Optional[str] = None


def _require_machine(store: ProductionRecordStore, machine_id: str) -> Machine:
    machine = store.get_machine(machine_id)
    if machine is None:
        raise NotFoundError('Machine not found')
    return machine


def get_production_timeline(
    store: ProductionRecordStore,
    user: User,
    machine_id: str,
    now: Optional[datetime] = None
) -> List[Dict]:
    """Dense hourly timeline of the last TIMELINE_DAYS days"""
    check_machine_access(user, store.get_machine(machine_id), machine_id)

    start_date, end_date = timeline_window(app_settings.timeline_days, now)
    records = store.find_records(machine_id, start_date, end_date)
    operators = store.get_users(collect_reference_ids(records, 'operator_id'))
    molds = store.get_molds(collect_reference_ids(records, 'mold_id'))

    return build_timeline(machine_id, start_date, end_date, records, operators, molds)


def get_machine_stats(
    store: ProductionRecordStore,
    user: User,
    machine_id: str,
    period: str = '24h',
    now: Optional[datetime] = None
) -> Dict:
    machine = check_machine_access(user, store.get_machine(machine_id), machine_id)

    start_date, end_date = period_window(period, now)
    records = store.find_records(machine_id, start_date, end_date)
    molds = store.get_molds(collect_reference_ids(records, 'mold_id'))

    stats = compute_stats(records, molds, literal_expected_units=app_settings.literal_expected_units)
    stats['currentStatus'] = machine.status
    return stats


def submit_stoppage(
    store: ProductionRecordStore,
    user: User,
    machine_id: str,
    hour: int,
    day: str,
    stoppage_input: StoppageInput,
    now: Optional[datetime] = None
) -> WriteResult:
    """Record or finalize a stoppage and save the record"""
    validate_stoppage_input(hour, stoppage_input)
    machine = _require_machine(store, machine_id)
    day = parse_day(day)
    now = now or utc_now()

    with record_lock(machine_id, day.isoformat()):
        record = store.find_or_create_record(machine_id, day)
        stoppage = record_stoppage(record, hour, day, stoppage_input, now=now)
        store.save_record(record)
        slot = record.get_slot(hour)

    logger.info(f"Stoppage recorded: machine {machine.name} hour {hour} on {day} - {stoppage.reason}")

    result = WriteResult(
        event='stoppage-added',
        hours=[hour],
        department_id=machine.department_id,
        payload={
            'machineId': machine_id,
            'hour': hour,
            'date': day.isoformat(),
            'stoppage': stoppage.to_dict(),
            'status': slot.status,
            'stoppageMinutes': slot.stoppage_minutes,
            'timestamp': now,
        }
    )

    if stoppage_input.reason == StoppageReason.BREAKDOWN.value:
        result.alert = BreakdownAlert(
            machine_name=machine.name or 'Unknown Machine',
            sap_notification_number=stoppage.sap_notification_number,
            description=stoppage_input.description,
            duration=stoppage.duration,
            start_time=stoppage.start_time,
            reported_by=user.username
        )

    return result


def update_production_assignment(
    store: ProductionRecordStore,
    machine_id: str,
    hour: int,
    day: str,
    operator_id: Optional[str] = None,
    mold_id: Optional[str] = None,
    defective_units: Optional[int] = None,
    apply_to_shift: bool = False,
    now: Optional[datetime] = None
) -> WriteResult:
    """
    Assign operator / mold / defects to an hour, or to the hours of its shift.

    There is no rollback: a failure while saving leaves the record as last stored.
    """
    valid_operator_id = resolve_operator(operator_id, store.find_user_by_username)
    valid_mold_id = resolve_mold(mold_id)
    machine = _require_machine(store, machine_id)
    day = parse_day(day)

    assignment = Assignment(
        operator_id=valid_operator_id,
        mold_id=valid_mold_id,
        defective_units=defective_units,
        apply_to_shift=apply_to_shift
    )
    shifts = store.get_app_config().shifts if apply_to_shift else []

    with record_lock(machine_id, day.isoformat()):
        record = store.find_or_create_record(machine_id, day)
        hours = assign(record, hour, assignment, shifts)
        store.save_record(record)
        slots = [record.get_slot(h).to_dict() for h in hours]

    return WriteResult(
        event='production-assignment-updated',
        hours=hours,
        department_id=machine.department_id,
        payload={
            'machineId': machine_id,
            'hours': hours,
            'date': day.isoformat(),
            'slots': slots,
            'originalHour': hour,
            'defectiveUnits': defective_units,
            'timestamp': now or utc_now(),
        }
    )


def dispatch_breakdown_alert(store: ProductionRecordStore, alert: BreakdownAlert) -> bool:
    """Look up the recipients and mail the alert; never raises"""
    try:
        email_settings = store.get_app_config().email
    except Exception as e:
        logger.error(f"Could not load email configuration for breakdown notification: {e}")
        return False
    return send_breakdown_notification(alert, email_settings)
