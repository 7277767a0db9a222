"""OEE and reliability statistics over a set of production records"""
from datetime import datetime, timedelta
from typing import Dict, Optional, Sequence, Tuple
import logging

from models import Mold, ProductionRecord, StoppageReason, total_stoppage_minutes
from utils import round_half_up, utc_now

logger = logging.getLogger(__name__)

PERIODS = {
    '24h': timedelta(hours=24),
    '7d': timedelta(days=7),
    '30d': timedelta(days=30),
}


def period_window(period: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """
    Start and end of a stats period ending now.

    An unknown period is not an error: it yields start == end == now, an
    empty window.
    """
    end = now or utc_now()
    delta = PERIODS.get(period)
    if delta is None:
        logger.warning(f"Unrecognized stats period '{period}', using an empty window")
        return end, end
    return end - delta, end


def _capacity(molds: Dict[str, Mold], mold_id: Optional[str]) -> float:
    if not mold_id:
        return 0
    mold = molds.get(mold_id)
    return mold.production_capacity_per_hour if mold and mold.production_capacity_per_hour else 0


def expected_units(
    records: Sequence[ProductionRecord],
    molds: Dict[str, Mold],
    literal: bool = True
) -> float:
    """
    Units the assigned molds should have produced.

    The first pass scales each hour's capacity by its running minutes. With
    `literal` (the historical behaviour) a second pass then adds the full
    hourly capacity of every hour with a mold again, into the same total.
    """
    total = 0.0
    for record in records:
        for slot in record.hourly_data:
            capacity = _capacity(molds, slot.mold_id)
            if capacity:
                total += capacity / 60 * (slot.running_minutes or 0)

    if literal:
        for record in records:
            for slot in record.hourly_data:
                capacity = _capacity(molds, slot.mold_id)
                if capacity:
                    total += capacity
    return total


def compute_stats(
    records: Sequence[ProductionRecord],
    molds: Dict[str, Mold],
    literal_expected_units: bool = True
) -> Dict:
    """
    Roll a record set up into OEE and reliability figures.

    Ratios are returned as integer percentages, mtbf and mttr as whole
    minutes. Every ratio with an empty denominator is 0.
    """
    total_units_produced = sum(r.units_produced or 0 for r in records)
    total_defective_units = sum(r.defective_units or 0 for r in records)

    total_running_minutes = 0
    stoppage_minutes = 0
    total_stoppages = 0
    breakdown_stoppages = 0
    total_breakdown_minutes = 0

    for record in records:
        for slot in record.hourly_data:
            total_running_minutes += slot.running_minutes or 0
            stoppage_minutes += total_stoppage_minutes(slot.stoppages)
            total_stoppages += len(slot.stoppages)
            for stoppage in slot.stoppages:
                if stoppage.reason == StoppageReason.BREAKDOWN.value:
                    breakdown_stoppages += 1
                    total_breakdown_minutes += stoppage.duration or 0

    total_available_minutes = total_running_minutes + stoppage_minutes
    availability = total_running_minutes / total_available_minutes if total_available_minutes > 0 else 0
    quality = ((total_units_produced - total_defective_units) / total_units_produced
               if total_units_produced > 0 else 0)

    total_expected_units = expected_units(records, molds, literal=literal_expected_units)
    performance = total_units_produced / total_expected_units if total_expected_units > 0 else 0

    oee = availability * quality * performance

    mtbf = total_running_minutes / breakdown_stoppages if breakdown_stoppages > 0 else 0
    mttr = total_breakdown_minutes / breakdown_stoppages if breakdown_stoppages > 0 else 0

    return {
        'totalUnitsProduced': total_units_produced,
        'totalDefectiveUnits': total_defective_units,
        'oee': round_half_up(oee * 100),
        'mtbf': round_half_up(mtbf),
        'mttr': round_half_up(mttr),
        'availability': round_half_up(availability * 100),
        'quality': round_half_up(quality * 100),
        'performance': round_half_up(performance * 100),
        'totalRunningMinutes': total_running_minutes,
        'totalStoppageMinutes': stoppage_minutes,
        'totalStoppages': total_stoppages,
        'breakdownStoppages': breakdown_stoppages,
        'totalBreakdownMinutes': total_breakdown_minutes,
        'expectedUnits': round(total_expected_units, 2),
    }
