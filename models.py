"""Data models for Production Monitoring System"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Tuple

from utils import new_reference, parse_timestamp, format_timestamp, get_day_bounds


class StoppageReason(str, Enum):
    PLANNED = 'planned'
    MOLD_CHANGE = 'mold_change'
    BREAKDOWN = 'breakdown'
    MATERIAL_SHORTAGE = 'material_shortage'
    UNCLASSIFIED = 'unclassified'
    OTHER = 'other'


class SlotStatus(str, Enum):
    RUNNING = 'running'
    STOPPAGE = 'stoppage'
    STOPPED_YET_PRODUCING = 'stopped_yet_producing'
    INACTIVE = 'inactive'


STOPPAGE_REASONS = {reason.value for reason in StoppageReason}


@dataclass
class Stoppage:
    """A stoppage inside one clock hour"""
    reason: str
    start_time: datetime
    duration: int = 0
    description: Optional[str] = None
    end_time: Optional[datetime] = None
    is_pending: bool = False
    is_classified: bool = True
    sap_notification_number: Optional[str] = None
    id: str = field(default_factory=new_reference)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            '_id': self.id,
            'reason': self.reason,
            'description': self.description,
            'startTime': format_timestamp(self.start_time),
            'endTime': format_timestamp(self.end_time),
            'duration': self.duration,
            'isPending': self.is_pending,
            'isClassified': self.is_classified,
        }
        if self.sap_notification_number is not None:
            data['sapNotificationNumber'] = self.sap_notification_number
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Stoppage':
        return cls(
            id=data.get('_id') or new_reference(),
            reason=data.get('reason', StoppageReason.UNCLASSIFIED.value),
            description=data.get('description'),
            start_time=parse_timestamp(data.get('startTime')),
            end_time=parse_timestamp(data.get('endTime')),
            duration=int(data.get('duration') or 0),
            is_pending=bool(data.get('isPending', False)),
            is_classified=bool(data.get('isClassified', not data.get('isPending', False))),
            sap_notification_number=data.get('sapNotificationNumber'),
        )


def total_stoppage_minutes(stoppages: List[Stoppage]) -> int:
    """Sum of stoppage durations; the only source of truth for stoppage minutes"""
    return sum(s.duration or 0 for s in stoppages)


@dataclass
class HourSlot:
    """
    One clock hour of a production record.

    status is None when nothing set it explicitly; the timeline then derives
    it from running and stoppage minutes.
    """
    hour: int
    units_produced: int = 0
    defective_units: int = 0
    status: Optional[str] = None
    running_minutes: int = 0
    stoppage_minutes: int = 0
    operator_id: Optional[str] = None
    mold_id: Optional[str] = None
    stoppages: List[Stoppage] = field(default_factory=list)

    def refresh_stoppage_minutes(self) -> int:
        self.stoppage_minutes = total_stoppage_minutes(self.stoppages)
        return self.stoppage_minutes

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hour': self.hour,
            'unitsProduced': self.units_produced,
            'defectiveUnits': self.defective_units,
            'status': self.status,
            'runningMinutes': self.running_minutes,
            'stoppageMinutes': self.stoppage_minutes,
            'operatorId': self.operator_id,
            'moldId': self.mold_id,
            'stoppages': [s.to_dict() for s in self.stoppages],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HourSlot':
        return cls(
            hour=int(data['hour']),
            units_produced=int(data.get('unitsProduced') or 0),
            defective_units=int(data.get('defectiveUnits') or 0),
            status=data.get('status'),
            running_minutes=int(data.get('runningMinutes') or 0),
            stoppage_minutes=int(data.get('stoppageMinutes') or 0),
            operator_id=data.get('operatorId'),
            mold_id=data.get('moldId'),
            stoppages=[Stoppage.from_dict(s) for s in data.get('stoppages') or []],
        )


@dataclass
class ProductionRecord:
    """One machine's production for one UTC calendar day"""
    machine_id: str
    start_time: datetime
    hourly_data: List[HourSlot] = field(default_factory=list)
    units_produced: int = 0
    defective_units: int = 0
    operator_id: Optional[str] = None
    mold_id: Optional[str] = None
    id: str = field(default_factory=new_reference)

    @classmethod
    def for_day(cls, machine_id: str, day) -> 'ProductionRecord':
        start_time, _ = get_day_bounds(day)
        return cls(machine_id=machine_id, start_time=start_time)

    @property
    def day(self):
        return self.start_time.date()

    def get_slot(self, hour: int) -> Optional[HourSlot]:
        for slot in self.hourly_data:
            if slot.hour == hour:
                return slot
        return None

    def find_or_create_slot(self, hour: int, status: Optional[str] = None) -> Tuple[HourSlot, bool]:
        """Return (slot, created); the hour is the natural key within a record"""
        slot = self.get_slot(hour)
        if slot is not None:
            return slot, False
        slot = HourSlot(hour=hour, status=status)
        self.hourly_data.append(slot)
        self.hourly_data.sort(key=lambda s: s.hour)
        return slot, True

    def refresh_rollups(self):
        """
        Recompute the caches written by this service.

        units_produced belongs to the counter ingestion side and is left as is.
        """
        for slot in self.hourly_data:
            slot.refresh_stoppage_minutes()
        self.defective_units = sum(s.defective_units for s in self.hourly_data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            '_id': self.id,
            'machineId': self.machine_id,
            'startTime': format_timestamp(self.start_time),
            'unitsProduced': self.units_produced,
            'defectiveUnits': self.defective_units,
            'operatorId': self.operator_id,
            'moldId': self.mold_id,
            'hourlyData': [s.to_dict() for s in self.hourly_data],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProductionRecord':
        return cls(
            id=data.get('_id') or new_reference(),
            machine_id=data['machineId'],
            start_time=parse_timestamp(data['startTime']),
            units_produced=int(data.get('unitsProduced') or 0),
            defective_units=int(data.get('defectiveUnits') or 0),
            operator_id=data.get('operatorId'),
            mold_id=data.get('moldId'),
            hourly_data=sorted(
                (HourSlot.from_dict(h) for h in data.get('hourlyData') or []),
                key=lambda s: s.hour
            ),
        )


@dataclass
class ShiftDefinition:
    name: str
    start_time: str
    end_time: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ShiftDefinition':
        return cls(name=data.get('name', ''), start_time=data['startTime'], end_time=data['endTime'])


@dataclass
class EmailSettings:
    sender_email: Optional[str] = None
    sender_password: Optional[str] = None
    recipients: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EmailSettings':
        return cls(
            sender_email=data.get('senderEmail'),
            sender_password=data.get('senderPassword'),
            recipients=list(data.get('recipients') or []),
        )


@dataclass
class AppConfig:
    """Plant-wide configuration document"""
    shifts: List[ShiftDefinition] = field(default_factory=list)
    email: EmailSettings = field(default_factory=EmailSettings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppConfig':
        return cls(
            shifts=[ShiftDefinition.from_dict(s) for s in data.get('shifts') or []],
            email=EmailSettings.from_dict(data.get('email') or {}),
        )


@dataclass
class Machine:
    id: str
    name: str
    department_id: Optional[str] = None
    status: str = SlotStatus.INACTIVE.value


@dataclass
class Mold:
    id: str
    name: str
    production_capacity_per_hour: float = 0


@dataclass
class User:
    id: str
    username: str
    role: str = 'operator'
    department_id: Optional[str] = None
