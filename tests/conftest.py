import copy

import pytest

from models import AppConfig, EmailSettings, Machine, Mold, ProductionRecord, ShiftDefinition, User
from record_store import ProductionRecordStore
from utils import get_day_bounds

MACHINE_ID = "64b0c0ffee0000000000a001"
OTHER_MACHINE_ID = "64b0c0ffee0000000000a002"
MOLD_ID = "64b0c0ffee0000000000b001"
OPERATOR_ID = "64b0c0ffee0000000000c001"
DEPARTMENT_ID = "64b0c0ffee0000000000d001"
OTHER_DEPARTMENT_ID = "64b0c0ffee0000000000d002"


class InMemoryRecordStore(ProductionRecordStore):
    """Keeps documents in dictionaries instead of MySQL"""

    def __init__(self):
        self.records = {}
        self.machines = {}
        self.molds = {}
        self.users = {}
        self.app_config = AppConfig()
        self.saves = 0

    def ensure_schema(self):
        pass

    def ping(self):
        return True

    def find_record(self, machine_id, day):
        day_start, day_end = get_day_bounds(day)
        for document in self.records.values():
            record = ProductionRecord.from_dict(copy.deepcopy(document))
            if record.machine_id == machine_id and day_start <= record.start_time < day_end:
                return record
        return None

    def find_records(self, machine_id, start, end):
        found = [
            ProductionRecord.from_dict(copy.deepcopy(document))
            for document in self.records.values()
        ]
        found = [r for r in found if r.machine_id == machine_id and start <= r.start_time <= end]
        return sorted(found, key=lambda r: r.start_time)

    def save_record(self, record):
        record.refresh_rollups()
        self.records[(record.machine_id, record.day)] = record.to_dict()
        self.saves += 1
        return record

    def get_machine(self, machine_id):
        return self.machines.get(machine_id)

    def get_molds(self, mold_ids):
        return {m: self.molds[m] for m in mold_ids if m in self.molds}

    def get_users(self, user_ids):
        return {u: self.users[u] for u in user_ids if u in self.users}

    def find_user_by_username(self, username):
        for user in self.users.values():
            if user.username == username:
                return user
        return None

    def get_app_config(self):
        return self.app_config

    # test helpers
    def put_record(self, record):
        self.records[(record.machine_id, record.day)] = record.to_dict()

    def stored(self, machine_id, day):
        return self.find_record(machine_id, day)


@pytest.fixture
def store():
    s = InMemoryRecordStore()
    s.machines[MACHINE_ID] = Machine(MACHINE_ID, "Press 01", DEPARTMENT_ID, "running")
    s.machines[OTHER_MACHINE_ID] = Machine(OTHER_MACHINE_ID, "Press 02", OTHER_DEPARTMENT_ID, "inactive")
    s.molds[MOLD_ID] = Mold(MOLD_ID, "Cap 28mm", 120)
    s.users[OPERATOR_ID] = User(OPERATOR_ID, "ali", "operator", DEPARTMENT_ID)
    s.app_config = AppConfig(
        shifts=[
            ShiftDefinition("A", "06:00", "14:00"),
            ShiftDefinition("B", "14:00", "22:00"),
            ShiftDefinition("C", "22:00", "06:00"),
        ],
        email=EmailSettings(),
    )
    return s


