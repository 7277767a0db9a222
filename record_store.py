"""Document store for production records and the collaborators they reference"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional
import json
import logging

from database import get_db_connection
from models import AppConfig, Machine, Mold, ProductionRecord, User
from utils import get_day_bounds, parse_day

logger = logging.getLogger(__name__)

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS production_records (
        id CHAR(24) PRIMARY KEY,
        machine_id CHAR(24) NOT NULL,
        day DATE NOT NULL,
        start_time DATETIME NOT NULL,
        units_produced INT NOT NULL DEFAULT 0,
        defective_units INT NOT NULL DEFAULT 0,
        document JSON NOT NULL,
        UNIQUE KEY uq_machine_day (machine_id, day),
        KEY ix_machine_start (machine_id, start_time)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS machines (
        id CHAR(24) PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        department_id CHAR(24),
        status VARCHAR(32) NOT NULL DEFAULT 'inactive'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS molds (
        id CHAR(24) PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        production_capacity_per_hour DOUBLE NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id CHAR(24) PRIMARY KEY,
        username VARCHAR(255) NOT NULL UNIQUE,
        role VARCHAR(32) NOT NULL,
        department_id CHAR(24)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS app_config (
        id INT PRIMARY KEY,
        document JSON NOT NULL
    )
    """,
]


def _naive_utc(value: datetime) -> datetime:
    # DATETIME columns carry no zone; everything stored is UTC
    return value.replace(tzinfo=None) if value.tzinfo else value


class ProductionRecordStore:
    """
    Production records are stored as one JSON document per (machine, day)
    with the columns needed for lookups pulled out next to it.
    """

    def ensure_schema(self):
        with get_db_connection() as cursor:
            for statement in SCHEMA:
                cursor.execute(statement)
        logger.info("Database schema verified")

    def ping(self) -> bool:
        with get_db_connection() as cursor:
            cursor.execute("SELECT 1")
            return cursor.fetchone() is not None

    def find_record(self, machine_id: str, day) -> Optional[ProductionRecord]:
        day_start, day_end = get_day_bounds(day)
        with get_db_connection() as cursor:
            cursor.execute("""
                SELECT document
                FROM production_records
                WHERE machine_id = %s AND start_time >= %s AND start_time < %s
                LIMIT 1
            """, (machine_id, _naive_utc(day_start), _naive_utc(day_end)))
            row = cursor.fetchone()
        return ProductionRecord.from_dict(json.loads(row[0])) if row else None

    def find_or_create_record(self, machine_id: str, day) -> ProductionRecord:
        """Existing record for the day, or a new unsaved one anchored at UTC midnight"""
        record = self.find_record(machine_id, day)
        if record is None:
            record = ProductionRecord.for_day(machine_id, day)
            logger.info(f"Created production record for machine {machine_id} on {parse_day(day)}")
        return record

    def find_records(self, machine_id: str, start: datetime, end: datetime) -> List[ProductionRecord]:
        with get_db_connection() as cursor:
            cursor.execute("""
                SELECT document
                FROM production_records
                WHERE machine_id = %s AND start_time BETWEEN %s AND %s
                ORDER BY start_time
            """, (machine_id, _naive_utc(start), _naive_utc(end)))
            rows = cursor.fetchall()
        return [ProductionRecord.from_dict(json.loads(row[0])) for row in rows]

    def save_record(self, record: ProductionRecord) -> ProductionRecord:
        record.refresh_rollups()
        with get_db_connection() as cursor:
            cursor.execute("""
                INSERT INTO production_records
                (id, machine_id, day, start_time, units_produced, defective_units, document)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE
                    units_produced = VALUES(units_produced),
                    defective_units = VALUES(defective_units),
                    document = VALUES(document)
            """, (
                record.id,
                record.machine_id,
                record.day,
                _naive_utc(record.start_time),
                record.units_produced,
                record.defective_units,
                json.dumps(record.to_dict())
            ))
        return record

    def get_machine(self, machine_id: str) -> Optional[Machine]:
        with get_db_connection() as cursor:
            cursor.execute("""
                SELECT id, name, department_id, status
                FROM machines
                WHERE id = %s
                LIMIT 1
            """, (machine_id,))
            row = cursor.fetchone()
        return Machine(*row) if row else None

    def get_molds(self, mold_ids: Iterable[str]) -> Dict[str, Mold]:
        mold_ids = sorted({m for m in mold_ids if m})
        if not mold_ids:
            return {}
        placeholders = ','.join(['%s'] * len(mold_ids))
        with get_db_connection() as cursor:
            cursor.execute(f"""
                SELECT id, name, production_capacity_per_hour
                FROM molds
                WHERE id IN ({placeholders})
            """, tuple(mold_ids))
            rows = cursor.fetchall()
        return {row[0]: Mold(*row) for row in rows}

    def get_users(self, user_ids: Iterable[str]) -> Dict[str, User]:
        user_ids = sorted({u for u in user_ids if u})
        if not user_ids:
            return {}
        placeholders = ','.join(['%s'] * len(user_ids))
        with get_db_connection() as cursor:
            cursor.execute(f"""
                SELECT id, username, role, department_id
                FROM users
                WHERE id IN ({placeholders})
            """, tuple(user_ids))
            rows = cursor.fetchall()
        return {row[0]: User(*row) for row in rows}

    def find_user_by_username(self, username: str) -> Optional[User]:
        with get_db_connection() as cursor:
            cursor.execute("""
                SELECT id, username, role, department_id
                FROM users
                WHERE username = %s
                LIMIT 1
            """, (username,))
            row = cursor.fetchone()
        return User(*row) if row else None

    def get_app_config(self) -> AppConfig:
        with get_db_connection() as cursor:
            cursor.execute("SELECT document FROM app_config ORDER BY id LIMIT 1")
            row = cursor.fetchone()
        if not row:
            logger.warning("No plant configuration stored, using empty defaults")
            return AppConfig()
        return AppConfig.from_dict(json.loads(row[0]))


def collect_reference_ids(records: Iterable[ProductionRecord], attribute: str) -> set:
    """All operator or mold references used in a record set, slot and record level"""
    ids = set()
    for record in records:
        if getattr(record, attribute):
            ids.add(getattr(record, attribute))
        for slot in record.hourly_data:
            if getattr(slot, attribute):
                ids.add(getattr(slot, attribute))
    return ids
