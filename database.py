# production_monitoring/database.py
"""Database connection and management"""
from mysql.connector.pooling import MySQLConnectionPool
from contextlib import contextmanager
import threading
import weakref
import logging

from config import db_config
from errors import StorageError

logger = logging.getLogger(__name__)

_pool = None
_pool_lock = threading.Lock()

# Thread lock for safe concurrent operations
lock = threading.Lock()
# Entries disappear once no writer holds a reference to the lock
_record_locks = weakref.WeakValueDictionary()


def get_pool() -> MySQLConnectionPool:
    """Create the connection pool on first use"""
    global _pool
    with _pool_lock:
        if _pool is None:
            try:
                _pool = MySQLConnectionPool(
                    pool_name="production_monitoring_pool",
                    pool_size=db_config.pool_size,
                    **db_config.config
                )
                logger.info(f"Database connection pool initialized with {db_config.pool_size} connections")
            except Exception as e:
                logger.error(f"Failed to initialize database pool: {e}")
                raise StorageError(f"Database connection failed: {e}") from e
    return _pool


@contextmanager
def get_db_connection():
    """Context manager for database connections"""
    conn = None
    cursor = None
    try:
        conn = get_pool().get_connection()
        cursor = conn.cursor(buffered=True)
        yield cursor
    except StorageError:
        raise
    except Exception as e:
        logger.error(f"Database error: {e}")
        raise StorageError(f"Database error: {e}") from e
    finally:
        if cursor:
            cursor.close()
        if conn:
            conn.close()


def record_lock(machine_id: str, day: str) -> threading.Lock:
    """
    Lock serializing read-modify-write cycles on one (machine, day) record.

    Only guards writers inside this process.
    """
    key = (machine_id, day)
    with lock:
        record_guard = _record_locks.get(key)
        if record_guard is None:
            record_guard = threading.Lock()
            _record_locks[key] = record_guard
        return record_guard
