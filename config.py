# production_monitoring/config.py
"""Configuration management for Production Monitoring System"""
import os
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class DatabaseConfig:
    """Database configuration management"""
    def __init__(self):
        self.config = {
            'host': os.getenv('DB_HOST', 'localhost'),
            'user': os.getenv('DB_USER', 'monitoring'),
            'password': os.getenv('DB_PASSWORD', 'monitoring'),
            'database': os.getenv('DB_NAME', 'production_monitoring'),
            'autocommit': True,
            'use_unicode': True,
            'charset': 'utf8mb4'
        }
        self.pool_size = int(os.getenv('DB_POOL_SIZE', '15'))


class SmtpConfig:
    """Outbound mail server used for breakdown alerts"""
    def __init__(self):
        self.server = os.getenv('SMTP_SERVER', 'smtp.gmail.com')
        self.port = int(os.getenv('SMTP_PORT', '587'))
        self.timeout = float(os.getenv('SMTP_TIMEOUT', '10'))


class AppSettings:
    """Analytics behaviour switches"""
    def __init__(self):
        self.timeline_days = int(os.getenv('TIMELINE_DAYS', '7'))
        # Keep the two-pass expected units accumulation unless explicitly disabled
        self.literal_expected_units = _env_flag('OEE_LITERAL_EXPECTED_UNITS', '1')
        self.cors_origins = [
            origin.strip() for origin in os.getenv('CORS_ORIGINS', '').split(',') if origin.strip()
        ]


db_config = DatabaseConfig()
smtp_config = SmtpConfig()
app_settings = AppSettings()
