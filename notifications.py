"""Live events and breakdown alerts"""
from dataclasses import dataclass
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import json
import logging
import smtplib

from fastapi import WebSocket
from jinja2 import Environment, FileSystemLoader, select_autoescape

from auth import can_see_department
from config import smtp_config
from models import EmailSettings, User
from utils import format_timestamp, utc_now

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
templates = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(['html'])
)


@dataclass
class BreakdownAlert:
    machine_name: str
    sap_notification_number: str
    description: Optional[str]
    duration: int
    start_time: datetime
    reported_by: str


def render_breakdown_email(alert: BreakdownAlert, generated_at: Optional[datetime] = None) -> str:
    template = templates.get_template("breakdown_alert.html")
    return template.render(alert=alert, generated_at=generated_at or utc_now())


def build_breakdown_message(alert: BreakdownAlert, email_settings: EmailSettings) -> MIMEMultipart:
    msg = MIMEMultipart('alternative')
    msg['From'] = email_settings.sender_email or ''
    msg['To'] = ', '.join(email_settings.recipients)
    msg['Subject'] = f"BREAKDOWN ALERT - {alert.machine_name} - SAP: {alert.sap_notification_number}"
    msg.attach(MIMEText(render_breakdown_email(alert), 'html'))
    return msg


def send_breakdown_notification(alert: BreakdownAlert, email_settings: EmailSettings) -> bool:
    """
    Mail a breakdown alert to the configured recipients.

    Runs after the stoppage has been saved. Failures are logged and never
    raised, so the caller's write is unaffected.
    """
    if not email_settings.recipients:
        logger.info("No email recipients configured for breakdown notification")
        return False

    try:
        msg = build_breakdown_message(alert, email_settings)
        with smtplib.SMTP(smtp_config.server, smtp_config.port, timeout=smtp_config.timeout) as server:
            server.starttls()
            if email_settings.sender_email and email_settings.sender_password:
                server.login(email_settings.sender_email, email_settings.sender_password)
            server.send_message(msg)
        logger.info(f"Breakdown notification sent for machine {alert.machine_name}")
        return True
    except Exception as e:
        logger.error(f"Failed to send breakdown notification email: {e}")
        return False


class EventBroadcaster:
    """Pushes write events to the live views allowed to see the machine"""

    def __init__(self):
        self.active_connections: List[Tuple[WebSocket, User]] = []

    async def connect(self, websocket: WebSocket, user: User):
        await websocket.accept()
        self.active_connections.append((websocket, user))
        logger.info(f"Live view connected for {user.username} ({len(self.active_connections)} open)")

    def disconnect(self, websocket: WebSocket):
        self.active_connections = [
            (connection, user) for connection, user in self.active_connections
            if connection is not websocket
        ]

    async def broadcast(self, event: str, payload: Dict[str, Any], department_id: Optional[str] = None):
        message = json.dumps({'event': event, 'data': payload}, default=_json_default)
        for connection, user in list(self.active_connections):
            if not can_see_department(user, department_id):
                continue
            try:
                await connection.send_text(message)
            except Exception as e:
                logger.warning(f"Dropping live view connection: {e}")
                self.disconnect(connection)


def _json_default(value):
    if isinstance(value, datetime):
        return format_timestamp(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


broadcaster = EventBroadcaster()
