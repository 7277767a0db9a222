# production_monitoring/api_routes.py
"""API route handlers"""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, WebSocket, status
from fastapi.responses import JSONResponse
from fastapi.websockets import WebSocketDisconnect
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
import logging

from auth import get_current_user, user_from_headers
from errors import ProductionMonitoringError
from models import User
from notifications import broadcaster
from record_store import ProductionRecordStore
from services import (
    WriteResult,
    dispatch_breakdown_alert,
    get_machine_stats,
    get_production_timeline,
    submit_stoppage,
    update_production_assignment,
)
from stoppages import StoppageInput

logger = logging.getLogger(__name__)
router = APIRouter()

_store = ProductionRecordStore()


def get_store() -> ProductionRecordStore:
    return _store


class StoppageRequest(BaseModel):
    """Stoppage submitted from the timeline"""
    model_config = ConfigDict(populate_by_name=True)

    machine_id: str = Field(alias='machineId')
    hour: int = Field(ge=0, le=23)
    date: str
    reason: str
    description: Optional[str] = None
    duration: int = Field(0, ge=0)
    pending_stoppage_id: Optional[str] = Field(None, alias='pendingStoppageId')
    sap_notification_number: Optional[str] = Field(None, alias='sapNotificationNumber')


class ProductionAssignmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    machine_id: str = Field(alias='machineId')
    hour: int = Field(ge=0, le=23)
    date: str
    operator_id: Optional[str] = Field(None, alias='operatorId')
    mold_id: Optional[str] = Field(None, alias='moldId')
    defective_units: Optional[int] = Field(None, alias='defectiveUnits', ge=0)
    apply_to_shift: bool = Field(False, alias='applyToShift')


def _to_http_error(e: Exception, context: str) -> HTTPException:
    if isinstance(e, ProductionMonitoringError):
        if e.status_code >= 500:
            logger.error(f"{context} error: {e.message}")
            return HTTPException(status_code=e.status_code, detail=f"Server error: {e.message}")
        return HTTPException(status_code=e.status_code, detail=e.message)
    logger.error(f"{context} error: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Server error: {str(e)}")


def _dispatch(result: WriteResult, background_tasks: BackgroundTasks, store: ProductionRecordStore):
    """Queue the live event and, for breakdowns, the alert mail after the response"""
    if result.alert is not None:
        background_tasks.add_task(dispatch_breakdown_alert, store, result.alert)
    background_tasks.add_task(
        broadcaster.broadcast, result.event, result.payload, department_id=result.department_id
    )


@router.get("/api/analytics/production-timeline/{machine_id}", response_class=JSONResponse)
def api_production_timeline(
    machine_id: str,
    user: User = Depends(get_current_user),
    store: ProductionRecordStore = Depends(get_store)
):
    """Hour-by-hour production timeline for the last days"""
    try:
        return get_production_timeline(store, user, machine_id)
    except Exception as e:
        raise _to_http_error(e, "Timeline")


@router.get("/api/analytics/machine-stats/{machine_id}", response_class=JSONResponse)
def api_machine_stats(
    machine_id: str,
    period: str = Query('24h'),
    user: User = Depends(get_current_user),
    store: ProductionRecordStore = Depends(get_store)
):
    """OEE, MTBF and MTTR for a machine over 24h, 7d or 30d"""
    try:
        return get_machine_stats(store, user, machine_id, period)
    except Exception as e:
        raise _to_http_error(e, "Machine stats")


@router.post("/api/analytics/stoppage", status_code=201, response_class=JSONResponse)
def api_add_stoppage(
    body: StoppageRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    store: ProductionRecordStore = Depends(get_store)
):
    """Record a stoppage, or classify a pending one"""
    try:
        result = submit_stoppage(
            store,
            user,
            body.machine_id,
            body.hour,
            body.date,
            StoppageInput(
                reason=body.reason,
                description=body.description,
                duration=body.duration,
                sap_notification_number=body.sap_notification_number,
                pending_stoppage_id=body.pending_stoppage_id
            )
        )
    except Exception as e:
        raise _to_http_error(e, "Stoppage")

    _dispatch(result, background_tasks, store)
    return {"message": "Stoppage recorded successfully"}


@router.post("/api/analytics/production-assignment", response_class=JSONResponse)
def api_production_assignment(
    body: ProductionAssignmentRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    store: ProductionRecordStore = Depends(get_store)
):
    """Assign operator, mold or defective units to an hour or its whole shift"""
    try:
        result = update_production_assignment(
            store,
            body.machine_id,
            body.hour,
            body.date,
            operator_id=body.operator_id,
            mold_id=body.mold_id,
            defective_units=body.defective_units,
            apply_to_shift=body.apply_to_shift
        )
    except Exception as e:
        raise _to_http_error(e, "Assignment")

    logger.info(f"Production assignment by {user.username}: machine {body.machine_id} hours {result.hours}")
    _dispatch(result, background_tasks, store)
    return {"message": "Production assignment updated successfully", "hours": result.hours}


@router.websocket("/ws/events")
async def live_events(websocket: WebSocket):
    """Stream stoppage and assignment events to live views"""
    user = user_from_headers(websocket.headers)
    if user is None:
        logger.warning("Live view rejected: no identity headers")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await broadcaster.connect(websocket, user)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Live view disconnected")
    finally:
        broadcaster.disconnect(websocket)


@router.get("/health")
def health_check(store: ProductionRecordStore = Depends(get_store)):
    """Health check endpoint"""
    try:
        store.ping()
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "database": "connected"
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unhealthy")
