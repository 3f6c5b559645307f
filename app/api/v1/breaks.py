"""
Break endpoints. Manual breaks (Paid/Unpaid/Extra) and automatic breaks are separate:
ending a manual break never closes an automatic one and vice versa.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_db
from app.models.employee import Employee
from app.schemas.attendance import AttendanceLogOut, AutoBreakStartRequest, BreakOut, BreakResponse, BreakStartRequest
from app.services import attendance_session_service as svc

router = APIRouter()


def _response(result: svc.BreakResult) -> BreakResponse:
    return BreakResponse(
        break_log=BreakOut.model_validate(result.break_log),
        log=AttendanceLogOut.model_validate(result.log),
    )


@router.post("/start", response_model=BreakResponse, status_code=201)
async def start_break_endpoint(
    body: BreakStartRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return _response(svc.start_break(db, current_user.id, body.break_type, body.reason))


@router.post("/end", response_model=BreakResponse)
async def end_break_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return _response(svc.end_break(db, current_user.id))


@router.post("/auto-start", response_model=BreakResponse, status_code=201)
async def start_auto_break_endpoint(
    body: Optional[AutoBreakStartRequest] = None,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Called by the client when it detects inactivity."""
    reason = body.reason if body else None
    return _response(svc.start_auto_break(db, current_user.id, reason))


@router.post("/auto-end", response_model=BreakResponse)
async def end_auto_break_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return _response(svc.end_auto_break(db, current_user.id))
