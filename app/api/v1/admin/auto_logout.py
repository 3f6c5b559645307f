"""
Admin trigger for the auto-logout sweeper (HR/ADMIN). The scheduler runs the same sweep
in the background; this endpoint runs one immediately and returns its summary.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_roles
from app.models.employee import Employee, Role
from app.schemas.auto_logout import SweepSummaryOut
from app.services.auto_logout_service import AutoLogoutSweeper

router = APIRouter()
_log = logging.getLogger(__name__)


@router.post("/run", response_model=SweepSummaryOut)
async def run_auto_logout_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR, Role.ADMIN)),
):
    _log.info("Manual auto-logout sweep requested by employee_id=%s", current_user.id)
    summary = AutoLogoutSweeper().run(db)
    return SweepSummaryOut.model_validate(summary)
