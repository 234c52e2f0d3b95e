"""Timesheet endpoints: student clock-in/out and breaks, admin approval."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlmodel import Session

from internship_portal.database import get_session
from internship_portal.deps import require_role, require_student_id
from internship_portal.models import Timesheet, User
from internship_portal.schemas import ClockInIn, ClockOutIn, RejectTimesheetIn
from internship_portal.services import timesheet_service

router = APIRouter()


def timesheet_out(timesheet: Timesheet) -> dict:
    return {
        "id": timesheet.id,
        "student_id": timesheet.student_id,
        "project_id": timesheet.project_id,
        "date": timesheet.date,
        "login_time": timesheet.login_time,
        "logout_time": timesheet.logout_time,
        "breaks": timesheet.breaks,
        "on_break": timesheet_service.open_break(timesheet) is not None,
        "break_minutes": timesheet_service.break_minutes(timesheet),
        "total_hours": timesheet.total_hours,
        "status": timesheet.status,
        "earnings": timesheet.earnings,
        "approved_by": timesheet.approved_by,
        "approved_at": timesheet.approved_at,
        "description": timesheet.description,
        "feedback": timesheet.feedback,
    }


def _own_timesheet(session: Session, timesheet_id: int, student_id: int) -> Timesheet:
    timesheet = timesheet_service.get_timesheet(session, timesheet_id)
    if timesheet.student_id != student_id:
        raise HTTPException(status_code=403, detail="Not your timesheet")
    return timesheet


# --- Student actions ---


@router.post("/clock-in", status_code=201)
def clock_in(
    payload: Optional[ClockInIn] = Body(None),
    session: Session = Depends(get_session),
    student_id: int = Depends(require_student_id),
):
    project_id = payload.project_id if payload else None
    return timesheet_out(timesheet_service.clock_in(session, student_id, project_id))


@router.get("/active")
def active_timesheet(
    session: Session = Depends(get_session),
    student_id: int = Depends(require_student_id),
):
    timesheet = timesheet_service.get_active_timesheet(session, student_id)
    if not timesheet:
        raise HTTPException(status_code=404, detail="No active session")
    return timesheet_out(timesheet)


@router.get("/mine")
def my_timesheets(
    status: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    session: Session = Depends(get_session),
    student_id: int = Depends(require_student_id),
):
    timesheets = timesheet_service.list_timesheets(session, student_id, status, start_date, end_date)
    return [timesheet_out(t) for t in timesheets]


@router.post("/{timesheet_id}/break/start")
def start_break(
    timesheet_id: int,
    session: Session = Depends(get_session),
    student_id: int = Depends(require_student_id),
):
    _own_timesheet(session, timesheet_id, student_id)
    return timesheet_out(timesheet_service.start_timesheet_break(session, timesheet_id))


@router.post("/{timesheet_id}/break/end")
def end_break(
    timesheet_id: int,
    session: Session = Depends(get_session),
    student_id: int = Depends(require_student_id),
):
    _own_timesheet(session, timesheet_id, student_id)
    return timesheet_out(timesheet_service.end_timesheet_break(session, timesheet_id))


@router.post("/{timesheet_id}/clock-out")
def clock_out(
    timesheet_id: int,
    payload: Optional[ClockOutIn] = Body(None),
    session: Session = Depends(get_session),
    student_id: int = Depends(require_student_id),
):
    _own_timesheet(session, timesheet_id, student_id)
    description = payload.description if payload else None
    return timesheet_out(timesheet_service.clock_out(session, timesheet_id, description))


# --- Admin actions ---


@router.get("")
def list_timesheets(
    student_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    timesheets = timesheet_service.list_timesheets(session, student_id, status, start_date, end_date)
    return [timesheet_out(t) for t in timesheets]


@router.post("/{timesheet_id}/approve")
def approve_timesheet(
    timesheet_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    return timesheet_out(timesheet_service.approve_timesheet(session, timesheet_id, current_user.id))


@router.post("/{timesheet_id}/reject")
def reject_timesheet(
    timesheet_id: int,
    payload: Optional[RejectTimesheetIn] = Body(None),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    reason = payload.reason if payload else None
    return timesheet_out(
        timesheet_service.reject_timesheet(session, timesheet_id, current_user.id, reason)
    )
