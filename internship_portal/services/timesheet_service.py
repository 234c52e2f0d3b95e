"""Timesheet lifecycle: active -> completed -> approved | rejected.

Break durations are kept in minutes (float); ``total_hours`` is derived at
logout from wall-clock time minus those minutes.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlmodel import Session, select

from internship_portal.exceptions import InvalidStateError, MissingReferenceError
from internship_portal.models import (
    TIMESHEET_ACTIVE,
    TIMESHEET_APPROVED,
    TIMESHEET_COMPLETED,
    TIMESHEET_REJECTED,
    TIMESHEET_STATUSES,
    Project,
    Student,
    Timesheet,
)
from internship_portal.schemas import ProjectTerms
from internship_portal.services.submission_service import get_project_terms
from internship_portal.utils import Clock, as_utc, from_iso, sanitize_feedback, to_iso, utcnow

logger = logging.getLogger(__name__)

ENTITY = "timesheet"


def open_break(timesheet: Timesheet) -> Optional[dict]:
    """Return the last break if it has not been ended yet."""
    breaks = timesheet.breaks or []
    if breaks and not breaks[-1].get("end_time"):
        return breaks[-1]
    return None


def break_minutes(timesheet: Timesheet) -> float:
    """Minutes spent on closed breaks; an open break contributes nothing."""
    return sum(b.get("duration") or 0 for b in (timesheet.breaks or []))


def _closed_breaks(timesheet: Timesheet, now: datetime) -> List[dict]:
    """Copy of the break list with the open break (if any) ended at ``now``."""
    breaks = [dict(b) for b in (timesheet.breaks or [])]
    if breaks and not breaks[-1].get("end_time"):
        start = from_iso(breaks[-1]["start_time"])
        breaks[-1]["end_time"] = to_iso(now)
        breaks[-1]["duration"] = max(0.0, (now - start).total_seconds() / 60)
    return breaks


def _require_open_session(timesheet: Timesheet, transition: str) -> None:
    if timesheet.status != TIMESHEET_ACTIVE or timesheet.logout_time is not None:
        raise InvalidStateError(ENTITY, timesheet.id, timesheet.status, transition)


def _require_completed(timesheet: Timesheet, transition: str) -> None:
    if timesheet.status != TIMESHEET_COMPLETED:
        raise InvalidStateError(ENTITY, timesheet.id, timesheet.status, transition)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def start_break(timesheet: Timesheet, now: datetime) -> Timesheet:
    _require_open_session(timesheet, "start a break on")
    if open_break(timesheet) is not None:
        raise InvalidStateError(
            ENTITY, timesheet.id, timesheet.status, "start a break on",
            message="A break is already in progress",
        )

    timesheet.breaks = list(timesheet.breaks or []) + [{"start_time": to_iso(now)}]
    return timesheet


def end_break(timesheet: Timesheet, now: datetime) -> Timesheet:
    if open_break(timesheet) is None:
        raise InvalidStateError(
            ENTITY, timesheet.id, timesheet.status, "end a break on",
            message="No break is in progress",
        )

    timesheet.breaks = _closed_breaks(timesheet, now)
    return timesheet


def logout(timesheet: Timesheet, now: datetime, description: Optional[str] = None) -> Timesheet:
    """End the session, closing any open break first, and derive total hours."""
    if timesheet.logout_time is not None:
        raise InvalidStateError(ENTITY, timesheet.id, timesheet.status, "log out of")

    breaks = _closed_breaks(timesheet, now)
    elapsed_hours = (now - timesheet.login_time).total_seconds() / 3600

    timesheet.breaks = breaks
    paused_hours = break_minutes(timesheet) / 60
    timesheet.logout_time = now
    timesheet.status = TIMESHEET_COMPLETED
    timesheet.total_hours = round(max(0.0, elapsed_hours - paused_hours), 2)
    if description is not None:
        timesheet.description = description
    return timesheet


def approve(
    timesheet: Timesheet, admin_id: int, now: datetime, terms: Optional[ProjectTerms] = None
) -> Timesheet:
    _require_completed(timesheet, "approve")

    rate = terms.hourly_rate if terms is not None else None
    timesheet.status = TIMESHEET_APPROVED
    timesheet.approved_by = admin_id
    timesheet.approved_at = now
    timesheet.earnings = round((timesheet.total_hours or 0) * rate, 2) if rate else 0.0
    return timesheet


def reject(timesheet: Timesheet, admin_id: int, now: datetime, reason: Optional[str] = None) -> Timesheet:
    _require_completed(timesheet, "reject")

    timesheet.status = TIMESHEET_REJECTED
    timesheet.approved_by = admin_id
    timesheet.approved_at = now
    if reason is not None:
        timesheet.feedback = reason
    return timesheet


# ---------------------------------------------------------------------------
# Persistence-backed operations
# ---------------------------------------------------------------------------


def get_timesheet(session: Session, timesheet_id: int) -> Timesheet:
    timesheet = session.get(Timesheet, timesheet_id)
    if not timesheet:
        raise MissingReferenceError("Timesheet", timesheet_id)
    return timesheet


def get_active_timesheet(session: Session, student_id: int) -> Optional[Timesheet]:
    stmt = select(Timesheet).where(
        (Timesheet.student_id == student_id)
        & (Timesheet.status == TIMESHEET_ACTIVE)
        & (Timesheet.logout_time.is_(None))
    )
    return session.exec(stmt).first()


def _persist(session: Session, timesheet: Timesheet, transition: str) -> Timesheet:
    session.add(timesheet)
    session.commit()
    session.refresh(timesheet)
    logger.info(f"Timesheet {timesheet.id} {transition} -> {timesheet.status}")
    return timesheet


def clock_in(
    session: Session, student_id: int, project_id: Optional[int] = None, clock: Clock = utcnow
) -> Timesheet:
    """Open a new work session for a student.

    Raises:
        MissingReferenceError: If the student or project does not exist
        InvalidStateError: If the student already has an active session
    """
    if not session.get(Student, student_id):
        raise MissingReferenceError("Student", student_id)
    if project_id is not None and not session.get(Project, project_id):
        raise MissingReferenceError("Project", project_id)

    existing = get_active_timesheet(session, student_id)
    if existing:
        raise InvalidStateError(
            ENTITY, existing.id, existing.status, "clock in",
            message=f"Student {student_id} already has an active session",
        )

    now = clock()
    timesheet = Timesheet(
        student_id=student_id,
        project_id=project_id,
        date=now.replace(hour=0, minute=0, second=0, microsecond=0),
        login_time=now,
        status=TIMESHEET_ACTIVE,
    )
    return _persist(session, timesheet, "clocked in")


def start_timesheet_break(session: Session, timesheet_id: int, clock: Clock = utcnow) -> Timesheet:
    timesheet = get_timesheet(session, timesheet_id)
    start_break(timesheet, clock())
    return _persist(session, timesheet, "break started")


def end_timesheet_break(session: Session, timesheet_id: int, clock: Clock = utcnow) -> Timesheet:
    timesheet = get_timesheet(session, timesheet_id)
    end_break(timesheet, clock())
    return _persist(session, timesheet, "break ended")


def clock_out(
    session: Session, timesheet_id: int, description: Optional[str] = None, clock: Clock = utcnow
) -> Timesheet:
    timesheet = get_timesheet(session, timesheet_id)
    logout(timesheet, clock(), description=sanitize_feedback(description))
    return _persist(session, timesheet, "clocked out")


def approve_timesheet(
    session: Session, timesheet_id: int, admin_id: int, clock: Clock = utcnow
) -> Timesheet:
    """Approve a completed timesheet and roll hours/earnings into the student totals."""
    timesheet = get_timesheet(session, timesheet_id)
    terms = get_project_terms(session, timesheet.project_id)
    approve(timesheet, admin_id, clock(), terms)

    student = session.get(Student, timesheet.student_id)
    if student:
        student.total_hours_worked = round((student.total_hours_worked or 0) + timesheet.total_hours, 2)
        student.total_earnings = round((student.total_earnings or 0) + timesheet.earnings, 2)
        session.add(student)
    else:
        logger.warning(f"Student {timesheet.student_id} not found; totals not updated")
    return _persist(session, timesheet, "approved")


def reject_timesheet(
    session: Session,
    timesheet_id: int,
    admin_id: int,
    reason: Optional[str] = None,
    clock: Clock = utcnow,
) -> Timesheet:
    timesheet = get_timesheet(session, timesheet_id)
    reject(timesheet, admin_id, clock(), reason=sanitize_feedback(reason))
    return _persist(session, timesheet, "rejected")


def list_timesheets(
    session: Session,
    student_id: Optional[int] = None,
    status: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Timesheet]:
    """Filter timesheets by student, status and date range (inclusive)."""
    stmt = select(Timesheet)
    if student_id is not None:
        stmt = stmt.where(Timesheet.student_id == student_id)
    if status:
        if status not in TIMESHEET_STATUSES:
            raise ValueError(f"Unknown timesheet status '{status}'")
        stmt = stmt.where(Timesheet.status == status)
    if start is not None:
        stmt = stmt.where(Timesheet.date >= as_utc(start))
    if end is not None:
        stmt = stmt.where(Timesheet.date <= as_utc(end))
    return session.exec(stmt.order_by(Timesheet.login_time.desc())).all()
