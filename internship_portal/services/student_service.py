"""Student profiles, dashboards and admin-side student management."""

import logging
import math
from typing import List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from internship_portal.exceptions import MissingReferenceError
from internship_portal.models import (
    PROJECT_ACTIVE_STATUSES,
    PROJECT_COMPLETED,
    SUBMISSION_SUBMITTED,
    TIMESHEET_APPROVED,
    TIMESHEET_COMPLETED,
    Project,
    Student,
    Submission,
    Timesheet,
    User,
)
from internship_portal.utils import validate_phone

logger = logging.getLogger(__name__)

EXPERTISE_LEVELS = ("Beginner", "Intermediate", "Advanced")
PROFILE_FIELDS = ("name", "phone", "skills", "expertise", "bio")

RECENT_LIMIT = 5


def get_student(session: Session, student_id: int) -> Student:
    student = session.get(Student, student_id)
    if not student:
        raise MissingReferenceError("Student", student_id)
    return student


def student_projects(session: Session, student_id: int) -> List[Project]:
    """Active (non-archived) projects the student has been assigned to."""
    projects = session.exec(
        select(Project).where(Project.is_active == True).order_by(Project.created_at.desc())  # noqa: E712
    ).all()
    return [p for p in projects if any(a.get("student_id") == student_id for a in (p.assigned_to or []))]


def active_projects(session: Session, student_id: int) -> List[Project]:
    return [p for p in student_projects(session, student_id) if p.status in PROJECT_ACTIVE_STATUSES]


def completion_rate(session: Session, student_id: int) -> int:
    """Percentage of the student's assigned projects that are completed."""
    projects = student_projects(session, student_id)
    if not projects:
        return 0
    completed = sum(1 for p in projects if p.status == PROJECT_COMPLETED)
    return round(completed / len(projects) * 100)


def student_dashboard(session: Session, student_id: int) -> dict:
    """Counts and recent activity for one student.

    Hours and earnings come from approved timesheets only.
    """
    get_student(session, student_id)
    projects = student_projects(session, student_id)

    submissions = session.exec(
        select(Submission)
        .where(Submission.student_id == student_id)
        .order_by(Submission.created_at.desc(), Submission.id.desc())
        .limit(RECENT_LIMIT)
    ).all()
    timesheets = session.exec(
        select(Timesheet)
        .where(Timesheet.student_id == student_id)
        .order_by(Timesheet.login_time.desc())
        .limit(RECENT_LIMIT)
    ).all()
    approved = session.exec(
        select(Timesheet).where(
            (Timesheet.student_id == student_id) & (Timesheet.status == TIMESHEET_APPROVED)
        )
    ).all()

    return {
        "stats": {
            "total_projects": len(projects),
            "active_projects": sum(1 for p in projects if p.status in PROJECT_ACTIVE_STATUSES),
            "completed_projects": sum(1 for p in projects if p.status == PROJECT_COMPLETED),
            "completion_rate": completion_rate(session, student_id),
            "total_hours": round(sum(t.total_hours or 0 for t in approved), 2),
            "total_earnings": round(sum(t.earnings or 0 for t in approved), 2),
        },
        "projects": projects[:RECENT_LIMIT],
        "submissions": submissions,
        "timesheets": timesheets,
    }


def _count(session: Session, stmt) -> int:
    return session.exec(stmt).one()


def admin_dashboard(session: Session) -> dict:
    """Portal-wide counts, the review queue head and the project status breakdown."""
    stats = {
        "total_students": _count(
            session, select(func.count()).select_from(Student).where(Student.is_active == True)  # noqa: E712
        ),
        "total_projects": _count(
            session, select(func.count()).select_from(Project).where(Project.is_active == True)  # noqa: E712
        ),
        "pending_submissions": _count(
            session, select(func.count()).select_from(Submission).where(Submission.status == SUBMISSION_SUBMITTED)
        ),
        "pending_timesheets": _count(
            session, select(func.count()).select_from(Timesheet).where(Timesheet.status == TIMESHEET_COMPLETED)
        ),
    }

    recent_submissions = session.exec(
        select(Submission)
        .where(Submission.status == SUBMISSION_SUBMITTED)
        .order_by(Submission.submitted_at.desc(), Submission.id.desc())
        .limit(RECENT_LIMIT)
    ).all()
    recent_projects = session.exec(
        select(Project)
        .where(Project.is_active == True)  # noqa: E712
        .order_by(Project.created_at.desc(), Project.id.desc())
        .limit(RECENT_LIMIT)
    ).all()
    rows = session.exec(
        select(Project.status, func.count())
        .where(Project.is_active == True)  # noqa: E712
        .group_by(Project.status)
    ).all()

    return {
        "stats": stats,
        "recent_submissions": recent_submissions,
        "recent_projects": recent_projects,
        "project_stats": {status: count for status, count in rows},
    }


def list_students(
    session: Session,
    search: Optional[str] = None,
    skills: Optional[List[str]] = None,
    expertise: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    """Page through active students, filtered by name/email, skills and expertise."""
    stmt = select(Student).where(Student.is_active == True)  # noqa: E712
    if search:
        pattern = f"%{search.strip().lower()}%"
        stmt = stmt.where(func.lower(Student.name).like(pattern) | func.lower(Student.email).like(pattern))
    if expertise:
        stmt = stmt.where(Student.expertise == expertise)
    students = session.exec(stmt.order_by(Student.joined_at.desc(), Student.id.desc())).all()

    if skills:
        wanted = {s.strip().lower() for s in skills if s.strip()}
        students = [s for s in students if wanted & {k.lower() for k in (s.skills or [])}]

    total = len(students)
    offset = (page - 1) * limit
    return {
        "students": students[offset:offset + limit],
        "pagination": {"current": page, "pages": math.ceil(total / limit), "total": total},
    }


def set_student_active(session: Session, student_id: int, is_active: bool) -> Student:
    """Activate or deactivate a student together with their login account."""
    student = get_student(session, student_id)
    student.is_active = is_active
    session.add(student)

    user = session.exec(select(User).where(User.student_id == student_id)).first()
    if user:
        user.is_active = is_active
        session.add(user)

    session.commit()
    session.refresh(student)
    logger.info(f"Student {student_id} {'activated' if is_active else 'deactivated'}")
    return student


def update_profile(session: Session, student_id: int, **changes) -> Student:
    """Update the editable profile fields of a student.

    Unknown keys and ``None`` values are ignored. The linked login account's
    name follows the profile name.

    Raises:
        MissingReferenceError: If the student does not exist
        ValueError: If the phone number or expertise level is invalid
    """
    student = get_student(session, student_id)
    updates = {k: v for k, v in changes.items() if k in PROFILE_FIELDS and v is not None}

    if "phone" in updates:
        validate_phone(updates["phone"])
    if "expertise" in updates and updates["expertise"] not in EXPERTISE_LEVELS:
        raise ValueError(f"Expertise must be one of {', '.join(EXPERTISE_LEVELS)}")
    if "name" in updates:
        updates["name"] = updates["name"].strip()
        if not updates["name"]:
            raise ValueError("Name cannot be empty")
    if "skills" in updates:
        updates["skills"] = [s.strip() for s in updates["skills"] if s.strip()]

    for field, value in updates.items():
        setattr(student, field, value)
    session.add(student)

    if "name" in updates and student.user_id:
        user = session.get(User, student.user_id)
        if user:
            user.name = updates["name"]
            session.add(user)

    session.commit()
    session.refresh(student)
    logger.info(f"Student {student_id} profile updated: {', '.join(sorted(updates)) or 'no changes'}")
    return student
