import logging
import math
from datetime import datetime
from typing import List, Optional

from sqlmodel import Session, select

from internship_portal.exceptions import InvalidStateError, MissingReferenceError
from internship_portal.models import (
    PROJECT_ASSIGNED,
    PROJECT_COMPLETED,
    PROJECT_DRAFT,
    PROJECT_PUBLISHED,
    PROJECT_STATUSES,
    SUBMISSION_APPROVED,
    Project,
    Student,
    Submission,
)
from internship_portal.utils import Clock, as_utc, to_iso, utcnow, validate_rate

logger = logging.getLogger(__name__)


def create_project(
    session: Session,
    title: str,
    description: str,
    estimated_hours: float,
    hourly_rate: float,
    created_by: Optional[int] = None,
    deadline: Optional[datetime] = None,
    category: str = "Other",
    difficulty: str = "Beginner",
    skills_required: Optional[List[str]] = None,
    priority: str = "medium",
    max_students: int = 1,
) -> Project:
    validate_rate(hourly_rate)
    if estimated_hours < 1:
        raise ValueError("Estimated hours must be at least 1")
    if max_students < 1:
        raise ValueError("Maximum students must be at least 1")

    project = Project(
        title=title.strip(),
        description=description,
        estimated_hours=estimated_hours,
        hourly_rate=hourly_rate,
        created_by=created_by,
        deadline=as_utc(deadline),
        category=category,
        difficulty=difficulty,
        skills_required=[s.strip() for s in (skills_required or []) if s.strip()],
        priority=priority,
        max_students=max_students,
    )
    session.add(project)
    session.commit()
    session.refresh(project)
    logger.info(f"Project {project.id} created")
    return project


def get_project(session: Session, project_id: int) -> Project:
    project = session.get(Project, project_id)
    if not project:
        raise MissingReferenceError("Project", project_id)
    return project


def publish_project(session: Session, project_id: int) -> Project:
    project = get_project(session, project_id)
    if project.status != PROJECT_DRAFT:
        raise InvalidStateError("project", project.id, project.status, "publish")
    project.status = PROJECT_PUBLISHED
    session.add(project)
    session.commit()
    session.refresh(project)
    logger.info(f"Project {project.id} published")
    return project


def can_student_apply(project: Project, student_id: int) -> bool:
    """A student may join a published project they are not on, while seats remain."""
    assigned = project.assigned_to or []
    already = any(a.get("student_id") == student_id for a in assigned)
    full = len(assigned) >= project.max_students
    return not already and not full and project.status == PROJECT_PUBLISHED


def assign_student(
    session: Session, project_id: int, student_id: int, admin_id: int, clock: Clock = utcnow
) -> Project:
    project = get_project(session, project_id)
    if not session.get(Student, student_id):
        raise MissingReferenceError("Student", student_id)
    if not can_student_apply(project, student_id):
        raise InvalidStateError(
            "project", project.id, project.status, "assign student to",
            message=f"Student {student_id} cannot be assigned to project {project.id}",
        )

    entry = {"student_id": student_id, "assigned_by": admin_id, "assigned_at": to_iso(clock())}
    project.assigned_to = list(project.assigned_to or []) + [entry]
    # First assignment takes the project off the open board
    if project.status == PROJECT_PUBLISHED:
        project.status = PROJECT_ASSIGNED
    session.add(project)
    session.commit()
    session.refresh(project)
    logger.info(f"Student {student_id} assigned to project {project.id}")
    return project


def project_progress(session: Session, project_id: int) -> int:
    """Percentage of the project's submissions that are approved."""
    submissions = session.exec(select(Submission).where(Submission.project_id == project_id)).all()
    if not submissions:
        return 0
    approved = sum(1 for s in submissions if s.status == SUBMISSION_APPROVED)
    return round(approved / len(submissions) * 100)


def find_by_skills(session: Session, skills: List[str], difficulty: Optional[str] = None) -> List[Project]:
    stmt = select(Project).where((Project.status == PROJECT_PUBLISHED) & (Project.is_active == True))  # noqa: E712
    if difficulty:
        stmt = stmt.where(Project.difficulty == difficulty)
    wanted = {s.lower() for s in skills}
    projects = session.exec(stmt.order_by(Project.created_at.desc())).all()
    return [p for p in projects if wanted & {s.lower() for s in (p.skills_required or [])}]


def days_until_deadline(project: Project, now: datetime) -> Optional[int]:
    if project.deadline is None:
        return None
    return math.ceil((project.deadline - now).total_seconds() / 86400)


def is_project_overdue(project: Project, now: datetime) -> bool:
    if project.deadline is None:
        return False
    return now > project.deadline and project.status != PROJECT_COMPLETED


def list_projects(session: Session, status: Optional[str] = None) -> List[Project]:
    stmt = select(Project).where(Project.is_active == True)  # noqa: E712
    if status:
        if status not in PROJECT_STATUSES:
            raise ValueError(f"Unknown project status '{status}'")
        stmt = stmt.where(Project.status == status)
    return session.exec(stmt.order_by(Project.created_at.desc())).all()
