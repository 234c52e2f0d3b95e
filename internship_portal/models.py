"""SQLModel models for the Internship Portal.

Nested records (submission files, revision snapshots, timesheet breaks,
project assignments) have no identity of their own; they live in JSON
columns on the owning row and are saved together with it. Datetimes inside
those records are stored as ISO-8601 strings.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from internship_portal.utils import utcnow

# Submission statuses
SUBMISSION_DRAFT = "draft"
SUBMISSION_SUBMITTED = "submitted"
SUBMISSION_UNDER_REVIEW = "under_review"
SUBMISSION_APPROVED = "approved"
SUBMISSION_REJECTED = "rejected"
SUBMISSION_REVISION_REQUIRED = "revision_required"
SUBMISSION_STATUSES = (
    SUBMISSION_DRAFT,
    SUBMISSION_SUBMITTED,
    SUBMISSION_UNDER_REVIEW,
    SUBMISSION_APPROVED,
    SUBMISSION_REJECTED,
    SUBMISSION_REVISION_REQUIRED,
)

# Timesheet statuses
TIMESHEET_ACTIVE = "active"
TIMESHEET_COMPLETED = "completed"
TIMESHEET_APPROVED = "approved"
TIMESHEET_REJECTED = "rejected"
TIMESHEET_STATUSES = (TIMESHEET_ACTIVE, TIMESHEET_COMPLETED, TIMESHEET_APPROVED, TIMESHEET_REJECTED)

# Project statuses
PROJECT_DRAFT = "draft"
PROJECT_PUBLISHED = "published"
PROJECT_ASSIGNED = "assigned"
PROJECT_IN_PROGRESS = "in_progress"
PROJECT_COMPLETED = "completed"
PROJECT_STATUSES = (
    PROJECT_DRAFT,
    PROJECT_PUBLISHED,
    PROJECT_ASSIGNED,
    PROJECT_IN_PROGRESS,
    "submitted",
    "under_review",
    PROJECT_COMPLETED,
    "cancelled",
)
# Projects a student is currently working on
PROJECT_ACTIVE_STATUSES = (PROJECT_ASSIGNED, PROJECT_IN_PROGRESS)


class Student(SQLModel, table=True):
    """Student profile; linked to a login account once registered."""

    __table_args__ = (UniqueConstraint("email", name="uq_student_email"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str
    phone: Optional[str] = None
    skills: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    expertise: str = Field(default="Beginner")  # Beginner | Intermediate | Advanced
    bio: Optional[str] = None
    user_id: Optional[int] = Field(default=None, foreign_key="user.id")

    # Rolled up when timesheets are approved
    total_hours_worked: float = Field(default=0.0)
    total_earnings: float = Field(default=0.0)

    is_active: bool = Field(default=True)
    joined_at: datetime = Field(default_factory=utcnow)


class User(SQLModel, table=True):
    """Application user that can log in and own a role (admin / student)."""

    __table_args__ = (UniqueConstraint("email", name="uq_user_email"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str
    password_hash: str
    role: str = Field(default="student")  # "admin", "student"
    student_id: Optional[int] = Field(default=None, foreign_key="student.id")
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)
    last_login: Optional[datetime] = None


class Project(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: str
    category: str = Field(default="Other")
    difficulty: str = Field(default="Beginner")
    skills_required: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    estimated_hours: float = Field(default=1.0)
    hourly_rate: float = Field(default=0.0)
    deadline: Optional[datetime] = None
    status: str = Field(default=PROJECT_DRAFT)
    priority: str = Field(default="medium")  # low | medium | high | urgent
    max_students: int = Field(default=1)
    # [{student_id, assigned_at, assigned_by}]
    assigned_to: List[dict] = Field(default_factory=list, sa_column=Column(JSON))
    created_by: Optional[int] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    is_active: bool = Field(default=True)

    @property
    def total_budget(self) -> float:
        return (self.estimated_hours or 0) * (self.hourly_rate or 0)


class Submission(SQLModel, table=True):
    """A student's deliverable for one project, with its review history."""

    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="project.id", index=True)
    student_id: int = Field(foreign_key="student.id", index=True)
    title: str
    description: str = ""
    # [{filename, original_name, path, size, mimetype, uploaded_at}]
    files: List[dict] = Field(default_factory=list, sa_column=Column(JSON))
    status: str = Field(default=SUBMISSION_DRAFT, index=True)
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = Field(default=None, foreign_key="user.id")
    feedback: Optional[str] = None
    grade: Optional[float] = None
    hours_worked: float
    earnings: float = Field(default=0.0)
    # [{version, submitted_at, feedback, files}]
    revision_history: List[dict] = Field(default_factory=list, sa_column=Column(JSON))
    is_late: bool = Field(default=False)
    quality_score: Optional[int] = None
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Timesheet(SQLModel, table=True):
    """One work session: login, optional breaks, logout, admin approval."""

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="student.id", index=True)
    project_id: Optional[int] = Field(default=None, foreign_key="project.id")
    date: datetime = Field(default_factory=utcnow)
    login_time: datetime = Field(default_factory=utcnow)
    logout_time: Optional[datetime] = None
    # [{start_time, end_time, duration}] - duration in minutes
    breaks: List[dict] = Field(default_factory=list, sa_column=Column(JSON))
    total_hours: float = Field(default=0.0)
    status: str = Field(default=TIMESHEET_ACTIVE, index=True)
    earnings: float = Field(default=0.0)
    approved_by: Optional[int] = Field(default=None, foreign_key="user.id")
    approved_at: Optional[datetime] = None
    description: Optional[str] = None
    feedback: Optional[str] = None
