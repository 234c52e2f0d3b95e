"""Pydantic request bodies and the project terms passed into transitions."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ProjectTerms(BaseModel):
    """Project fields a transition needs, resolved before the transition runs."""

    project_id: Optional[int] = None
    hourly_rate: Optional[float] = None
    deadline: Optional[datetime] = None

    @classmethod
    def from_project(cls, project) -> "ProjectTerms":
        return cls(project_id=project.id, hourly_rate=project.hourly_rate, deadline=project.deadline)


# --- Auth ---


class RegisterStudentIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6)
    phone: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    expertise: str = "Beginner"


class LoginIn(BaseModel):
    email: str
    password: str


class RegisterAdminIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6)


class ProfileUpdateIn(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = None
    skills: Optional[List[str]] = None
    expertise: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=500)


class ChangePasswordIn(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6, max_length=128)


# --- Projects ---


class ProjectIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=2000)
    category: str = "Other"
    difficulty: str = "Beginner"
    skills_required: List[str] = Field(default_factory=list)
    estimated_hours: float = Field(ge=1)
    hourly_rate: float = Field(ge=0)
    deadline: Optional[datetime] = None
    priority: str = "medium"
    max_students: int = Field(default=1, ge=1)


class AssignIn(BaseModel):
    student_id: int


# --- Submissions ---


class FileIn(BaseModel):
    filename: str
    original_name: str
    path: str
    size: int = Field(ge=0)
    mimetype: str


class SubmissionIn(BaseModel):
    project_id: int
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    hours_worked: float = Field(ge=0)
    files: List[FileIn] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(default=None, max_length=500)


class SubmissionUpdateIn(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    hours_worked: Optional[float] = Field(default=None, ge=0)
    files: Optional[List[FileIn]] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class ApproveIn(BaseModel):
    feedback: Optional[str] = Field(default=None, max_length=1000)
    grade: Optional[float] = Field(default=None, ge=0, le=100)
    quality_score: Optional[int] = Field(default=None, ge=1, le=5)


class FeedbackIn(BaseModel):
    feedback: str = Field(max_length=1000)


# --- Timesheets ---


class ClockInIn(BaseModel):
    project_id: Optional[int] = None


class ClockOutIn(BaseModel):
    description: Optional[str] = Field(default=None, max_length=1000)


class RejectTimesheetIn(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=1000)
