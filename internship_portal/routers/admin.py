"""Admin dashboard and student management."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from internship_portal.database import get_session
from internship_portal.deps import require_role
from internship_portal.models import Student, User
from internship_portal.routers.projects import project_out
from internship_portal.routers.submissions import submission_out
from internship_portal.services import student_service

router = APIRouter()


def student_out(student: Student) -> dict:
    return {
        "id": student.id,
        "name": student.name,
        "email": student.email,
        "phone": student.phone,
        "skills": student.skills,
        "expertise": student.expertise,
        "bio": student.bio,
        "total_hours_worked": student.total_hours_worked,
        "total_earnings": student.total_earnings,
        "is_active": student.is_active,
        "joined_at": student.joined_at,
    }


@router.get("/dashboard")
def dashboard(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    data = student_service.admin_dashboard(session)
    return {
        "stats": data["stats"],
        "recent_submissions": [submission_out(session, s) for s in data["recent_submissions"]],
        "recent_projects": [project_out(p) for p in data["recent_projects"]],
        "project_stats": data["project_stats"],
    }


@router.get("/students")
def list_students(
    search: Optional[str] = Query(None),
    skills: Optional[List[str]] = Query(None),
    expertise: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    result = student_service.list_students(session, search, skills, expertise, page, limit)
    return {
        "students": [student_out(s) for s in result["students"]],
        "pagination": result["pagination"],
    }


@router.get("/students/{student_id}")
def get_student(
    student_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    student = student_service.get_student(session, student_id)
    return {
        **student_out(student),
        "completion_rate": student_service.completion_rate(session, student_id),
        "active_projects": [project_out(p) for p in student_service.active_projects(session, student_id)],
    }


@router.post("/students/{student_id}/deactivate")
def deactivate_student(
    student_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    return student_out(student_service.set_student_active(session, student_id, False))


@router.post("/students/{student_id}/activate")
def activate_student(
    student_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    return student_out(student_service.set_student_active(session, student_id, True))
