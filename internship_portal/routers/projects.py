from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlmodel import Session

from internship_portal.database import get_session
from internship_portal.deps import require_role
from internship_portal.models import Project, User
from internship_portal.schemas import AssignIn, ProjectIn
from internship_portal.services import project_service
from internship_portal.utils import utcnow

router = APIRouter()


def project_out(project: Project) -> dict:
    now = utcnow()
    return {
        "id": project.id,
        "title": project.title,
        "description": project.description,
        "category": project.category,
        "difficulty": project.difficulty,
        "skills_required": project.skills_required,
        "estimated_hours": project.estimated_hours,
        "hourly_rate": project.hourly_rate,
        "total_budget": project.total_budget,
        "deadline": project.deadline,
        "days_until_deadline": project_service.days_until_deadline(project, now),
        "is_overdue": project_service.is_project_overdue(project, now),
        "status": project.status,
        "priority": project.priority,
        "max_students": project.max_students,
        "assigned_to": project.assigned_to,
    }


@router.get("")
def list_projects(
    status: Optional[str] = Query(None),
    skills: Optional[List[str]] = Query(None),
    difficulty: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    if skills:
        projects = project_service.find_by_skills(session, skills, difficulty)
    else:
        projects = project_service.list_projects(session, status)
    return [project_out(p) for p in projects]


@router.get("/{project_id}")
def get_project(project_id: int, session: Session = Depends(get_session)):
    return project_out(project_service.get_project(session, project_id))


@router.post("", status_code=201)
def create_project(
    payload: ProjectIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    project = project_service.create_project(
        session, created_by=current_user.id, **payload.model_dump()
    )
    return project_out(project)


@router.post("/{project_id}/publish")
def publish_project(
    project_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    return project_out(project_service.publish_project(session, project_id))


@router.post("/{project_id}/assign")
def assign_student(
    project_id: int,
    payload: AssignIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    project = project_service.assign_student(session, project_id, payload.student_id, current_user.id)
    return project_out(project)


@router.get("/{project_id}/progress")
def project_progress(
    project_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    project_service.get_project(session, project_id)
    return {"project_id": project_id, "progress": project_service.project_progress(session, project_id)}
