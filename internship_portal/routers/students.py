from fastapi import APIRouter, Depends
from sqlmodel import Session

from internship_portal.database import get_session
from internship_portal.deps import require_student_id
from internship_portal.routers.projects import project_out
from internship_portal.routers.submissions import submission_out
from internship_portal.routers.timesheets import timesheet_out
from internship_portal.services import student_service

router = APIRouter()


@router.get("/dashboard")
def dashboard(
    session: Session = Depends(get_session),
    student_id: int = Depends(require_student_id),
):
    """The logged-in student's counts plus their latest projects, submissions and timesheets."""
    data = student_service.student_dashboard(session, student_id)
    return {
        "stats": data["stats"],
        "projects": [project_out(p) for p in data["projects"]],
        "submissions": [submission_out(session, s) for s in data["submissions"]],
        "timesheets": [timesheet_out(t) for t in data["timesheets"]],
    }


@router.get("/projects/active")
def my_active_projects(
    session: Session = Depends(get_session),
    student_id: int = Depends(require_student_id),
):
    return [project_out(p) for p in student_service.active_projects(session, student_id)]
