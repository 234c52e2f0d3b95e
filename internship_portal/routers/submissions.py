"""Submission endpoints.

Students create, edit, submit and resubmit their own work; admins move it
through review. All state rules live in ``submission_service``.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlmodel import Session

from internship_portal.database import get_session
from internship_portal.deps import require_login, require_role, require_student_id
from internship_portal.models import Submission, User
from internship_portal.schemas import (
    ApproveIn,
    FeedbackIn,
    SubmissionIn,
    SubmissionUpdateIn,
)
from internship_portal.services import submission_service
from internship_portal.utils import utcnow

router = APIRouter()


def submission_out(session: Session, submission: Submission) -> dict:
    terms = submission_service.get_project_terms(session, submission.project_id)
    return {
        "id": submission.id,
        "project_id": submission.project_id,
        "student_id": submission.student_id,
        "title": submission.title,
        "description": submission.description,
        "files": submission.files,
        "status": submission.status,
        "submitted_at": submission.submitted_at,
        "reviewed_at": submission.reviewed_at,
        "reviewed_by": submission.reviewed_by,
        "feedback": submission.feedback,
        "grade": submission.grade,
        "quality_score": submission.quality_score,
        "hours_worked": submission.hours_worked,
        "earnings": submission.earnings,
        "is_late": submission.is_late,
        "tags": submission.tags,
        "notes": submission.notes,
        "revision_history": submission.revision_history,
        "current_version": submission_service.current_version(submission),
        "is_overdue": submission_service.is_overdue(submission, utcnow(), terms),
    }


def _own_submission(session: Session, submission_id: int, student_id: int) -> Submission:
    submission = submission_service.get_submission(session, submission_id)
    if submission.student_id != student_id:
        raise HTTPException(status_code=403, detail="Not your submission")
    return submission


# --- Student actions ---


@router.post("", status_code=201)
def create_submission(
    payload: SubmissionIn = Body(...),
    session: Session = Depends(get_session),
    student_id: int = Depends(require_student_id),
):
    submission = submission_service.create_submission(
        session,
        student_id=student_id,
        project_id=payload.project_id,
        title=payload.title,
        hours_worked=payload.hours_worked,
        description=payload.description,
        files=[f.model_dump() for f in payload.files],
        tags=payload.tags,
        notes=payload.notes,
    )
    return submission_out(session, submission)


@router.get("/mine")
def my_submissions(
    status: Optional[str] = Query(None),
    session: Session = Depends(get_session),
    student_id: int = Depends(require_student_id),
):
    submissions = submission_service.list_student_submissions(session, student_id, status)
    return [submission_out(session, s) for s in submissions]


@router.put("/{submission_id}")
def update_submission(
    submission_id: int,
    payload: SubmissionUpdateIn = Body(...),
    session: Session = Depends(get_session),
    student_id: int = Depends(require_student_id),
):
    _own_submission(session, submission_id, student_id)
    changes = payload.model_dump(exclude_unset=True)
    submission = submission_service.update_submission(session, submission_id, **changes)
    return submission_out(session, submission)


@router.post("/{submission_id}/submit")
def submit_submission(
    submission_id: int,
    session: Session = Depends(get_session),
    student_id: int = Depends(require_student_id),
):
    _own_submission(session, submission_id, student_id)
    submission = submission_service.submit_submission(session, submission_id)
    return submission_out(session, submission)


@router.post("/{submission_id}/resubmit")
def resubmit_submission(
    submission_id: int,
    session: Session = Depends(get_session),
    student_id: int = Depends(require_student_id),
):
    _own_submission(session, submission_id, student_id)
    submission = submission_service.resubmit_submission(session, submission_id)
    return submission_out(session, submission)


# --- Admin review ---


@router.get("")
def list_submissions(
    status: str = Query("submitted"),
    limit: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    submissions = submission_service.list_by_status(session, status, limit)
    return [submission_out(session, s) for s in submissions]


@router.get("/{submission_id}")
def get_submission(
    submission_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_login),
):
    submission = submission_service.get_submission(session, submission_id)
    if current_user.role != "admin" and submission.student_id != current_user.student_id:
        raise HTTPException(status_code=403, detail="Not your submission")
    return submission_out(session, submission)


@router.post("/{submission_id}/review")
def start_review(
    submission_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    submission = submission_service.start_submission_review(session, submission_id, current_user.id)
    return submission_out(session, submission)


@router.post("/{submission_id}/approve")
def approve_submission(
    submission_id: int,
    payload: Optional[ApproveIn] = Body(None),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    payload = payload or ApproveIn()
    submission = submission_service.approve_submission(
        session,
        submission_id,
        current_user.id,
        feedback=payload.feedback,
        grade=payload.grade,
        quality_score=payload.quality_score,
    )
    return submission_out(session, submission)


@router.post("/{submission_id}/reject")
def reject_submission(
    submission_id: int,
    payload: FeedbackIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    submission = submission_service.reject_submission(
        session, submission_id, current_user.id, payload.feedback
    )
    return submission_out(session, submission)


@router.post("/{submission_id}/request-revision")
def request_revision(
    submission_id: int,
    payload: FeedbackIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    submission = submission_service.request_submission_revision(
        session, submission_id, current_user.id, payload.feedback
    )
    return submission_out(session, submission)
