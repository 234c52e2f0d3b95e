"""Submission lifecycle.

    draft -> submitted -> under_review -> approved | rejected | revision_required
    revision_required -> submitted (resubmit)

The transition functions at the top of this module operate on a
``Submission`` object only. Project data they need arrives as a
``ProjectTerms`` value and the current time arrives as ``now``; nothing is
looked up or read from the clock mid-transition. Every precondition is checked
before the first field is written, so a failed transition leaves the entity
untouched.

The ``*_submission`` functions further down load the row, resolve the
project terms, call the transition with one clock reading and commit.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlmodel import Session, select

from internship_portal.config import settings
from internship_portal.exceptions import InvalidStateError, MissingReferenceError
from internship_portal.models import (
    SUBMISSION_APPROVED,
    SUBMISSION_DRAFT,
    SUBMISSION_REJECTED,
    SUBMISSION_REVISION_REQUIRED,
    SUBMISSION_STATUSES,
    SUBMISSION_SUBMITTED,
    SUBMISSION_UNDER_REVIEW,
    Project,
    Student,
    Submission,
)
from internship_portal.schemas import ProjectTerms
from internship_portal.utils import (
    Clock,
    from_iso,
    sanitize_feedback,
    to_iso,
    utcnow,
    validate_grade,
    validate_hours,
    validate_quality_score,
)

logger = logging.getLogger(__name__)

ENTITY = "submission"

# Source states accepted by the review transitions in strict mode
REVIEWABLE_STATUSES = (SUBMISSION_SUBMITTED, SUBMISSION_UNDER_REVIEW)
EDITABLE_STATUSES = (SUBMISSION_DRAFT, SUBMISSION_REVISION_REQUIRED)


def _require(submission: Submission, allowed: Iterable[str], transition: str) -> None:
    if submission.status not in allowed:
        raise InvalidStateError(ENTITY, submission.id, submission.status, transition)


def compute_earnings(hours_worked: Optional[float], terms: Optional[ProjectTerms]) -> Optional[float]:
    """Return ``hours_worked x hourly_rate``, or ``None`` when it cannot be derived.

    A zero or missing rate counts as unresolvable and leaves earnings alone.
    """
    if not hours_worked or hours_worked <= 0:
        return None
    if terms is None or not terms.hourly_rate:
        return None
    return round(hours_worked * terms.hourly_rate, 2)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def submit(submission: Submission, now: datetime, terms: Optional[ProjectTerms] = None) -> Submission:
    """Move a draft to ``submitted`` and flag it late if past the deadline."""
    _require(submission, (SUBMISSION_DRAFT,), "submit")

    deadline = terms.deadline if terms is not None else None
    submission.status = SUBMISSION_SUBMITTED
    submission.submitted_at = now
    submission.is_late = bool(deadline and now > deadline)
    submission.updated_at = now
    return submission


def start_review(submission: Submission, reviewer_id: int, now: datetime) -> Submission:
    _require(submission, (SUBMISSION_SUBMITTED,), "start review of")

    submission.status = SUBMISSION_UNDER_REVIEW
    submission.reviewed_by = reviewer_id
    submission.updated_at = now
    return submission


def approve(
    submission: Submission,
    reviewer_id: int,
    now: datetime,
    terms: Optional[ProjectTerms] = None,
    feedback: Optional[str] = None,
    grade: Optional[float] = None,
    strict: bool = False,
) -> Submission:
    """Approve the submission and derive its earnings.

    Without ``strict`` this is callable from any status. Approving twice
    recomputes the same earnings and leaves the revision history alone.
    """
    if strict:
        _require(submission, REVIEWABLE_STATUSES + (SUBMISSION_APPROVED,), "approve")
    validate_grade(grade)
    earnings = compute_earnings(submission.hours_worked, terms)

    submission.status = SUBMISSION_APPROVED
    submission.reviewed_at = now
    submission.reviewed_by = reviewer_id
    if feedback is not None:
        submission.feedback = feedback
    if grade is not None:
        submission.grade = grade
    if earnings is not None:
        submission.earnings = earnings
    submission.updated_at = now
    return submission


def reject(
    submission: Submission,
    reviewer_id: int,
    feedback: Optional[str],
    now: datetime,
    strict: bool = False,
) -> Submission:
    if strict:
        _require(submission, REVIEWABLE_STATUSES, "reject")

    submission.status = SUBMISSION_REJECTED
    submission.reviewed_at = now
    submission.reviewed_by = reviewer_id
    submission.feedback = feedback
    submission.updated_at = now
    return submission


def request_revision(
    submission: Submission,
    reviewer_id: int,
    feedback: Optional[str],
    now: datetime,
    strict: bool = False,
) -> Submission:
    """Snapshot the current round into the history, then ask for a revision.

    The snapshot holds the feedback and submission time from *before* this
    call.
    """
    if strict:
        _require(submission, REVIEWABLE_STATUSES, "request revision of")

    history = list(submission.revision_history or [])
    snapshot = {
        "version": len(history) + 1,
        "submitted_at": to_iso(submission.submitted_at),
        "feedback": submission.feedback,
        "files": [dict(f) for f in (submission.files or [])],
    }

    submission.revision_history = history + [snapshot]
    submission.status = SUBMISSION_REVISION_REQUIRED
    submission.reviewed_at = now
    submission.reviewed_by = reviewer_id
    submission.feedback = feedback
    submission.updated_at = now
    return submission


def resubmit(submission: Submission, now: datetime) -> Submission:
    """Send a revised submission back for review. Feedback and grade are kept."""
    _require(submission, (SUBMISSION_REVISION_REQUIRED,), "resubmit")

    submission.status = SUBMISSION_SUBMITTED
    submission.submitted_at = now
    submission.reviewed_at = None
    submission.reviewed_by = None
    submission.updated_at = now
    return submission


def current_version(submission: Submission) -> int:
    return len(submission.revision_history or []) + 1


def is_overdue(submission: Submission, now: datetime, terms: Optional[ProjectTerms] = None) -> bool:
    if terms is None or terms.deadline is None:
        return False
    return now > terms.deadline and submission.status != SUBMISSION_APPROVED


# ---------------------------------------------------------------------------
# Persistence-backed operations
# ---------------------------------------------------------------------------


def _file_records(files, now: datetime) -> List[dict]:
    records = []
    for f in files or []:
        record = dict(f)
        record["uploaded_at"] = to_iso(from_iso(record.get("uploaded_at")) or now)
        records.append(record)
    return records


def get_project_terms(session: Session, project_id: Optional[int]) -> Optional[ProjectTerms]:
    """Resolve the project terms, or ``None`` (logged) if the project is gone."""
    if project_id is None:
        return None
    project = session.get(Project, project_id)
    if not project:
        logger.warning(f"Project {project_id} not found; derived values will be skipped")
        return None
    return ProjectTerms.from_project(project)


def get_submission(session: Session, submission_id: int) -> Submission:
    submission = session.get(Submission, submission_id)
    if not submission:
        raise MissingReferenceError("Submission", submission_id)
    return submission


def _persist(session: Session, submission: Submission, transition: str) -> Submission:
    session.add(submission)
    session.commit()
    session.refresh(submission)
    logger.info(f"Submission {submission.id} {transition} -> {submission.status}")
    return submission


def create_submission(
    session: Session,
    student_id: int,
    project_id: int,
    title: str,
    hours_worked: float,
    description: str = "",
    files: Optional[List[dict]] = None,
    tags: Optional[List[str]] = None,
    notes: Optional[str] = None,
    clock: Clock = utcnow,
) -> Submission:
    """Create a draft submission for a project.

    Raises:
        MissingReferenceError: If the student or project does not exist
        ValueError: If hours worked is negative
    """
    if not session.get(Student, student_id):
        raise MissingReferenceError("Student", student_id)
    if not session.get(Project, project_id):
        raise MissingReferenceError("Project", project_id)
    validate_hours(hours_worked)

    now = clock()
    submission = Submission(
        student_id=student_id,
        project_id=project_id,
        title=title.strip(),
        description=description or "",
        hours_worked=hours_worked,
        files=_file_records(files, now),
        tags=[t.strip().lower() for t in (tags or []) if t.strip()],
        notes=notes,
        status=SUBMISSION_DRAFT,
        created_at=now,
        updated_at=now,
    )
    return _persist(session, submission, "created")


def update_submission(
    session: Session,
    submission_id: int,
    title: Optional[str] = None,
    description: Optional[str] = None,
    hours_worked: Optional[float] = None,
    files: Optional[List[dict]] = None,
    tags: Optional[List[str]] = None,
    notes: Optional[str] = None,
    clock: Clock = utcnow,
) -> Submission:
    """Edit a submission while the student still owns it (draft or revision_required)."""
    submission = get_submission(session, submission_id)
    _require(submission, EDITABLE_STATUSES, "edit")
    if hours_worked is not None:
        validate_hours(hours_worked)

    now = clock()
    if title is not None:
        submission.title = title.strip()
    if description is not None:
        submission.description = description
    if hours_worked is not None:
        submission.hours_worked = hours_worked
    if files is not None:
        submission.files = _file_records(files, now)
    if tags is not None:
        submission.tags = [t.strip().lower() for t in tags if t.strip()]
    if notes is not None:
        submission.notes = notes
    submission.updated_at = now
    return _persist(session, submission, "updated")


def submit_submission(session: Session, submission_id: int, clock: Clock = utcnow) -> Submission:
    submission = get_submission(session, submission_id)
    terms = get_project_terms(session, submission.project_id)
    submit(submission, clock(), terms)
    return _persist(session, submission, "submitted")


def start_submission_review(
    session: Session, submission_id: int, reviewer_id: int, clock: Clock = utcnow
) -> Submission:
    submission = get_submission(session, submission_id)
    start_review(submission, reviewer_id, clock())
    return _persist(session, submission, "review started")


def approve_submission(
    session: Session,
    submission_id: int,
    reviewer_id: int,
    feedback: Optional[str] = None,
    grade: Optional[float] = None,
    quality_score: Optional[int] = None,
    strict: Optional[bool] = None,
    clock: Clock = utcnow,
) -> Submission:
    submission = get_submission(session, submission_id)
    terms = get_project_terms(session, submission.project_id)
    validate_quality_score(quality_score)
    if strict is None:
        strict = settings.STRICT_REVIEW_TRANSITIONS

    approve(
        submission,
        reviewer_id,
        clock(),
        terms=terms,
        feedback=sanitize_feedback(feedback),
        grade=grade,
        strict=strict,
    )
    if quality_score is not None:
        submission.quality_score = quality_score
    return _persist(session, submission, "approved")


def reject_submission(
    session: Session,
    submission_id: int,
    reviewer_id: int,
    feedback: Optional[str],
    strict: Optional[bool] = None,
    clock: Clock = utcnow,
) -> Submission:
    submission = get_submission(session, submission_id)
    if strict is None:
        strict = settings.STRICT_REVIEW_TRANSITIONS
    reject(submission, reviewer_id, sanitize_feedback(feedback), clock(), strict=strict)
    return _persist(session, submission, "rejected")


def request_submission_revision(
    session: Session,
    submission_id: int,
    reviewer_id: int,
    feedback: Optional[str],
    strict: Optional[bool] = None,
    clock: Clock = utcnow,
) -> Submission:
    submission = get_submission(session, submission_id)
    if strict is None:
        strict = settings.STRICT_REVIEW_TRANSITIONS
    request_revision(submission, reviewer_id, sanitize_feedback(feedback), clock(), strict=strict)
    return _persist(session, submission, "revision requested")


def resubmit_submission(session: Session, submission_id: int, clock: Clock = utcnow) -> Submission:
    submission = get_submission(session, submission_id)
    resubmit(submission, clock())
    return _persist(session, submission, "resubmitted")


def list_student_submissions(
    session: Session, student_id: int, status: Optional[str] = None
) -> List[Submission]:
    stmt = select(Submission).where(Submission.student_id == student_id)
    if status:
        stmt = stmt.where(Submission.status == status)
    stmt = stmt.order_by(Submission.submitted_at.desc(), Submission.id.desc())
    return session.exec(stmt).all()


def list_by_status(session: Session, status: str, limit: int = 10) -> List[Submission]:
    if status not in SUBMISSION_STATUSES:
        raise ValueError(f"Unknown submission status '{status}'")
    stmt = (
        select(Submission)
        .where(Submission.status == status)
        .order_by(Submission.submitted_at.desc(), Submission.id.desc())
        .limit(limit)
    )
    return session.exec(stmt).all()
