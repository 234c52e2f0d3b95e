"""Session-cookie authentication for students and admins."""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from sqlmodel import Session, select

from internship_portal.auth_utils import hash_password, verify_password
from internship_portal.database import get_session
from internship_portal.deps import require_login, require_role
from internship_portal.models import Student, User
from internship_portal.schemas import (
    ChangePasswordIn,
    LoginIn,
    ProfileUpdateIn,
    RegisterAdminIn,
    RegisterStudentIn,
)
from internship_portal.services import student_service
from internship_portal.utils import utcnow, validate_email_format, validate_phone

logger = logging.getLogger(__name__)

router = APIRouter()


def _user_out(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "student_id": user.student_id,
    }


@router.post("/register-student", status_code=201)
def register_student(
    request: Request,
    payload: RegisterStudentIn = Body(...),
    session: Session = Depends(get_session),
):
    """Create a student profile plus its login account and log it in."""
    email = validate_email_format(payload.email)
    validate_phone(payload.phone)

    existing_user = session.exec(select(User).where(User.email == email)).first()
    existing_student = session.exec(select(Student).where(Student.email == email)).first()
    if existing_user or existing_student:
        raise HTTPException(status_code=400, detail="This email is already registered.")

    student = Student(
        name=payload.name.strip(),
        email=email,
        phone=payload.phone,
        skills=[s.strip() for s in payload.skills if s.strip()],
        expertise=payload.expertise,
    )
    session.add(student)
    session.commit()
    session.refresh(student)

    user = User(
        name=student.name,
        email=email,
        password_hash=hash_password(payload.password),
        role="student",
        student_id=student.id,
    )
    session.add(user)
    session.commit()
    session.refresh(user)

    student.user_id = user.id
    session.add(student)
    session.commit()

    request.session.clear()
    request.session["user_id"] = user.id
    logger.info(f"Student {student.id} registered")
    return _user_out(user)


@router.post("/login")
def login(
    request: Request,
    payload: LoginIn = Body(...),
    session: Session = Depends(get_session),
):
    email = (payload.email or "").strip().lower()
    user: Optional[User] = session.exec(select(User).where(User.email == email)).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    user.last_login = utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)

    request.session.clear()
    request.session["user_id"] = user.id
    return _user_out(user)


@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return {"message": "Logged out"}


@router.get("/me")
def me(current_user: User = Depends(require_login)):
    return _user_out(current_user)


@router.post("/register-admin", status_code=201)
def register_admin(
    payload: RegisterAdminIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_role(["admin"])),
):
    """Create another admin account. Only existing admins may do this."""
    email = validate_email_format(payload.email)
    if session.exec(select(User).where(User.email == email)).first():
        raise HTTPException(status_code=400, detail="This email is already registered.")

    admin = User(
        name=payload.name.strip(),
        email=email,
        password_hash=hash_password(payload.password),
        role="admin",
    )
    session.add(admin)
    session.commit()
    session.refresh(admin)
    logger.info(f"Admin {admin.id} created by user {current_user.id}")
    return _user_out(admin)


@router.put("/profile")
def update_profile(
    payload: ProfileUpdateIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_login),
):
    """Update the caller's profile.

    Students can edit their whole student profile; admins only their name.
    """
    changes = payload.model_dump(exclude_unset=True)
    if current_user.student_id is not None:
        student = student_service.update_profile(session, current_user.student_id, **changes)
        session.refresh(current_user)
        return {
            **_user_out(current_user),
            "phone": student.phone,
            "skills": student.skills,
            "expertise": student.expertise,
            "bio": student.bio,
        }

    name = (changes.get("name") or "").strip()
    if name:
        current_user.name = name
        session.add(current_user)
        session.commit()
        session.refresh(current_user)
    return _user_out(current_user)


@router.put("/change-password")
def change_password(
    payload: ChangePasswordIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_login),
):
    if not verify_password(payload.current_password, current_user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect.")
    if verify_password(payload.new_password, current_user.password_hash):
        raise HTTPException(status_code=400, detail="New password must be different from your current password.")

    current_user.password_hash = hash_password(payload.new_password)
    session.add(current_user)
    session.commit()
    logger.info(f"User {current_user.id} changed password")
    return {"message": "Password changed successfully"}
