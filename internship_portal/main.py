"""FastAPI entrypoint for the Internship Portal."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session, select
from starlette.middleware.sessions import SessionMiddleware

from internship_portal.auth_utils import hash_password
from internship_portal.config import settings
from internship_portal.database import create_db_and_tables, engine
from internship_portal.exceptions import InvalidStateError, MissingReferenceError
from internship_portal.logging_config import configure_logging
from internship_portal.models import User
from internship_portal.routers import admin as admin_router_module
from internship_portal.routers import auth as auth_router_module
from internship_portal.routers import projects as projects_router_module
from internship_portal.routers import students as students_router_module
from internship_portal.routers import submissions as submissions_router_module
from internship_portal.routers import timesheets as timesheets_router_module

logger = logging.getLogger(__name__)


def seed_admin(session: Session) -> None:
    """Seed a default admin user if none exists."""
    existing_admin = session.exec(select(User).where(User.role == "admin")).first()
    if existing_admin:
        return
    admin_user = User(
        name="System Admin",
        email=settings.SEED_ADMIN_EMAIL,
        password_hash=hash_password(settings.SEED_ADMIN_PASSWORD),
        role="admin",
    )
    session.add(admin_user)
    session.commit()
    logger.info(f"Seeded default admin user: {settings.SEED_ADMIN_EMAIL}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    create_db_and_tables()
    with Session(engine) as session:
        seed_admin(session)
    yield


app = FastAPI(title="Internship Portal", lifespan=lifespan)


@app.exception_handler(InvalidStateError)
async def invalid_state_handler(request: Request, exc: InvalidStateError):
    logger.info(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": exc.message, "error": exc.to_dict()},
    )


@app.exception_handler(MissingReferenceError)
async def missing_reference_handler(request: Request, exc: MissingReferenceError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": exc.message, "error": exc.to_dict()},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


# Session middleware for simple cookie-based authentication
app.add_middleware(SessionMiddleware, secret_key=settings.SECRET_KEY)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(auth_router_module.router, prefix="/auth", tags=["auth"])
app.include_router(projects_router_module.router, prefix="/projects", tags=["projects"])
app.include_router(submissions_router_module.router, prefix="/submissions", tags=["submissions"])
app.include_router(timesheets_router_module.router, prefix="/timesheets", tags=["timesheets"])
app.include_router(students_router_module.router, prefix="/students", tags=["students"])
app.include_router(admin_router_module.router, prefix="/admin", tags=["admin"])


@app.get("/health")
def health():
    return {"status": "ok"}
