import logging
import os
import time
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator
from urllib.parse import quote

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from psycopg2 import errors as pg_errors
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.bootstrap import ensure_schema
from src.api.codecs import (
    announcement_from_row,
    course_from_row,
    enrolled_courses_to_column,
    merge_task_patch,
    schedule_event_from_row,
    task_from_row,
    user_from_row,
)
from src.api.db import Database, get_db
from src.api.schemas import (
    AnnouncementCreate,
    AnnouncementListResponse,
    AnnouncementType,
    ChangePasswordRequest,
    CourseListResponse,
    CourseResponse,
    CreatedResponse,
    HealthResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    ScheduleEventCreate,
    ScheduleResponse,
    StoreCodeRequest,
    SuccessResponse,
    TaskCreate,
    TaskListResponse,
    TaskResponse,
    TaskUpdate,
    UserResponse,
    UserUpdate,
    VerifyCodeRequest,
    VerifyCodeResponse,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

CODE_TTL = timedelta(minutes=10)
AVATAR_URL = "https://ui-avatars.com/api/?name={}"

openapi_tags = [
    {"name": "Health", "description": "Service health checks."},
    {"name": "Auth", "description": "Login, registration, passwords and verification codes."},
    {"name": "Users", "description": "User profiles."},
    {"name": "Tasks", "description": "Student task list."},
    {"name": "Announcements", "description": "Course and campus announcements."},
    {"name": "Schedule", "description": "Class schedule events."},
    {"name": "Courses", "description": "Course catalog (read-only)."},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "db", None) is None:
        app.state.db = Database.from_env()
    try:
        await run_in_threadpool(ensure_schema, app.state.db)
    except Exception:
        # Requests against missing tables fail on their own with a 500.
        logger.exception("Database init error")
    try:
        yield
    finally:
        app.state.db.close()


app = FastAPI(
    title="Student Productivity API",
    description=(
        "Backend API for the student productivity app. "
        "Includes accounts, verification codes, tasks, announcements, schedule and courses.\n\n"
        "Every success response carries `success: true`; failures carry `error`."
    ),
    version="1.0.0",
    openapi_tags=openapi_tags,
    lifespan=lifespan,
)

# CORS: allow all by default. Restrict via CORS_ALLOW_ORIGINS env (comma separated).
allow_origins = ["*"]
env_val = os.getenv("CORS_ALLOW_ORIGINS")
if env_val:
    allow_origins = [o.strip() for o in env_val.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )


def _not_found(entity: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{entity} not found")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _conflict(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


@contextmanager
def _failure(message: str) -> Iterator[None]:
    """Report any non-HTTP error as a 500 with `message`; the cause is only logged."""
    try:
        yield
    except HTTPException:
        raise
    except Exception:
        logger.exception(message)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)


def _new_id() -> str:
    """Epoch milliseconds as a decimal string."""
    return str(int(time.time() * 1000))


@app.get("/api/health", response_model=HealthResponse, tags=["Health"], summary="Health check")
def health_check() -> Dict[str, str]:
    """Liveness probe; does not touch the database."""
    timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return {"status": "ok", "timestamp": timestamp}


# =========================
# Auth
# =========================

@app.post("/api/auth/login", response_model=UserResponse, tags=["Auth"], summary="Login")
def login(payload: LoginRequest, db: Database = Depends(get_db)) -> Dict[str, Any]:
    """Return the user whose email and password both match exactly."""
    with _failure("Login failed"):
        row = db.fetch_one(
            "SELECT * FROM users WHERE email=%s AND password=%s",
            [payload.email, payload.password],
        )
        if not row:
            raise _unauthorized("Invalid credentials")

        logger.info("Login successful: %s", payload.email)
        return {"success": True, "user": user_from_row(row)}


@app.post("/api/auth/register", response_model=UserResponse, tags=["Auth"], summary="Register")
def register(payload: RegisterRequest, db: Database = Depends(get_db)) -> Dict[str, Any]:
    """Create a student account with onboarding still pending."""
    with _failure("Registration failed"):
        existing = db.fetch_one("SELECT id FROM users WHERE email=%s", [payload.email])
        if existing:
            raise _conflict("User already exists")

        user_id = _new_id()
        row = {
            "id": user_id,
            "name": payload.name,
            "email": payload.email,
            "avatar": AVATAR_URL.format(quote(payload.name, safe="!*'()")),
            "student_id": f"STU{user_id}",
            "mode": "student",
            "is_verified": False,
            "is_onboarding_complete": False,
            "enrolled_courses": [],
        }
        try:
            db.execute(
                """
                INSERT INTO users (id, name, email, password, avatar, student_id, mode,
                                   is_verified, is_onboarding_complete)
                VALUES (%s, %s, %s, %s, %s, %s, 'student', FALSE, FALSE)
                """,
                [user_id, payload.name, payload.email, payload.password, row["avatar"], row["student_id"]],
            )
        except pg_errors.UniqueViolation:
            # Lost a race with a concurrent registration for the same email.
            raise _conflict("User already exists")

        logger.info("Registration successful: %s", payload.email)
        return {"success": True, "user": user_from_row(row)}


@app.post("/api/auth/change-password", response_model=SuccessResponse, tags=["Auth"], summary="Change password")
def change_password(payload: ChangePasswordRequest, db: Database = Depends(get_db)) -> Dict[str, Any]:
    """Replace the password once the current one is confirmed."""
    with _failure("Failed to change password"):
        row = db.fetch_one(
            "SELECT id FROM users WHERE email=%s AND password=%s",
            [payload.email, payload.current_password],
        )
        if not row:
            raise _unauthorized("Current password is incorrect")

        db.execute(
            "UPDATE users SET password=%s, updated_at=NOW() WHERE email=%s",
            [payload.new_password, payload.email],
        )
        logger.info("Password changed: %s", payload.email)
        return {"success": True}


@app.post("/api/auth/store-code", response_model=SuccessResponse, tags=["Auth"], summary="Store verification code")
def store_code(payload: StoreCodeRequest, db: Database = Depends(get_db)) -> Dict[str, Any]:
    """
    Record a code the client has just emailed to the user.

    Earlier codes for the same (email, type) are discarded so only the
    newest one can be verified. The code expires after ten minutes.
    """
    with _failure("Failed to store code"):
        db.execute(
            "DELETE FROM verification_codes WHERE email=%s AND type=%s",
            [payload.email, payload.type],
        )
        db.execute(
            "INSERT INTO verification_codes (email, code, type, expires_at) VALUES (%s, %s, %s, %s)",
            [payload.email, payload.code, payload.type, datetime.now(timezone.utc) + CODE_TTL],
        )
        logger.info("Verification code stored for: %s", payload.email)
        return {"success": True}


@app.post("/api/auth/verify-code", response_model=VerifyCodeResponse, tags=["Auth"], summary="Verify code")
def verify_code(payload: VerifyCodeRequest, db: Database = Depends(get_db)) -> Dict[str, Any]:
    """Consume an unused, unexpired code. Registration codes also mark the user verified."""
    with _failure("Failed to verify code"):
        consumed = db.execute_returning_one(
            """
            UPDATE verification_codes SET used=TRUE
            WHERE email=%s AND code=%s AND type=%s AND used=FALSE AND expires_at > NOW()
            RETURNING id
            """,
            [payload.email, payload.code, payload.type],
        )
        if not consumed:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired code")

        if payload.type == "registration":
            db.execute(
                "UPDATE users SET is_verified=TRUE, updated_at=NOW() WHERE email=%s",
                [payload.email],
            )

        logger.info("Code verified for: %s", payload.email)
        return {"success": True, "verified": True}


@app.post("/api/auth/reset-password", response_model=SuccessResponse, tags=["Auth"], summary="Reset password")
def reset_password(payload: ResetPasswordRequest, db: Database = Depends(get_db)) -> Dict[str, Any]:
    """
    Set a new password for an existing user.

    The reset code is checked by a prior verify-code call; this endpoint
    only requires that the user exists, then clears all of their codes.
    """
    with _failure("Failed to reset password"):
        user = db.fetch_one("SELECT id FROM users WHERE email=%s", [payload.email])
        if not user:
            raise _not_found("User")

        db.execute(
            "UPDATE users SET password=%s, updated_at=NOW() WHERE email=%s",
            [payload.new_password, payload.email],
        )
        db.execute("DELETE FROM verification_codes WHERE email=%s", [payload.email])

        logger.info("Password reset for: %s", payload.email)
        return {"success": True}


# =========================
# Users
# =========================

@app.get("/api/users/{email}", response_model=UserResponse, tags=["Users"], summary="Get user")
def get_user(email: str, db: Database = Depends(get_db)) -> Dict[str, Any]:
    with _failure("Failed to get user"):
        row = db.fetch_one("SELECT * FROM users WHERE email=%s", [email])
        if not row:
            raise _not_found("User")
        return {"success": True, "user": user_from_row(row)}


@app.put("/api/users/{email}", response_model=UserResponse, tags=["Users"], summary="Update user")
def update_user(email: str, payload: UserUpdate, db: Database = Depends(get_db)) -> Dict[str, Any]:
    """
    Overwrite the profile fields of a user and return the stored result.

    All profile fields are written, so omitted ones are cleared. `user` is
    null when no account has this email.
    """
    with _failure("Failed to update user"):
        db.execute(
            """
            UPDATE users SET
                name=%s,
                avatar=%s,
                major=%s,
                department=%s,
                program=%s,
                gpa=%s,
                level=%s,
                mode=%s,
                is_onboarding_complete=%s,
                enrolled_courses=%s,
                updated_at=NOW()
            WHERE email=%s
            """,
            [
                payload.name,
                payload.avatar,
                payload.major,
                payload.department,
                payload.program,
                payload.gpa,
                payload.level,
                payload.mode,
                bool(payload.is_onboarding_complete),
                enrolled_courses_to_column(payload.enrolled_courses),
                email,
            ],
        )
        row = db.fetch_one("SELECT * FROM users WHERE email=%s", [email])

        logger.info("User updated: %s", email)
        return {"success": True, "user": user_from_row(row) if row else None}


@app.delete("/api/users", response_model=MessageResponse, tags=["Users"], summary="Delete all users")
def delete_all_users(db: Database = Depends(get_db)) -> Dict[str, Any]:
    """Development helper: remove every account."""
    with _failure("Failed to delete users"):
        db.execute("DELETE FROM users")
        logger.info("All users deleted")
        return {"success": True, "message": "All users deleted"}


# =========================
# Tasks
# =========================

@app.get("/api/tasks", response_model=TaskListResponse, tags=["Tasks"], summary="List tasks")
def list_tasks(db: Database = Depends(get_db)) -> Dict[str, Any]:
    """All tasks, newest first."""
    with _failure("Failed to get tasks"):
        rows = db.fetch_all("SELECT * FROM tasks ORDER BY created_at DESC")
        return {"success": True, "tasks": [task_from_row(r) for r in rows]}


@app.post("/api/tasks", response_model=TaskResponse, tags=["Tasks"], summary="Add task")
def add_task(payload: TaskCreate, db: Database = Depends(get_db)) -> Dict[str, Any]:
    with _failure("Failed to add task"):
        row = {
            "id": _new_id(),
            "title": payload.title,
            "course": payload.course or "General",
            "priority": payload.priority.value if payload.priority else "low",
            "completed": False,
            "description": payload.description or "",
            "user_id": payload.user_id,
            "due_date": payload.due_date,
            "notification_id": payload.notification_id,
        }
        db.execute(
            """
            INSERT INTO tasks (id, title, course, priority, completed, description, user_id, due_date, notification_id)
            VALUES (%s, %s, %s, %s, FALSE, %s, %s, %s, %s)
            """,
            [
                row["id"],
                row["title"],
                row["course"],
                row["priority"],
                row["description"],
                row["user_id"],
                row["due_date"],
                row["notification_id"],
            ],
        )
        logger.info("Task added: %s", payload.title)
        return {"success": True, "task": task_from_row(row)}


@app.put("/api/tasks/{task_id}", response_model=TaskResponse, tags=["Tasks"], summary="Update task")
def update_task(task_id: str, payload: TaskUpdate, db: Database = Depends(get_db)) -> Dict[str, Any]:
    """Apply the supplied fields; anything omitted or null keeps its stored value."""
    with _failure("Failed to update task"):
        existing = db.fetch_one("SELECT * FROM tasks WHERE id=%s", [task_id])
        if not existing:
            raise _not_found("Task")

        patch = payload.model_dump(exclude_none=True)
        if payload.priority is not None:
            patch["priority"] = payload.priority.value
        merged = merge_task_patch(existing, patch)

        row = db.execute_returning_one(
            """
            UPDATE tasks SET title=%s, course=%s, priority=%s, completed=%s, description=%s,
                             due_date=%s, updated_at=NOW()
            WHERE id=%s
            RETURNING *
            """,
            [
                merged["title"],
                merged["course"],
                merged["priority"],
                merged["completed"],
                merged["description"],
                merged["due_date"],
                task_id,
            ],
        )
        if not row:
            raise _not_found("Task")

        logger.info("Task updated: %s", task_id)
        return {"success": True, "task": task_from_row(row)}


@app.patch("/api/tasks/{task_id}/toggle", response_model=TaskResponse, tags=["Tasks"], summary="Toggle task")
def toggle_task(task_id: str, db: Database = Depends(get_db)) -> Dict[str, Any]:
    """Flip the completed flag in place."""
    with _failure("Failed to toggle task"):
        row = db.execute_returning_one(
            "UPDATE tasks SET completed = NOT completed, updated_at=NOW() WHERE id=%s RETURNING *",
            [task_id],
        )
        if not row:
            raise _not_found("Task")

        logger.info("Task toggled: %s -> %s", task_id, row["completed"])
        return {"success": True, "task": task_from_row(row)}


@app.delete("/api/tasks/{task_id}", response_model=SuccessResponse, tags=["Tasks"], summary="Delete task")
def delete_task(task_id: str, db: Database = Depends(get_db)) -> Dict[str, Any]:
    """Idempotent: succeeds whether or not the task existed."""
    with _failure("Failed to delete task"):
        db.execute("DELETE FROM tasks WHERE id=%s", [task_id])
        logger.info("Task deleted: %s", task_id)
        return {"success": True}


@app.delete("/api/tasks", response_model=MessageResponse, tags=["Tasks"], summary="Delete all tasks")
def delete_all_tasks(db: Database = Depends(get_db)) -> Dict[str, Any]:
    with _failure("Failed to delete tasks"):
        db.execute("DELETE FROM tasks")
        logger.info("All tasks deleted")
        return {"success": True, "message": "All tasks deleted"}


# =========================
# Announcements
# =========================

@app.get("/api/announcements", response_model=AnnouncementListResponse, tags=["Announcements"], summary="List announcements")
def list_announcements(db: Database = Depends(get_db)) -> Dict[str, Any]:
    with _failure("Failed to get announcements"):
        rows = db.fetch_all("SELECT * FROM announcements ORDER BY date DESC")
        return {"success": True, "announcements": [announcement_from_row(r) for r in rows]}


@app.post("/api/announcements", response_model=CreatedResponse, tags=["Announcements"], summary="Add announcement")
def add_announcement(payload: AnnouncementCreate, db: Database = Depends(get_db)) -> Dict[str, Any]:
    with _failure("Failed to add announcement"):
        announcement_id = _new_id()
        announcement_type = payload.type.value if payload.type else AnnouncementType.general.value
        db.execute(
            "INSERT INTO announcements (id, title, message, type, course_id) VALUES (%s, %s, %s, %s, %s)",
            [announcement_id, payload.title, payload.message, announcement_type, payload.course_id],
        )
        return {"success": True, "id": announcement_id}


@app.patch(
    "/api/announcements/{announcement_id}/read",
    response_model=SuccessResponse,
    tags=["Announcements"],
    summary="Mark announcement read",
)
def mark_announcement_read(announcement_id: str, db: Database = Depends(get_db)) -> Dict[str, Any]:
    with _failure("Failed to update announcement"):
        db.execute("UPDATE announcements SET is_read=TRUE WHERE id=%s", [announcement_id])
        return {"success": True}


# =========================
# Schedule
# =========================

@app.get("/api/schedule", response_model=ScheduleResponse, tags=["Schedule"], summary="List schedule events")
def list_schedule(db: Database = Depends(get_db)) -> Dict[str, Any]:
    """Events in chronological order of start time."""
    with _failure("Failed to get schedule"):
        rows = db.fetch_all("SELECT * FROM schedule_events ORDER BY start_time ASC")
        return {"success": True, "events": [schedule_event_from_row(r) for r in rows]}


@app.post("/api/schedule", response_model=CreatedResponse, tags=["Schedule"], summary="Add schedule event")
def add_schedule_event(payload: ScheduleEventCreate, db: Database = Depends(get_db)) -> Dict[str, Any]:
    with _failure("Failed to add schedule"):
        event_id = _new_id()
        db.execute(
            """
            INSERT INTO schedule_events (id, title, start_time, end_time, location, instructor, course_id,
                                         description, type)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            """,
            [
                event_id,
                payload.title,
                payload.start_time,
                payload.end_time,
                payload.location,
                payload.instructor,
                payload.course_id,
                payload.description,
                payload.type or "lecture",
            ],
        )
        return {"success": True, "id": event_id}


# =========================
# Courses
# =========================

@app.get("/api/courses", response_model=CourseListResponse, tags=["Courses"], summary="List courses")
def list_courses(db: Database = Depends(get_db)) -> Dict[str, Any]:
    with _failure("Failed to get courses"):
        rows = db.fetch_all("SELECT * FROM courses ORDER BY id ASC")
        return {"success": True, "courses": [course_from_row(r) for r in rows]}


@app.get("/api/courses/{course_id}", response_model=CourseResponse, tags=["Courses"], summary="Get course")
def get_course(course_id: str, db: Database = Depends(get_db)) -> Dict[str, Any]:
    with _failure("Failed to get course"):
        row = db.fetch_one("SELECT * FROM courses WHERE id=%s", [course_id])
        if not row:
            raise _not_found("Course")
        return {"success": True, "course": course_from_row(row)}
