from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, confloat, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys; snake_case is accepted on input too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class AnnouncementType(str, Enum):
    general = "general"
    exam = "exam"
    assignment = "assignment"
    event = "event"


# =========================
# Requests
# =========================

class LoginRequest(CamelModel):
    email: str = Field(..., description="User email address")
    password: str = Field(..., description="Password")


class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1, description="Display name")
    email: str = Field(..., min_length=3, description="User email address")
    password: str = Field(..., min_length=1, description="Password")


class UserUpdate(CamelModel):
    """Every field is written; omitted fields are cleared."""

    name: Optional[str] = None
    avatar: Optional[str] = None
    major: Optional[str] = None
    department: Optional[str] = None
    program: Optional[str] = None
    gpa: Optional[confloat(ge=0, le=9.99)] = None
    level: Optional[int] = None
    mode: Optional[str] = None
    is_onboarding_complete: Optional[bool] = None
    enrolled_courses: Optional[List[str]] = None


class ChangePasswordRequest(CamelModel):
    email: str
    current_password: str
    new_password: str = Field(..., min_length=1)


class StoreCodeRequest(CamelModel):
    email: str
    code: str = Field(..., min_length=1, max_length=10)
    type: str = Field(..., min_length=1, max_length=20, description="e.g. registration, password_reset")


class VerifyCodeRequest(CamelModel):
    email: str
    code: str
    type: str


class ResetPasswordRequest(CamelModel):
    email: str
    new_password: str = Field(..., min_length=1)


class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1)
    course: Optional[str] = None
    priority: Optional[TaskPriority] = None
    description: Optional[str] = None
    user_id: Optional[str] = None
    due_date: Optional[datetime] = None
    notification_id: Optional[int] = None


class TaskUpdate(CamelModel):
    title: Optional[str] = None
    course: Optional[str] = None
    priority: Optional[TaskPriority] = None
    completed: Optional[bool] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None


class AnnouncementCreate(CamelModel):
    title: str = Field(..., min_length=1)
    message: Optional[str] = None
    type: Optional[AnnouncementType] = None
    course_id: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _blank_type_is_default(cls, value):
        return value or None


class ScheduleEventCreate(CamelModel):
    title: str = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    location: Optional[str] = None
    instructor: Optional[str] = None
    course_id: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None


# =========================
# Entities (wire shape)
# =========================

class User(CamelModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None
    student_id: Optional[str] = None
    major: Optional[str] = None
    department: Optional[str] = None
    program: Optional[str] = None
    gpa: Optional[float] = None
    level: Optional[int] = None
    mode: str = "student"
    is_verified: bool = False
    is_onboarding_complete: bool = False
    enrolled_courses: List[str] = []


class Task(CamelModel):
    id: str
    title: Optional[str] = None
    course: Optional[str] = None
    priority: Optional[str] = None
    completed: bool = False
    description: Optional[str] = None
    user_id: Optional[str] = None
    due_date: Optional[datetime] = None
    notification_id: Optional[int] = None


class Announcement(CamelModel):
    id: str
    title: Optional[str] = None
    message: Optional[str] = None
    date: Optional[datetime] = None
    type: str = "general"
    is_read: bool = False
    course_id: Optional[str] = None


class ScheduleEvent(CamelModel):
    id: str
    title: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    location: Optional[str] = None
    instructor: Optional[str] = None
    course_id: Optional[str] = None
    description: Optional[str] = None
    type: str = "lecture"


class Course(CamelModel):
    id: str
    code: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    credit_hours: Optional[int] = None
    description: Optional[str] = None
    professors: Any = []
    schedule: Any = []
    content: Any = []
    assignments: Any = []
    exams: Any = []


# =========================
# Envelopes
# =========================

class ErrorResponse(BaseModel):
    error: str = Field(..., description="Human readable error message")


class SuccessResponse(BaseModel):
    success: bool = True


class MessageResponse(SuccessResponse):
    message: str


class CreatedResponse(SuccessResponse):
    id: str


class VerifyCodeResponse(SuccessResponse):
    verified: bool = True


class UserResponse(SuccessResponse):
    user: Optional[User] = None


class TaskResponse(SuccessResponse):
    task: Task


class TaskListResponse(SuccessResponse):
    tasks: List[Task] = []


class AnnouncementListResponse(SuccessResponse):
    announcements: List[Announcement] = []


class ScheduleResponse(SuccessResponse):
    events: List[ScheduleEvent] = []


class CourseResponse(SuccessResponse):
    course: Course


class CourseListResponse(SuccessResponse):
    courses: List[Course] = []


class HealthResponse(BaseModel):
    status: str
    timestamp: str
