"""
Row <-> wire mapping for each entity.

Rows are dicts keyed by storage column (snake_case); wire dicts use the
camelCase field names the mobile client expects.
"""
import json
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Union

COURSE_DOCUMENT_FIELDS = ("professors", "schedule", "content", "assignments", "exams")

TASK_PATCH_COLUMNS = ("title", "course", "priority", "completed", "description", "due_date")


def _as_bool(value: Any) -> bool:
    return bool(value) if value is not None else False


def _as_float(value: Union[Decimal, float, str, None]) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _as_list(value: Any) -> List[Any]:
    # TEXT[] arrives as a list; legacy rows kept a comma-joined string.
    if value is None:
        return []
    if isinstance(value, str):
        return [part for part in value.split(",") if part]
    return list(value)


def _as_document(value: Any) -> Any:
    # JSONB is decoded by psycopg2; JSON stored as text is not.
    if value is None:
        return []
    if isinstance(value, (str, bytes)):
        return json.loads(value) if value else []
    return value


# PUBLIC_INTERFACE
def user_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Map a users row to the wire shape. The password never leaves this layer."""
    return {
        "id": row["id"],
        "name": row.get("name"),
        "email": row.get("email"),
        "avatar": row.get("avatar"),
        "studentId": row.get("student_id"),
        "major": row.get("major"),
        "department": row.get("department"),
        "program": row.get("program"),
        "gpa": _as_float(row.get("gpa")),
        "level": row.get("level"),
        "mode": row.get("mode") or "student",
        "isVerified": _as_bool(row.get("is_verified")),
        "isOnboardingComplete": _as_bool(row.get("is_onboarding_complete")),
        "enrolledCourses": _as_list(row.get("enrolled_courses")),
    }


# PUBLIC_INTERFACE
def enrolled_courses_to_column(courses: Optional[Iterable[str]]) -> List[str]:
    """Course codes for the TEXT[] column, in client order."""
    return [str(c) for c in courses] if courses else []


# PUBLIC_INTERFACE
def task_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "title": row.get("title"),
        "course": row.get("course"),
        "priority": row.get("priority"),
        "completed": _as_bool(row.get("completed")),
        "description": row.get("description"),
        "userId": row.get("user_id"),
        "dueDate": row.get("due_date"),
        "notificationId": row.get("notification_id"),
    }


# PUBLIC_INTERFACE
def merge_task_patch(existing: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply a partial task update to a stored row.

    `patch` is keyed by storage column. A column that is missing from the
    patch, or whose value is None, keeps its stored value.
    """
    merged = dict(existing)
    for column in TASK_PATCH_COLUMNS:
        value = patch.get(column)
        if value is not None:
            merged[column] = value
    return merged


# PUBLIC_INTERFACE
def announcement_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "title": row.get("title"),
        "message": row.get("message"),
        "date": row.get("date"),
        "type": row.get("type") or "general",
        "isRead": _as_bool(row.get("is_read")),
        "courseId": row.get("course_id"),
    }


# PUBLIC_INTERFACE
def schedule_event_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "title": row.get("title"),
        "startTime": row.get("start_time"),
        "endTime": row.get("end_time"),
        "location": row.get("location"),
        "instructor": row.get("instructor"),
        "courseId": row.get("course_id"),
        "description": row.get("description"),
        "type": row.get("type") or "lecture",
    }


# PUBLIC_INTERFACE
def course_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Map a courses row, rehydrating the document columns into lists/mappings."""
    course = {
        "id": row["id"],
        "code": row.get("code"),
        "name": row.get("name"),
        "category": row.get("category"),
        "creditHours": row.get("credit_hours"),
        "description": row.get("description"),
    }
    for field in COURSE_DOCUMENT_FIELDS:
        course[field] = _as_document(row.get(field))
    return course
