"""
Create-if-absent schema bootstrap.

Runs once at startup: creates the six tables, adds user columns that
older deployments lack, and seeds the tasks and courses tables when they
are empty. Safe to run against an already initialized database.
"""
import logging
from typing import Any, Dict, List

from psycopg2.extras import Json

from src.api.db import Database
from src.api.seeds import SEED_TASKS, seed_courses

logger = logging.getLogger(__name__)

TABLES: Dict[str, str] = {
    "users": """
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(50) PRIMARY KEY,
            name VARCHAR(100) NOT NULL,
            email VARCHAR(100) UNIQUE NOT NULL,
            password VARCHAR(100) NOT NULL,
            avatar VARCHAR(255),
            student_id VARCHAR(50),
            major VARCHAR(100),
            department VARCHAR(100),
            program VARCHAR(100),
            gpa NUMERIC(3, 2),
            level INTEGER,
            mode VARCHAR(20) DEFAULT 'student',
            is_verified BOOLEAN DEFAULT FALSE,
            is_onboarding_complete BOOLEAN DEFAULT FALSE,
            enrolled_courses TEXT[] NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """,
    "tasks": """
        CREATE TABLE IF NOT EXISTS tasks (
            id VARCHAR(50) PRIMARY KEY,
            title VARCHAR(255) NOT NULL,
            course VARCHAR(100),
            priority VARCHAR(20) DEFAULT 'low',
            completed BOOLEAN NOT NULL DEFAULT FALSE,
            description TEXT,
            user_id VARCHAR(50),
            due_date TIMESTAMPTZ,
            notification_id INTEGER,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """,
    "verification_codes": """
        CREATE TABLE IF NOT EXISTS verification_codes (
            id SERIAL PRIMARY KEY,
            email VARCHAR(100) NOT NULL,
            code VARCHAR(10) NOT NULL,
            type VARCHAR(20) NOT NULL,
            expires_at TIMESTAMPTZ NOT NULL,
            used BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """,
    "announcements": """
        CREATE TABLE IF NOT EXISTS announcements (
            id VARCHAR(50) PRIMARY KEY,
            title VARCHAR(255) NOT NULL,
            message TEXT,
            date TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            type VARCHAR(20) NOT NULL DEFAULT 'general'
                CHECK (type IN ('general', 'exam', 'assignment', 'event')),
            is_read BOOLEAN NOT NULL DEFAULT FALSE,
            course_id VARCHAR(50)
        )
    """,
    "schedule_events": """
        CREATE TABLE IF NOT EXISTS schedule_events (
            id VARCHAR(50) PRIMARY KEY,
            title VARCHAR(255) NOT NULL,
            start_time TIMESTAMPTZ NOT NULL,
            end_time TIMESTAMPTZ NOT NULL,
            location VARCHAR(100),
            instructor VARCHAR(100),
            course_id VARCHAR(50),
            description TEXT,
            type VARCHAR(20) DEFAULT 'lecture'
        )
    """,
    "courses": """
        CREATE TABLE IF NOT EXISTS courses (
            id VARCHAR(50) PRIMARY KEY,
            code VARCHAR(20) NOT NULL,
            name VARCHAR(100) NOT NULL,
            category VARCHAR(50),
            credit_hours INTEGER,
            professors JSONB,
            description TEXT,
            schedule JSONB,
            content JSONB,
            assignments JSONB,
            exams JSONB
        )
    """,
}

INDEXES: List[str] = [
    "CREATE INDEX IF NOT EXISTS idx_verification_codes_email ON verification_codes (email)",
    "CREATE INDEX IF NOT EXISTS idx_verification_codes_code ON verification_codes (code)",
]

# Columns added to users after the first release; older tables lack them.
USER_COLUMN_MIGRATIONS: Dict[str, str] = {
    "program": "VARCHAR(100)",
    "is_verified": "BOOLEAN DEFAULT FALSE",
}


def _existing_columns(db: Database, table: str) -> List[str]:
    rows = db.fetch_all(
        "SELECT column_name FROM information_schema.columns "
        "WHERE table_schema = current_schema() AND table_name = %s",
        [table],
    )
    return [r["column_name"] for r in rows]


def _is_empty(db: Database, table: str) -> bool:
    row = db.fetch_one(f"SELECT COUNT(*) AS count FROM {table}")
    return not row or int(row["count"]) == 0


def _migrate_user_columns(db: Database) -> List[str]:
    present = set(_existing_columns(db, "users"))
    added = []
    for column, ddl in USER_COLUMN_MIGRATIONS.items():
        if column in present:
            continue
        db.execute(f"ALTER TABLE users ADD COLUMN {column} {ddl}")
        logger.info("Added column users.%s", column)
        added.append(column)
    return added


def _seed_tasks(db: Database) -> None:
    # One statement, so a failure leaves the table empty and the next run retries.
    rows = ", ".join(["(%s, %s, %s, %s, FALSE, %s)"] * len(SEED_TASKS))
    params: List[Any] = []
    for task in SEED_TASKS:
        params.extend([task["id"], task["title"], task["course"], task["priority"], task["description"]])
    db.execute(f"INSERT INTO tasks (id, title, course, priority, completed, description) VALUES {rows}", params)
    logger.info("Default tasks inserted")


def _seed_courses(db: Database) -> None:
    courses = seed_courses()
    rows = ", ".join(["(%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)"] * len(courses))
    params: List[Any] = []
    for course in courses:
        params.extend(
            [
                course["id"],
                course["code"],
                course["name"],
                course["category"],
                course["credit_hours"],
                Json(course["professors"]),
                course["description"],
                Json(course["schedule"]),
                Json(course["content"]),
                Json(course["assignments"]),
                Json(course["exams"]),
            ]
        )
    db.execute(
        f"""
        INSERT INTO courses (id, code, name, category, credit_hours, professors, description,
                             schedule, content, assignments, exams)
        VALUES {rows}
        """,
        params,
    )
    logger.info("Default courses inserted")


# PUBLIC_INTERFACE
def ensure_schema(db: Database) -> Dict[str, Any]:
    """
    Create missing tables and columns, then seed empty reference tables.

    Returns a summary with the columns that were added and the tables that
    were seeded on this run.
    """
    for ddl in TABLES.values():
        db.execute(ddl)
    for ddl in INDEXES:
        db.execute(ddl)

    added_columns = _migrate_user_columns(db)

    seeded = []
    if _is_empty(db, "tasks"):
        _seed_tasks(db)
        seeded.append("tasks")
    if _is_empty(db, "courses"):
        _seed_courses(db)
        seeded.append("courses")

    logger.info("Database tables initialized")
    return {"added_columns": added_columns, "seeded": seeded}
