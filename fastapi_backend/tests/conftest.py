import copy
from typing import Any, Dict, List, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from src.api.main import app


class FakeDatabase:
    """
    In-memory stand-in for the query gateway.

    Every statement is recorded with whitespace collapsed. Answers come
    from rules registered with `on()`: the most recently registered rule
    whose fragment occurs in the statement wins. Without a matching rule
    reads return nothing and writes report one affected row.
    """

    def __init__(self) -> None:
        self.statements: List[tuple] = []
        self._rules: List[tuple] = []
        self.closed = False

    def on(self, fragment: str, result: Any = None, error: Optional[Exception] = None) -> None:
        self._rules.insert(0, (fragment, result, error))

    def find(self, fragment: str) -> List[tuple]:
        return [s for s in self.statements if fragment in s[0]]

    def _answer(self, query: str, params: Optional[Sequence[Any]], default: Any) -> Any:
        sql = " ".join(query.split())
        args = list(params or [])
        self.statements.append((sql, args))
        for fragment, result, error in self._rules:
            if fragment in sql:
                if error is not None:
                    raise error
                if callable(result):
                    return result(args)
                return copy.deepcopy(result)
        return default

    def fetch_one(self, query: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        return self._answer(query, params, None)

    def fetch_all(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        return self._answer(query, params, [])

    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> int:
        return self._answer(query, params, 1)

    def execute_returning_one(self, query: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        return self._answer(query, params, None)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def client(fake_db: FakeDatabase):
    # No context manager: the lifespan (and its bootstrap) is not run.
    app.state.db = fake_db
    yield TestClient(app)
    app.state.db = None


@pytest.fixture
def user_row() -> Dict[str, Any]:
    return {
        "id": "1700000000000",
        "name": "Ada Lovelace",
        "email": "ada@example.edu",
        "password": "secret",
        "avatar": "https://ui-avatars.com/api/?name=Ada%20Lovelace",
        "student_id": "STU1700000000000",
        "major": "Mathematics",
        "department": "Science",
        "program": "BSc",
        "gpa": "3.85",
        "level": 2,
        "mode": "student",
        "is_verified": False,
        "is_onboarding_complete": True,
        "enrolled_courses": ["COMP101", "MATH101"],
    }


@pytest.fixture
def task_row() -> Dict[str, Any]:
    return {
        "id": "1",
        "title": "Complete Data Structures Assignment",
        "course": "Computer Science",
        "priority": "high",
        "completed": False,
        "description": "Implement binary search tree",
        "user_id": None,
        "due_date": None,
        "notification_id": None,
    }
