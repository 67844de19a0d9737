"""Baseline rows inserted by the bootstrapper into empty tables."""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

SEED_TASKS: List[Dict[str, Any]] = [
    {
        "id": "1",
        "title": "Complete Data Structures Assignment",
        "course": "Computer Science",
        "priority": "high",
        "description": "Implement binary search tree",
    },
    {
        "id": "2",
        "title": "Read Chapter 5 - Algorithms",
        "course": "Computer Science",
        "priority": "medium",
        "description": "Study sorting algorithms",
    },
    {
        "id": "3",
        "title": "Math Problem Set 7",
        "course": "Mathematics",
        "priority": "low",
        "description": "Linear algebra exercises",
    },
    {
        "id": "4",
        "title": "Physics Lab Report",
        "course": "Physics",
        "priority": "high",
        "description": "Write lab report",
    },
]


def _days_from(now: datetime, days: int) -> str:
    return (now + timedelta(days=days)).isoformat()


# PUBLIC_INTERFACE
def seed_courses(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """
    Return the four reference courses.

    Assignment due dates and exam dates are relative to `now` so a freshly
    seeded database always shows upcoming work.
    """
    now = now or datetime.now(timezone.utc)
    return [
        {
            "id": "1",
            "code": "COMP101",
            "name": "Introduction to Computer Science",
            "category": "comp",
            "credit_hours": 4,
            "professors": ["Dr. Smith"],
            "description": (
                "An introductory course to computer science concepts including programming "
                "fundamentals, data structures, and algorithms."
            ),
            "schedule": [
                {"day": "Monday", "time": "10:00 AM - 11:30 AM", "location": "Room 204"},
                {"day": "Wednesday", "time": "10:00 AM - 11:30 AM", "location": "Room 204"},
                {"day": "Friday", "time": "10:00 AM - 11:30 AM", "location": "Lab 101"},
            ],
            "content": [
                {"week": 1, "topic": "Introduction to Programming", "description": "Basic concepts of programming and problem-solving"},
                {"week": 2, "topic": "Variables and Data Types", "description": "Understanding variables, data types, and memory management"},
            ],
            "assignments": [
                {
                    "id": "1",
                    "title": "Hello World Program",
                    "dueDate": _days_from(now, 7),
                    "maxScore": 100,
                    "description": 'Write a simple program that displays "Hello, World!"',
                },
            ],
            "exams": [
                {
                    "id": "1",
                    "title": "Midterm Exam",
                    "date": _days_from(now, 30),
                    "format": "Written and Practical",
                    "gradingBreakdown": "Theory: 60%, Practical: 40%",
                },
            ],
        },
        {
            "id": "2",
            "code": "MATH101",
            "name": "Calculus I",
            "category": "math",
            "credit_hours": 4,
            "professors": ["Dr. Brown"],
            "description": "An introductory course to calculus covering limits, derivatives, and integrals.",
            "schedule": [
                {"day": "Tuesday", "time": "2:00 PM - 3:30 PM", "location": "Room 305"},
                {"day": "Thursday", "time": "2:00 PM - 3:30 PM", "location": "Room 305"},
            ],
            "content": [
                {"week": 1, "topic": "Limits and Continuity", "description": "Understanding limits and continuity of functions"},
                {"week": 2, "topic": "Derivatives", "description": "Introduction to derivatives and differentiation rules"},
            ],
            "assignments": [
                {
                    "id": "2",
                    "title": "Derivative Problems Set",
                    "dueDate": _days_from(now, 5),
                    "maxScore": 50,
                    "description": "Solve problems on differentiation",
                },
            ],
            "exams": [
                {
                    "id": "2",
                    "title": "Calculus Midterm",
                    "date": _days_from(now, 28),
                    "format": "Written Exam",
                    "gradingBreakdown": "Problem Solving: 70%, Theory: 30%",
                },
            ],
        },
        {
            "id": "3",
            "code": "PHYS101",
            "name": "Physics I",
            "category": "phys",
            "credit_hours": 4,
            "professors": ["Prof. Johnson"],
            "description": "Mechanics and Thermodynamics covering motion, forces, energy, and heat.",
            "schedule": [
                {"day": "Monday", "time": "2:00 PM - 3:30 PM", "location": "Room 201"},
                {"day": "Wednesday", "time": "2:00 PM - 3:30 PM", "location": "Room 201"},
                {"day": "Friday", "time": "2:00 PM - 4:00 PM", "location": "Lab 102"},
            ],
            "content": [
                {"week": 1, "topic": "Kinematics", "description": "Study of motion without considering forces"},
                {"week": 2, "topic": "Newton's Laws", "description": "Forces and their effects on motion"},
            ],
            "assignments": [
                {
                    "id": "3",
                    "title": "Force Analysis Problems",
                    "dueDate": _days_from(now, 6),
                    "maxScore": 75,
                    "description": "Analyze forces in various scenarios",
                },
            ],
            "exams": [
                {
                    "id": "3",
                    "title": "Physics Midterm",
                    "date": _days_from(now, 32),
                    "format": "Written + Lab Practical",
                    "gradingBreakdown": "Theory: 50%, Practical: 50%",
                },
            ],
        },
        {
            "id": "4",
            "code": "COMP201",
            "name": "Data Structures",
            "category": "comp",
            "credit_hours": 4,
            "professors": ["Dr. Smith"],
            "description": "Advanced data structures including trees, graphs, and hash tables.",
            "schedule": [
                {"day": "Tuesday", "time": "10:00 AM - 11:30 AM", "location": "Room 203"},
                {"day": "Thursday", "time": "10:00 AM - 11:30 AM", "location": "Room 203"},
            ],
            "content": [
                {"week": 1, "topic": "Arrays and Linked Lists", "description": "Linear data structures"},
                {"week": 2, "topic": "Stacks and Queues", "description": "LIFO and FIFO data structures"},
            ],
            "assignments": [
                {
                    "id": "4",
                    "title": "Binary Tree Implementation",
                    "dueDate": _days_from(now, 8),
                    "maxScore": 100,
                    "description": "Implement binary search tree with insert, delete, and search operations",
                },
            ],
            "exams": [
                {
                    "id": "4",
                    "title": "Data Structures Exam",
                    "date": _days_from(now, 35),
                    "format": "Written + Coding",
                    "gradingBreakdown": "Theory: 40%, Coding: 60%",
                },
            ],
        },
    ]
