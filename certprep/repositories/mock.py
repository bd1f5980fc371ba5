"""
Static sample catalog and the in-memory repositories that serve it.

The same data seeds a fresh database (`cli.py seed`) and answers reads when
the live database is unavailable and `DATA_FALLBACK=mock`.
"""
from __future__ import annotations

import copy
from typing import Any

from certprep.exam.timer import format_time_limit
from certprep.repositories import base

SAMPLE_TIMESTAMP = "2024-01-01T00:00:00+00:00"

SAMPLE_CATEGORIES: list[dict[str, Any]] = [
    {
        "id": "cat-1",
        "name": "SAP Fundamentals",
        "description": "Basic SAP concepts and overview",
    },
    {
        "id": "cat-2",
        "name": "SAP Technology",
        "description": "Technical aspects of SAP systems",
    },
    {
        "id": "cat-3",
        "name": "Supply Chain",
        "description": "Supply chain management in SAP",
    },
]

SAMPLE_QUESTIONS: list[dict[str, Any]] = [
    {
        "id": "q1",
        "text": "Which of the following are core modules of SAP S/4HANA? (Select all that apply)",
        "type": "multiple-choice",
        "categoryId": "cat-1",
        "answers": [
            {"id": "q1a1", "text": "Financial Accounting (FI)", "isCorrect": True},
            {"id": "q1a2", "text": "Sales and Distribution (SD)", "isCorrect": True},
            {"id": "q1a3", "text": "Microsoft PowerPoint", "isCorrect": False},
            {"id": "q1a4", "text": "Materials Management (MM)", "isCorrect": True},
        ],
    },
    {
        "id": "q2",
        "text": "Which of the following technologies is SAP HANA based on?",
        "type": "single-choice",
        "categoryId": "cat-2",
        "answers": [
            {"id": "q2a1", "text": "In-memory database", "isCorrect": True},
            {"id": "q2a2", "text": "Blockchain", "isCorrect": False},
            {"id": "q2a3", "text": "Tape storage", "isCorrect": False},
            {"id": "q2a4", "text": "Floppy disk arrays", "isCorrect": False},
        ],
    },
    {
        "id": "q3",
        "text": "Match the SAP module with its primary function",
        "type": "matching",
        "categoryId": "cat-1",
        "matchItems": [
            {"id": "q3m1", "leftText": "FI", "rightText": "Financial Accounting"},
            {"id": "q3m2", "leftText": "MM", "rightText": "Materials Management"},
            {"id": "q3m3", "leftText": "SD", "rightText": "Sales and Distribution"},
            {"id": "q3m4", "leftText": "PP", "rightText": "Production Planning"},
        ],
    },
]

SAMPLE_TESTS: list[dict[str, Any]] = [
    {
        "id": "test-1",
        "title": "SAP Fundamentals Test",
        "description": "Test your knowledge of basic SAP concepts",
        "timeLimit": 300,
        "categoryIds": ["cat-1"],
        "isActive": True,
        "questionIds": ["q1", "q2", "q3"],
    },
]


def _category_name(category_id: str | None) -> str | None:
    for category in SAMPLE_CATEGORIES:
        if category["id"] == category_id:
            return category["name"]
    return None


def sample_question_view(raw: dict[str, Any]) -> dict[str, Any]:
    """Fill a sample question out to the full question view shape."""
    return {
        "id": raw["id"],
        "text": raw["text"],
        "type": raw["type"],
        "mediaUrl": raw.get("mediaUrl"),
        "categoryId": raw.get("categoryId"),
        "categoryName": _category_name(raw.get("categoryId")),
        "difficulty": raw.get("difficulty"),
        "points": raw.get("points", 1),
        "explanation": raw.get("explanation"),
        "answers": [
            {**answer, "position": index} for index, answer in enumerate(raw.get("answers", []))
        ],
        "matchItems": list(raw.get("matchItems", [])),
        "sequenceItems": list(raw.get("sequenceItems", [])),
        "dragDropItems": list(raw.get("dragDropItems", [])),
        "createdAt": SAMPLE_TIMESTAMP,
        "updatedAt": SAMPLE_TIMESTAMP,
    }


def sample_test_view(raw: dict[str, Any], with_questions: bool = True) -> dict[str, Any]:
    categories = [
        {"id": c["id"], "name": c["name"]}
        for c in SAMPLE_CATEGORIES
        if c["id"] in raw.get("categoryIds", [])
    ]
    view = {
        "id": raw["id"],
        "title": raw["title"],
        "description": raw.get("description"),
        "instructions": raw.get("instructions"),
        "timeLimit": raw["timeLimit"],
        "timeLimitLabel": format_time_limit(raw["timeLimit"]),
        "isActive": raw.get("isActive", True),
        "price": 0.0,
        "currency": "USD",
        "isFree": True,
        "requiresPurchase": False,
        "allowBackwardNavigation": True,
        "categories": categories,
        "categoryIds": [c["id"] for c in categories],
        "questionCount": len(raw.get("questionIds", [])),
        "createdAt": SAMPLE_TIMESTAMP,
        "updatedAt": SAMPLE_TIMESTAMP,
    }
    if with_questions:
        by_id = {q["id"]: q for q in SAMPLE_QUESTIONS}
        view["questions"] = [
            sample_question_view(by_id[qid]) for qid in raw.get("questionIds", []) if qid in by_id
        ]
    return view


class MockTestRepository(base.TestRepository):
    def list_public(self) -> list[base.View]:
        return [sample_test_view(t, with_questions=False) for t in SAMPLE_TESTS if t.get("isActive", True)]

    def list_all(self) -> list[base.View]:
        return [sample_test_view(t, with_questions=False) for t in SAMPLE_TESTS]

    def get(self, test_id: str, with_questions: bool = True) -> base.View | None:
        for raw in SAMPLE_TESTS:
            if raw["id"] == test_id:
                return sample_test_view(raw, with_questions=with_questions)
        return None


class MockQuestionRepository(base.QuestionRepository):
    def list(self, category_id: str | None = None, question_type: str | None = None) -> list[base.View]:
        return [
            sample_question_view(q)
            for q in SAMPLE_QUESTIONS
            if (category_id is None or q.get("categoryId") == category_id)
            and (question_type is None or q["type"] == question_type)
        ]

    def get(self, question_id: str) -> base.View | None:
        for raw in SAMPLE_QUESTIONS:
            if raw["id"] == question_id:
                return sample_question_view(raw)
        return None


class MockCategoryRepository(base.CategoryRepository):
    def list(self) -> list[base.View]:
        return [
            {**copy.deepcopy(c), "createdAt": SAMPLE_TIMESTAMP, "updatedAt": SAMPLE_TIMESTAMP}
            for c in SAMPLE_CATEGORIES
        ]

    def get(self, category_id: str) -> base.View | None:
        for category in self.list():
            if category["id"] == category_id:
                return category
        return None


class MockPurchaseRepository(base.PurchaseRepository):
    """No purchases exist in the sample data; writes are refused."""

    def list_for_user(self, user_id: int) -> list[base.View]:
        return []

    def get_active(self, user_id: int, test_id: str) -> base.View | None:
        return None

    def record(self, user_id, test_id, payment_amount, payment_method=None, transaction_id=None):
        raise NotImplementedError("Mock purchases are read-only")

    def refund(self, user_id: int, test_id: str) -> base.View | None:
        raise NotImplementedError("Mock purchases are read-only")
