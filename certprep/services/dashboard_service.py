"""
Dashboard aggregations.

The `summarize_*` / `*_stats` / `answer_analytics` functions are pure: they
take plain rows and return JSON-ready dicts. The `fetch_*` functions load
those rows for a user.
"""
import math
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session as DbSession, selectinload

from certprep.config import ANALYTICS_ANSWER_LIMIT, HISTORY_LIMIT, TREND_LIMIT
from certprep.exam.grading import percentage
from certprep.models.db import (
    Category,
    Question,
    SessionStatus,
    Test,
    TestQuestion,
    TestSession,
    User,
    UserAnswer,
)
from certprep.utils.time_utils import ensure_aware, isoformat

FINISHED_STATUSES = (SessionStatus.COMPLETED.value, SessionStatus.EXPIRED.value)
STRENGTH_THRESHOLD = 70
PROBLEM_THRESHOLD = 60
PROBLEM_MIN_ANSWERS = 5
SLOW_AVERAGE_SECONDS = 90
TIME_BUCKETS = (
    ("fast", "< 30s"),
    ("normal", "30-60s"),
    ("slow", "60-120s"),
    ("very_slow", "> 120s"),
)


@dataclass
class SessionRow:
    id: str
    test_id: str
    test_title: str
    category_id: str | None
    category_name: str
    started_at: datetime
    ended_at: datetime | None
    status: str
    score: int
    total_questions: int
    correct_answers: int

    @property
    def finished(self) -> bool:
        return self.status in FINISHED_STATUSES

    @property
    def percentage(self) -> int:
        return percentage(self.correct_answers, self.total_questions)

    @property
    def duration_ms(self) -> int | None:
        start, end = ensure_aware(self.started_at), ensure_aware(self.ended_at)
        if start is None or end is None:
            return None
        return int((end - start).total_seconds() * 1000)


@dataclass
class AnswerRow:
    question_type: str
    is_correct: bool | None
    time_spent: int


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _mean(values: list[int]) -> int:
    return round_half_up(sum(values) / len(values)) if values else 0


def performance_level(accuracy: int) -> str:
    if accuracy >= 80:
        return "excellent"
    if accuracy >= 60:
        return "good"
    if accuracy >= 40:
        return "needs improvement"
    return "struggling"


def time_bucket(seconds: int) -> str:
    if seconds < 30:
        return "fast"
    if seconds <= 60:
        return "normal"
    if seconds <= 120:
        return "slow"
    return "very_slow"


# Pure aggregations

def summarize_history(rows: list[SessionRow]) -> dict[str, Any]:
    """History entries plus totals; `rows` are newest first."""
    history = [
        {
            "id": row.id,
            "testId": row.test_id,
            "testTitle": row.test_title,
            "categoryName": row.category_name,
            "startedAt": isoformat(row.started_at),
            "endedAt": isoformat(row.ended_at),
            "status": row.status,
            "score": row.score,
            "totalQuestions": row.total_questions,
            "correctAnswers": row.correct_answers,
            "duration": row.duration_ms,
            "percentage": row.percentage,
        }
        for row in rows
    ]
    finished = [row for row in rows if row.finished]

    by_category: dict[str, list[int]] = {}
    for row in finished:
        by_category.setdefault(row.category_name, []).append(row.percentage)
    best_category = "N/A"
    if by_category:
        best_category = max(by_category.items(), key=lambda item: _mean(item[1]))[0]

    return {
        "testHistory": history,
        "summary": {
            "totalTests": len(rows),
            "completedTests": len(finished),
            "averageScore": _mean([row.percentage for row in finished]),
            "bestCategory": best_category,
        },
    }


def performance_stats(rows: list[SessionRow], trend_limit: int = TREND_LIMIT) -> dict[str, Any]:
    """Per-category accuracy, strengths/weaknesses and a recent score trend."""
    finished = [row for row in rows if row.finished]
    categories: "OrderedDict[str, dict[str, Any]]" = OrderedDict()
    for row in finished:
        stats = categories.setdefault(
            row.category_id or row.category_name,
            {"name": row.category_name, "questions": 0, "correct": 0, "tests": 0},
        )
        stats["questions"] += row.total_questions
        stats["correct"] += row.correct_answers
        stats["tests"] += 1

    by_category = [
        {
            "category": stats["name"],
            "percentage": percentage(stats["correct"], stats["questions"]),
            "testsCompleted": stats["tests"],
            "questionsAnswered": stats["questions"],
            "correctAnswers": stats["correct"],
        }
        for stats in categories.values()
    ]
    ranked = sorted(by_category, key=lambda c: c["percentage"], reverse=True)
    strengths = [c for c in ranked[:3] if c["percentage"] >= STRENGTH_THRESHOLD]
    weaknesses = [c for c in list(reversed(ranked))[:3] if c["percentage"] < STRENGTH_THRESHOLD]

    recent = sorted(finished, key=lambda row: ensure_aware(row.started_at), reverse=True)[:trend_limit]
    trend = [
        {"date": ensure_aware(row.started_at).date().isoformat(), "score": row.percentage}
        for row in reversed(recent)
    ]

    return {
        "performanceByCategory": by_category,
        "strengths": [
            {
                "category": c["category"],
                "score": c["percentage"],
                "message": f"Excellent performance with {c['percentage']}% accuracy",
            }
            for c in strengths
        ],
        "weaknesses": [
            {
                "category": c["category"],
                "score": c["percentage"],
                "message": f"Needs improvement - currently at {c['percentage']}% accuracy",
            }
            for c in weaknesses
        ],
        "performanceTrend": trend,
        "overallStats": {
            "totalCategories": len(by_category),
            "averageAccuracy": _mean([c["percentage"] for c in by_category]),
        },
    }


def answer_analytics(rows: list[AnswerRow]) -> dict[str, Any]:
    """Accuracy and timing per question type, with suggestions."""
    by_type: "OrderedDict[str, dict[str, int]]" = OrderedDict()
    for row in rows:
        stats = by_type.setdefault(row.question_type, {"total": 0, "correct": 0, "time": 0})
        stats["total"] += 1
        stats["correct"] += 1 if row.is_correct else 0
        stats["time"] += row.time_spent or 0

    type_analytics = []
    for question_type, stats in by_type.items():
        accuracy = percentage(stats["correct"], stats["total"])
        type_analytics.append(
            {
                "questionType": question_type,
                "totalAnswered": stats["total"],
                "correctAnswers": stats["correct"],
                "accuracy": accuracy,
                "averageTimeSeconds": round_half_up(stats["time"] / stats["total"]),
                "performanceLevel": performance_level(accuracy),
            }
        )

    problem_areas = sorted(
        (
            t
            for t in type_analytics
            if t["accuracy"] < PROBLEM_THRESHOLD and t["totalAnswered"] >= PROBLEM_MIN_ANSWERS
        ),
        key=lambda t: t["accuracy"],
    )

    buckets = {name: {"total": 0, "correct": 0} for name, _ in TIME_BUCKETS}
    for row in rows:
        if row.time_spent:
            bucket = buckets[time_bucket(row.time_spent)]
            bucket["total"] += 1
            bucket["correct"] += 1 if row.is_correct else 0

    average_time = sum(row.time_spent or 0 for row in rows) / len(rows) if rows else 0
    suggestions = [
        {
            "type": "practice",
            "priority": "high",
            "message": (
                f"Focus on {area['questionType']} questions - "
                f"current accuracy is only {area['accuracy']}%"
            ),
            "category": area["questionType"],
        }
        for area in problem_areas
    ]
    if average_time > SLOW_AVERAGE_SECONDS:
        suggestions.append(
            {
                "type": "speed",
                "priority": "medium",
                "message": (
                    "Try to improve your answer speed - "
                    f"you're averaging over {SLOW_AVERAGE_SECONDS} seconds per question"
                ),
                "category": "time_management",
            }
        )

    return {
        "questionTypeAnalytics": type_analytics,
        "problemAreas": problem_areas,
        "timeDistribution": {
            "labels": [label for _, label in TIME_BUCKETS],
            "data": [buckets[name]["total"] for name, _ in TIME_BUCKETS],
        },
        "speedAccuracyAnalysis": [
            {
                "timeRange": name,
                "accuracy": percentage(bucket["correct"], bucket["total"]),
                "count": bucket["total"],
            }
            for name, bucket in buckets.items()
            if bucket["total"]
        ],
        "suggestions": suggestions,
        "summary": {
            "totalQuestionsAnalyzed": len(rows),
            "averageTimePerQuestion": round_half_up(average_time),
            "overallAccuracy": percentage(sum(1 for row in rows if row.is_correct), len(rows)),
        },
    }


# Loading

def _primary_category(test: Test | None) -> Category | None:
    if test is None or not test.categories:
        return None
    return sorted(test.categories, key=lambda c: c.name)[0]


def session_rows(sessions: Iterable[TestSession]) -> list[SessionRow]:
    rows = []
    for session in sessions:
        category = _primary_category(session.test)
        rows.append(
            SessionRow(
                id=session.id,
                test_id=session.test_id,
                test_title=session.test.title if session.test else "Unknown Test",
                category_id=category.id if category else None,
                category_name=category.name if category else "Unknown",
                started_at=session.started_at,
                ended_at=session.ended_at,
                status=session.status,
                score=session.score,
                total_questions=session.total_questions,
                correct_answers=session.correct_answers,
            )
        )
    return rows


def _user_sessions(db: DbSession, user: User, finished_only: bool = False, limit: int | None = None):
    query = (
        select(TestSession)
        .where(TestSession.user_id == user.id)
        .options(selectinload(TestSession.test).selectinload(Test.categories))
        .order_by(TestSession.started_at.desc())
    )
    if finished_only:
        query = query.where(TestSession.status.in_(FINISHED_STATUSES))
    if limit:
        query = query.limit(limit)
    return db.execute(query).scalars().all()


def fetch_history(db: DbSession, user: User) -> dict[str, Any]:
    return summarize_history(session_rows(_user_sessions(db, user, limit=HISTORY_LIMIT)))


def fetch_performance(db: DbSession, user: User) -> dict[str, Any]:
    return performance_stats(session_rows(_user_sessions(db, user, finished_only=True)))


def fetch_analytics(db: DbSession, user: User) -> dict[str, Any]:
    """Analyse the user's most recent answers from finished sessions."""
    results = db.execute(
        select(Question.type, UserAnswer.is_correct, UserAnswer.time_spent)
        .join(Question, Question.id == UserAnswer.question_id)
        .join(TestSession, TestSession.id == UserAnswer.test_session_id)
        .where(
            UserAnswer.user_id == user.id,
            TestSession.status.in_(FINISHED_STATUSES),
        )
        .order_by(UserAnswer.created_at.desc(), UserAnswer.id.desc())
        .limit(ANALYTICS_ANSWER_LIMIT)
    ).all()
    return answer_analytics(
        [AnswerRow(question_type, is_correct, time_spent or 0) for question_type, is_correct, time_spent in results]
    )


def admin_analytics(db: DbSession) -> dict[str, Any]:
    """Platform-wide counts, per-category stats and the most attempted tests."""
    finished_scores = db.execute(
        select(func.avg(TestSession.score)).where(TestSession.status.in_(FINISHED_STATUSES))
    ).scalar()

    category_rows = db.execute(
        select(Category.id, Category.name, func.count(Question.id))
        .outerjoin(Question, Question.category_id == Category.id)
        .group_by(Category.id, Category.name)
        .order_by(Category.name)
    ).all()
    test_counts = dict(
        db.execute(
            select(Category.id, func.count(Test.id))
            .join(Category.tests)
            .group_by(Category.id)
        ).all()
    )

    popular = db.execute(
        select(Test.id, Test.title, func.count(TestSession.id).label("attempts"), func.avg(TestSession.score))
        .join(TestSession, TestSession.test_id == Test.id)
        .group_by(Test.id, Test.title)
        .order_by(func.count(TestSession.id).desc(), Test.title)
        .limit(5)
    ).all()

    return {
        "totals": {
            "users": db.execute(select(func.count(User.id))).scalar_one(),
            "tests": db.execute(select(func.count(Test.id))).scalar_one(),
            "activeTests": db.execute(
                select(func.count(Test.id)).where(Test.is_active.is_(True))
            ).scalar_one(),
            "questions": db.execute(select(func.count(Question.id))).scalar_one(),
            "categories": db.execute(select(func.count(Category.id))).scalar_one(),
            "sessions": db.execute(select(func.count(TestSession.id))).scalar_one(),
            "completedSessions": db.execute(
                select(func.count(TestSession.id)).where(TestSession.status.in_(FINISHED_STATUSES))
            ).scalar_one(),
            "averageScore": round_half_up(float(finished_scores)) if finished_scores is not None else 0,
        },
        "categories": [
            {
                "id": category_id,
                "name": name,
                "questionCount": question_count,
                "testCount": test_counts.get(category_id, 0),
            }
            for category_id, name, question_count in category_rows
        ],
        "popularTests": [
            {
                "id": test_id,
                "title": title,
                "attempts": attempts,
                "averageScore": round_half_up(float(avg_score or 0)),
            }
            for test_id, title, attempts, avg_score in popular
        ],
        "questionsPerTest": _questions_per_test(db),
    }


def _questions_per_test(db: DbSession) -> int:
    per_test = db.execute(
        select(func.count(TestQuestion.id)).group_by(TestQuestion.test_id)
    ).scalars().all()
    return _mean(list(per_test))
