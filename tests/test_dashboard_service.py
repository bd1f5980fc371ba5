from datetime import datetime, timedelta, timezone

from certprep.services import dashboard_service
from certprep.services.dashboard_service import AnswerRow, SessionRow

BASE = datetime(2026, 2, 1, 10, 0, tzinfo=timezone.utc)


def _row(index: int, category: str, correct: int, total: int = 10, status: str = "completed") -> SessionRow:
    started = BASE + timedelta(days=index)
    return SessionRow(
        id=f"s{index}",
        test_id="t1",
        test_title="SAP Fundamentals Test",
        category_id=category.lower(),
        category_name=category,
        started_at=started,
        ended_at=started + timedelta(minutes=5) if status != "in_progress" else None,
        status=status,
        score=0,
        total_questions=total,
        correct_answers=correct,
    )


def test_summarize_history_counts_finished_attempts() -> None:
    rows = [
        _row(3, "Finance", 9),
        _row(2, "Logistics", 5, status="expired"),
        _row(1, "Finance", 7),
        _row(0, "Logistics", 0, status="in_progress"),
    ]
    result = dashboard_service.summarize_history(rows)

    summary = result["summary"]
    assert summary["totalTests"] == 4
    assert summary["completedTests"] == 3
    assert summary["averageScore"] == 70
    assert summary["bestCategory"] == "Finance"

    first = result["testHistory"][0]
    assert first["duration"] == 5 * 60 * 1000
    assert first["percentage"] == 90
    assert result["testHistory"][3]["duration"] is None


def test_empty_history() -> None:
    summary = dashboard_service.summarize_history([])["summary"]
    assert summary == {
        "totalTests": 0,
        "completedTests": 0,
        "averageScore": 0,
        "bestCategory": "N/A",
    }


def test_performance_strengths_weaknesses_and_trend() -> None:
    rows = [_row(i, "Finance", 8) for i in range(12)] + [_row(20, "Logistics", 4)]
    result = dashboard_service.performance_stats(rows)

    assert [c["category"] for c in result["strengths"]] == ["Finance"]
    assert [c["category"] for c in result["weaknesses"]] == ["Logistics"]
    assert result["weaknesses"][0]["score"] == 40

    trend = result["performanceTrend"]
    assert len(trend) == 10
    assert trend[-1] == {"date": "2026-02-21", "score": 40}
    assert result["overallStats"] == {"totalCategories": 2, "averageAccuracy": 60}


def test_answer_analytics_problem_areas_and_speed() -> None:
    rows = [AnswerRow("matching", i == 0, 100) for i in range(5)]
    rows += [AnswerRow("single-choice", True, 20), AnswerRow("single-choice", True, 45)]
    result = dashboard_service.answer_analytics(rows)

    assert [p["questionType"] for p in result["problemAreas"]] == ["matching"]
    assert result["problemAreas"][0]["accuracy"] == 20
    assert result["problemAreas"][0]["performanceLevel"] == "struggling"
    assert result["timeDistribution"]["data"] == [1, 1, 5, 0]
    assert {s["type"] for s in result["suggestions"]} == {"practice"}
    assert result["summary"]["overallAccuracy"] == 43

    slow = dashboard_service.answer_analytics([AnswerRow("sequence", True, 150)])
    assert slow["suggestions"][0]["type"] == "speed"
    assert slow["problemAreas"] == []


def test_dashboard_routes(client, user_headers, seeded) -> None:
    session_id = client.post(
        "/api/test/session", headers=user_headers, json={"testId": seeded}
    ).json()["data"]["id"]
    client.post(f"/api/test/session/{session_id}/finish", headers=user_headers, json={"confirm": True})

    history = client.get("/api/dashboard/test-history", headers=user_headers).json()
    assert history["data"]["summary"]["completedTests"] == 1
    assert history["testHistory"][0]["categoryName"] == "SAP Fundamentals"

    stats = client.get("/api/dashboard/performance-stats", headers=user_headers).json()
    assert stats["weaknesses"][0]["category"] == "SAP Fundamentals"

    analytics = client.get("/api/dashboard/analytics", headers=user_headers).json()
    assert analytics["summary"]["totalQuestionsAnalyzed"] == 3
    assert analytics["summary"]["overallAccuracy"] == 0
