"""Map ORM rows to camelCase view dicts."""
from decimal import Decimal
from typing import Any

from certprep.exam.timer import format_time_limit
from certprep.models.db import (
    Answer,
    Category,
    DragDropItem,
    MatchItem,
    Question,
    SequenceItem,
    UserTestPurchase,
)
from certprep.utils.time_utils import isoformat


def money(value: Decimal | float | int | None) -> float:
    return float(value or 0)


def category_view(category: Category) -> dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "createdAt": isoformat(category.created_at),
        "updatedAt": isoformat(category.updated_at),
    }


def answer_view(answer: Answer) -> dict[str, Any]:
    return {
        "id": answer.id,
        "text": answer.text,
        "isCorrect": answer.is_correct,
        "position": answer.position,
    }


def match_item_view(item: MatchItem) -> dict[str, Any]:
    return {"id": item.id, "leftText": item.left_text, "rightText": item.right_text}


def sequence_item_view(item: SequenceItem) -> dict[str, Any]:
    return {"id": item.id, "text": item.text, "correctPosition": item.correct_position}


def drag_drop_item_view(item: DragDropItem) -> dict[str, Any]:
    return {"id": item.id, "content": item.content, "targetZone": item.target_zone}


def question_view(question: Question) -> dict[str, Any]:
    return {
        "id": question.id,
        "text": question.text,
        "type": question.type,
        "mediaUrl": question.media_url,
        "categoryId": question.category_id,
        "categoryName": question.category.name if question.category else None,
        "difficulty": question.difficulty,
        "points": question.points,
        "explanation": question.explanation,
        "answers": [answer_view(answer) for answer in question.answers],
        "matchItems": [match_item_view(item) for item in question.match_items],
        "sequenceItems": [sequence_item_view(item) for item in question.sequence_items],
        "dragDropItems": [drag_drop_item_view(item) for item in question.drag_drop_items],
        "createdAt": isoformat(question.created_at),
        "updatedAt": isoformat(question.updated_at),
    }


def catalog_test_view(test: Any, with_questions: bool = False) -> dict[str, Any]:
    view = {
        "id": test.id,
        "title": test.title,
        "description": test.description,
        "instructions": test.instructions,
        "timeLimit": test.time_limit,
        "timeLimitLabel": format_time_limit(test.time_limit),
        "isActive": test.is_active,
        "price": money(test.price),
        "currency": test.currency,
        "isFree": test.is_free,
        "requiresPurchase": test.requires_purchase,
        "allowBackwardNavigation": test.allow_backward_navigation,
        "categories": [{"id": c.id, "name": c.name} for c in test.categories],
        "categoryIds": [c.id for c in test.categories],
        "questionCount": len(test.test_questions),
        "createdAt": isoformat(test.created_at),
        "updatedAt": isoformat(test.updated_at),
    }
    if with_questions:
        view["questions"] = [question_view(question) for question in test.questions]
    return view


def purchase_view(purchase: UserTestPurchase) -> dict[str, Any]:
    return {
        "id": purchase.id,
        "userId": purchase.user_id,
        "testId": purchase.test_id,
        "testTitle": purchase.test.title if purchase.test else None,
        "purchaseDate": isoformat(purchase.purchase_date),
        "paymentAmount": money(purchase.payment_amount),
        "paymentMethod": purchase.payment_method,
        "transactionId": purchase.transaction_id,
        "status": purchase.status,
    }


def take_question_view(question: dict[str, Any]) -> dict[str, Any]:
    """
    A question view safe to send to an exam taker: correctness flags, correct
    positions, right-hand pairings and target zones are removed.
    """
    view = {
        key: question.get(key)
        for key in ("id", "text", "type", "mediaUrl", "categoryId", "categoryName", "difficulty", "points")
    }
    view["answers"] = [
        {"id": a["id"], "text": a["text"]}
        for a in sorted(question.get("answers", []), key=lambda a: a.get("position", 0))
    ]
    match_items = question.get("matchItems", [])
    view["matchItems"] = [{"id": m["id"], "leftText": m["leftText"]} for m in match_items]
    view["rightOptions"] = sorted(m["rightText"] for m in match_items)
    view["sequenceItems"] = [
        {"id": s["id"], "text": s["text"]}
        for s in sorted(question.get("sequenceItems", []), key=lambda s: s["id"])
    ]
    drag_items = question.get("dragDropItems", [])
    view["dragDropItems"] = [{"id": d["id"], "content": d["content"]} for d in drag_items]
    view["zones"] = sorted({d["targetZone"] for d in drag_items})
    return view


def take_test_view(test: dict[str, Any]) -> dict[str, Any]:
    """Test payload for taking it: metadata plus stripped questions."""
    view = {key: value for key, value in test.items() if key != "questions"}
    view["questions"] = [take_question_view(q) for q in test.get("questions", [])]
    view["questionCount"] = len(view["questions"])
    return view
