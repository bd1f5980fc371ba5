"""Test purchases."""
import logging
from typing import Any

from fastapi import HTTPException, status

from certprep.models.db.user import User

logger = logging.getLogger(__name__)


def record_purchase(
    tests: Any,
    purchases: Any,
    user: User,
    test_id: str,
    payment_amount: Any,
    payment_method: str | None = None,
    transaction_id: str | None = None,
) -> dict[str, Any]:
    """Record a purchase; a second active purchase of the same test is a conflict."""
    test = tests.get(test_id, with_questions=False)
    if test is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Test not found")
    if purchases.get_active(user.id, test_id) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Test already purchased"
        )
    purchase = purchases.record(
        user.id, test_id, payment_amount, payment_method, transaction_id
    )
    logger.info("User %s purchased test %s", user.id, test_id)
    return purchase


def refund_purchase(purchases: Any, user: User, test_id: str) -> dict[str, Any]:
    purchase = purchases.refund(user.id, test_id)
    if purchase is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No active purchase for this test"
        )
    logger.info("Refunded purchase %s of test %s", purchase["id"], test_id)
    return purchase


def purchase_stats(purchase_views: list[dict[str, Any]]) -> dict[str, Any]:
    """Total spent on active purchases and how many there are."""
    active = [p for p in purchase_views if p["status"] == "active"]
    return {
        "totalPurchased": len(active),
        "totalSpent": round(sum(p["paymentAmount"] for p in active), 2),
        "refunded": sum(1 for p in purchase_views if p["status"] == "refunded"),
    }
