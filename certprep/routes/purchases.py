"""Purchased tests of the signed-in user."""
from fastapi import APIRouter, status

from certprep.dependencies.auth import CurrentUser
from certprep.models import PurchaseCreate
from certprep.repositories import Purchases, Tests
from certprep.services import purchase_service
from certprep.utils.validation import validate_id

router = APIRouter(prefix="/api/user/purchased-tests", tags=["purchases"])


@router.get("")
def list_purchased_tests(current_user: CurrentUser, purchases: Purchases) -> dict[str, object]:
    views = purchases.list_for_user(current_user.id)
    active = [p for p in views if p["status"] == "active"]
    return {
        "data": active,
        "totalPurchased": len(active),
        "stats": purchase_service.purchase_stats(views),
    }


@router.get("/{test_id}")
def check_purchase(test_id: str, current_user: CurrentUser, purchases: Purchases) -> dict[str, object]:
    """Whether the caller holds an active purchase of the test."""
    purchase = purchases.get_active(current_user.id, validate_id("testId", test_id))
    return {"data": purchase, "hasPurchased": purchase is not None}


@router.post("", status_code=status.HTTP_201_CREATED)
def record_purchase(
    payload: PurchaseCreate,
    current_user: CurrentUser,
    tests: Tests,
    purchases: Purchases,
) -> dict[str, object]:
    purchase = purchase_service.record_purchase(
        tests,
        purchases,
        current_user,
        validate_id("testId", payload.testId),
        payload.paymentAmount,
        payload.paymentMethod,
        payload.transactionId,
    )
    return {"data": purchase}


@router.post("/{test_id}/refund")
def refund_purchase(test_id: str, current_user: CurrentUser, purchases: Purchases) -> dict[str, object]:
    return {"data": purchase_service.refund_purchase(purchases, current_user, validate_id("testId", test_id))}
