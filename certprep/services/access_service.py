"""Access decisions for free and paid tests."""
import enum
from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException, status

from certprep.models.db.user import User


class AccessStatus(str, enum.Enum):
    GRANTED = "granted"
    LOCKED = "locked"
    AUTH_REQUIRED = "auth_required"


@dataclass
class AccessResult:
    status: AccessStatus
    reason: str
    is_free: bool
    price: float
    currency: str
    has_purchased: bool = False

    @property
    def can_access(self) -> bool:
        return self.status is AccessStatus.GRANTED

    def as_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "canAccess": self.can_access,
            "reason": self.reason,
            "isFree": self.is_free,
            "testPrice": self.price,
            "testCurrency": self.currency,
            "hasPurchased": self.has_purchased,
        }


def check_test_access(test: dict[str, Any], user: User | None, purchases: Any) -> AccessResult:
    """
    Free tests are open to everyone, paid tests need a signed-in user who is
    an admin or holds an active purchase.
    """
    price = float(test.get("price") or 0)
    currency = test.get("currency") or "USD"
    is_free = test.get("isFree", True) is not False and price == 0

    if is_free:
        return AccessResult(
            AccessStatus.GRANTED, "Test is free and available to all users", True, 0.0, currency
        )
    if user is None:
        return AccessResult(
            AccessStatus.AUTH_REQUIRED,
            "Authentication required to access this paid test",
            False,
            price,
            currency,
        )
    if user.is_admin:
        return AccessResult(
            AccessStatus.GRANTED,
            "Admin access - full access to all tests",
            False,
            price,
            currency,
            has_purchased=True,
        )
    if purchases.get_active(user.id, test["id"]) is not None:
        return AccessResult(
            AccessStatus.GRANTED, "Test purchased", False, price, currency, has_purchased=True
        )
    return AccessResult(
        AccessStatus.LOCKED, "Purchase required to access this test", False, price, currency
    )


def require_access(test: dict[str, Any], user: User | None, purchases: Any) -> AccessResult:
    """Raise 401 or 403 when the test cannot be taken."""
    result = check_test_access(test, user, purchases)
    if result.status is AccessStatus.AUTH_REQUIRED:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=result.reason)
    if result.status is AccessStatus.LOCKED:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=result.reason)
    return result
