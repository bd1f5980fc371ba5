"""Test purchase records."""
from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from certprep.database import Base

if TYPE_CHECKING:
    from certprep.models.db.catalog import Test
    from certprep.models.db.user import User


class PurchaseStatus(str, enum.Enum):
    ACTIVE = "active"
    REFUNDED = "refunded"
    EXPIRED = "expired"


class UserTestPurchase(Base):
    """A user's purchase of a paid test."""

    __tablename__ = "user_test_purchases"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    test_id: Mapped[str] = mapped_column(
        ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    purchase_date: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    payment_amount: Mapped[Decimal] = mapped_column(sa.Numeric(10, 2), nullable=False)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=PurchaseStatus.ACTIVE.value, nullable=False, index=True
    )

    user: Mapped["User"] = relationship("User", back_populates="purchases")
    test: Mapped["Test"] = relationship("Test", back_populates="purchases")
