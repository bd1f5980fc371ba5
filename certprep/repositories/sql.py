"""SQLAlchemy repositories."""
from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession, selectinload

from certprep.models.db import (
    Category,
    PurchaseStatus,
    Question,
    Test,
    TestQuestion,
    UserTestPurchase,
)
from certprep.repositories import base
from certprep.repositories.mappers import (
    category_view,
    purchase_view,
    question_view,
    catalog_test_view,
)
from certprep.utils.time_utils import utc_now

_QUESTION_LOADS = (
    selectinload(Question.answers),
    selectinload(Question.match_items),
    selectinload(Question.sequence_items),
    selectinload(Question.drag_drop_items),
    selectinload(Question.category),
)


class _SqlRepository:
    def __init__(self, db: DbSession) -> None:
        self.db = db

    def reset(self) -> None:
        """Discard the failed transaction so the session stays usable."""
        self.db.rollback()


class SqlTestRepository(_SqlRepository, base.TestRepository):
    def list_public(self) -> list[base.View]:
        tests = self.db.execute(
            select(Test)
            .where(Test.is_active.is_(True))
            .options(selectinload(Test.categories), selectinload(Test.test_questions))
            .order_by(Test.created_at.desc())
        ).scalars().all()
        return [catalog_test_view(test) for test in tests]

    def list_all(self) -> list[base.View]:
        tests = self.db.execute(
            select(Test)
            .options(selectinload(Test.categories), selectinload(Test.test_questions))
            .order_by(Test.created_at.desc())
        ).scalars().all()
        return [catalog_test_view(test) for test in tests]

    def get(self, test_id: str, with_questions: bool = True) -> base.View | None:
        test = self.db.execute(
            select(Test)
            .where(Test.id == test_id)
            .options(
                selectinload(Test.categories),
                selectinload(Test.test_questions)
                .selectinload(TestQuestion.question)
                .options(*_QUESTION_LOADS),
            )
        ).scalar_one_or_none()
        if test is None:
            return None
        return catalog_test_view(test, with_questions=with_questions)


class SqlQuestionRepository(_SqlRepository, base.QuestionRepository):
    def list(self, category_id: str | None = None, question_type: str | None = None) -> list[base.View]:
        query = select(Question).options(*_QUESTION_LOADS).order_by(Question.created_at.desc())
        if category_id:
            query = query.where(Question.category_id == category_id)
        if question_type:
            query = query.where(Question.type == question_type)
        return [question_view(q) for q in self.db.execute(query).scalars().all()]

    def get(self, question_id: str) -> base.View | None:
        question = self.db.execute(
            select(Question).where(Question.id == question_id).options(*_QUESTION_LOADS)
        ).scalar_one_or_none()
        return question_view(question) if question else None


class SqlCategoryRepository(_SqlRepository, base.CategoryRepository):
    def list(self) -> list[base.View]:
        categories = self.db.execute(select(Category).order_by(Category.name)).scalars().all()
        return [category_view(category) for category in categories]

    def get(self, category_id: str) -> base.View | None:
        category = self.db.get(Category, category_id)
        return category_view(category) if category else None


class SqlPurchaseRepository(_SqlRepository, base.PurchaseRepository):
    def _active(self, user_id: int, test_id: str) -> UserTestPurchase | None:
        return self.db.execute(
            select(UserTestPurchase).where(
                UserTestPurchase.user_id == user_id,
                UserTestPurchase.test_id == test_id,
                UserTestPurchase.status == PurchaseStatus.ACTIVE.value,
            )
        ).scalars().first()

    def list_for_user(self, user_id: int) -> list[base.View]:
        purchases = self.db.execute(
            select(UserTestPurchase)
            .where(UserTestPurchase.user_id == user_id)
            .options(selectinload(UserTestPurchase.test))
            .order_by(UserTestPurchase.purchase_date.desc())
        ).scalars().all()
        return [purchase_view(p) for p in purchases]

    def get_active(self, user_id: int, test_id: str) -> base.View | None:
        purchase = self._active(user_id, test_id)
        return purchase_view(purchase) if purchase else None

    def record(
        self,
        user_id: int,
        test_id: str,
        payment_amount: Any,
        payment_method: str | None = None,
        transaction_id: str | None = None,
    ) -> base.View:
        purchase = UserTestPurchase(
            id=str(uuid.uuid4()),
            user_id=user_id,
            test_id=test_id,
            purchase_date=utc_now(),
            payment_amount=Decimal(str(payment_amount)),
            payment_method=payment_method,
            transaction_id=transaction_id,
            status=PurchaseStatus.ACTIVE.value,
        )
        self.db.add(purchase)
        self.db.commit()
        self.db.refresh(purchase)
        return purchase_view(purchase)

    def refund(self, user_id: int, test_id: str) -> base.View | None:
        purchase = self._active(user_id, test_id)
        if purchase is None:
            return None
        purchase.status = PurchaseStatus.REFUNDED.value
        self.db.commit()
        self.db.refresh(purchase)
        return purchase_view(purchase)
