"""Per-entity repositories with an optional mock fallback for reads."""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session as DbSession

from certprep import config
from certprep.database import get_db
from certprep.repositories.base import FallbackPolicy, FallbackRepository
from certprep.repositories.mock import (
    MockCategoryRepository,
    MockPurchaseRepository,
    MockQuestionRepository,
    MockTestRepository,
)
from certprep.repositories.sql import (
    SqlCategoryRepository,
    SqlPurchaseRepository,
    SqlQuestionRepository,
    SqlTestRepository,
)


def _wrap(primary, fallback) -> FallbackRepository:
    return FallbackRepository(primary, fallback, FallbackPolicy.from_setting(config.DATA_FALLBACK))


def get_test_repository(db: Annotated[DbSession, Depends(get_db)]) -> FallbackRepository:
    return _wrap(SqlTestRepository(db), MockTestRepository())


def get_question_repository(db: Annotated[DbSession, Depends(get_db)]) -> FallbackRepository:
    return _wrap(SqlQuestionRepository(db), MockQuestionRepository())


def get_category_repository(db: Annotated[DbSession, Depends(get_db)]) -> FallbackRepository:
    return _wrap(SqlCategoryRepository(db), MockCategoryRepository())


def get_purchase_repository(db: Annotated[DbSession, Depends(get_db)]) -> FallbackRepository:
    return _wrap(SqlPurchaseRepository(db), MockPurchaseRepository())


Tests = Annotated[FallbackRepository, Depends(get_test_repository)]
Questions = Annotated[FallbackRepository, Depends(get_question_repository)]
Categories = Annotated[FallbackRepository, Depends(get_category_repository)]
Purchases = Annotated[FallbackRepository, Depends(get_purchase_repository)]

__all__ = [
    "FallbackPolicy",
    "FallbackRepository",
    "get_test_repository",
    "get_question_repository",
    "get_category_repository",
    "get_purchase_repository",
    "Tests",
    "Questions",
    "Categories",
    "Purchases",
]
