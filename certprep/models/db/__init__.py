"""Database models."""
from certprep.models.db.user import AuthSession, MagicLink, User
from certprep.models.db.catalog import (
    CHOICE_TYPES,
    Answer,
    Category,
    Difficulty,
    DragDropItem,
    MatchItem,
    Question,
    QuestionType,
    SequenceItem,
    Test,
    TestQuestion,
    test_categories,
)
from certprep.models.db.session import SessionStatus, TestSession, UserAnswer
from certprep.models.db.purchase import PurchaseStatus, UserTestPurchase

__all__ = [
    "User",
    "AuthSession",
    "MagicLink",
    "CHOICE_TYPES",
    "Answer",
    "Category",
    "Difficulty",
    "DragDropItem",
    "MatchItem",
    "Question",
    "QuestionType",
    "SequenceItem",
    "Test",
    "TestQuestion",
    "test_categories",
    "SessionStatus",
    "TestSession",
    "UserAnswer",
    "PurchaseStatus",
    "UserTestPurchase",
]
