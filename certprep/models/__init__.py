"""Pydantic models."""
from certprep.models.auth import (
    DataResponse,
    MagicLinkRequest,
    MagicLinkResponse,
    MagicLinkVerify,
    MessageResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    PromoteRequest,
    SessionInfo,
    TokenResponse,
    UserLogin,
    UserRegister,
)
from certprep.models.catalog import (
    CategoryCreate,
    CategoryUpdate,
    PositionUpdate,
    QuestionCreate,
    QuestionUpdate,
    TestCategoriesUpdate,
    TestCreate,
    TestImport,
    TestQuestionsAdd,
    TestUpdate,
)
from certprep.models.purchases import PurchaseCreate
from certprep.models.sessions import (
    AnswerSubmission,
    BulkAnswersRequest,
    FinishRequest,
    FlagRequest,
    SessionStartRequest,
    SessionUpdateRequest,
)

__all__ = [
    "DataResponse",
    "MagicLinkRequest",
    "MagicLinkResponse",
    "MagicLinkVerify",
    "MessageResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "PromoteRequest",
    "SessionInfo",
    "TokenResponse",
    "UserLogin",
    "UserRegister",
    "CategoryCreate",
    "CategoryUpdate",
    "PositionUpdate",
    "QuestionCreate",
    "QuestionUpdate",
    "TestCategoriesUpdate",
    "TestCreate",
    "TestImport",
    "TestQuestionsAdd",
    "TestUpdate",
    "PurchaseCreate",
    "AnswerSubmission",
    "BulkAnswersRequest",
    "FinishRequest",
    "FlagRequest",
    "SessionStartRequest",
    "SessionUpdateRequest",
]
