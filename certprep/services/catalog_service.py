"""Admin catalog management: categories, questions, tests and their links."""
import logging
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session as DbSession

from certprep.models.catalog import (
    CategoryCreate,
    CategoryUpdate,
    QuestionCreate,
    QuestionUpdate,
    TestCreate,
    TestImport,
    TestUpdate,
)
from certprep.models.db import (
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
    User,
)
from certprep.repositories.mappers import question_view

logger = logging.getLogger(__name__)

# Answer-record field on the request for each question type
VARIANT_FIELDS = {
    QuestionType.SINGLE_CHOICE: "answers",
    QuestionType.MULTIPLE_CHOICE: "answers",
    QuestionType.TRUE_FALSE: "answers",
    QuestionType.MATCHING: "matchItems",
    QuestionType.SEQUENCE: "sequenceItems",
    QuestionType.DRAG_DROP: "dragDropItems",
}


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


# Categories

def create_category(db: DbSession, data: CategoryCreate) -> Category:
    if db.execute(select(Category).where(Category.name == data.name)).scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category already exists")
    category = Category(name=data.name, description=data.description)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(db: DbSession, category_id: str, data: CategoryUpdate) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise _not_found("Category")
    changes = data.model_dump(exclude_unset=True)
    if "name" in changes and changes["name"] != category.name:
        clash = db.execute(
            select(Category).where(Category.name == changes["name"])
        ).scalar_one_or_none()
        if clash is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category already exists")
    for field, value in changes.items():
        setattr(category, field, value)
    db.commit()
    db.refresh(category)
    return category


def delete_category(db: DbSession, category_id: str) -> None:
    """Categories still used by questions cannot be deleted."""
    category = db.get(Category, category_id)
    if category is None:
        raise _not_found("Category")
    in_use = db.execute(
        select(func.count(Question.id)).where(Question.category_id == category_id)
    ).scalar_one()
    if in_use:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Category is used by {in_use} question(s)",
        )
    db.delete(category)
    db.commit()


def _require_category(db: DbSession, category_id: str | None) -> None:
    if category_id and db.get(Category, category_id) is None:
        raise _bad_request(f"Unknown category: {category_id}")


# Questions

def _normalize_type(value: str) -> QuestionType:
    try:
        return QuestionType.normalize(value)
    except ValueError:
        raise _bad_request(f"Unsupported question type: {value}") from None


def _normalize_difficulty(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        return Difficulty(value.strip().lower()).value
    except ValueError:
        raise _bad_request(f"Unsupported difficulty: {value}") from None


def validate_variant(question_type: QuestionType, lists: dict[str, list | None]) -> None:
    """
    Check that only the answer records matching the type are given and that
    they describe a gradable question.
    """
    expected = VARIANT_FIELDS[question_type]
    for field, items in lists.items():
        if field != expected and items:
            raise _bad_request(f"{field} not allowed for {question_type.value} questions")
    items = lists.get(expected) or []

    if question_type in CHOICE_TYPES:
        if len(items) < 2:
            raise _bad_request("Choice questions need at least two answers")
        correct = sum(1 for item in items if item.isCorrect)
        if question_type is QuestionType.TRUE_FALSE and len(items) != 2:
            raise _bad_request("True/false questions have exactly two answers")
        if question_type is QuestionType.MULTIPLE_CHOICE:
            if correct < 1:
                raise _bad_request("Multiple-choice questions need at least one correct answer")
        elif correct != 1:
            raise _bad_request(f"{question_type.value} questions need exactly one correct answer")
    elif question_type is QuestionType.MATCHING:
        if len(items) < 2:
            raise _bad_request("Matching questions need at least two pairs")
    elif question_type is QuestionType.SEQUENCE:
        positions = sorted(item.correctPosition for item in items)
        if len(items) < 2 or positions != list(range(1, len(items) + 1)):
            raise _bad_request("Sequence positions must run 1..n without gaps")
    elif question_type is QuestionType.DRAG_DROP:
        if not items:
            raise _bad_request("Drag-drop questions need at least one item")


def _set_variant(question: Question, question_type: QuestionType, lists: dict[str, list | None]) -> None:
    """Replace the answer records of a question with those for its type."""
    question.answers.clear()
    question.match_items.clear()
    question.sequence_items.clear()
    question.drag_drop_items.clear()
    items = lists.get(VARIANT_FIELDS[question_type]) or []
    if question_type in CHOICE_TYPES:
        question.answers.extend(
            Answer(text=item.text, is_correct=item.isCorrect, position=index)
            for index, item in enumerate(items)
        )
    elif question_type is QuestionType.MATCHING:
        question.match_items.extend(
            MatchItem(left_text=item.leftText, right_text=item.rightText) for item in items
        )
    elif question_type is QuestionType.SEQUENCE:
        question.sequence_items.extend(
            SequenceItem(text=item.text, correct_position=item.correctPosition) for item in items
        )
    else:
        question.drag_drop_items.extend(
            DragDropItem(content=item.content, target_zone=item.targetZone) for item in items
        )


def _variant_lists(data: QuestionCreate | QuestionUpdate) -> dict[str, list | None]:
    return {field: getattr(data, field) for field in set(VARIANT_FIELDS.values())}


def build_question(db: DbSession, data: QuestionCreate, user: User | None, question_id: str | None = None) -> Question:
    """Validate and add a question to the session (no commit)."""
    question_type = _normalize_type(data.type)
    lists = _variant_lists(data)
    validate_variant(question_type, lists)
    _require_category(db, data.categoryId)
    question = Question(
        text=data.text,
        type=question_type.value,
        media_url=data.mediaUrl,
        category_id=data.categoryId,
        difficulty=_normalize_difficulty(data.difficulty),
        points=data.points,
        explanation=data.explanation,
        created_by=user.id if user else None,
    )
    if question_id:
        question.id = question_id
    _set_variant(question, question_type, lists)
    db.add(question)
    return question


def create_question(db: DbSession, data: QuestionCreate, user: User) -> Question:
    question = build_question(db, data, user)
    if data.testId:
        test = db.get(Test, data.testId)
        if test is None:
            raise _bad_request(f"Unknown test: {data.testId}")
        db.flush()
        _append_questions(db, test, [question.id])
    db.commit()
    db.refresh(question)
    logger.info("Created %s question %s", question.type, question.id)
    return question


def get_question(db: DbSession, question_id: str) -> Question:
    question = db.get(Question, question_id)
    if question is None:
        raise _not_found("Question")
    return question


def update_question(db: DbSession, question_id: str, data: QuestionUpdate) -> Question:
    question = get_question(db, question_id)
    changes = data.model_dump(exclude_unset=True)
    question_type = _normalize_type(changes.get("type") or question.type)
    lists = _variant_lists(data)

    type_changed = question_type.value != question.type
    if type_changed or any(field in changes for field in lists):
        if type_changed and not lists.get(VARIANT_FIELDS[question_type]):
            raise _bad_request(
                f"Changing the type requires {VARIANT_FIELDS[question_type]} for {question_type.value}"
            )
        validate_variant(question_type, lists)
        _set_variant(question, question_type, lists)
    question.type = question_type.value

    if "categoryId" in changes:
        _require_category(db, changes["categoryId"])
        question.category_id = changes["categoryId"]
    if "difficulty" in changes:
        question.difficulty = _normalize_difficulty(changes["difficulty"])
    for field, attr in (
        ("text", "text"),
        ("mediaUrl", "media_url"),
        ("points", "points"),
        ("explanation", "explanation"),
    ):
        if field in changes and changes[field] is not None:
            setattr(question, attr, changes[field])
    db.commit()
    db.refresh(question)
    return question


def delete_question(db: DbSession, question_id: str) -> None:
    question = get_question(db, question_id)
    db.delete(question)
    db.commit()


def preview_question(db: DbSession, question_id: str) -> dict[str, Any]:
    """Full question view with the tests it belongs to."""
    question = get_question(db, question_id)
    view = question_view(question)
    view["tests"] = [
        {"id": link.test.id, "title": link.test.title, "position": link.position}
        for link in question.test_links
    ]
    return view


# Tests

def _load_categories(db: DbSession, category_ids: list[str]) -> list[Category]:
    categories = []
    for category_id in dict.fromkeys(category_ids):
        category = db.get(Category, category_id)
        if category is None:
            raise _bad_request(f"Unknown category: {category_id}")
        categories.append(category)
    return categories


def _append_questions(db: DbSession, test: Test, question_ids: list[str]) -> list[str]:
    """Add questions after the existing ones; ids already in the test are skipped."""
    present = {link.question_id for link in test.test_questions}
    next_position = max((link.position for link in test.test_questions), default=-1) + 1
    added = []
    for question_id in dict.fromkeys(question_ids):
        if question_id in present:
            continue
        if db.get(Question, question_id) is None:
            raise _bad_request(f"Unknown question: {question_id}")
        test.test_questions.append(TestQuestion(question_id=question_id, position=next_position))
        next_position += 1
        added.append(question_id)
    return added


def get_test(db: DbSession, test_id: str) -> Test:
    test = db.get(Test, test_id)
    if test is None:
        raise _not_found("Test")
    return test


def _new_test(db: DbSession, data: TestCreate, user: User | None, extra_question_ids: tuple[str, ...] = ()) -> Test:
    test = Test(
        title=data.title,
        description=data.description,
        instructions=data.instructions,
        time_limit=data.timeLimit,
        is_active=data.isActive,
        price=data.price,
        currency=data.currency.upper(),
        is_free=data.isFree,
        allow_backward_navigation=data.allowBackwardNavigation,
        created_by=user.id if user else None,
    )
    test.categories = _load_categories(db, data.categoryIds)
    db.add(test)
    db.flush()
    _append_questions(db, test, list(data.selectedQuestions) + list(extra_question_ids))
    return test


def create_test(db: DbSession, data: TestCreate, user: User | None) -> Test:
    """Create the test, its categories and its questions in one transaction."""
    try:
        test = _new_test(db, data, user)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(test)
    logger.info("Created test %s with %s question(s)", test.id, len(test.test_questions))
    return test


def update_test(db: DbSession, test_id: str, data: TestUpdate) -> Test:
    test = get_test(db, test_id)
    fields = {
        "title": "title",
        "description": "description",
        "instructions": "instructions",
        "timeLimit": "time_limit",
        "isActive": "is_active",
        "price": "price",
        "currency": "currency",
        "isFree": "is_free",
        "allowBackwardNavigation": "allow_backward_navigation",
    }
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field not in ("description", "instructions"):
            continue
        if field == "currency":
            value = value.upper()
        setattr(test, fields[field], value)
    db.commit()
    db.refresh(test)
    return test


def delete_test(db: DbSession, test_id: str) -> None:
    """Deleting a test removes its sessions and purchases too."""
    test = get_test(db, test_id)
    db.delete(test)
    db.commit()
    logger.info("Deleted test %s", test_id)


def set_test_categories(db: DbSession, test_id: str, category_ids: list[str]) -> Test:
    test = get_test(db, test_id)
    test.categories = _load_categories(db, category_ids)
    db.commit()
    db.refresh(test)
    return test


def list_test_questions(db: DbSession, test_id: str) -> list[dict[str, Any]]:
    test = get_test(db, test_id)
    return [
        {**question_view(link.question), "position": link.position}
        for link in test.test_questions
    ]


def add_test_questions(db: DbSession, test_id: str, question_ids: list[str]) -> list[str]:
    test = get_test(db, test_id)
    try:
        added = _append_questions(db, test, question_ids)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return added


def remove_test_question(db: DbSession, test_id: str, question_id: str) -> None:
    test = get_test(db, test_id)
    link = next((link for link in test.test_questions if link.question_id == question_id), None)
    if link is None:
        raise _not_found("Question in test")
    test.test_questions.remove(link)
    _renumber(test.test_questions)
    db.commit()


def move_test_question(db: DbSession, test_id: str, question_id: str, position: int) -> list[dict[str, Any]]:
    """Move a question to a 0-based position, shifting the others."""
    test = get_test(db, test_id)
    links = list(test.test_questions)
    link = next((link for link in links if link.question_id == question_id), None)
    if link is None:
        raise _not_found("Question in test")
    links.remove(link)
    links.insert(min(position, len(links)), link)
    _renumber(links)
    db.commit()
    db.expire(test, ["test_questions"])
    return list_test_questions(db, test_id)


def _renumber(links: list[TestQuestion]) -> None:
    for index, link in enumerate(links):
        link.position = index


def import_test(db: DbSession, data: TestImport, user: User | None = None) -> Test:
    """Create a test together with inline question definitions, all or nothing."""
    try:
        questions = [build_question(db, q, user) for q in data.questions]
        db.flush()
        test = _new_test(db, data, user, tuple(q.id for q in questions))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(test)
    logger.info("Imported test %s with %s question(s)", test.id, len(test.test_questions))
    return test


def promote_user(db: DbSession, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise _not_found("User")
    user.is_admin = True
    db.commit()
    db.refresh(user)
    logger.info("User %s promoted to admin", user.id)
    return user
