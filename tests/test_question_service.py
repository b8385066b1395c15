import json
from pathlib import Path

import pytest

from conftest import make_question
from core.config import LevelWeights
from core.exceptions import NotFoundError, ValidationError
from models.question import Category, Level
from services.question_service import QuestionService

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def test_load_accepts_list_and_document(question_bank):
    service = QuestionService()
    assert service.load(question_bank) == 32
    assert service.load({"questions": question_bank[:4]}) == 4
    assert [q.id for q in service.all()] == [1, 2, 3, 4]


def test_bundled_question_bank_is_valid():
    service = QuestionService()
    service.load(DATA_DIR / "questions.json")

    stats = service.stats()
    assert stats["total"] == 32
    assert all(count >= 5 for count in stats["by_level"].values())
    assert stats["by_category"]["vocabulary"] > 0
    assert stats["by_category"]["grammar"] > 0


def test_missing_field_names_question_and_field():
    raw = make_question(7)
    del raw["level"]

    with pytest.raises(ValidationError) as exc_info:
        QuestionService().load([raw])

    assert exc_info.value.question_id == 7
    assert exc_info.value.field == "level"
    assert "missing required field" in str(exc_info.value)


@pytest.mark.parametrize("override", [
    {"options": ["a", "b", "c"]},
    {"options": ["a", "b", "c", "d", "e"]},
    {"correct": 4},
    {"correct": -1},
    {"level": "C1"},
    {"category": "listening"},
    {"id": 0},
    {"weight": 0},
])
def test_invalid_question_is_rejected(override):
    with pytest.raises(ValidationError):
        QuestionService().load([make_question(1, **override)])


def test_failed_load_keeps_previous_bank(question_service, question_bank):
    broken = question_bank + [make_question(99, correct=9)]

    with pytest.raises(ValidationError) as exc_info:
        question_service.load(broken)

    assert exc_info.value.question_id == 99
    assert len(question_service.all()) == 32
    assert question_service.by_id(99) is None


def test_duplicate_ids_are_rejected():
    with pytest.raises(ValidationError) as exc_info:
        QuestionService().load([make_question(3), make_question(3, level="B1")])
    assert exc_info.value.field == "id"


def test_bank_without_question_list_is_rejected():
    with pytest.raises(ValidationError):
        QuestionService().load({"items": []})


def test_load_and_reload_from_file(tmp_path, question_bank):
    path = tmp_path / "questions.json"
    path.write_text(json.dumps({"questions": question_bank[:8]}), encoding="utf-8")

    service = QuestionService()
    assert service.load(str(path)) == 8

    path.write_text(json.dumps({"questions": question_bank}), encoding="utf-8")
    assert service.reload() == 32


def test_reload_without_file_fails(question_service):
    with pytest.raises(ValidationError):
        question_service.reload()


def test_unreadable_file_fails(tmp_path):
    path = tmp_path / "questions.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValidationError):
        QuestionService().load(path)
    with pytest.raises(ValidationError):
        QuestionService().load(tmp_path / "missing.json")


def test_lookups(question_service):
    assert len(question_service.by_level(Level.B1)) == 8
    assert len(question_service.by_level("A2")) == 8
    assert len(question_service.by_category(Category.VOCABULARY)) == 16
    assert question_service.by_id(1).level == Level.A1
    assert question_service.by_id(1000) is None


def test_check_answer(question_service):
    question = question_service.by_id(10)
    right = question_service.check_answer(10, question.correct_index)
    wrong = question_service.check_answer(10, (question.correct_index + 1) % 4)

    assert right.is_correct
    assert not wrong.is_correct
    assert wrong.correct_option == question.options[question.correct_index]
    assert right.weight == 2


def test_check_answer_unknown_question(question_service):
    with pytest.raises(NotFoundError):
        question_service.check_answer(1000, 0)


def test_weights_follow_level_unless_overridden():
    service = QuestionService(weights=LevelWeights(A1=1, A2=1, B1=5, B2=10))
    service.load([make_question(1, level="B1"), make_question(2, level="B2", weight=3)])

    assert service.weight_for(service.by_id(1)) == 5
    assert service.weight_for(service.by_id(2)) == 3
