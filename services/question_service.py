import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from core.config import LevelWeights
from core.exceptions import NotFoundError, ValidationError
from core.logger import logger
from models.question import Category, Level, LEVEL_ORDER, Question


@dataclass(frozen=True)
class AnswerCheck:
    is_correct: bool
    correct_index: int
    correct_option: str
    selected_index: int
    weight: int


class QuestionService:
    """Owns the validated question bank and answers lookups over it."""

    def __init__(self, weights: Optional[LevelWeights] = None):
        self.weights = weights or LevelWeights()
        self.source_path: Optional[Path] = None
        self._questions: List[Question] = []
        self._by_id: Dict[int, Question] = {}

    def load(self, source: Union[str, Path, dict, list]) -> int:
        """
        Load and validate a question bank. Accepts a JSON file path, a parsed
        ``{"questions": [...]}`` document or a bare list. All-or-nothing: the
        current set is only replaced if every question validates.
        """
        path = None
        if isinstance(source, (str, Path)):
            path = Path(source)
            data = self._read_file(path)
        else:
            data = source

        raw_questions = data.get("questions") if isinstance(data, dict) else data
        if not isinstance(raw_questions, list):
            raise ValidationError("Question bank must contain a list of questions", field="questions")

        questions = []
        by_id = {}
        for position, raw in enumerate(raw_questions):
            question = self._validate(raw, position)
            if question.id in by_id:
                raise ValidationError(f"Question {question.id} has a duplicate id", question_id=question.id, field="id")
            by_id[question.id] = question
            questions.append(question)

        self._questions = questions
        self._by_id = by_id
        if path is not None:
            self.source_path = path
        logger.info("Questions loaded", total=len(questions), source=str(path) if path else "inline")
        return len(questions)

    def reload(self) -> int:
        if self.source_path is None:
            raise ValidationError("Question bank was not loaded from a file, nothing to reload")
        return self.load(self.source_path)

    @staticmethod
    def _read_file(path: Path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except OSError as e:
            raise ValidationError(f"Failed to read questions from {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ValidationError(f"Questions file {path} is not valid JSON: {e.msg}") from e

    @staticmethod
    def _validate(raw, position: int) -> Question:
        if not isinstance(raw, dict):
            raise ValidationError(f"Question at position {position} must be an object")

        question_id = raw.get("id", "unknown")
        try:
            return Question.model_validate(raw)
        except PydanticValidationError as e:
            error = e.errors()[0]
            field = str(error["loc"][0]) if error["loc"] else None
            if error["type"] == "missing":
                message = f"Question {question_id} missing required field: {field}"
            else:
                message = f"Question {question_id} has invalid {field}: {error['msg']}"
            raise ValidationError(message, question_id=question_id, field=field) from e

    def all(self) -> List[Question]:
        return list(self._questions)

    def by_level(self, level: Union[Level, str]) -> List[Question]:
        return [q for q in self._questions if q.level == level]

    def by_category(self, category: Union[Category, str]) -> List[Question]:
        return [q for q in self._questions if q.category == category]

    def by_id(self, question_id: int) -> Optional[Question]:
        return self._by_id.get(question_id)

    def weight_for(self, question: Question) -> int:
        if question.weight:
            return question.weight
        return self.weights.for_level(question.level)

    def check_answer(self, question_id: int, selected_index: int) -> AnswerCheck:
        question = self.by_id(question_id)
        if question is None:
            raise NotFoundError(f"Question {question_id} not found")
        return self.evaluate(question, selected_index)

    def evaluate(self, question: Question, selected_index: int) -> AnswerCheck:
        return AnswerCheck(
            is_correct=question.correct_index == selected_index,
            correct_index=question.correct_index,
            correct_option=question.correct_option,
            selected_index=selected_index,
            weight=self.weight_for(question),
        )

    def stats(self) -> dict:
        return {
            "total": len(self._questions),
            "by_level": {level.value: len(self.by_level(level)) for level in LEVEL_ORDER},
            "by_category": {category.value: len(self.by_category(category)) for category in Category},
        }
