"""
Pytest configuration and fixtures for English Level Bot tests.
"""
import sys
import os
import random
from unittest.mock import MagicMock

import pytest

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)

from core.config import QuizConfig, QuizPlan
from services.assessment_service import AssessmentService
from services.question_service import QuestionService
from services.quiz_service import QuizService
from services.selection_service import SelectionService
from services.session_service import SessionStore

LEVELS = ("A1", "A2", "B1", "B2")
TIMEOUT_SECONDS = 30 * 60


class FakeClock:
    """Manually advanced clock for session expiry tests"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_question(question_id, level="A1", category="grammar", correct=0, **extra):
    question = {
        "id": question_id,
        "text": f"Question {question_id}?",
        "options": ["first", "second", "third", "fourth"],
        "correct": correct,
        "level": level,
        "category": category,
    }
    question.update(extra)
    return question


@pytest.fixture
def question_bank():
    """Eight questions per level, vocabulary and grammar alternating"""
    bank = []
    question_id = 1
    for level in LEVELS:
        for i in range(8):
            category = "vocabulary" if i % 2 else "grammar"
            bank.append(make_question(question_id, level=level, category=category, correct=i % 4))
            question_id += 1
    return bank


@pytest.fixture
def question_service(question_bank):
    service = QuestionService()
    service.load(question_bank)
    return service


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_store(clock):
    return SessionStore(timeout_seconds=TIMEOUT_SECONDS, clock=clock)


@pytest.fixture
def quiz_config():
    return QuizConfig(test=QuizPlan(total_questions=4))


@pytest.fixture
def quiz_service(question_service, session_store, quiz_config):
    return QuizService(
        questions=question_service,
        selector=SelectionService(question_service, rng=random.Random(42)),
        sessions=session_store,
        assessor=AssessmentService(quiz_config),
        config=quiz_config,
        monitoring=MagicMock(),
    )
