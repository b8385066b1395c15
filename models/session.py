from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from models.question import Question


class SessionState(str, Enum):
    READY = "ready"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class AnswerRecord:
    question_id: int
    selected_index: int
    is_correct: bool
    weight: int
    timestamp: float


@dataclass
class QuizSession:
    user_id: int
    username: Optional[str]
    start_time: float
    last_activity: float
    state: SessionState = SessionState.READY
    questions: List[Question] = field(default_factory=list)
    current_index: int = 0
    answers: List[AnswerRecord] = field(default_factory=list)
    score: int = 0
    end_time: Optional[float] = None

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def is_complete(self) -> bool:
        return self.current_index >= len(self.questions)

    def current_question(self) -> Optional[Question]:
        if self.is_complete:
            return None
        return self.questions[self.current_index]
