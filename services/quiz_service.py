from collections import Counter
from dataclasses import dataclass
from typing import Optional, Tuple

from core.config import QuizConfig
from core.exceptions import NoActiveTestError, SessionNotFoundError
from core.logger import logger
from models.question import LEVEL_ORDER, Question
from models.session import AnswerRecord, QuizSession, SessionState
from services.assessment_service import Assessment, AssessmentService, ResultRecord
from services.monitoring_service import MonitoringService
from services.question_service import QuestionService
from services.selection_service import SelectionService
from services.session_service import SessionStore


@dataclass(frozen=True)
class QuestionPayload:
    question_id: int
    text: str
    options: Tuple[str, ...]
    number: int
    total: int

    @property
    def progress(self) -> float:
        return self.number / self.total if self.total else 0.0


@dataclass(frozen=True)
class AnswerFeedback:
    is_correct: bool
    correct_option: str


@dataclass
class AnswerOutcome:
    accepted: bool
    feedback: Optional[AnswerFeedback] = None
    next_question: Optional[QuestionPayload] = None
    assessment: Optional[Assessment] = None
    result: Optional[ResultRecord] = None

    @property
    def finished(self) -> bool:
        return self.assessment is not None


@dataclass
class StartOutcome:
    session: QuizSession
    resumed: bool


def build_payload(session: QuizSession) -> Optional[QuestionPayload]:
    question: Question = session.current_question()
    if question is None:
        return None
    return QuestionPayload(
        question_id=question.id,
        text=question.text,
        options=question.options,
        number=session.current_index + 1,
        total=session.total_questions,
    )


class QuizService:
    """
    Runs one quiz event at a time per user on top of the session store.
    Every public coroutine holds the user's lock for its whole duration.
    """

    def __init__(
        self,
        questions: QuestionService,
        selector: SelectionService,
        sessions: SessionStore,
        assessor: AssessmentService,
        config: Optional[QuizConfig] = None,
        monitoring: Optional[MonitoringService] = None,
    ):
        self.questions = questions
        self.selector = selector
        self.sessions = sessions
        self.assessor = assessor
        self.config = config or QuizConfig()
        self.monitoring = monitoring
        self.completed_count = 0
        self.level_distribution = Counter()

    async def start(self, user_id: int, username: Optional[str] = None) -> StartOutcome:
        async with self.sessions.acquire(user_id):
            session = self.sessions.get(user_id)
            if session is not None and session.state == SessionState.IN_PROGRESS:
                return StartOutcome(session=session, resumed=True)
            return StartOutcome(session=self.sessions.create(user_id, username), resumed=False)

    async def begin_test(self, user_id: int) -> QuestionPayload:
        async with self.sessions.acquire(user_id):
            if self.sessions.get(user_id) is None:
                raise SessionNotFoundError(user_id)

            plan = self.config.test
            selected = self.selector.select(plan.total_questions, plan.questions_per_level)
            session = self.sessions.start_test(user_id, selected)
            logger.info("Test started", user_id=user_id, questions=len(selected))

            payload = build_payload(session)
            if payload is None:
                # Empty question bank; nothing to ask
                self.sessions.clear(user_id)
                raise NoActiveTestError(user_id, SessionState.READY.value)
            return payload

    async def current_question(self, user_id: int) -> Optional[QuestionPayload]:
        async with self.sessions.acquire(user_id):
            session = self.sessions.get(user_id)
            if session is None or session.state != SessionState.IN_PROGRESS:
                return None
            return build_payload(session)

    async def answer(self, user_id: int, question_id: int, selected_index: int) -> AnswerOutcome:
        async with self.sessions.acquire(user_id):
            session = self.sessions.get(user_id)
            if session is None:
                raise SessionNotFoundError(user_id)
            if session.state != SessionState.IN_PROGRESS:
                raise NoActiveTestError(user_id, session.state.value)

            current = session.current_question()
            if current is None or current.id != question_id:
                # Double tap or an old keyboard; the current question already moved on
                logger.info("Duplicate or stale answer", user_id=user_id, question_id=question_id)
                return AnswerOutcome(accepted=False, next_question=build_payload(session))

            # Graded against the question as it was served
            check = self.questions.evaluate(current, selected_index)
            record = AnswerRecord(
                question_id=question_id,
                selected_index=selected_index,
                is_correct=check.is_correct,
                weight=check.weight,
                timestamp=self.sessions.clock(),
            )
            session = self.sessions.record_answer(user_id, record, expected_index=session.current_index)
            if session is None:
                return AnswerOutcome(accepted=False)

            feedback = AnswerFeedback(is_correct=check.is_correct, correct_option=check.correct_option)
            if not session.is_complete:
                return AnswerOutcome(accepted=True, feedback=feedback, next_question=build_payload(session))

            assessment, result = self._finish(session)
            return AnswerOutcome(accepted=True, feedback=feedback, assessment=assessment, result=result)

    def _finish(self, session: QuizSession) -> Tuple[Assessment, ResultRecord]:
        user_id = session.user_id
        self.sessions.complete(user_id)
        assessment = self.assessor.assess(session, session.questions)
        result = self.assessor.build_result_record(session, assessment)

        self.completed_count += 1
        self.level_distribution[assessment.level.value] += 1
        logger.info(
            "Test completed", user_id=user_id, level=assessment.level.value,
            score=assessment.percentage_score, duration=result.duration_seconds,
        )

        if self.monitoring is not None:
            self.monitoring.forward_in_background(result)

        self.sessions.clear(user_id)
        if self.config.test.rearm_after_completion:
            self.sessions.create(user_id, session.username)
        return assessment, result

    async def restart(self, user_id: int, username: Optional[str] = None) -> QuizSession:
        async with self.sessions.acquire(user_id):
            logger.info("Test restarted", user_id=user_id)
            return self.sessions.reset(user_id, username)

    async def cancel(self, user_id: int) -> bool:
        async with self.sessions.acquire(user_id):
            return self.sessions.clear(user_id)

    async def has_active_test(self, user_id: int) -> bool:
        async with self.sessions.acquire(user_id):
            session = self.sessions.get(user_id)
            return session is not None and session.state == SessionState.IN_PROGRESS

    def stats(self) -> dict:
        return {
            "sessions": self.sessions.stats(),
            "questions": self.questions.stats(),
            "total_completed": self.completed_count,
            "level_distribution": {level.value: self.level_distribution[level.value] for level in LEVEL_ORDER},
        }

    def daily_report(self) -> dict:
        """Counters for the daily report; resets them afterwards."""
        report = {
            "total_completed": self.completed_count,
            "in_progress": self.sessions.stats()["in_progress"],
            "level_distribution": {level.value: self.level_distribution[level.value] for level in LEVEL_ORDER},
        }
        self.completed_count = 0
        self.level_distribution.clear()
        return report
