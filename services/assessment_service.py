import time
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, Optional

from core.config import QuizConfig
from core.logger import logger
from models.question import Category, Level, LEVEL_ORDER, Question
from models.session import QuizSession


@dataclass
class Breakdown:
    correct: int = 0
    total: int = 0

    @property
    def percentage(self) -> int:
        return percentage(self.correct, self.total)


@dataclass
class Assessment:
    level: Level
    percentage_score: int
    total_questions: int
    correct_answers: int
    earned_weight: int
    total_weight: int
    recommendation: str
    category_stats: Dict[Category, Breakdown] = field(default_factory=dict)
    level_stats: Dict[Level, Breakdown] = field(default_factory=dict)
    skipped_answers: int = 0
    completed_at: Optional[float] = None

    @property
    def category_percentages(self) -> Dict[str, int]:
        return {category.value: stats.percentage for category, stats in self.category_stats.items()}

    @property
    def level_percentages(self) -> Dict[str, int]:
        return {level.value: stats.percentage for level, stats in self.level_stats.items()}


@dataclass
class ResultRecord:
    """Flattened result handed to the monitoring collector."""
    user_id: int
    username: Optional[str]
    level: str
    percentage_score: int
    correct_answers: int
    total_questions: int
    category_percentages: Dict[str, int]
    duration_seconds: int
    completed_at: float

    def to_dict(self) -> dict:
        return asdict(self)


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; scores use the schoolbook rule
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def percentage(part: int, whole: int) -> int:
    if whole == 0:
        return 0
    return round_half_up(part * 100 / whole)


class AssessmentService:
    """Turns a finished session into a weighted score and a CEFR level. Has no side effects."""

    def __init__(self, config: Optional[QuizConfig] = None):
        self.config = config or QuizConfig()

    def weight_for(self, question: Question) -> int:
        if question.weight:
            return question.weight
        return self.config.scoring.weights.for_level(question.level)

    def assess(self, session: QuizSession, questions: Iterable[Question], completed_at: Optional[float] = None) -> Assessment:
        by_id = {q.id: q for q in questions}

        total_weight = 0
        earned_weight = 0
        skipped = 0
        matched = 0
        matched_correct = 0
        category_stats = {category: Breakdown() for category in Category}
        level_stats = {level: Breakdown() for level in LEVEL_ORDER}

        for answer in session.answers:
            question = by_id.get(answer.question_id)
            if question is None:
                skipped += 1
                continue

            matched += 1
            weight = self.weight_for(question)
            total_weight += weight

            category_stats[question.category].total += 1
            level_stats[question.level].total += 1
            if answer.is_correct:
                matched_correct += 1
                earned_weight += weight
                category_stats[question.category].correct += 1
                level_stats[question.level].correct += 1

        if skipped:
            logger.warning(
                "Answers reference questions missing from the assessed set",
                user_id=session.user_id, skipped=skipped, answered=len(session.answers),
            )

        score = percentage(earned_weight, total_weight)
        level = self.determine_level(score)

        return Assessment(
            level=level,
            percentage_score=score,
            total_questions=matched,
            correct_answers=matched_correct,
            earned_weight=earned_weight,
            total_weight=total_weight,
            recommendation=self.get_recommendation(level),
            category_stats=category_stats,
            level_stats=level_stats,
            skipped_answers=skipped,
            completed_at=completed_at if completed_at is not None else session.end_time,
        )

    def determine_level(self, score: int) -> Level:
        thresholds = self.config.scoring.level_thresholds
        for level in LEVEL_ORDER[:-1]:
            if score <= thresholds.for_level(level).max:
                return level
        return LEVEL_ORDER[-1]

    def get_recommendation(self, level: Level) -> str:
        return self.config.recommendations.for_level(level)

    def build_result_record(self, session: QuizSession, assessment: Assessment) -> ResultRecord:
        completed_at = assessment.completed_at or time.time()
        return ResultRecord(
            user_id=session.user_id,
            username=session.username,
            level=assessment.level.value,
            percentage_score=assessment.percentage_score,
            correct_answers=assessment.correct_answers,
            total_questions=assessment.total_questions,
            category_percentages=assessment.category_percentages,
            duration_seconds=calculate_duration(session.start_time, session.end_time or completed_at),
            completed_at=completed_at,
        )


def calculate_duration(start: float, end: float) -> int:
    return max(int(end - start), 0)
