import random
from typing import Dict, List, Optional, Sequence, TypeVar, Union

from core.logger import logger
from models.question import Level, LEVEL_ORDER, Question
from services.question_service import QuestionService

T = TypeVar("T")


def shuffled(items: Sequence[T], rng: random.Random) -> List[T]:
    """Fisher-Yates shuffle into a new list; the input is left untouched."""
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


class SelectionService:
    def __init__(self, questions: QuestionService, rng: Optional[random.Random] = None):
        self.questions = questions
        self.rng = rng or random.Random()

    def select(self, total_count: int, per_level_quotas: Optional[Dict[Union[Level, str], int]] = None) -> List[Question]:
        if per_level_quotas:
            quotas = {Level(level): count for level, count in per_level_quotas.items()}
        else:
            # Floor division: the remainder is dropped, e.g. 22 -> 5 per level -> 20 questions
            per_level = max(total_count, 0) // len(LEVEL_ORDER)
            quotas = {level: per_level for level in LEVEL_ORDER}

        selected = []
        for level, count in quotas.items():
            pool = self.questions.by_level(level)
            picked = shuffled(pool, self.rng)[:max(count, 0)]
            if len(picked) < count:
                logger.warning("Not enough questions for level", level=level.value, requested=count, available=len(pool))
            selected.extend(picked)

        result = shuffled(selected, self.rng)
        if len(result) > total_count:
            # Quotas summing past the target never produce a longer test
            result = result[:max(total_count, 0)]
        return result
