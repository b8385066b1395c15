from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PositiveInt


class Level(str, Enum):
    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"


class Category(str, Enum):
    VOCABULARY = "vocabulary"
    GRAMMAR = "grammar"


LEVEL_ORDER = (Level.A1, Level.A2, Level.B1, Level.B2)


class Question(BaseModel):
    # Field order is the order validation errors are reported in
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: PositiveInt
    text: str
    options: Tuple[str, ...] = Field(min_length=4, max_length=4)
    correct_index: int = Field(alias="correct", ge=0, le=3)
    level: Level
    category: Category
    weight: Optional[PositiveInt] = None

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_index]
