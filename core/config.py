import json
import warnings
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import BaseModel, Field, PositiveInt, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.exceptions import ConfigFallbackWarning
from models.question import Level, LEVEL_ORDER


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    BOT_TOKEN: str = Field("", description="Telegram token of the assessment bot")
    ADMIN_ID: int = Field(0, description="Telegram ID of the admin")

    # Monitoring (optional)
    MONITOR_BOT_TOKEN: str = Field("", description="Token of the bot that posts results to the monitor chat")
    MONITOR_CHAT_ID: str = Field("", description="Chat that receives completed test results")
    MONITOR_COLLECTOR_URL: str = Field("", description="HTTP endpoint accepting JSON result records")
    MONITOR_TIMEOUT_SECONDS: float = 10.0

    # Data files
    QUESTIONS_PATH: str = "data/questions.json"
    QUIZ_CONFIG_PATH: str = "data/config.json"

    # Sessions
    SESSION_TIMEOUT_MINUTES: int = 30
    SESSION_SWEEP_SECONDS: int = 60

    # Daily report
    DAILY_STATS_HOUR: int = 23
    DAILY_STATS_MINUTE: int = 55
    TIMEZONE: str = "UTC"

    # Environment
    ENV: str = "production"  # development, staging, production
    DEBUG: bool = False


settings = Settings()


class LevelWeights(BaseModel):
    A1: PositiveInt = 1
    A2: PositiveInt = 2
    B1: PositiveInt = 3
    B2: PositiveInt = 4

    def for_level(self, level: Union[Level, str]) -> int:
        return getattr(self, Level(level).value)


class ThresholdRange(BaseModel):
    min: int = Field(ge=0, le=100)
    max: int = Field(ge=0, le=100)


class LevelThresholds(BaseModel):
    A1: ThresholdRange = ThresholdRange(min=0, max=25)
    A2: ThresholdRange = ThresholdRange(min=26, max=50)
    B1: ThresholdRange = ThresholdRange(min=51, max=75)
    B2: ThresholdRange = ThresholdRange(min=76, max=100)

    @model_validator(mode="after")
    def check_contiguous(self):
        # Ranges must start at 0, end at 100 and follow each other without gaps or overlaps
        ranges = [self.for_level(level) for level in LEVEL_ORDER]
        if ranges[0].min != 0 or ranges[-1].max != 100:
            raise ValueError("thresholds must cover 0..100")
        if any(r.min > r.max for r in ranges):
            raise ValueError("threshold min must not exceed max")
        for prev, cur in zip(ranges, ranges[1:]):
            if cur.min != prev.max + 1:
                raise ValueError("thresholds must be contiguous and increasing")
        return self

    def for_level(self, level: Union[Level, str]) -> ThresholdRange:
        return getattr(self, Level(level).value)


class ScoringConfig(BaseModel):
    weights: LevelWeights = LevelWeights()
    level_thresholds: LevelThresholds = LevelThresholds()


class Recommendations(BaseModel):
    A1: str = "Focus on basic vocabulary and simple grammar structures."
    A2: str = "Practice past and future tenses, expand your vocabulary."
    B1: str = "Work on more complex grammar and improve fluency."
    B2: str = "Focus on advanced vocabulary and complex sentence structures."
    fallback: str = "Keep practicing to improve your English skills!"

    def for_level(self, level: Union[Level, str]) -> str:
        try:
            return getattr(self, Level(level).value) or self.fallback
        except ValueError:
            return self.fallback


class QuizPlan(BaseModel):
    total_questions: PositiveInt = 20
    questions_per_level: Optional[Dict[Level, int]] = None
    rearm_after_completion: bool = True

    @model_validator(mode="after")
    def check_quotas(self):
        if self.questions_per_level and any(count < 0 for count in self.questions_per_level.values()):
            raise ValueError("questions_per_level counts must not be negative")
        return self


class BotTexts(BaseModel):
    welcome: str = (
        "🎓 Welcome to the English Level Bot!\n\n"
        "This bot will assess your English proficiency level (A1–B2)."
    )
    instructions: str = (
        "📝 Instructions:\n\n"
        "1. Each question has 4 options\n"
        "2. Select the correct answer\n"
        "3. Answer all questions to get your results"
    )
    completion: str = "🎉 Congratulations! You've completed the test!"
    restart: str = "🔄 Test restarted. Let's begin again!"
    cancel: str = "❌ Test cancelled. Your session has been cleared.\n\nUse /start to begin a new test."


class QuizConfig(BaseModel):
    scoring: ScoringConfig = ScoringConfig()
    recommendations: Recommendations = Recommendations()
    test: QuizPlan = QuizPlan()
    bot: BotTexts = BotTexts()


def _fallback(message: str):
    # Imported lazily: the logger module reads `settings` from this module
    from core.logger import logger

    logger.warning("Quiz config fallback", reason=message)
    warnings.warn(message, ConfigFallbackWarning, stacklevel=3)


def _build_section(name: str, model, raw):
    try:
        return model.model_validate(raw)
    except PydanticValidationError as e:
        if not isinstance(raw, dict):
            _fallback(f"Invalid '{name}' section in quiz config, using defaults: {e.errors()[0]['msg']}")
            return model()

    # Keep every table of the section that validates; only broken ones fall back
    values = {}
    for key, value in raw.items():
        if key not in model.model_fields:
            continue
        try:
            model.model_validate({key: value})
        except PydanticValidationError as e:
            _fallback(f"Invalid '{name}.{key}' in quiz config, using defaults: {e.errors()[0]['msg']}")
            continue
        values[key] = value

    try:
        return model.model_validate(values)
    except PydanticValidationError as e:
        _fallback(f"Invalid '{name}' section in quiz config, using defaults: {e.errors()[0]['msg']}")
        return model()


def build_quiz_config(raw: dict) -> QuizConfig:
    """Validate each config section, and each table inside it, on its own."""
    if not isinstance(raw, dict):
        _fallback("Quiz config must be a JSON object, using defaults")
        return QuizConfig()

    sections = {}
    for name, field in QuizConfig.model_fields.items():
        if name in raw:
            sections[name] = _build_section(name, field.annotation, raw[name])
    return QuizConfig(**sections)


def load_quiz_config(path: Union[str, Path]) -> QuizConfig:
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        _fallback(f"Quiz config not found at {path}, using defaults")
        return QuizConfig()
    except json.JSONDecodeError as e:
        _fallback(f"Quiz config at {path} is not valid JSON ({e.msg}), using defaults")
        return QuizConfig()
    return build_quiz_config(raw)
