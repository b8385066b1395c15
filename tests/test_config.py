import json
import warnings
from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from core.config import (
    LevelThresholds,
    LevelWeights,
    QuizConfig,
    QuizPlan,
    Recommendations,
    build_quiz_config,
    load_quiz_config,
)
from core.exceptions import ConfigFallbackWarning
from models.question import Level

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def test_defaults():
    config = QuizConfig()

    assert config.scoring.weights.for_level(Level.B2) == 4
    assert config.scoring.level_thresholds.for_level("A2").min == 26
    assert config.test.total_questions == 20
    assert config.test.questions_per_level is None


def test_bundled_config_loads_cleanly():
    with warnings.catch_warnings():
        warnings.simplefilter("error", ConfigFallbackWarning)
        config = load_quiz_config(DATA_DIR / "config.json")

    assert config.test.total_questions == 20
    assert config.recommendations.for_level("B1") == Recommendations().B1


def test_broken_section_falls_back_alone():
    raw = {
        "scoring": {"level_thresholds": {
            "A1": {"min": 0, "max": 25},
            "A2": {"min": 30, "max": 50},
            "B1": {"min": 51, "max": 75},
            "B2": {"min": 76, "max": 100},
        }},
        "recommendations": {"A1": "Start with the basics."},
        "test": {"total_questions": 12, "questions_per_level": {"A1": 6, "B2": 6}},
    }

    with pytest.warns(ConfigFallbackWarning):
        config = build_quiz_config(raw)

    assert config.scoring.level_thresholds == LevelThresholds()
    assert config.recommendations.A1 == "Start with the basics."
    assert config.test.total_questions == 12
    assert config.test.questions_per_level == {Level.A1: 6, Level.B2: 6}


def test_custom_weights_survive_broken_thresholds():
    raw = {"scoring": {
        "weights": {"A1": 5, "A2": 6, "B1": 7, "B2": 8},
        "level_thresholds": {
            "A1": {"min": 0, "max": 30},
            "A2": {"min": 20, "max": 50},
            "B1": {"min": 51, "max": 75},
            "B2": {"min": 76, "max": 100},
        },
    }}

    with pytest.warns(ConfigFallbackWarning, match="scoring.level_thresholds"):
        config = build_quiz_config(raw)

    assert config.scoring.weights == LevelWeights(A1=5, A2=6, B1=7, B2=8)
    assert config.scoring.level_thresholds == LevelThresholds()


def test_total_questions_survives_broken_quotas():
    with pytest.warns(ConfigFallbackWarning, match="test.questions_per_level"):
        config = build_quiz_config({"test": {"total_questions": 40, "questions_per_level": {"C1": 3}}})

    assert config.test.total_questions == 40
    assert config.test.questions_per_level is None


def test_non_object_section_falls_back():
    with pytest.warns(ConfigFallbackWarning):
        config = build_quiz_config({"scoring": [1, 2], "recommendations": {"B2": "Read novels."}})

    assert config.scoring == QuizConfig().scoring
    assert config.recommendations.B2 == "Read novels."


@pytest.mark.parametrize("thresholds", [
    {"A1": {"min": 5, "max": 25}},
    {"B2": {"min": 76, "max": 90}},
    {"A2": {"min": 26, "max": 80}},
])
def test_thresholds_must_partition_the_scale(thresholds):
    with pytest.raises(PydanticValidationError):
        LevelThresholds.model_validate(thresholds)


def test_weights_must_be_positive():
    with pytest.raises(PydanticValidationError):
        LevelWeights(A1=0)


def test_negative_quota_rejected():
    with pytest.raises(PydanticValidationError):
        QuizPlan(questions_per_level={"A1": -1})


def test_missing_file_uses_defaults(tmp_path):
    with pytest.warns(ConfigFallbackWarning):
        config = load_quiz_config(tmp_path / "missing.json")
    assert config == QuizConfig()


def test_invalid_json_uses_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{oops", encoding="utf-8")

    with pytest.warns(ConfigFallbackWarning):
        config = load_quiz_config(path)
    assert config == QuizConfig()


def test_non_object_config_uses_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps([1, 2, 3]), encoding="utf-8")

    with pytest.warns(ConfigFallbackWarning):
        assert load_quiz_config(path) == QuizConfig()


def test_unknown_level_recommendation_uses_fallback():
    recommendations = Recommendations()
    assert recommendations.for_level("C2") == recommendations.fallback
