"""
Unit tests for configuration models.
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from applyflow.models.config import RetryPolicy, SearchConfig, SystemParams

EXAMPLE_CONFIG = Path(__file__).resolve().parents[2] / "config" / "system_params.example.json"


def test_defaults():
    params = SystemParams()

    assert params.retry.max_attempts == 4
    assert params.search.platforms == ["LinkedIn", "Naukri"]
    assert params.search.default_location == "India"
    assert params.service.lenient_not_found is False


def test_example_config_loads():
    params = SystemParams.load(EXAMPLE_CONFIG)

    assert params == SystemParams()


def test_load_overrides(tmp_path):
    config = tmp_path / "system_params.json"
    config.write_text(
        json.dumps(
            {
                "retry": {"max_retries": 1, "base_delay": 0.5},
                "search": {"platforms": [" Indeed ", ""], "max_results": 5},
                "log_level": "debug",
            }
        ),
        encoding="utf-8",
    )

    params = SystemParams.load(config)

    assert params.retry.max_attempts == 2
    assert params.retry.multiplier == 2.0
    assert params.search.platforms == ["Indeed"]
    assert params.log_level == "DEBUG"


def test_missing_file_explains_how_to_create_it(tmp_path):
    with pytest.raises(FileNotFoundError, match="system_params.example.json"):
        SystemParams.load(tmp_path / "system_params.json")


def test_invalid_log_level():
    with pytest.raises(ValidationError, match="Log level"):
        SystemParams(log_level="verbose")


def test_platforms_required():
    with pytest.raises(ValidationError, match="platform"):
        SearchConfig(platforms=["  "])


@pytest.mark.parametrize(
    "field, value",
    [("max_retries", -1), ("base_delay", 0), ("multiplier", 0.5), ("max_jitter", -0.1)],
)
def test_retry_policy_bounds(field, value):
    with pytest.raises(ValidationError):
        RetryPolicy(**{field: value})
