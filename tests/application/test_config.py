import pytest
from pydantic import ValidationError

from anamnesis.application.config import (
    AppConfig,
    MasteryConfig,
    SchedulerConfig,
    resolve_config,
)
from anamnesis.domain import constants as c


def test_defaults(mock_home):
    config = resolve_config()
    assert config.store_path == (mock_home / ".config/anamnesis/cards.yaml").resolve()
    assert config.scheduler.target_retention == c.TARGET_RETENTION
    assert config.mastery.mastered_cutoff == c.MASTERED_CUTOFF
    assert config.queue.max_session_size == c.DEFAULT_MAX_SESSION_SIZE
    assert config.verbose == 0


def test_toml_file_is_loaded(mock_home):
    config_dir = mock_home / ".config/anamnesis"
    config_dir.mkdir(parents=True)
    (config_dir / "config.toml").write_text(
        "verbose = 2\n\n[scheduler]\ntarget_retention = 0.85\n\n[queue]\nmax_session_size = 20\n"
    )

    config = resolve_config()
    assert config.verbose == 2
    assert config.scheduler.target_retention == 0.85
    assert config.queue.max_session_size == 20


def test_env_overrides_toml(mock_home, monkeypatch):
    config_dir = mock_home / ".config/anamnesis"
    config_dir.mkdir(parents=True)
    (config_dir / "config.toml").write_text("verbose = 2\n")
    monkeypatch.setenv("ANAMNESIS_VERBOSE", "1")
    monkeypatch.setenv("ANAMNESIS_SCHEDULER__GROWTH_EASY", "4.0")

    config = resolve_config()
    assert config.verbose == 1
    assert config.scheduler.growth_easy == 4.0


def test_cli_overrides_win_and_none_is_ignored(mock_home, monkeypatch, tmp_path):
    monkeypatch.setenv("ANAMNESIS_VERBOSE", "1")
    store = tmp_path / "store.yaml"

    config = resolve_config({"store_path": store, "verbose": None})
    assert config.store_path == store.resolve()
    assert config.verbose == 1


def test_store_path_expands_user(mock_home):
    config = AppConfig(store_path="~/cards.yaml")
    assert config.store_path == (mock_home / "cards.yaml").resolve()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"min_difficulty": 5.0, "max_difficulty": 5.0},
        {"seed_difficulty": 11.0},
        {"minimum_interval_days": 10, "maximum_interval_days": 5},
        {"growth_hard": 2.0, "growth_good": 1.5},
        {"target_retention": 1.0},
        {"lapse_penalty": 0.0},
        {"seed_stability": 0.0},
    ],
)
def test_invalid_scheduler_config(kwargs):
    with pytest.raises(ValidationError):
        SchedulerConfig(**kwargs)


def test_mastery_cutoffs_must_increase():
    with pytest.raises(ValidationError):
        MasteryConfig(developing_cutoff=30.0)


def test_configs_are_frozen():
    config = SchedulerConfig()
    with pytest.raises(ValidationError):
        config.growth_good = 2.0
