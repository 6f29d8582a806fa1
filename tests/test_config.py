import logging

from fairsweeper.config import EngineConfig, configure_logging
from fairsweeper.sat import SearchBudget


def test_defaults():
    cfg = EngineConfig(_env_file=None)
    assert cfg.solver_max_steps == 100_000
    assert cfg.solver_time_budget == 2.0
    assert cfg.generator_max_attempts == 100
    assert cfg.max_hints == 3
    assert cfg.log_level == "WARNING"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("FAIRSWEEPER_MAX_HINTS", "7")
    monkeypatch.setenv("FAIRSWEEPER_SOLVER_TIME_BUDGET", "0.5")
    cfg = EngineConfig(_env_file=None)
    assert cfg.max_hints == 7
    assert cfg.solver_time_budget == 0.5


def test_budget_from_config():
    budget = SearchBudget.from_config(EngineConfig(solver_max_steps=12, solver_time_budget=1.5))
    assert budget.max_steps == 12
    assert budget.time_limit == 1.5
    assert budget.steps == 0


def test_configure_logging_sets_root_level(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))
    configure_logging("debug")
    assert calls["level"] == "DEBUG"
