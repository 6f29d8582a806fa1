"""Engine configuration, read from the environment or a ``.env`` file."""

import logging

from dotenv import find_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Determine the environment file path, or None if not found
ENV_FILE = find_dotenv() or None


class EngineConfig(BaseSettings):
    """Configuration settings for mine placement, hints and board generation."""

    solver_max_steps: int = 100_000
    """Maximum number of DPLL decisions per placement or hint computation. Default: 100000."""

    solver_time_budget: float = 2.0
    """Wall-clock seconds one placement or hint computation may search. Default: 2.0."""

    generator_max_attempts: int = 100
    """Candidate boards tried by the solvable-board generator. Default: 100."""

    max_hints: int = 3
    """Hints a game may use. Default: 3."""

    log_level: str = "WARNING"
    """Level applied by configure_logging(). Default: WARNING."""

    model_config = SettingsConfigDict(
        env_prefix="FAIRSWEEPER_",
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )


config = EngineConfig()


def configure_logging(level: str = "") -> None:
    """Install a basic stderr handler for scripts and the demo app."""
    logging.basicConfig(
        level=(level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
