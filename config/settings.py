"""Configuration settings and data models."""

import json
import shutil
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator


class FormatTiming(BaseModel):
    """Room clock durations for one format, in seconds."""

    prep_duration: float = Field(default=900.0, gt=0, description="Prep time in seconds")
    speech_duration: float = Field(default=420.0, gt=0, description="Seconds per speech")


class TimingConfig(BaseModel):
    """Per-format room clock defaults."""

    BP: FormatTiming = Field(
        default_factory=lambda: FormatTiming(prep_duration=900.0, speech_duration=420.0)
    )
    AP: FormatTiming = Field(
        default_factory=lambda: FormatTiming(prep_duration=1800.0, speech_duration=420.0)
    )

    def for_format(self, format_code: str) -> FormatTiming:
        return getattr(self, format_code)


class TabConfig(BaseModel):
    """Draw, allocation and break tuning."""

    round_one_draw_attempts: int = Field(
        default=10, ge=1, description="Shuffle attempts kept best-of for the round 1 draw"
    )
    swap_attempts_per_room: int = Field(
        default=5, ge=0, description="Local repair swaps per room in power-paired rounds"
    )
    max_judges_per_room: int = Field(
        default=3, ge=1, description="Upper bound on panel size regardless of tournament setting"
    )
    default_breaking_teams: int = Field(default=8, ge=2)
    draw_seed: int | None = Field(
        default=None, description="Seed for draw and allocation shuffles (None = system entropy)"
    )


class SystemConfig(BaseModel):
    """System-wide configuration."""

    database_path: str = Field(default="tournaments.db", description="SQLite database file")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    port: int = Field(default=8000)

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("database_path must not be empty")
        return v


class AppConfig(BaseModel):
    """Complete application configuration."""

    tab: TabConfig = Field(default_factory=TabConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "AppConfig":
        """Load configuration from a JSON or YAML file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")

        unknown_sections = set(data) - {"tab", "timing", "system"}
        if unknown_sections:
            raise ValueError(f"Unknown config sections: {sorted(unknown_sections)}")

        return cls(**data)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(mode="json"),
                f,
                default_flow_style=False,
                indent=2,
            )


def get_default_config() -> AppConfig:
    """Load default configuration from tab_config.json, creating it if needed."""
    config_path = Path("tab_config.json")
    if not config_path.exists():
        example_path = Path("tab_config.example.json")
        if example_path.exists():
            shutil.copy2(example_path, config_path)
        else:
            template_config = get_template_config()
            with open(config_path, "w", encoding="utf-8") as f:
                json.dump(template_config.model_dump(mode="json"), f, indent=2)
    return AppConfig.load_from_file(config_path)


def get_template_config() -> AppConfig:
    """Get template configuration for config file generation."""
    return AppConfig(
        tab=TabConfig(
            round_one_draw_attempts=10,
            swap_attempts_per_room=5,
            max_judges_per_room=3,
            default_breaking_teams=8,
            draw_seed=None,
        ),
        timing=TimingConfig(),
        system=SystemConfig(
            database_path="tournaments.db",
            log_level="INFO",
        ),
    )
