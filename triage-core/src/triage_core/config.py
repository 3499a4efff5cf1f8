"""
Configuration management using pydantic-settings.
"""
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
import os

import structlog
import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from triage_core.scoring import ScoringConfig, apply_preset, apply_scheduled_preset, normalize

logger = structlog.get_logger()

CONFIG_PATH_ENV = "TRIAGE_CONFIG_PATH"


class ObservabilityConfig(BaseModel):
    """Observability configuration."""
    log_level: str = Field(default="INFO", description="Log level")


class DigestConfig(BaseModel):
    """Digest sizing and parallelism."""
    per_project_limit: int = Field(default=5, ge=0, description="Top actions kept per project")
    top_action_limit: int = Field(default=12, ge=0, description="Top actions kept across projects")
    minimum_top_actions: int = Field(default=5, ge=0, description="Default size of a single project's list")
    max_workers: int = Field(default=1, ge=1, description="Threads used to build project snapshots")


class ConflictsConfig(BaseModel):
    """Conflict detector tunables."""
    buffer_hours: float = Field(default=4.0, ge=0, description="Minimum gap between items in one territory")
    timezone_jump_hours: float = Field(default=6.0, ge=0, description="Gap under which a timezone change is flagged")
    fallback_duration_hours: Optional[float] = Field(
        default=None, ge=0, description="Duration for items without an end; None treats them as instants"
    )
    default_travel_hours: float = Field(default=12.0, ge=0, description="Travel estimate for unknown routes")
    travel_checks: bool = Field(default=True, description="False keeps only lane and territory checks")

    def detector_options(self) -> Dict[str, Any]:
        """Keyword arguments for ``detect_conflicts``."""
        return {
            "buffer_hours": self.buffer_hours,
            "timezone_jump_hours": self.timezone_jump_hours,
            "fallback_duration_hours": self.fallback_duration_hours,
            "default_travel_hours": self.default_travel_hours,
            "travel_checks": self.travel_checks,
        }


class SlotsConfig(BaseModel):
    """Slot finder defaults."""
    max_results: int = Field(default=5, ge=1, description="Maximum proposed slots")
    business_hours_start: int = Field(default=9, ge=0, le=23, description="Business day start hour")
    business_hours_end: int = Field(default=18, ge=1, le=24, description="Business day end hour")
    timezone: str = Field(default="UTC", description="Timezone for business-hour and weekend checks")


class ScoringSettings(BaseModel):
    """Where the scoring configuration comes from."""
    preset: Optional[str] = Field(default=None, description="Preset slug applied over the overrides")
    overrides_path: Optional[str] = Field(default=None, description="JSON/YAML file with a partial scoring config")


class Config(BaseSettings):
    """Main configuration class."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    digest: DigestConfig = Field(default_factory=DigestConfig)
    conflicts: ConflictsConfig = Field(default_factory=ConflictsConfig)
    slots: SlotsConfig = Field(default_factory=SlotsConfig)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)

    def __init__(self, **kwargs):
        # First, load defaults
        super().__init__(**kwargs)

        # Then YAML files, lower precedence first; explicit kwargs always win
        for yaml_config in self._load_yaml_configs():
            self._apply_yaml_config(yaml_config, explicit=kwargs)

    def _load_yaml_configs(self) -> List[Dict]:
        """Load YAML configuration files in order of precedence."""
        paths = [Path("configs/config.example.yaml"), Path("configs/config.yaml")]
        custom_path = os.getenv(CONFIG_PATH_ENV)
        if custom_path:
            paths.append(Path(custom_path))

        configs = []
        for path in paths:
            if not path.exists():
                continue
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    config = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Failed to load config file", path=str(path), error=str(e))
                continue
            if config:
                configs.append(config)
        return configs

    def _apply_yaml_config(self, yaml_config: Dict, explicit: Dict[str, Any]) -> None:
        """Apply one YAML document section by section."""
        sections = {
            'observability': ObservabilityConfig,
            'digest': DigestConfig,
            'conflicts': ConflictsConfig,
            'slots': SlotsConfig,
            'scoring': ScoringSettings,
        }
        for name, model in sections.items():
            if name in yaml_config and name not in explicit:
                merged = {**getattr(self, name).model_dump(), **(yaml_config[name] or {})}
                setattr(self, name, model(**merged))

    def load_scoring_overrides(self) -> Dict[str, Any]:
        """
        Read the partial scoring config named by ``scoring.overrides_path``.

        Raises:
            FileNotFoundError: If the configured file does not exist
        """
        if not self.scoring.overrides_path:
            return {}
        path = Path(self.scoring.overrides_path)
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        if not isinstance(data, dict):
            logger.warning("Scoring overrides file is not a mapping", path=str(path))
            return {}
        return data

    def load_scoring_config(self, now: Optional[datetime] = None) -> ScoringConfig:
        """
        Sanitized scoring config with the configured preset applied.

        When ``now`` is given, an auto-applied scheduled preset is applied on top.

        Raises:
            UnknownPresetError: If the configured preset slug is unknown
        """
        config = normalize(self.load_scoring_overrides())
        if self.scoring.preset:
            config = apply_preset(self.scoring.preset, config)
        if now is not None:
            config = apply_scheduled_preset(config, now)
        return config
