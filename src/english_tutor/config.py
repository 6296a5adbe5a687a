"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from settings.yaml."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        """Not used - we implement __call__ instead."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        """Load settings from YAML file."""
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}

        with open(yaml_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        # Flatten nested structure to match Settings field names
        flattened: dict[str, Any] = {}
        if 'server' in data:
            flattened['host'] = data['server'].get('host')
            flattened['port'] = data['server'].get('port')
        if 'progress' in data:
            progress = data['progress']
            flattened['default_daily_goal_minutes'] = progress.get('default_daily_goal_minutes')
            flattened['review_batch_size'] = progress.get('review_batch_size')
            flattened['max_review_batch_size'] = progress.get('max_review_batch_size')
        if 'modes' in data:
            flattened['practice_modes'] = data['modes']

        return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Daily goal (minutes)
    default_daily_goal_minutes: int = Field(default=15)
    min_daily_goal_minutes: int = Field(default=5)
    max_daily_goal_minutes: int = Field(default=120)

    # Vocabulary review
    review_batch_size: int = Field(default=20)
    max_review_batch_size: int = Field(default=50)

    # Canonical practice modes offered by the tutor
    practice_modes: list[str] = Field(
        default_factory=lambda: ["FREE_TALK", "ROLE_PLAY", "DEBATE", "GRAMMAR_FIX"]
    )

    # Paths
    project_root: Path = Field(default_factory=_find_project_root)

    @property
    def data_dir(self) -> Path:
        d = self.project_root / "data"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def users_dir(self) -> Path:
        d = self.data_dir / "users"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def total_modes(self) -> int:
        """Number of distinct practice modes a user can try."""
        return len(set(self.practice_modes))

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include YAML file.

        Priority order (highest to lowest):
        1. init_settings (arguments passed to Settings())
        2. env_settings (environment variables)
        3. dotenv_settings (.env file)
        4. YamlSettingsSource (settings.yaml)
        5. file_secret_settings
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()
