"""Configuration management for launchsearch."""

from pathlib import Path
from typing import Optional

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .filters import FilterState


class SourcesConfig(BaseModel):
    """Per-source enable switches, independent of the filter bar."""
    search_favorites: bool = True
    search_apps: bool = True
    search_files: bool = True
    search_contacts: bool = True
    search_calendar: bool = True
    search_app_shortcuts: bool = True
    search_calculator: bool = True
    search_unit_converter: bool = True
    search_wikipedia: bool = True
    search_websites: bool = True
    search_locations: bool = False


class SearchFilterConfig(BaseModel):
    """Default filter state restored whenever the query is cleared."""
    model_config = ConfigDict(populate_by_name=True)

    allow_network: bool = Field(default=False, alias='allowNetwork')
    hidden_items: bool = Field(default=False, alias='hiddenItems')
    apps: bool = True
    shortcuts: bool = True
    contacts: bool = True
    events: bool = True
    files: bool = True
    tools: bool = True
    websites: bool = True
    articles: bool = True
    places: bool = True

    def to_filter_state(self) -> FilterState:
        return FilterState(**self.model_dump(by_alias=False))


class BehaviorConfig(BaseModel):
    launch_on_enter: bool = True
    results_bottom_up: bool = False
    search_filter: SearchFilterConfig = Field(default_factory=SearchFilterConfig)


class TuningConfig(BaseModel):
    shortcut_candidates: int = 12
    articles_delay_ms: int = 750
    places_delay_ms: int = 250

    @field_validator('shortcut_candidates')
    @classmethod
    def validate_candidates(cls, v: int) -> int:
        if v < 1:
            raise ValueError("shortcut_candidates must be at least 1")
        return v

    @field_validator('articles_delay_ms', 'places_delay_ms')
    @classmethod
    def validate_delay(cls, v: int) -> int:
        if v < 0:
            raise ValueError("debounce delays must not be negative")
        return v


class Config(BaseModel):
    """Settings snapshot consumed by the search engine."""

    database_path: Path = Field(
        default_factory=lambda: Path.home() / ".local" / "share" / "launchsearch" / "items.db"
    )
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    behavior: BehaviorConfig = Field(default_factory=BehaviorConfig)
    tuning: TuningConfig = Field(default_factory=TuningConfig)

    @field_validator('database_path')
    @classmethod
    def expand_database_path(cls, v: Path) -> Path:
        if isinstance(v, str):
            v = Path(v)
        if str(v) == ':memory:':
            return v
        return v.expanduser()

    @property
    def default_filters(self) -> FilterState:
        return self.behavior.search_filter.to_filter_state()

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from YAML file."""
        if config_path is None:
            candidates = [
                Path("launchsearch.yaml"),
                Path.home() / ".config" / "launchsearch" / "config.yaml",
                Path("/etc/launchsearch/config.yaml"),
            ]
            for candidate in candidates:
                if candidate.exists():
                    config_path = candidate
                    break
            else:
                raise FileNotFoundError(
                    f"No config file found. Searched: {[str(c) for c in candidates]}"
                )

        logger.info(f"Loading config from: {config_path}")
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def load_or_default(cls, config_path: Optional[Path] = None) -> "Config":
        try:
            return cls.load(config_path)
        except FileNotFoundError as e:
            logger.debug(f"Using default configuration: {e}")
            return cls()

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            yaml.safe_dump(self.model_dump(mode='json'), f, default_flow_style=False)
