"""
Configuration management for draftqueue.

Uses Pydantic Settings to load configuration from environment variables
(prefixed with DRAFTQUEUE_) with sensible defaults for interactive use.
The draft board markup changes without notice, so every selector the
queue engine relies on lives here and can be overridden without a release.

Usage:
    from draftqueue.config import Settings

    settings = Settings(operation_delay_ms=250)
    reconciler = QueueReconciler(surface, settings)

The engines take a Settings instance at construction time. Only the CLI
entry point calls get_settings().
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Session settings loaded from environment variables.

    Environment variables can be set directly or via a .env file
    in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="DRAFTQUEUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ==========================================================================
    # Roster API Configuration
    # ==========================================================================

    roster_base_url: str = Field(
        default="https://api.sleeper.app/v1",
        description="Base URL of the roster API",
    )
    roster_sport: str = Field(
        default="nfl",
        description="Sport segment of the players endpoint (/players/<sport>)",
    )
    roster_cache_ttl_s: float = Field(
        default=24 * 60 * 60,
        description="How long a fetched roster is served from memory (seconds)",
    )
    roster_rate_limit_ms: int = Field(
        default=100,
        description="Minimum delay between two roster API requests (milliseconds)",
    )
    roster_request_timeout_s: float = Field(
        default=30.0,
        description="HTTP timeout for a roster request (the payload is several MB)",
    )
    roster_max_retries: int = Field(
        default=3,
        description="Maximum attempts for a roster fetch before giving up",
    )

    # ==========================================================================
    # Draft Board Selectors
    # ==========================================================================

    add_trigger_selector: str = Field(
        default=".queue-action",
        description="CSS selector of the per-player 'add to queue' control",
    )
    remove_trigger_selector: str = Field(
        default=".delete-button",
        description="CSS selector of the per-entry 'remove from queue' control",
    )
    remove_label: str = Field(
        default="remove",
        description="Visible label a remove control must carry (case-insensitive)",
    )
    player_container_selectors: list[str] = Field(
        default=['[class*="player"]', ".player-rank-item", ".player-row", "tr", "li"],
        description="Markers of the row that encloses an add control",
    )
    queue_container_selectors: list[str] = Field(
        default=['[class*="player"]', ".player-item", "tr", "li", ".queue-item", '[class*="queue"]'],
        description="Markers of the row that encloses a remove control",
    )
    filter_input_selectors: list[str] = Field(
        default=[
            ".player-search input",
            'input[placeholder*="Find player"]',
            'input[placeholder*="Search"]',
            'input[placeholder*="search"]',
            'input[type="search"]',
            ".search-input",
            '[class*="search"] input',
            'input[placeholder*="player"]',
            'input[placeholder*="Player"]',
        ],
        description="Candidates for the board's player search box, tried in order",
    )

    # ==========================================================================
    # Timing Configuration
    # ==========================================================================

    operation_delay_ms: int = Field(
        default=150,
        description="Pause between two queue operations so the board can re-render",
    )
    settle_delay_ms: int = Field(
        default=100,
        description="Wait after scrolling or triggering a control",
    )
    filter_settle_delay_ms: int = Field(
        default=100,
        description="Wait after changing the search box before re-scanning",
    )
    alternate_trigger_step_ms: int = Field(
        default=200,
        description="Wait between steps of the alternate search-trigger sequence",
    )

    # ==========================================================================
    # Browser Configuration
    # ==========================================================================

    draft_url: Optional[str] = Field(
        default=None,
        description="Draft board URL to open (None = use the first open page)",
    )
    browser_headless: bool = Field(
        default=False,
        description="Run the browser headless (the draft needs a logged-in session)",
    )
    browser_cdp_url: Optional[str] = Field(
        default=None,
        description="Attach to a running Chromium over CDP instead of launching one",
    )
    browser_user_data_dir: Optional[str] = Field(
        default=None,
        description="Persistent profile directory so the Sleeper login survives runs",
    )
    browser_timeout_ms: int = Field(
        default=45000,
        description="Default timeout for page loads in milliseconds",
    )
    browser_stealth: bool = Field(
        default=True,
        description="Apply playwright-stealth patches to new pages",
    )

    # ==========================================================================
    # Player Matching Configuration
    # ==========================================================================

    # See players/identity.py for how suggestions are produced
    suggestion_threshold: float = Field(
        default=0.85,
        description="Show 'did you mean' suggestions above this similarity score",
    )
    max_suggestions: int = Field(
        default=3,
        description="Maximum number of suggestions attached to an unmatched line",
    )

    # ==========================================================================
    # Logging Configuration
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_format: str = Field(
        default="console",
        description="Log format: 'json' for machine-readable lines, 'console' for humans",
    )

    # ==========================================================================
    # Validators
    # ==========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return upper_v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        lower_v = v.lower()
        if lower_v not in {"json", "console"}:
            raise ValueError("log_format must be 'json' or 'console'")
        return lower_v

    @field_validator(
        "operation_delay_ms",
        "settle_delay_ms",
        "filter_settle_delay_ms",
        "alternate_trigger_step_ms",
        "roster_rate_limit_ms",
    )
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("delays must be >= 0")
        return v

    @field_validator("player_container_selectors", "queue_container_selectors", "filter_input_selectors")
    @classmethod
    def validate_selector_list(cls, v: list[str]) -> list[str]:
        cleaned = [s.strip() for s in v if s and s.strip()]
        if not cleaned:
            raise ValueError("selector lists must contain at least one selector")
        return cleaned

    # ==========================================================================
    # Derived values
    # ==========================================================================

    @property
    def operation_delay(self) -> float:
        return self.operation_delay_ms / 1000.0

    @property
    def settle_delay(self) -> float:
        return self.settle_delay_ms / 1000.0

    @property
    def filter_settle_delay(self) -> float:
        return self.filter_settle_delay_ms / 1000.0

    @property
    def alternate_trigger_step(self) -> float:
        return self.alternate_trigger_step_ms / 1000.0

    @property
    def roster_rate_limit(self) -> float:
        return self.roster_rate_limit_ms / 1000.0


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures we only load settings once per process,
    which is important because loading from .env can be slow.
    """
    return Settings()
