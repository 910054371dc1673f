"""Configuration for the navigator panel and the summarization proxy."""

import os
from pathlib import Path

import soupsieve
import yaml
from pydantic import BaseModel, Field, field_validator


class ScanSelectors(BaseModel):
    """Structural markers of the host transcript, injected into the scanner."""

    turn: str = 'article[data-testid^="conversation-turn-"]'
    user_message: str = '[data-message-author-role="user"]'
    user_content: str = ".whitespace-pre-wrap"
    assistant_message: str = '[data-message-author-role="assistant"]'
    scroll_container: str = "[data-scroll-root]"
    id_attribute: str = "data-testid"
    user_turn_attribute: str = "data-turn"

    @field_validator(
        "turn", "user_message", "user_content", "assistant_message", "scroll_container"
    )
    @classmethod
    def _compile_selector(cls, value: str) -> str:
        try:
            soupsieve.compile(value)
        except soupsieve.SelectorSyntaxError as e:
            raise ValueError(f"invalid selector {value!r}: {e}") from e
        return value


class NavigatorSettings(BaseModel):
    """Settings for the table-of-contents panel."""

    selectors: ScanSelectors = Field(default_factory=ScanSelectors)
    summary_max_length: int = Field(30, gt=0)
    preview_max_length: int = Field(150, gt=0)
    rename_max_length: int = Field(50, gt=0)
    summarize_max_chars: int = Field(2000, gt=0)
    debounce_delay: float = Field(200, ge=0, description="Base debounce interval in ms")
    throttle_delay: float = Field(100, ge=0, description="Scroll sampling interval in ms")
    tooltip_delay: float = Field(500, ge=0)
    activation_threshold: float = Field(
        150, description="Distance from the viewport top, in px, that marks an entry active"
    )
    animation_duration: float = Field(500, gt=0)
    scroll_lead_in: float = 20
    stable_fallback_ids: bool = Field(
        True, description="Derive fallback entry ids from content instead of random tokens"
    )
    panel_id: str = "chatanchor-panel"
    api_base: str = "http://localhost:3000"
    config_dir: str = ".chatanchor"
    log_level: str = "INFO"


class ProxySettings(BaseModel):
    """Settings for the summarization reverse proxy."""

    host: str = "0.0.0.0"
    port: int = 3000
    anthropic_api_key: str | None = None
    model: str = "claude-3-5-haiku-latest"
    rate_limit: int = Field(30, gt=0, description="Requests allowed per client per window")
    rate_window: float = Field(60, gt=0, description="Rate limit window in seconds")
    log_level: str = "INFO"


def load_settings(path: str | Path | None = None) -> NavigatorSettings:
    """Load navigator settings from an optional YAML file and the environment.

    Args:
        path: Optional YAML file with settings overrides.

    Returns:
        Validated navigator settings.
    """
    data = {}
    if path is not None:
        with Path(path).open() as f:
            data = yaml.safe_load(f) or {}

    env_overrides = {
        "api_base": os.environ.get("CHATANCHOR_API_BASE"),
        "config_dir": os.environ.get("CHATANCHOR_CONFIG_DIR"),
        "log_level": os.environ.get("CHATANCHOR_LOG_LEVEL"),
    }
    data.update({key: value for key, value in env_overrides.items() if value})

    return NavigatorSettings(**data)


def load_proxy_settings() -> ProxySettings:
    """Load proxy settings from the environment."""
    data = {
        "anthropic_api_key": os.environ.get("ANTHROPIC_API_KEY"),
        "port": os.environ.get("PORT"),
        "model": os.environ.get("CHATANCHOR_MODEL"),
        "log_level": os.environ.get("CHATANCHOR_LOG_LEVEL"),
    }
    return ProxySettings(**{key: value for key, value in data.items() if value})
