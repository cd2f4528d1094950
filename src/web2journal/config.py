"""Configuration loading and validation."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigError

DEFAULT_PORT = 8765
DEFAULT_DISPATCH_TIMEOUT = 30.0


def _default_data_path() -> Path:
    return Path.home() / ".web2journal-data"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """Application configuration."""

    anthropic_api_key: str = ""
    openai_api_key: str = ""
    firecrawl_api_key: str = ""
    data_path: Path = field(default_factory=_default_data_path)
    llm_provider: str = "claude"
    model: str = ""
    server_host: str = "127.0.0.1"
    server_port: int = DEFAULT_PORT
    server_url: str = ""
    auth_token: str = ""
    dispatch_timeout: float = DEFAULT_DISPATCH_TIMEOUT
    auto_processing: bool = True
    verbose: bool = False

    @property
    def default_model(self) -> str:
        if self.model:
            return self.model
        if self.llm_provider == "claude":
            return "claude-sonnet-4-20250514"
        return "gpt-4o"

    @property
    def base_url(self) -> str:
        """URL the tab side uses to reach the capture server."""
        if self.server_url:
            return self.server_url.rstrip("/")
        return f"http://localhost:{self.server_port}"

    @property
    def log_file(self) -> Path:
        return self.data_path / "server.log"

    def validate(self) -> None:
        """Validate configuration values that every command relies on."""
        if self.llm_provider not in ("claude", "openai"):
            raise ConfigError(
                f"Unknown LLM provider: {self.llm_provider}. Use 'claude' or 'openai'."
            )
        if not 0 < self.server_port < 65536:
            raise ConfigError(f"Invalid server port: {self.server_port}")
        if self.dispatch_timeout <= 0:
            raise ConfigError("dispatch_timeout must be positive.")

    def require_llm(self) -> None:
        """Check the API key needed by the configured LLM provider."""
        if self.llm_provider == "claude" and not self.anthropic_api_key:
            raise ConfigError(
                "ANTHROPIC_API_KEY is required when using Claude provider."
            )
        if self.llm_provider == "openai" and not self.openai_api_key:
            raise ConfigError(
                "OPENAI_API_KEY is required when using OpenAI provider."
            )

    def require_firecrawl(self) -> None:
        if not self.firecrawl_api_key:
            raise ConfigError(
                "FIRECRAWL_API_KEY is required to fetch pages. Set it in .env or environment."
            )


def load_config(
    data_path: Optional[str] = None,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    port: Optional[int] = None,
    server_url: Optional[str] = None,
    dispatch_timeout: Optional[float] = None,
    verbose: bool = False,
) -> Config:
    """Load config from .env and apply CLI overrides."""
    load_dotenv()

    try:
        env_port = int(os.getenv("WEB2JOURNAL_SERVER_PORT", str(DEFAULT_PORT)))
        env_timeout = float(
            os.getenv("WEB2JOURNAL_DISPATCH_TIMEOUT", str(DEFAULT_DISPATCH_TIMEOUT))
        )
    except ValueError as e:
        raise ConfigError(f"Invalid numeric setting: {e}") from e

    config = Config(
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        firecrawl_api_key=os.getenv("FIRECRAWL_API_KEY", ""),
        data_path=Path(data_path) if data_path else Path(
            os.getenv("WEB2JOURNAL_DATA_PATH", str(_default_data_path()))
        ).expanduser(),
        llm_provider=provider or os.getenv("LLM_PROVIDER", "claude"),
        model=model or "",
        server_host=os.getenv("WEB2JOURNAL_SERVER_HOST", "127.0.0.1"),
        server_port=port if port is not None else env_port,
        server_url=server_url or os.getenv("WEB2JOURNAL_SERVER_URL", ""),
        auth_token=os.getenv("WEB2JOURNAL_AUTH_TOKEN", ""),
        dispatch_timeout=dispatch_timeout if dispatch_timeout is not None else env_timeout,
        auto_processing=_env_flag("WEB2JOURNAL_AUTO_PROCESSING", True),
        verbose=verbose,
    )

    config.validate()
    return config
