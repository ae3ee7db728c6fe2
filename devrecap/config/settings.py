import os
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from devrecap.core.exceptions import ConfigurationError

DEFAULT_EXCLUDE_PATTERNS = [
    "node_modules",
    "target",
    ".git",
    "dist",
    "build",
    "__pycache__",
    ".venv",
    "vendor",
    ".next",
    "out",
]

API_KEY_PREFIX = "sk-ant-"


def default_config_path() -> Path:
    """Location of the TOML config file (~/.config/dev-recap/config.toml).

    DEVRECAP_CONFIG_FILE overrides it.
    """
    override = os.getenv("DEVRECAP_CONFIG_FILE")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "dev-recap" / "config.toml"


def default_cache_dir() -> Path:
    return Path.home() / ".cache" / "dev-recap"


class Settings(BaseSettings):
    """Application settings loaded from init kwargs, environment, .env and the TOML file."""

    model_config = SettingsConfigDict(
        env_prefix="DEVRECAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # AI / Anthropic
    # Older config files call this claude_api_key; both spellings are accepted.
    anthropic_api_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "anthropic_api_key",
            "claude_api_key",
            "DEVRECAP_ANTHROPIC_API_KEY",
            "ANTHROPIC_AUTH_TOKEN",
        ),
    )
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    request_timeout_seconds: float = 120.0
    summary_max_attempts: int = 3

    # Commit filtering
    default_author_email: str | None = None
    default_timespan_days: int = 14  # 2 weeks
    # Also match committer identity (rebases/merges done on someone's behalf)
    match_committer: bool = False

    # Repository discovery
    exclude_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    max_scan_depth: int | None = None
    github_hosts: list[str] = Field(default_factory=lambda: ["github.com"])

    # Summary cache
    cache_enabled: bool = True
    cache_ttl_hours: int = 168  # 7 days
    cache_dir: Path = Field(default_factory=default_cache_dir)

    # Parallel per-repository processing
    max_concurrency: int = 4

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=default_config_path()),
            file_secret_settings,
        )

    @property
    def cache_db_path(self) -> Path:
        return self.cache_dir / "summaries.db"

    @property
    def api_key_configured(self) -> bool:
        return bool(self.anthropic_api_key)

    def masked_api_key(self) -> str:
        """API key safe for display (prefix and last four characters)."""
        key = self.anthropic_api_key
        if not key:
            return "<not set>"
        if len(key) <= 12:
            return "*" * len(key)
        return f"{key[:7]}...{key[-4:]}"

    def validate_for_run(self) -> None:
        """Raise ConfigurationError when settings cannot drive a summarization run."""
        if not self.anthropic_api_key:
            raise ConfigurationError(
                "anthropic_api_key is required (set ANTHROPIC_API_KEY or add it to "
                f"{default_config_path()})"
            )
        if not self.anthropic_api_key.startswith(API_KEY_PREFIX):
            raise ConfigurationError(
                f"Invalid Anthropic API key format (should start with '{API_KEY_PREFIX}')"
            )
        if self.default_timespan_days <= 0:
            raise ConfigurationError("default_timespan_days must be > 0")
        if self.cache_ttl_hours <= 0:
            raise ConfigurationError("cache_ttl_hours must be > 0")
        if self.max_concurrency <= 0:
            raise ConfigurationError("max_concurrency must be > 0")
        if self.summary_max_attempts <= 0:
            raise ConfigurationError("summary_max_attempts must be > 0")


def load_settings(config_file: Path | None = None, **overrides: object) -> Settings:
    """Build Settings, optionally reading a specific TOML file instead of the default."""
    if config_file is None:
        return Settings(**overrides)  # type: ignore[arg-type]

    if not config_file.exists():
        raise ConfigurationError(f"Config file not found at: {config_file}")

    class FileSettings(Settings):
        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,
            file_secret_settings: PydanticBaseSettingsSource,
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            return (
                init_settings,
                env_settings,
                dotenv_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=config_file),
                file_secret_settings,
            )

    return FileSettings(**overrides)  # type: ignore[arg-type]


DEFAULT_CONFIG_TEMPLATE = """\
# dev-recap configuration

# Anthropic API key (or set ANTHROPIC_API_KEY)
anthropic_api_key = "sk-ant-YOUR_API_KEY_HERE"

# Default author email for filtering commits
# default_author_email = "you@example.com"

# Default timespan in days
default_timespan_days = 14

# Directory names (or globs) skipped while scanning
exclude_patterns = [{patterns}]

# Maximum directory depth for scanning (unset = unlimited)
# max_scan_depth = 4

# Cache AI summaries
cache_enabled = true
cache_ttl_hours = 168

# Repositories summarized in parallel
max_concurrency = 4
"""


def write_default_config(path: Path | None = None, force: bool = False) -> Path:
    """Write a starter config file. Refuses to overwrite unless force is set."""
    target = path or default_config_path()
    if target.exists() and not force:
        raise ConfigurationError(f"Config file already exists at: {target} (use --force)")

    target.parent.mkdir(parents=True, exist_ok=True)
    patterns = ", ".join(f'"{p}"' for p in DEFAULT_EXCLUDE_PATTERNS)
    target.write_text(DEFAULT_CONFIG_TEMPLATE.format(patterns=patterns), encoding="utf-8")
    return target


settings = Settings()
