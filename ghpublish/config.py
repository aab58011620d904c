"""Configuration management for ghpublish."""

import os
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, List

from dotenv import load_dotenv

from .platform import get_default_cache_dir, get_platform_specific_defaults, normalize_path, validate_git_availability

load_dotenv()  # Load .env file if it exists


VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class PublishOptions:
    """Options for a single publish, validated on construction."""

    remote_url: Optional[str] = None
    origin: str = "origin"
    branch: str = "gh-pages"
    cache_dir: Path = field(default_factory=get_default_cache_dir)
    push: bool = True
    force: bool = False
    message: Optional[str] = None

    # Directory whose repository supplies remote_url when it is not set
    cwd: Optional[Path] = None

    history_limit: int = 20
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.cache_dir is None:
            self.cache_dir = get_default_cache_dir()
        self.cache_dir = normalize_path(self.cache_dir)

        if self.cwd is not None:
            self.cwd = normalize_path(self.cwd)

        if self.remote_url is not None:
            self.remote_url = str(self.remote_url)
            if not self.remote_url.strip():
                self.remote_url = None

        if not self.origin or not self.origin.strip():
            raise ValueError("origin must be a non-empty remote name")

        if not self.branch or not self.branch.strip():
            raise ValueError("branch must be a non-empty branch name")

        self.log_level = self.log_level.upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {VALID_LOG_LEVELS}")

        if self.history_limit <= 0:
            raise ValueError("history_limit must be positive")

    def commit_message(self, now: Optional[datetime] = None) -> str:
        """Configured commit message, or ``Update <ISO timestamp>``."""
        if self.message:
            return self.message
        return f"Update {(now or datetime.now()).isoformat()}"

    def resolve_cwd(self) -> Path:
        """Directory used to derive the remote URL, read once."""
        return self.cwd if self.cwd is not None else Path.cwd()


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_configuration() -> PublishOptions:
    """Load publish options from environment variables with platform defaults."""
    try:
        defaults = get_platform_specific_defaults()

        return PublishOptions(
            remote_url=os.getenv("GHPUBLISH_REMOTE_URL"),
            origin=os.getenv("GHPUBLISH_ORIGIN", defaults['origin']),
            branch=os.getenv("GHPUBLISH_BRANCH", defaults['branch']),
            cache_dir=Path(os.getenv("GHPUBLISH_CACHE_DIR", str(defaults['cache_dir']))),
            push=_env_flag("GHPUBLISH_PUSH", True),
            force=_env_flag("GHPUBLISH_FORCE", False),
            message=os.getenv("GHPUBLISH_MESSAGE") or None,
            log_level=os.getenv("GHPUBLISH_LOG_LEVEL", defaults['log_level']).upper(),
            history_limit=int(os.getenv("GHPUBLISH_HISTORY_LIMIT", str(defaults['history_limit'])))
        )
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")


def validate_configuration(options: PublishOptions) -> List[str]:
    """Validate options and return any errors or warnings."""
    errors = []

    git_available, git_error = validate_git_availability()
    if not git_available:
        errors.append(f"ERROR: {git_error}")

    # The cache directory itself is recreated on every cold clone; its parent must be writable
    parent = options.cache_dir.parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
        if not os.access(parent, os.W_OK):
            errors.append(f"ERROR: No write permission for cache directory parent: {parent}")
    except OSError as e:
        errors.append(f"ERROR: Cannot access cache directory parent {parent}: {e}")

    if options.remote_url and not options.remote_url.startswith(("http://", "https://", "git@", "ssh://", "file://", "/")):
        errors.append(f"WARNING: Git remote URL may be invalid: {options.remote_url}")

    if not options.push:
        logging.getLogger('ghpublish.config').debug("Push disabled; commits stay in the cache directory")

    return errors
