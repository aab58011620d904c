"""Cross-platform helpers: default paths and git executable discovery."""

import platform
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Dict, Any, Union


def normalize_path(path: Union[str, Path]) -> Path:
    """Absolute form of ``path`` with ``~`` expanded."""
    return Path(path).expanduser().resolve()


def get_default_cache_dir() -> Path:
    """Fixed cache location reused across publishes (warm cache)."""
    return Path(tempfile.gettempdir()) / "ghpublish-cache"


def get_platform_specific_defaults() -> Dict[str, Any]:
    """
    Defaults used by ``load_configuration`` when no environment value is set.

    Returns:
        Dictionary keyed by ``PublishOptions`` field name
    """
    return {
        'cache_dir': get_default_cache_dir(),
        'origin': "origin",
        'branch': "gh-pages",
        'log_level': "INFO",
        'history_limit': 20
    }


def get_git_executable() -> str:
    return "git.exe" if platform.system() == "Windows" else "git"


def validate_git_availability() -> tuple[bool, Optional[str]]:
    """
    Check that ``git --version`` runs.

    Returns:
        Tuple of (is_available, error_message)
    """
    git_cmd = get_git_executable()

    try:
        result = subprocess.run([git_cmd, "--version"], capture_output=True, text=True, timeout=10)
    except FileNotFoundError:
        return False, f"Git executable '{git_cmd}' not found"
    except subprocess.TimeoutExpired:
        return False, f"'{git_cmd} --version' timed out"

    if result.returncode != 0:
        return False, f"Git command failed: {result.stderr.strip()}"
    return True, None
