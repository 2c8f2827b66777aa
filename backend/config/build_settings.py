"""
Character Builder Engine Configuration

Environment-driven settings for the build-state engine and its HTTP session
surface. Values are read from the process environment, optionally seeded from
a local .env file.
"""
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [part.strip().upper() for part in raw.split(",") if part.strip()]


@dataclass
class BuildSettings:
    """Settings consumed by CharacterManager, BuildSession and the server"""
    default_sources: List[str] = field(default_factory=lambda: ["PHB"])
    # Suppression window for refresh signals at the session boundary
    refresh_window_ms: int = 150
    # Contract violations raise when True, otherwise they are logged and ignored
    strict_contracts: bool = True
    # 0 disables the cap
    event_history_limit: int = 500
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    @classmethod
    def from_env(cls) -> "BuildSettings":
        """Build settings from BUILD_* environment variables"""
        return cls(
            default_sources=_env_list("BUILD_DEFAULT_SOURCES", ["PHB"]),
            refresh_window_ms=_env_int("BUILD_REFRESH_WINDOW_MS", 150),
            strict_contracts=_env_bool("BUILD_STRICT_CONTRACTS", True),
            event_history_limit=_env_int("BUILD_EVENT_HISTORY_LIMIT", 500),
            host=os.getenv("HOST", "127.0.0.1"),
            port=_env_int("PORT", 8000),
            debug=_env_bool("DEBUG", False),
        )


_settings = None


def get_build_settings() -> BuildSettings:
    """Get the process-wide settings, reading the environment on first use"""
    global _settings
    if _settings is None:
        _settings = BuildSettings.from_env()
    return _settings


def reset_build_settings():
    """Forget cached settings so the next access re-reads the environment"""
    global _settings
    _settings = None
