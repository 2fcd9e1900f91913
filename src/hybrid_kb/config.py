"""
Configuration from environment variables.

Load order: .env.local (local dev, highest priority), then .env, then the
process environment. Values already set in the environment win over .env
unless override=True is passed to load_environment().
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def load_environment(project_root: Path = PROJECT_ROOT, override: bool = False) -> Optional[Path]:
    """
    Load .env.local or .env from the project root.

    Returns:
        The file that was loaded, or None if neither exists
    """
    env_local = project_root / ".env.local"
    env_file = project_root / ".env"

    for candidate in (env_local, env_file):
        if candidate.exists():
            load_dotenv(candidate, override=override)
            logger.debug(f"Loaded environment from: {candidate}")
            return candidate

    return None


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Runtime settings for the knowledge base, API and CLI"""
    documents_file: Path = Path("data/knowledge-base.json")
    vectors_file: Path = Path("data/embeddings.json")
    export_dir: Path = Path("exports")
    max_results: int = 5
    keyword_weight: float = 0.6
    vector_weight: float = 0.4
    autosave: bool = True
    log_level: str = "INFO"
    log_file: str = "logs/hybrid-kb.log"
    port: int = 8080


def load_settings(load_env_files: bool = True) -> Settings:
    """
    Build Settings from the environment.

    Config (env vars):
        KB_DOCUMENTS_FILE: Document list JSON (default: data/knowledge-base.json)
        KB_VECTORS_FILE: Vector Table JSON (default: data/embeddings.json)
        KB_EXPORT_DIR: Export directory (default: exports)
        KB_MAX_RESULTS: Default top-K (default: 5)
        KB_KEYWORD_WEIGHT / KB_VECTOR_WEIGHT: Fusion weights (default: 0.6 / 0.4)
        KB_AUTOSAVE: Persist after every change (default: true)
        LOG_LEVEL: Console log level (default: INFO)
        LOG_FILE: Rotating log file base path (default: logs/hybrid-kb.log)
        PORT: API port (default: 8080)

    Raises:
        ValueError: If a numeric variable cannot be parsed or is out of range
    """
    if load_env_files:
        load_environment()

    settings = Settings(
        documents_file=Path(os.getenv("KB_DOCUMENTS_FILE", "data/knowledge-base.json")),
        vectors_file=Path(os.getenv("KB_VECTORS_FILE", "data/embeddings.json")),
        export_dir=Path(os.getenv("KB_EXPORT_DIR", "exports")),
        max_results=_get_int("KB_MAX_RESULTS", 5),
        keyword_weight=_get_float("KB_KEYWORD_WEIGHT", 0.6),
        vector_weight=_get_float("KB_VECTOR_WEIGHT", 0.4),
        autosave=_get_bool("KB_AUTOSAVE", True),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("LOG_FILE", "logs/hybrid-kb.log"),
        port=_get_int("PORT", 8080),
    )

    if settings.max_results < 0:
        raise ValueError(f"KB_MAX_RESULTS must be >= 0, got {settings.max_results}")

    return settings
