"""
contentindex Configuration

Loads from the project root .env file, then from the process environment.

    ES_HOST=http://localhost:9200
    ES_INDEX=contentindex            # alias consumers search
    ES_INDEX_POSTFIX=                # physical generation, e.g. a timestamp
    INDEX_ALL_WORKSPACES=false       # false: only the live workspace is indexed

Logging:
    from contentindex.config import get_logger
    logger = get_logger(__name__)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent.parent
load_dotenv(PROJECT_ROOT / ".env")

from .logging_config import (
    configure_all_loggers,
    get_log_level,
    get_logger,
)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Elasticsearch
ES_HOST = os.getenv("ES_HOST", "http://localhost:9200")
ES_USER = os.getenv("ES_USER")
ES_PASSWORD = os.getenv("ES_PASSWORD")
ES_INDEX = os.getenv("ES_INDEX", "contentindex")
ES_INDEX_POSTFIX = os.getenv("ES_INDEX_POSTFIX", "")
ES_REQUEST_TIMEOUT = int(os.getenv("ES_REQUEST_TIMEOUT", "30"))

# Indexing
LIVE_WORKSPACE = "live"


@dataclass
class Settings:
    """Snapshot of the indexer configuration."""
    es_host: str = ES_HOST
    es_user: Optional[str] = ES_USER
    es_password: Optional[str] = ES_PASSWORD
    index_name: str = ES_INDEX
    index_name_postfix: str = ES_INDEX_POSTFIX
    request_timeout: int = ES_REQUEST_TIMEOUT
    index_all_workspaces: bool = False
    live_workspace: str = LIVE_WORKSPACE
    native_scripts: bool = True


def load_settings() -> Settings:
    """Read settings from the environment at call time."""
    return Settings(
        es_host=os.getenv("ES_HOST", "http://localhost:9200"),
        es_user=os.getenv("ES_USER"),
        es_password=os.getenv("ES_PASSWORD"),
        index_name=os.getenv("ES_INDEX", "contentindex"),
        index_name_postfix=os.getenv("ES_INDEX_POSTFIX", ""),
        request_timeout=int(os.getenv("ES_REQUEST_TIMEOUT", "30")),
        index_all_workspaces=_env_bool("INDEX_ALL_WORKSPACES", False),
        live_workspace=os.getenv("LIVE_WORKSPACE", LIVE_WORKSPACE),
        native_scripts=_env_bool("ES_NATIVE_SCRIPTS", True),
    )


__all__ = [
    # Configuration
    "PROJECT_ROOT",
    "ES_HOST",
    "ES_USER",
    "ES_PASSWORD",
    "ES_INDEX",
    "ES_INDEX_POSTFIX",
    "ES_REQUEST_TIMEOUT",
    "LIVE_WORKSPACE",
    "Settings",
    "load_settings",
    # Logging
    "get_logger",
    "get_log_level",
    "configure_all_loggers",
]
