"""Elasticsearch client construction."""

import logging
from typing import Optional

from elasticsearch import Elasticsearch

from .config import Settings, load_settings

logger = logging.getLogger(__name__)


def create_client(settings: Optional[Settings] = None) -> Elasticsearch:
    """Client for the configured host, with basic auth when user and password are set."""
    settings = settings or load_settings()

    auth = None
    if settings.es_user and settings.es_password:
        auth = (settings.es_user, settings.es_password)

    logger.debug(f"Connecting to Elasticsearch at {settings.es_host}")
    return Elasticsearch(
        settings.es_host,
        basic_auth=auth,
        request_timeout=settings.request_timeout,
    )
