"""Logging infrastructure.

Provides structured logging with:
- JSONL format for Loki/Elasticsearch ingestion
- QueueHandler + QueueListener for non-blocking I/O
- Lazy evaluation for expensive debug output
- OpenTelemetry trace correlation

Basic usage:
    import logging

    from mongo_keyset.infra.logging import get_lazy_logger, setup_logging

    setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("Paginating movies")

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"Filter: {expensive_render()}")
"""

from mongo_keyset.infra.logging.config import configure_logging, setup_logging, shutdown
from mongo_keyset.infra.logging.formatters import JSONFormatter
from mongo_keyset.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "JSONFormatter",
    "LazyLoggerAdapter",
    "configure_logging",
    "get_lazy_logger",
    "setup_logging",
    "shutdown",
]
