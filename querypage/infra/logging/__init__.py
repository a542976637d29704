"""Logging helpers.

Modules log through the standard library:

    import logging

    logger = logging.getLogger(__name__)
    logger.warning("Something odd", extra={"operation": "pagination.parse"})

DEBUG output that is expensive to build goes through the lazy adapter:

    from querypage.infra.logging import get_lazy_logger

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"Expensive: {render()}")  # Only runs if DEBUG enabled
"""

from __future__ import annotations

from .lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "LazyLoggerAdapter",
    "get_lazy_logger",
]
