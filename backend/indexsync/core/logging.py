"""Logging for indexsync.

Components log through a ``ContextualLogger`` so that every line carries the
dimensions of the run it belongs to (collection number, content type, index).
"""

import logging
import sys
from typing import Any, MutableMapping, Optional, Tuple

from indexsync.core.config import settings

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s%(context)s"


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that attaches key/value dimensions to every record."""

    def __init__(self, logger: logging.Logger, dimensions: Optional[dict] = None):
        """Wrap ``logger`` with an optional set of dimensions."""
        super().__init__(logger, dimensions or {})
        self.dimensions = dict(dimensions or {})

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a new logger with ``dimensions`` merged into the current ones."""
        merged = {**self.dimensions, **dimensions}
        return ContextualLogger(self.logger, merged)

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        """Expose the dimensions to formatters and structured handlers."""
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("dimensions", self.dimensions)
        kwargs["extra"] = extra
        return msg, kwargs


class _ContextFormatter(logging.Formatter):
    """Render dimensions as a trailing ``[key=value ...]`` block."""

    def format(self, record: logging.LogRecord) -> str:
        dimensions = getattr(record, "dimensions", None) or {}
        if dimensions:
            rendered = " ".join(f"{key}={value}" for key, value in dimensions.items())
            record.context = f" [{rendered}]"
        else:
            record.context = ""
        return super().format(record)


def _build_base_logger(name: str) -> logging.Logger:
    base = logging.getLogger(name)
    if not base.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(_ContextFormatter(_FORMAT))
        base.addHandler(handler)
    base.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
    return base


logger = ContextualLogger(_build_base_logger("indexsync"))
