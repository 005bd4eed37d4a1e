"""
Structured JSON logging for webhook processing.

One JSON object per line. A correlation ID ties together every line emitted
while one webhook delivery is processed: the receiver opens a correlation_scope
around the pipeline call and the pipeline modules only ever read it.
"""
import json
import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import IO, Iterator, Optional

correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Record attributes (passed via extra=) promoted to top-level JSON keys
EXTRA_FIELDS = (
    "conversation_id",
    "agent_id",
    "payload_format",
    "stage",
    "error_count",
    "analysis_key",
)


def get_correlation_id() -> Optional[str]:
    return correlation_id_ctx.get()


def generate_correlation_id() -> str:
    """UUID4 hex, 32 chars."""
    return uuid.uuid4().hex


@contextmanager
def correlation_scope(correlation_id: Optional[str] = None) -> Iterator[str]:
    """
    Bind a correlation ID for the duration of one delivery.

    A fresh ID is generated when none is given. The previous value is restored
    on exit, so nested or concurrent deliveries never see each other's ID.
    """
    cid = correlation_id or generate_correlation_id()
    token = correlation_id_ctx.set(cid)
    try:
        yield cid
    finally:
        correlation_id_ctx.reset(token)


class StructuredJsonFormatter(logging.Formatter):
    """
    Renders a record as a single JSON line:
    {"timestamp": "...Z", "level": "WARNING", "correlation_id": "...", "module": "...",
     "message": "...", "stage": "repair", "conversation_id": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry = {
            "timestamp": created.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "correlation_id": get_correlation_id(),
            "module": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_structured_logging(log_level: str = "INFO", stream: Optional[IO[str]] = None) -> None:
    """
    Route all logging through one JSON handler on the root logger.

    Existing root handlers are removed. stream defaults to stderr so tools that
    print results on stdout keep that channel clean.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredJsonFormatter())
    root_logger.addHandler(handler)
