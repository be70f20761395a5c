"""
Telemetry and logging infrastructure for evaluation harness.
"""

import json
import logging
import sys
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """
    Configure structlog on top of stdlib logging.

    Args:
        level: Log level name
        json_output: Render JSON lines instead of console output
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        stream=sys.stderr,
    )
    renderer = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def new_run_id() -> str:
    """Generate a new unique run ID."""
    return str(uuid.uuid4())


def log_step(
    run_id: str,
    step_name: str,
    ms: float,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log a step execution with timing.

    Args:
        run_id: Unique run identifier
        step_name: Name of the step (e.g., "fetch-weather")
        ms: Duration in milliseconds
        extra: Optional extra fields to log
    """
    logger.info("step_executed", run_id=run_id, step=step_name, duration_ms=ms, **(extra or {}))


class TraceRecorder:
    """
    Buffering observability sink.

    Spans are appended to memory and never block the caller. Call
    :meth:`flush` once before process exit to write them out.
    """

    def __init__(self, path: Optional[str | Path] = None):
        self.path = Path(path) if path else None
        self._buffer: List[Dict[str, Any]] = []

    @property
    def events(self) -> List[Dict[str, Any]]:
        return list(self._buffer)

    def emit(self, name: str, **attrs: Any) -> None:
        self._buffer.append({
            "name": name,
            "time": datetime.now(timezone.utc).isoformat(),
            **attrs,
        })

    @asynccontextmanager
    async def span(self, name: str, **attrs: Any) -> AsyncIterator[Dict[str, Any]]:
        """
        Record a span around a block.

        The yielded dict may be updated with extra attributes. The span is
        recorded with status ``error`` if the block raises.
        """
        record: Dict[str, Any] = dict(attrs)
        started = time.perf_counter()
        status = "ok"
        try:
            yield record
        except BaseException:
            status = "error"
            raise
        finally:
            self.emit(
                name,
                status=status,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                **record,
            )

    def flush(self, path: Optional[str | Path] = None) -> int:
        """
        Write buffered spans as JSONL and clear the buffer.

        Spans stay buffered when no path is configured or the write fails,
        so a later flush can retry.

        Returns:
            Number of spans flushed
        """
        target = Path(path) if path else self.path
        if not self._buffer:
            return 0
        if target is None:
            logger.warning("traces_not_flushed", count=len(self._buffer), reason="no trace path configured")
            return 0

        events = list(self._buffer)
        payload = "".join(json.dumps(event, ensure_ascii=False, default=str) + "\n" for event in events)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "a", encoding="utf-8") as f:
            f.write(payload)
        del self._buffer[:len(events)]
        logger.info("traces_flushed", count=len(events), path=str(target))
        return len(events)
