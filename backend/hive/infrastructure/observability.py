"""Logging setup, request ids and timing checkpoints.

Invariants:
    - Every record renders timestamp, level, logger and message
    - request_id, swarm_id, error_code and other extras appear in the JSON line when set
    - LOG_FORMAT=json emits one JSON object per line; anything else uses a plain text format
    - setup_logging replaces its own handler on repeat calls instead of stacking another

Design Decisions:
    - stdlib logging with a local JSONFormatter; setup runs in the app lifespan and in jobs
    - Request ids look like req_<epoch_ms>_<8 hex> so they sort by time in log search
"""

import json
import logging
import secrets
import time
from datetime import datetime, timezone

_EXTRA_KEYS = (
    "request_id", "user_id", "swarm_id", "agent_id", "error_code",
    "event_type", "attempt", "duration_ms", "input_tokens", "output_tokens",
    "path", "function", "checkpoints",
)

_HANDLER_NAME = "hive-root"


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Install the root handler for the chosen format."""
    for existing in list(logging.root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            logging.root.removeHandler(existing)
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))


def generate_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


class PerformanceTracker:
    """Named checkpoints measured from construction (milliseconds)."""

    def __init__(self, clock=time.perf_counter):
        self._clock = clock
        self._start = clock()
        self._last = self._start
        self.checkpoints: dict[str, float] = {}

    def checkpoint(self, name: str) -> float:
        now = self._clock()
        elapsed = round((now - self._last) * 1000, 2)
        self.checkpoints[name] = elapsed
        self._last = now
        return elapsed

    def total_ms(self) -> float:
        return round((self._clock() - self._start) * 1000, 2)

    def metrics(self) -> dict:
        return {"checkpoints": dict(self.checkpoints), "duration_ms": self.total_ms()}


def log_performance(
    logger: logging.Logger, function_name: str, metrics: dict, **extra,
) -> None:
    logger.info(
        f"{function_name} completed in {metrics.get('duration_ms')}ms",
        extra={"function": function_name, **metrics, **extra},
    )
