"""
Structured Logger Module

structlog renders one JSON object per event. A workflow session binds a
single correlation ID so that onboarding, search and drafting calls for the
same user can be traced together; pipeline code adds ``phase`` and
``component``.

Events go to stderr, which keeps stdout free for the interactive CLI. The CLI
calls configure_logging() with ``SystemParams.log_level`` and
``SystemParams.log_file`` before a session starts; until then the module
default (INFO, stderr only) applies.

Log Levels:
    - DEBUG: Prompts, response sizes, state transitions
    - INFO: Workflow actions started/completed, pipeline stage changes
    - WARNING: Retries, rejected actions, discarded results
    - ERROR: Failed service calls, validation failures surfaced to the user
"""

import logging
import re
import sys
import uuid
from pathlib import Path
from typing import Optional, Union

import structlog
from structlog.types import BindableLogger, EventDict, WrappedLogger

MASK = "***MASKED***"

# Whole words of the key, split on "_" or "-": "anthropic_api_key" and
# "x-auth" match, "author" and "tokens_used" do not.
SENSITIVE_KEY = re.compile(
    r"(?:^|[_-])(?:password|api_key|token|secret|credential|auth)(?:$|[_-])"
)


def mask_credentials(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace the value of any credential-like key with MASK."""
    for key in event_dict:
        if SENSITIVE_KEY.search(key.lower()):
            event_dict[key] = MASK
    return event_dict


def configure_logging(
    log_level: str = "INFO", log_file: Union[str, Path, None] = None
) -> None:
    """
    (Re)configure structlog and the stdlib root logger.

    Safe to call more than once: handlers installed by an earlier call are
    replaced, so the level from the loaded SystemParams takes effect even
    though a default configuration ran at import.

    Args:
        log_level: Level name, already validated by SystemParams
        log_file: Also append JSON lines to this file when given
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(
        format="%(message)s",
        level=logging.getLevelName(log_level.upper()),
        handlers=handlers,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            mask_credentials,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(
    correlation_id: Optional[str] = None,
    phase: Optional[str] = None,
    component: Optional[str] = None,
) -> BindableLogger:
    """
    Get structured logger with bound context.

    Args:
        correlation_id: Session correlation ID (a fresh UUID when omitted)
        phase: Pipeline phase (e.g., "onboarding", "job_discovery")
        component: Component name (e.g., "structured_extraction", "workflow_coordinator")
    """
    context = {"correlation_id": correlation_id or str(uuid.uuid4())}
    if phase:
        context["phase"] = phase
    if component:
        context["component"] = component
    return structlog.get_logger().bind(**context)


configure_logging()
