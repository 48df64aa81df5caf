"""
structlog setup for virtnet.

Reconciler events go to stderr for the operator and, when a log file is
given, to a JSON-lines file that survives the CLI invocation.
"""

import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import structlog

# applied to structlog events and to records from plain ``logging`` users
PRE_CHAIN = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _formatted(handler: logging.Handler, renderer) -> logging.Handler:
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=PRE_CHAIN)
    )
    return handler


def configure_logging(
    level: str = "WARNING",
    json_output: bool = False,
    log_file: Optional[Path] = None,
) -> None:
    """Route virtnet logs to stderr and optionally to ``log_file``.

    The file always receives JSON, one event per line, at ``level``.
    Calling this again replaces the handlers installed by a previous call.
    """
    structlog.configure(
        processors=PRE_CHAIN + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if json_output:
        console_renderer = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )
    handlers = [_formatted(logging.StreamHandler(sys.stderr), console_renderer)]

    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            _formatted(
                logging.FileHandler(log_file, encoding="utf-8"),
                structlog.processors.JSONRenderer(),
            )
        )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        handlers=handlers,
        force=True,
    )


def get_logger(name: str = "virtnet") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def log_operation(logger: structlog.stdlib.BoundLogger, operation: str, **kwargs):
    """Wrap one reconciler step in ``<operation>.started/.completed/.failed`` events.

    Usage:
        with log_operation(log, "network_create", uri=uri) as op_log:
            op_log.debug("Submitting network definition", xml=xml)
    """
    op_log = logger.bind(operation=operation, **kwargs)
    started = time.monotonic()
    op_log.info(f"{operation}.started")

    def elapsed_ms() -> float:
        return round((time.monotonic() - started) * 1000, 2)

    try:
        yield op_log
    except Exception as e:
        op_log.error(
            f"{operation}.failed",
            error=str(e),
            error_type=type(e).__name__,
            duration_ms=elapsed_ms(),
        )
        raise
    op_log.info(f"{operation}.completed", duration_ms=elapsed_ms())


@contextmanager
def network_context(name: Optional[str] = None, uuid: Optional[str] = None):
    """Tag every log line emitted inside the block with the network identity."""
    context = {k: v for k, v in (("network", name), ("uuid", uuid)) if v}
    with structlog.contextvars.bound_contextvars(**context):
        yield
