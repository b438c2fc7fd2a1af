"""
Module: ledger_engines.tracer
Responsibility: ``@traced_engine`` logs one LEDGER_ENGINE_TRACE entry per
    engine call so a report or schedule can be tied back to the engine
    version and inputs that produced it.
Architecture position: Engines.  Observes calls only; arguments and return
    values pass through untouched.

    @traced_engine("installments", "1.0", fingerprint_fields=("total", "count"))
    def build_schedule(*, total, count, ...):
        ...
"""

import functools
import hashlib
import json
import time
from collections.abc import Callable, Mapping, Sized
from typing import Any

from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

TRACE_MESSAGE = "LEDGER_ENGINE_TRACE"


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: Mapping[str, Any],
) -> str:
    """First 16 hex chars of a SHA-256 over the named keyword arguments.

    Unnamed arguments never contribute, so bulky inputs such as record lists
    can be left out of the fingerprint.
    """
    selected = {name: kwargs.get(name) for name in fingerprint_fields}
    canonical = json.dumps(selected, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable[[Callable], Callable]:
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_ms = (time.perf_counter() - started) * 1000

            logger.info(
                TRACE_MESSAGE,
                extra={
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "function": func.__qualname__,
                    "input_fingerprint": (
                        compute_input_fingerprint(fingerprint_fields, kwargs)
                        if fingerprint_fields
                        else None
                    ),
                    "result_size": len(result) if isinstance(result, Sized) else None,
                    "duration_ms": round(elapsed_ms, 2),
                },
            )
            return result

        return wrapper

    return decorator
