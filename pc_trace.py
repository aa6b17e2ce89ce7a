"""
Session-scoped tracing for PitchCheck provider calls.

Provides a thread-local TraceContext that records:
  - Per-outbound-call timing (service, endpoint, elapsed_ms, status, provider status)
  - Cache hits that avoided an outbound call (weather grid cells, condition scores)
  - End-of-session summary (total_elapsed, total_api_calls, cache hits, outcome)

Usage:
    from pc_trace import TraceContext, get_trace, set_trace, clear_trace

    ctx = TraceContext(trace_id=session_id)
    set_trace(ctx)
    ...
    ctx.log_summary()
    clear_trace()

    # In API clients:
    trace = get_trace()
    if trace:
        trace.record_api_call(...)

Worker threads do not inherit thread-locals; code that fans out onto a
pool captures get_trace() first and calls set_trace(parent) in the worker.
"""

import threading
import time
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class APICallRecord:
    """One outbound HTTP call (Google Places, OpenWeather, Open-Meteo)."""
    service: str          # "google_places" | "openweather" | "open_meteo"
    endpoint: str         # "places_nearby", "weather", "forecast", ...
    elapsed_ms: int
    status_code: int
    provider_status: str = ""   # e.g. Google "OK", "ZERO_RESULTS"


@dataclass
class TraceContext:
    """Accumulates provider-call data for one session."""
    trace_id: str
    session_start: float = field(default_factory=time.time)
    api_calls: List[APICallRecord] = field(default_factory=list)
    cache_hits: Dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record_api_call(
        self,
        service: str,
        endpoint: str,
        elapsed_ms: int,
        status_code: int,
        provider_status: str = "",
    ):
        rec = APICallRecord(
            service=service,
            endpoint=endpoint,
            elapsed_ms=elapsed_ms,
            status_code=status_code,
            provider_status=provider_status,
        )
        with self._lock:
            self.api_calls.append(rec)
        logger.info(
            "  [api] trace=%s svc=%s ep=%s ms=%d http=%d provider=%s",
            self.trace_id,
            service,
            endpoint,
            elapsed_ms,
            status_code,
            provider_status,
        )

    def record_cache_hit(self, cache_name: str):
        with self._lock:
            self.cache_hits[cache_name] = self.cache_hits.get(cache_name, 0) + 1
        logger.debug("  [cache] trace=%s hit=%s", self.trace_id, cache_name)

    def failed_calls(self) -> List[APICallRecord]:
        return [c for c in self.api_calls if c.status_code == 0 or c.status_code >= 400]

    def summary_dict(self) -> Dict[str, Any]:
        """Return a summary dict suitable for logging and --json output."""
        total_elapsed = int((time.time() - self.session_start) * 1000)
        failed = self.failed_calls()

        if not self.api_calls:
            outcome = "cached" if self.cache_hits else "empty"
        elif len(failed) == len(self.api_calls):
            outcome = "error"
        elif failed:
            outcome = "partial"
        else:
            outcome = "success"

        by_service: Dict[str, int] = {}
        for c in self.api_calls:
            by_service[c.service] = by_service.get(c.service, 0) + 1

        return {
            "trace_id": self.trace_id,
            "total_elapsed_ms": total_elapsed,
            "total_api_calls": len(self.api_calls),
            "failed_api_calls": len(failed),
            "calls_by_service": by_service,
            "cache_hits": dict(self.cache_hits),
            "final_outcome": outcome,
        }

    def log_summary(self):
        """Emit a single structured summary log line."""
        s = self.summary_dict()
        logger.info(
            "[trace-summary] trace=%s total_ms=%d api_calls=%d failed=%d "
            "cache_hits=%d outcome=%s",
            s["trace_id"],
            s["total_elapsed_ms"],
            s["total_api_calls"],
            s["failed_api_calls"],
            sum(s["cache_hits"].values()),
            s["final_outcome"],
        )


# =============================================================================
# Thread-local storage
# =============================================================================

_trace_local = threading.local()


def get_trace() -> Optional[TraceContext]:
    """Get the current thread's trace context, or None."""
    return getattr(_trace_local, "ctx", None)


def set_trace(ctx: Optional[TraceContext]):
    """Set the trace context for the current thread."""
    _trace_local.ctx = ctx


def clear_trace():
    """Clear the current trace context."""
    _trace_local.ctx = None
