"""
Pipeline Monitor - structured stage logging and aggregated counters.

One call per pipeline stage writes a JSON log line and updates the
in-memory counters:

    message_received -> intent_classified -> entities_extracted
    -> boundary_reconciled (per adjusted end) -> execution_finished
    pipeline_error (any stage)

Usage:
    from jarvi.monitoring import pipeline_monitor

    request_id = pipeline_monitor.new_request_id()
    pipeline_monitor.track_message(request_id, user_id, text)
    ...
    stats = pipeline_monitor.get_stats().to_dict()
"""

import json
import logging
import sys
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# LOGGING SETUP
# ---------------------------------------------------------------------------
logger = logging.getLogger("jarvi")
logger.setLevel(logging.INFO)

if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)
    formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s [%(name)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

pipeline_logger = logging.getLogger("jarvi.pipeline")


def _preview(text: str, limit: int = 80) -> str:
    return text[:limit] + "..." if len(text) > limit else text


# ---------------------------------------------------------------------------
# METRICS DATA CLASSES
# ---------------------------------------------------------------------------
@dataclass
class PipelineStats:
    """Aggregated counters since start (or the last reset)."""
    messages_processed: int = 0
    successful: int = 0
    failed: int = 0
    events_extracted: int = 0
    reconciliations: int = 0
    total_latency_ms: float = 0.0
    by_intent: Dict[str, int] = field(default_factory=dict)
    by_error_kind: Dict[str, int] = field(default_factory=dict)

    @property
    def avg_latency_ms(self) -> float:
        finished = self.successful + self.failed
        if finished == 0:
            return 0.0
        return self.total_latency_ms / finished

    @property
    def success_rate(self) -> float:
        finished = self.successful + self.failed
        if finished == 0:
            return 0.0
        return (self.successful / finished) * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "messages_processed": self.messages_processed,
            "successful": self.successful,
            "failed": self.failed,
            "success_rate": f"{self.success_rate:.1f}%",
            "events_extracted": self.events_extracted,
            "reconciliations": self.reconciliations,
            "avg_latency_ms": round(self.avg_latency_ms, 2),
            "by_intent": dict(self.by_intent),
            "by_error_kind": dict(self.by_error_kind),
        }


# ---------------------------------------------------------------------------
# PIPELINE MONITOR
# ---------------------------------------------------------------------------
class PipelineMonitor:
    """
    Stage logging plus counters, thread-safe.

    Counters are updated under a Lock because the FastAPI app may serve
    requests from a threadpool as well as from the event loop.
    """

    def __init__(self):
        self._logger = pipeline_logger
        self._lock = Lock()
        self._stats = PipelineStats()

    @staticmethod
    def new_request_id() -> str:
        return str(uuid.uuid4())

    def _emit(self, level: int, request_id: str, data: Dict[str, Any]) -> None:
        data["request_id"] = request_id
        data["timestamp"] = datetime.now(timezone.utc).isoformat()
        self._logger.log(level, f"[{request_id}] {json.dumps(data, default=str)}")

    # -----------------------------------------------------------------------
    # STAGES
    # -----------------------------------------------------------------------

    def track_message(self, request_id: str, user_id: Optional[str], text: str) -> None:
        with self._lock:
            self._stats.messages_processed += 1
        self._emit(logging.INFO, request_id, {
            "event": "message_received",
            "user_id": user_id,
            "text_length": len(text),
            "text_preview": _preview(text),
        })

    def track_intent(
        self,
        request_id: str,
        intent: str,
        confidence: float,
        raw_intent: Optional[str] = None,
        missing_fields: Optional[List[str]] = None,
    ) -> None:
        with self._lock:
            self._stats.by_intent[intent] = self._stats.by_intent.get(intent, 0) + 1
        self._emit(logging.INFO, request_id, {
            "event": "intent_classified",
            "intent": intent,
            "raw_intent": raw_intent or intent,
            "confidence": round(confidence, 3),
            "missing_fields": missing_fields or [],
        })

    def track_extraction(self, request_id: str, entity_count: int, titles: Optional[List[str]] = None) -> None:
        with self._lock:
            self._stats.events_extracted += entity_count
        self._emit(logging.INFO, request_id, {
            "event": "entities_extracted",
            "count": entity_count,
            "titles": titles or [],
        })

    def track_reconciliation(self, request_id: str, clause_order: int, inferred_end: str, reconciled_end: str) -> None:
        with self._lock:
            self._stats.reconciliations += 1
        self._emit(logging.INFO, request_id, {
            "event": "boundary_reconciled",
            "clause_order": clause_order,
            "inferred_end": inferred_end,
            "reconciled_end": reconciled_end,
        })

    def track_execution(
        self,
        request_id: str,
        agent: Optional[str],
        success: bool,
        latency_ms: float,
        detail: str = "",
        error_kind: Optional[str] = None,
    ) -> None:
        with self._lock:
            self._stats.total_latency_ms += latency_ms
            if success:
                self._stats.successful += 1
            else:
                self._stats.failed += 1
                if error_kind:
                    self._stats.by_error_kind[error_kind] = self._stats.by_error_kind.get(error_kind, 0) + 1

        level = logging.INFO if success else logging.WARNING
        data = {
            "event": "execution_finished",
            "agent": agent,
            "success": success,
            "latency_ms": round(latency_ms, 2),
            "detail": _preview(detail, 200),
        }
        if error_kind:
            data["error_kind"] = error_kind
        self._emit(level, request_id, data)

    def track_error(
        self,
        request_id: str,
        stage: str,
        error_kind: str,
        message: str,
        latency_ms: float = 0.0,
        clause: Optional[str] = None,
    ) -> None:
        with self._lock:
            self._stats.failed += 1
            self._stats.total_latency_ms += latency_ms
            self._stats.by_error_kind[error_kind] = self._stats.by_error_kind.get(error_kind, 0) + 1

        data = {
            "event": "pipeline_error",
            "stage": stage,
            "error_kind": error_kind,
            "message": _preview(message, 200),
        }
        if clause:
            data["clause"] = clause
        self._emit(logging.WARNING, request_id, data)

    # -----------------------------------------------------------------------
    # METRICS METHODS
    # -----------------------------------------------------------------------

    def get_stats(self) -> PipelineStats:
        """Snapshot of the counters."""
        with self._lock:
            return PipelineStats(
                messages_processed=self._stats.messages_processed,
                successful=self._stats.successful,
                failed=self._stats.failed,
                events_extracted=self._stats.events_extracted,
                reconciliations=self._stats.reconciliations,
                total_latency_ms=self._stats.total_latency_ms,
                by_intent=dict(self._stats.by_intent),
                by_error_kind=dict(self._stats.by_error_kind),
            )

    def reset(self) -> None:
        """Reset all counters (useful for testing)."""
        with self._lock:
            self._stats = PipelineStats()


# ---------------------------------------------------------------------------
# SINGLETON INSTANCE
# ---------------------------------------------------------------------------
pipeline_monitor = PipelineMonitor()
