"""
Base Executor - Abstract interface for specialized executors.

An executor turns a DelegationEnvelope into provider operations and
normalizes the outcome into an ExecutionResult.

Design Pattern: Strategy Pattern
================================
ChatService routes envelopes to executors by targetAgent. Each executor
owns the entities for the duration of its provider calls and hands back
only the ExecutionResult.

Provider call policy:
=====================
- Every call is bounded by PROVIDER_TIMEOUT_SECONDS (ProviderTimeout past it)
- Mutating calls (create/update/delete/complete) are never retried
- Read-only list calls get one retry after READ_RETRY_BACKOFF_SECONDS,
  and only for transient failures (timeout, unavailable, rate limited)
- Cancellation is not caught: a cancelled request stops its pending call
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from jarvi.core.config import settings
from jarvi.core.errors import TRANSIENT_KINDS, ErrorKind, hint_for
from jarvi.environments.base import ProviderAdapter, ProviderResult
from jarvi.services.delegation import DelegationEnvelope, TargetAgent

logger = logging.getLogger("jarvi.services.executors")


class ExecutionStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class DescriptorOutcome:
    """Result for one descriptor (event, change or task)."""
    order: int
    title: str
    status: ExecutionStatus
    detail: str = ""
    provider_ref: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS


@dataclass
class ExecutionResult:
    """
    Aggregate result of one envelope.

    status is SUCCESS only when every descriptor succeeded. Partial
    completion is FAILED, and outcomes lists what did and did not happen.
    """
    status: ExecutionStatus
    detail: str
    provider_ref: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    outcomes: List[DescriptorOutcome] = field(default_factory=list)
    data: Any = None

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS

    @classmethod
    def success(cls, detail: str, provider_ref: Optional[str] = None, data: Any = None) -> "ExecutionResult":
        return cls(status=ExecutionStatus.SUCCESS, detail=detail, provider_ref=provider_ref, data=data)

    @classmethod
    def failed(cls, kind: ErrorKind, detail: str) -> "ExecutionResult":
        return cls(status=ExecutionStatus.FAILED, detail=detail, error_kind=kind)

    @classmethod
    def from_outcomes(cls, outcomes: List[DescriptorOutcome], noun: str, verb: str) -> "ExecutionResult":
        """
        Aggregate per-descriptor outcomes.

        Example detail:
            "2 of 3 events created; Break could not be saved: reconnect calendar"
        """
        done = [o for o in outcomes if o.succeeded]
        failed = [o for o in outcomes if not o.succeeded]
        plural = noun if len(outcomes) == 1 else f"{noun}s"

        if not failed:
            detail = f"{len(done)} {plural} {verb}"
        else:
            problems = "; ".join(
                f"{o.title} could not be saved: {hint_for(o.error_kind)}" for o in failed
            )
            detail = f"{len(done)} of {len(outcomes)} {plural} {verb}; {problems}"

        return cls(
            status=ExecutionStatus.SUCCESS if not failed else ExecutionStatus.FAILED,
            detail=detail,
            provider_ref=outcomes[0].provider_ref if len(outcomes) == 1 else None,
            error_kind=failed[0].error_kind if failed else None,
            outcomes=outcomes,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "detail": self.detail,
            "provider_ref": self.provider_ref,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "outcomes": [
                {
                    "order": o.order,
                    "title": o.title,
                    "status": o.status.value,
                    "detail": o.detail,
                    "provider_ref": o.provider_ref,
                    "error_kind": o.error_kind.value if o.error_kind else None,
                }
                for o in self.outcomes
            ],
        }


class Executor(ABC):
    """
    Abstract base class for specialized executors.

    Usage:
        class CalendarExecutor(Executor):
            agent = TargetAgent.CALENDAR

            async def execute(self, envelope):
                result = await self._call("createEvent", lambda: self.adapter.create_event(payload))
                ...
    """

    agent: TargetAgent

    def __init__(
        self,
        adapter: ProviderAdapter,
        timeout: Optional[float] = None,
        retry_backoff: Optional[float] = None,
    ):
        self.adapter = adapter
        self._timeout = settings.PROVIDER_TIMEOUT_SECONDS if timeout is None else timeout
        self._retry_backoff = settings.READ_RETRY_BACKOFF_SECONDS if retry_backoff is None else retry_backoff

    @abstractmethod
    async def execute(self, envelope: DelegationEnvelope) -> ExecutionResult:
        pass

    async def _call(
        self,
        operation: str,
        factory: Callable[[], Awaitable[ProviderResult]],
        read_only: bool = False,
    ) -> ProviderResult:
        """
        Run one provider operation under the call policy.

        factory is invoked once per attempt so a retry issues a fresh call.
        """
        attempts = 2 if read_only else 1
        result = ProviderResult.failure(ErrorKind.PROVIDER_UNAVAILABLE, f"{operation} was not attempted")

        for attempt in range(1, attempts + 1):
            try:
                result = await asyncio.wait_for(factory(), timeout=self._timeout)
            except asyncio.TimeoutError:
                result = ProviderResult.failure(
                    ErrorKind.PROVIDER_TIMEOUT,
                    f"{operation} did not answer within {self._timeout:g}s",
                )

            if result.ok or result.error_kind not in TRANSIENT_KINDS or attempt == attempts:
                break
            logger.info(f"{operation} failed ({result.error_kind.value}), retrying in {self._retry_backoff:g}s")
            await asyncio.sleep(self._retry_backoff)

        if not result.ok:
            logger.warning(f"{operation} failed: {result.error_kind.value if result.error_kind else '?'} {result.detail}")
        return result
