from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from apify_tester.clients.apify import RemoteResult
from apify_tester.config.load_config import PollingConfig


logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    READY = "READY"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    ABORTED = "ABORTED"
    TIMED_OUT = "TIMED-OUT"
    # Never sent by the remote side; used when the status is missing or unrecognized.
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> "RunStatus":
        if not isinstance(value, str):
            return cls.UNKNOWN
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.UNKNOWN

    @property
    def pending(self) -> bool:
        return self in (RunStatus.READY, RunStatus.RUNNING)


class RunSnapshot(BaseModel):
    """The few run fields the tracker reads. Every field is optional."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    status: str | None = None
    defaultDatasetId: str | None = None

    @field_validator("id", "status", "defaultDatasetId", mode="before")
    @classmethod
    def _non_empty_str(cls, v: Any) -> str | None:
        if isinstance(v, str) and v.strip():
            return v.strip()
        return None

    @property
    def run_status(self) -> RunStatus:
        return RunStatus.parse(self.status)


def parse_run_snapshot(data: Any) -> RunSnapshot:
    """Read run fields from a remote payload.

    The remote API wraps run objects as `{"data": {...}}`; a bare run object is
    accepted as well. Anything else yields an empty snapshot.
    """
    obj = data
    if isinstance(obj, dict) and isinstance(obj.get("data"), dict):
        obj = obj["data"]
    if not isinstance(obj, dict):
        return RunSnapshot()
    try:
        return RunSnapshot.model_validate(obj)
    except ValidationError:
        return RunSnapshot()


@dataclass(frozen=True)
class RunHandle:
    run_id: str
    dataset_id: str | None = None
    status: RunStatus = RunStatus.UNKNOWN

    @classmethod
    def from_snapshot(cls, run_id: str, snap: RunSnapshot) -> "RunHandle":
        return cls(run_id=run_id, dataset_id=snap.defaultDatasetId, status=snap.run_status)


class PollState(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    TERMINAL = "terminal"
    GAVE_UP = "gave_up"


@dataclass(frozen=True)
class PollOutcome:
    state: PollState
    handle: RunHandle
    status_result: RemoteResult
    dataset_result: RemoteResult | None = None
    polls: int = 1

    @property
    def done(self) -> bool:
        return self.state is not PollState.PENDING

    def to_payload(self, *, retry_after_s: float | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "state": self.state.value,
            "runId": self.handle.run_id,
            "status": self.handle.status.value,
            "datasetId": self.handle.dataset_id,
            "polls": int(self.polls),
            "run": self.status_result.to_payload(),
            "dataset": self.dataset_result.to_payload() if self.dataset_result is not None else None,
        }
        if self.state is PollState.PENDING and retry_after_s is not None:
            payload["retryAfterS"] = float(retry_after_s)
        return payload


class RunAPI(Protocol):
    async def start_run(self, actor_id: str, run_input: dict[str, Any] | None = None) -> RemoteResult: ...

    async def get_run_status(self, run_id: str) -> RemoteResult: ...

    async def get_dataset_items(self, dataset_id: str) -> RemoteResult: ...


class RunTracker:
    """Drives one run from submission to a terminal status.

    Holds no run registry: every poll is addressed by run id. The only state is
    the set of polls currently executing, so that overlapping polls for the same
    run id share one remote status request (single-flight).
    """

    def __init__(
        self,
        client: RunAPI,
        *,
        interval_s: float = 3.0,
        max_polls: int = 300,
        deadline_s: float = 900.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self.interval_s = float(interval_s)
        self.max_polls = int(max_polls)
        self.deadline_s = float(deadline_s)
        self._sleep = sleep
        self._clock = clock
        self._inflight: dict[str, asyncio.Future[PollOutcome]] = {}

    @classmethod
    def from_config(cls, client: RunAPI, cfg: PollingConfig) -> "RunTracker":
        return cls(client, interval_s=cfg.interval_s, max_polls=cfg.max_polls, deadline_s=cfg.deadline_s)

    async def start(
        self, actor_id: str, run_input: dict[str, Any] | None = None
    ) -> tuple[RemoteResult, RunHandle | None]:
        """Start a remote run. A handle is returned only when the response carries a run id."""
        result = await self._client.start_run(actor_id, run_input)
        if not result.ok:
            return result, None
        snap = parse_run_snapshot(result.data)
        if snap.id is None:
            logger.info("Start of %s returned no run id (HTTP %s)", actor_id, result.status)
            return result, None
        return result, RunHandle.from_snapshot(snap.id, snap)

    async def poll_once(self, run_id: str) -> PollOutcome:
        fut = self._inflight.get(run_id)
        if fut is None:
            fut = asyncio.ensure_future(self._poll(run_id))
            self._inflight[run_id] = fut
            fut.add_done_callback(lambda f, rid=run_id: self._forget(rid, f))
        # Shielded so that one abandoned caller does not cancel the poll shared with others.
        return await asyncio.shield(fut)

    def _forget(self, run_id: str, fut: asyncio.Future[PollOutcome]) -> None:
        if self._inflight.get(run_id) is fut:
            del self._inflight[run_id]

    async def _poll(self, run_id: str) -> PollOutcome:
        status_result = await self._client.get_run_status(run_id)
        snap = parse_run_snapshot(status_result.data) if status_result.ok else RunSnapshot()
        handle = RunHandle.from_snapshot(run_id, snap)

        if handle.status.pending:
            return PollOutcome(state=PollState.PENDING, handle=handle, status_result=status_result)

        if handle.status is RunStatus.SUCCEEDED:
            dataset_result: RemoteResult | None = None
            if handle.dataset_id is not None:
                dataset_result = await self._client.get_dataset_items(handle.dataset_id)
            return PollOutcome(
                state=PollState.SUCCEEDED,
                handle=handle,
                status_result=status_result,
                dataset_result=dataset_result,
            )

        logger.info("Run %s ended with status %s", run_id, snap.status or handle.status.value)
        return PollOutcome(state=PollState.TERMINAL, handle=handle, status_result=status_result)

    async def track(self, handle: RunHandle) -> PollOutcome:
        """Poll until the run is no longer pending, within `max_polls` and `deadline_s`.

        Giving up only stops local polling; the remote run keeps executing.
        """
        started = self._clock()
        polls = 0
        while True:
            outcome = await self.poll_once(handle.run_id)
            polls += 1
            if outcome.done:
                return replace(outcome, polls=polls)

            elapsed = self._clock() - started
            if polls >= self.max_polls or elapsed + self.interval_s > self.deadline_s:
                logger.warning(
                    "Gave up on run %s after %d polls (%.1fs); last status %s",
                    handle.run_id,
                    polls,
                    elapsed,
                    outcome.handle.status.value,
                )
                return replace(outcome, state=PollState.GAVE_UP, polls=polls)
            await self._sleep(self.interval_s)
