"""Sync engine orchestrating cycles, connectivity and auth.

This module provides:
- SyncEngine: State machine that runs synchronization cycles and publishes
  SyncSnapshot changes to subscribers

State machine:
    | Trigger                      | Condition          | Result                       |
    |------------------------------|--------------------|------------------------------|
    | sync_now / queued trigger    | signed out         | idle or offline, no network  |
    | sync_now / queued trigger    | offline            | offline, no network          |
    | sync_now / queued trigger    | cycle running      | no-op                        |
    | sync_now / queued trigger    | otherwise          | syncing → idle or error      |
    | set_online(False)            | -                  | offline, error cleared       |
    | set_online(True)             | -                  | idle (syncing), "online" run |
    | sign_in()                    | -                  | signed in, "auth" run        |
    | sign_out()                   | -                  | signed out                   |
    | stop()                       | cycle running      | cycle finishes, then stopped |

Scheduled and event-driven triggers go through a bounded queue consumed by
a single task that waits for the running cycle to finish before starting
the next one, so at most one cycle ever runs per engine.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random as _random
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from docsync.client.store import load_json_object
from docsync.client.sync.changes import count_pending_changes
from docsync.client.sync.cycle import run_sync_cycle
from docsync.client.sync.retry import with_retry
from docsync.client.sync.types import CycleResult, StateListener, SyncSnapshot
from docsync.core.config import (
    AUTH_STORAGE_KEY,
    DEFAULT_MAX_PENDING_TRIGGERS,
    DEFAULT_RETRY_POLICY,
    DEFAULT_SYNC_INTERVAL,
    SHADOW_STORAGE_KEY,
    SYNCABLE_DOCUMENTS,
    DocumentDescriptor,
    RetryPolicy,
)
from docsync.core.timestamps import Clock, SystemClock, format_timestamp
from docsync.core.types import AuthStatus, SyncStatus

if TYPE_CHECKING:
    from docsync.client.api import RemoteTransport
    from docsync.client.store import KeyValueStore

logger = logging.getLogger(__name__)


class SyncEngine:
    """Orchestrates synchronization cycles for one account.

    Usage:
        engine = SyncEngine(store, transport)
        unsubscribe = engine.subscribe(render)

        engine.start()          # periodic + event-driven cycles
        await engine.sync_now("manual")

        await engine.stop()
        unsubscribe()
    """

    def __init__(
        self,
        store: KeyValueStore,
        transport: RemoteTransport,
        documents: Sequence[DocumentDescriptor] = SYNCABLE_DOCUMENTS,
        *,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        clock: Clock | None = None,
        online: bool = True,
        sync_interval: float = DEFAULT_SYNC_INTERVAL,
        max_pending_triggers: int = DEFAULT_MAX_PENDING_TRIGGERS,
        shadow_key: str = SHADOW_STORAGE_KEY,
        auth_key: str = AUTH_STORAGE_KEY,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        random: Callable[[], float] = _random.random,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Local key/value store for documents, shadow and auth flag.
            transport: Remote document transport.
            documents: Registered syncable documents.
            retry_policy: Backoff settings applied to each whole cycle.
            clock: Source of "now" for merges and sync timestamps.
            online: Connectivity at construction time.
            sync_interval: Seconds between scheduled cycles.
            max_pending_triggers: Capacity of the trigger queue.
            shadow_key: Store key of the shadow snapshot map.
            auth_key: Store key of the persisted auth flag.
            sleep: Awaitable sleep used for retry backoff.
            random: Jitter source for retry backoff.
        """
        self._store = store
        self._transport = transport
        self._documents = tuple(documents)
        self._retry_policy = retry_policy
        self._clock = clock or SystemClock()
        self._online = online
        self._sync_interval = sync_interval
        self._shadow_key = shadow_key
        self._auth_key = auth_key
        self._sleep = sleep
        self._random = random

        self._listeners: list[StateListener] = []
        self._snapshot = SyncSnapshot(
            status=SyncStatus.IDLE if online else SyncStatus.OFFLINE,
            auth_status=AuthStatus.parse(store.get(auth_key)),
        )
        self._is_syncing = False
        self._last_result: CycleResult | None = None

        self._triggers: asyncio.Queue[str] = asyncio.Queue(maxsize=max_pending_triggers)
        self._idle = asyncio.Event()
        self._idle.set()
        self._ticker_task: asyncio.Task[None] | None = None
        self._runner_task: asyncio.Task[None] | None = None
        self._stopping = False

        self.recalculate_pending_changes()

    # === State ===

    @property
    def snapshot(self) -> SyncSnapshot:
        """Get the current state snapshot."""
        return self._snapshot

    @property
    def is_syncing(self) -> bool:
        """Check whether a cycle is in flight."""
        return self._is_syncing

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def running(self) -> bool:
        """Check whether the ticker and trigger consumer are started."""
        return self._runner_task is not None

    @property
    def last_result(self) -> CycleResult | None:
        """Result of the last successful cycle, if any."""
        return self._last_result

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener.

        The listener is called immediately with the current snapshot, then
        on every change.

        Args:
            listener: Called with each new SyncSnapshot.

        Returns:
            Function that removes the listener.
        """
        self._listeners.append(listener)
        listener(self._snapshot)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes: Any) -> None:
        """Commit a state transition and notify listeners."""
        snapshot = replace(self._snapshot, **changes)
        if snapshot == self._snapshot:
            return
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception:
                logger.exception("State listener failed")

    def _resting_status(self) -> SyncStatus:
        return SyncStatus.IDLE if self._online else SyncStatus.OFFLINE

    def recalculate_pending_changes(self) -> int:
        """Recompute the pending change count from the store.

        Returns:
            The new pending change count.
        """
        shadow = load_json_object(self._store, self._shadow_key)
        pending = count_pending_changes(self._store, self._documents, shadow)
        self._update(pending_changes=pending)
        return pending

    # === Lifecycle ===

    def start(self) -> None:
        """Start the periodic ticker and the trigger consumer.

        Must be called from a running event loop. Queues a startup cycle.
        """
        if self._runner_task is not None:
            logger.warning("Sync engine already running")
            return

        self._runner_task = asyncio.create_task(self._consume_triggers(), name="SyncEngine.runner")
        self._ticker_task = asyncio.create_task(self._tick(), name="SyncEngine.ticker")
        logger.info("Sync engine started (interval %.0fs)", self._sync_interval)
        self.request_sync("startup")

    async def stop(self) -> None:
        """Stop the ticker and the trigger consumer.

        An in-flight cycle runs to completion before the consumer is
        cancelled. Triggers still queued are dropped.
        """
        ticker, runner = self._ticker_task, self._runner_task
        self._ticker_task = None
        self._runner_task = None
        if runner is None:
            return

        self._stopping = True
        if ticker is not None:
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker

        await self._idle.wait()
        runner.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await runner

        while not self._triggers.empty():
            self._triggers.get_nowait()
            self._triggers.task_done()
        self._stopping = False
        logger.info("Sync engine stopped")

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self._sync_interval)
            self.request_sync("scheduled")

    async def _consume_triggers(self) -> None:
        while True:
            reason = await self._triggers.get()
            try:
                await self._idle.wait()
                if self._stopping:
                    return
                await self.sync_now(reason)
            except Exception:
                logger.exception("Error running %s sync", reason)
            finally:
                self._triggers.task_done()

    def request_sync(self, reason: str) -> bool:
        """Queue a cycle to run after any in-flight one.

        Args:
            reason: Free-text trigger reason, surfaced in error messages.

        Returns:
            True if queued, False if coalesced with an already pending trigger.
        """
        try:
            self._triggers.put_nowait(reason)
        except asyncio.QueueFull:
            logger.debug("Sync already pending, coalescing %s trigger", reason)
            return False
        return True

    # === External signals ===

    def set_online(self, online: bool) -> None:
        """Apply a connectivity change.

        Args:
            online: True when connectivity was restored, False when lost.
        """
        self._online = online
        if not online:
            logger.info("Connectivity lost")
            self._update(status=SyncStatus.OFFLINE, error_message="")
            return

        logger.info("Connectivity restored")
        self._update(
            status=SyncStatus.SYNCING if self._is_syncing else SyncStatus.IDLE,
            error_message="",
        )
        self.request_sync("online")

    def sign_in(self) -> None:
        """Persist the signed-in flag and queue a cycle."""
        self._store.set(self._auth_key, AuthStatus.SIGNED_IN.value)
        self._update(
            auth_status=AuthStatus.SIGNED_IN,
            status=SyncStatus.SYNCING if self._is_syncing else self._resting_status(),
        )
        self.request_sync("auth")

    def sign_out(self) -> None:
        """Persist the signed-out flag. An in-flight cycle runs to completion."""
        self._store.set(self._auth_key, AuthStatus.SIGNED_OUT.value)
        self._update(auth_status=AuthStatus.SIGNED_OUT)

    # === Cycles ===

    async def sync_now(self, reason: str = "manual") -> SyncSnapshot:
        """Run one synchronization cycle if allowed.

        Args:
            reason: Free-text trigger reason, surfaced in the error message
                on failure.

        Returns:
            The state snapshot after the attempt.
        """
        self.recalculate_pending_changes()

        if self._snapshot.auth_status != AuthStatus.SIGNED_IN:
            self._update(status=self._resting_status(), error_message="")
            return self._snapshot

        if not self._online:
            self._update(status=SyncStatus.OFFLINE, error_message="")
            return self._snapshot

        if self._is_syncing:
            logger.debug("Cycle already running, ignoring %s trigger", reason)
            return self._snapshot

        self._is_syncing = True
        self._idle.clear()
        self._update(status=SyncStatus.SYNCING, error_message="", retries=0)
        logger.info("Starting sync (%s)", reason)

        try:
            result = await with_retry(
                self._run_cycle,
                self._retry_policy,
                lambda attempt: self._update(retries=attempt),
                sleep=self._sleep,
                random=self._random,
            )
        except asyncio.CancelledError:
            self._update(status=self._resting_status())
            raise
        except Exception as e:
            logger.warning("Sync failed (%s): %s", reason, e)
            self._update(
                status=SyncStatus.ERROR,
                error_message=f"Sync failed ({reason}): {e}",
            )
        else:
            self._last_result = result
            self._update(
                status=self._resting_status(),
                retries=0,
                conflict_count=result.conflicts,
                last_successful_sync_at=format_timestamp(self._clock.now()),
                error_message="",
            )
            logger.info("Sync complete (%s): %d conflict(s)", reason, result.conflicts)
        finally:
            self._is_syncing = False
            self._idle.set()
            self.recalculate_pending_changes()

        return self._snapshot

    async def _run_cycle(self) -> CycleResult:
        return await run_sync_cycle(
            self._store,
            self._transport,
            self._documents,
            shadow_key=self._shadow_key,
            clock=self._clock,
        )
