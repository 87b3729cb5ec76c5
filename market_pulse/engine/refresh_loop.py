"""Dashboard refresh loop.

This module owns the dashboard state. Triggers (startup, the periodic timer,
a manual refresh, a timeframe change) never touch the state directly: they
post messages to one update queue, and a single consumer task applies them in
order. Loads and commentary requests run as separate tasks and report back
through the same queue, so the timer never waits on the AI analyst.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from market_pulse.commentary.prompts import CommentaryInputs
from market_pulse.engine.state import (
    ChartModeChanged,
    CommentaryCompleted,
    CommentaryStarted,
    DashboardState,
    LoadBook,
    LoadCompleted,
    LoadRequested,
    LoopStatus,
    OverlapPolicy,
    StateUpdate,
    TimeframeChanged,
    Trigger,
)
from market_pulse.market.models import ChartMode, MarketSnapshot, TimeFrame

logger = logging.getLogger(__name__)


class SnapshotFetcher(Protocol):
    async def fetch_snapshot(self, timeframe: TimeFrame | str) -> MarketSnapshot:
        ...


class CommentaryGenerator(Protocol):
    async def generate(self, inputs: CommentaryInputs, mode: ChartMode | str) -> str:
        ...


class RefreshLoop:
    """Periodic and on-demand market refresh with serialized state updates.

    Attributes:
        interval: Seconds between automatic refreshes; the timer restarts on every load
        policy: What to do with a trigger that arrives while a load is in flight
    """

    def __init__(
        self,
        fetcher: SnapshotFetcher,
        commentary: CommentaryGenerator,
        *,
        interval: float = 30.0,
        policy: OverlapPolicy | str = OverlapPolicy.LATEST,
        timeframe: TimeFrame | str = TimeFrame.H1,
        chart_mode: ChartMode | str = ChartMode.COMBINED,
    ) -> None:
        """Initialize the loop.

        Args:
            fetcher: Source of market snapshots
            commentary: AI commentary generator
            interval: Automatic refresh period in seconds
            policy: Overlapping refresh policy
            timeframe: Initially selected chart timeframe
            chart_mode: Initially selected chart mode

        Raises:
            ValueError: If interval is not positive or policy/timeframe/mode is unknown
        """
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.fetcher = fetcher
        self.commentary = commentary
        self.interval = interval
        self.policy = OverlapPolicy(policy)

        self._state = DashboardState(
            timeframe=TimeFrame(timeframe),
            chart_mode=ChartMode(chart_mode),
        )
        self._book = LoadBook()
        self._queue: asyncio.Queue[StateUpdate] | None = None
        self._changed: asyncio.Condition | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._timer: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._commentary_in_flight = 0

    @property
    def state(self) -> DashboardState:
        """Current dashboard state. Read-only for callers."""
        return self._state

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the consumer task and run the initial load."""
        if self.running:
            raise RuntimeError("Refresh loop is already running")

        self._queue = asyncio.Queue()
        self._changed = asyncio.Condition()
        self._consumer = asyncio.create_task(self._consume(), name="refresh-loop-consumer")
        logger.info(
            "Refresh loop started: interval=%ss policy=%s timeframe=%s",
            self.interval,
            self.policy.value,
            self._state.timeframe.value,
        )
        self._post(LoadRequested(Trigger.START))

    async def stop(self) -> None:
        """Stop the timer, the consumer and any in-flight work."""
        tasks = [t for t in (self._timer, self._consumer, *self._tasks) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._timer = None
        self._consumer = None
        self._tasks.clear()

        # Cancelled loads never report back
        self._book = LoadBook()
        self._commentary_in_flight = 0
        self._state.status = LoopStatus.IDLE
        self._state.is_analyzing = False
        logger.info("Refresh loop stopped")

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Request a manual refresh of the current timeframe."""
        self._post(LoadRequested(Trigger.MANUAL))

    def set_timeframe(self, timeframe: TimeFrame | str) -> TimeFrame:
        """Select a chart timeframe and reload.

        Raises:
            ValueError: If the timeframe is unknown
        """
        selected = TimeFrame(timeframe)
        self._post(TimeframeChanged(selected))
        self._post(LoadRequested(Trigger.TIMEFRAME))
        return selected

    def set_chart_mode(self, mode: ChartMode | str) -> ChartMode:
        """Select a chart mode. Clears any commentary shown for the previous mode.

        Raises:
            ValueError: If the mode is unknown
        """
        selected = ChartMode(mode)
        self._post(ChartModeChanged(selected))
        return selected

    async def request_commentary(self) -> tuple[ChartMode, str]:
        """Ask the AI analyst about the numbers currently displayed.

        Runs outside the consumer; the loop keeps refreshing meanwhile.

        Returns:
            The mode the commentary was written for and its text
        """
        mode = self._state.chart_mode
        snapshot = self._state.snapshot
        if snapshot is not None:
            inputs = CommentaryInputs.from_snapshot(snapshot)
        else:
            inputs = CommentaryInputs(
                btc_price=0.0, btc_change=0.0, gold_price=0.0, gold_change=0.0, funding_rate_pct=0.0
            )

        self._post(CommentaryStarted(mode))
        text = ""
        try:
            text = await self.commentary.generate(inputs, mode)
        finally:
            self._post(CommentaryCompleted(mode, text))
        return mode, text

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    async def wait_for(
        self, predicate: Callable[[DashboardState], bool], timeout: float | None = None
    ) -> DashboardState:
        """Block until ``predicate(state)`` holds after an applied update.

        Raises:
            RuntimeError: If the loop was never started
            asyncio.TimeoutError: If ``timeout`` elapses first
        """
        if self._changed is None:
            raise RuntimeError("Refresh loop has not been started")
        changed = self._changed

        async def _wait() -> DashboardState:
            async with changed:
                await changed.wait_for(lambda: predicate(self._state))
            return self._state

        return await asyncio.wait_for(_wait(), timeout)

    async def wait_for_change(self, seen_version: int, timeout: float | None = None) -> DashboardState:
        """Block until the state version moves past ``seen_version``."""
        return await self.wait_for(lambda s: s.version > seen_version, timeout)

    async def wait_until_idle(self, timeout: float | None = None) -> DashboardState:
        """Block until no load is in flight and the update queue is drained."""
        return await self.wait_for(
            lambda s: s.status is LoopStatus.IDLE
            and not self._book.in_flight
            and self._queue is not None
            and self._queue.empty(),
            timeout,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _post(self, update: StateUpdate) -> None:
        if self._queue is None:
            raise RuntimeError("Refresh loop has not been started")
        self._queue.put_nowait(update)

    def _spawn(self, coro: Any, name: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _consume(self) -> None:
        assert self._queue is not None and self._changed is not None
        while True:
            update = await self._queue.get()
            try:
                self._apply(update)
            except Exception:
                logger.exception("Failed to apply %s", update.kind)
            finally:
                self._queue.task_done()

            self._state.version += 1
            async with self._changed:
                self._changed.notify_all()

    def _apply(self, update: StateUpdate) -> None:
        state = self._state

        if isinstance(update, LoadRequested):
            self._on_load_requested(update.trigger)
        elif isinstance(update, LoadCompleted):
            self._on_load_completed(update)
        elif isinstance(update, TimeframeChanged):
            state.timeframe = update.timeframe
        elif isinstance(update, ChartModeChanged):
            if update.chart_mode is not state.chart_mode:
                state.commentary = ""
            state.chart_mode = update.chart_mode
        elif isinstance(update, CommentaryStarted):
            self._commentary_in_flight += 1
            state.is_analyzing = True
            state.commentary = ""
        elif isinstance(update, CommentaryCompleted):
            self._commentary_in_flight = max(0, self._commentary_in_flight - 1)
            state.is_analyzing = self._commentary_in_flight > 0
            # Text written for a mode the user has since left is dropped
            if update.chart_mode is state.chart_mode:
                state.commentary = update.text

    def _on_load_requested(self, trigger: Trigger) -> None:
        book = self._book
        if self.policy is OverlapPolicy.DROP and book.in_flight:
            if trigger is Trigger.TIMEFRAME:
                book.replay_pending = True
                logger.debug("Timeframe change queued behind in-flight load")
            else:
                logger.debug("Dropped %s refresh: load already in flight", trigger.value)
            if trigger is Trigger.TIMER:
                self._restart_timer()
            return
        self._start_load(trigger)

    def _start_load(self, trigger: Trigger) -> None:
        book = self._book
        state = self._state

        book.latest_seq += 1
        seq = book.latest_seq
        book.in_flight.add(seq)

        state.loads_started += 1
        state.last_trigger = trigger
        state.status = LoopStatus.LOADING

        logger.debug("Load #%d started (%s, %s)", seq, trigger.value, state.timeframe.value)
        self._spawn(self._run_load(seq, state.timeframe), name=f"refresh-load-{seq}")
        self._restart_timer()

    def _on_load_completed(self, update: LoadCompleted) -> None:
        book = self._book
        state = self._state
        book.in_flight.discard(update.seq)

        stale = self.policy is OverlapPolicy.LATEST and update.seq != book.latest_seq
        if update.snapshot is None:
            logger.debug("Load #%d produced no snapshot", update.seq)
        elif stale:
            state.loads_discarded += 1
            logger.debug("Discarded superseded load #%d", update.seq)
        else:
            state.snapshot = update.snapshot
            state.last_updated = datetime.now(timezone.utc)
            state.loads_applied += 1

        state.status = LoopStatus.LOADING if book.in_flight else LoopStatus.IDLE

        if self.policy is OverlapPolicy.DROP and not book.in_flight and book.replay_pending:
            book.replay_pending = False
            self._start_load(Trigger.TIMEFRAME)

    async def _run_load(self, seq: int, timeframe: TimeFrame) -> None:
        snapshot: MarketSnapshot | None = None
        try:
            snapshot = await self.fetcher.fetch_snapshot(timeframe)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # Fetchers settle their own failures; this only guards against bugs
            logger.error("Refresh #%d failed: %s", seq, exc, exc_info=True)
        self._post(LoadCompleted(seq, timeframe, snapshot))

    def _restart_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.create_task(self._tick(), name="refresh-loop-timer")

    async def _tick(self) -> None:
        await asyncio.sleep(self.interval)
        self._post(LoadRequested(Trigger.TIMER))
