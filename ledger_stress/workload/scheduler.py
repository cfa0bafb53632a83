"""Scenario scheduler: runs every configured scenario concurrently.

Each scenario moves ``pending -> running -> completed``. It starts at its
offset from run start, keeps its worker population as its profile asks, and
winds down by letting in-flight iterations finish (up to the graceful stop
window) before cancelling stragglers.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import structlog

from ledger_stress.errors import ConfigurationError

from .profiles import FixedProfile, RampingProfile, ScenarioConfig, ramp_target
from .worker import ScenarioBody, Worker, WorkerContext

logger = structlog.get_logger()

ContextFactory = Callable[[str, int], WorkerContext]

# Seconds between ramp progress log lines.
_PROGRESS_LOG_INTERVAL = 10.0


class ScenarioState(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass
class ScenarioRun:
    """Lifecycle and worker bookkeeping of one scenario within a run."""

    config: ScenarioConfig
    state: ScenarioState = ScenarioState.PENDING
    started_at: float | None = None
    completed_at: float | None = None
    workers_started: int = 0
    live_workers: int = 0
    peak_workers: int = 0
    abandoned_workers: int = 0

    @property
    def name(self) -> str:
        return self.config.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "executor": self.config.profile.executor,
            "state": self.state.value,
            "started_at_seconds": _round(self.started_at),
            "completed_at_seconds": _round(self.completed_at),
            "workers_started": self.workers_started,
            "peak_workers": self.peak_workers,
            "abandoned_workers": self.abandoned_workers,
        }


def _round(value: float | None) -> float | None:
    return None if value is None else round(value, 3)


class ScenarioScheduler:
    """Owns the named scenarios of a run and their workers."""

    def __init__(
        self,
        plan: Iterable[ScenarioConfig],
        bodies: Mapping[str, ScenarioBody],
        context_factory: ContextFactory,
        *,
        tick_seconds: float = 0.1,
        graceful_stop_seconds: float = 30.0,
    ) -> None:
        self.runs: dict[str, ScenarioRun] = {}
        for config in plan:
            if config.name in self.runs:
                raise ConfigurationError(f"duplicate scenario name: {config.name}")
            if config.body not in bodies:
                raise ConfigurationError(
                    f"scenario {config.name!r} refers to unknown body {config.body!r}"
                )
            self.runs[config.name] = ScenarioRun(config=config)
        if not self.runs:
            raise ConfigurationError("scenario plan is empty")
        if tick_seconds <= 0:
            raise ConfigurationError("tick_seconds must be positive")

        self._bodies = dict(bodies)
        self._context_factory = context_factory
        self._tick = tick_seconds
        self._graceful_stop = graceful_stop_seconds
        self._stop = asyncio.Event()
        self._run_started = 0.0

    # ---- public API ---------------------------------------------------------

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Stop spawning everywhere and wind every scenario down."""
        if not self._stop.is_set():
            logger.info("run_stop_requested")
        self._stop.set()

    async def run(self, timeout: float | None = None) -> dict[str, ScenarioRun]:
        """Run all scenarios to completion, or until *timeout* seconds pass."""
        loop = asyncio.get_running_loop()
        self._run_started = loop.time()
        watchdog = (
            asyncio.create_task(self._stop_after(timeout)) if timeout is not None else None
        )
        tasks = [
            asyncio.create_task(self._run_scenario(run), name=f"scenario:{run.name}")
            for run in self.runs.values()
        ]
        try:
            await asyncio.gather(*tasks)
        finally:
            if watchdog is not None:
                watchdog.cancel()
            for task in tasks:
                task.cancel()
        return self.runs

    # ---- scenario lifecycle -------------------------------------------------

    def _elapsed(self) -> float:
        return asyncio.get_running_loop().time() - self._run_started

    async def _stop_after(self, timeout: float) -> None:
        await asyncio.sleep(timeout)
        logger.warning("run_timeout", timeout_seconds=timeout)
        self.stop()

    async def _stop_within(self, delay: float) -> bool:
        """Sleep up to *delay* seconds; ``True`` if a stop was requested."""
        if self._stop.is_set():
            return True
        if delay <= 0:
            return False
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
        except TimeoutError:
            return False
        return True

    async def _run_scenario(self, run: ScenarioRun) -> None:
        config = run.config
        if await self._stop_within(config.start_offset - self._elapsed()):
            run.state = ScenarioState.COMPLETED
            logger.info("scenario_skipped", scenario=run.name)
            return

        run.state = ScenarioState.RUNNING
        run.started_at = self._elapsed()
        logger.info(
            "scenario_started",
            scenario=run.name,
            executor=config.profile.executor,
            start_offset=config.start_offset,
        )

        profile = config.profile
        if isinstance(profile, FixedProfile):
            await self._run_fixed(run, profile)
        else:
            await self._run_ramping(run, profile)

        run.state = ScenarioState.COMPLETED
        run.completed_at = self._elapsed()
        run.live_workers = 0
        logger.info(
            "scenario_completed",
            scenario=run.name,
            workers_started=run.workers_started,
            peak_workers=run.peak_workers,
            duration_seconds=round(run.completed_at - run.started_at, 3),
        )

    def _spawn(
        self, run: ScenarioRun, scenario_stop: asyncio.Event, iterations: int | None
    ) -> tuple[Worker, asyncio.Task[None]]:
        run.workers_started += 1
        context = self._context_factory(run.name, run.workers_started)
        worker = Worker(context, self._bodies[run.config.body])
        task = asyncio.create_task(
            worker.run(iterations=iterations, stop=scenario_stop),
            name=f"worker:{run.name}:{run.workers_started}",
        )
        return worker, task

    async def _run_fixed(self, run: ScenarioRun, profile: FixedProfile) -> None:
        scenario_stop = asyncio.Event()
        tasks = [
            self._spawn(run, scenario_stop, profile.iterations)[1]
            for _ in range(profile.workers)
        ]
        run.live_workers = run.peak_workers = len(tasks)

        finished = await self._wait_workers(tasks, profile.max_duration)
        if not finished:
            if not self._stop.is_set():
                logger.warning(
                    "scenario_max_duration_reached",
                    scenario=run.name,
                    max_duration=profile.max_duration,
                )
            await self._drain(run, tasks, scenario_stop)

    async def _run_ramping(self, run: ScenarioRun, profile: RampingProfile) -> None:
        loop = asyncio.get_running_loop()
        scenario_stop = asyncio.Event()
        active: list[tuple[Worker, asyncio.Task[None]]] = []
        retiring: list[asyncio.Task[None]] = []
        tasks: list[asyncio.Task[None]] = []
        total = profile.total_duration
        t0 = loop.time()
        last_log = t0

        while True:
            elapsed = loop.time() - t0
            if elapsed >= total:
                break
            target = ramp_target(profile.start_workers, profile.stages, elapsed)
            self._scale(run, active, retiring, tasks, target, scenario_stop)

            if loop.time() - last_log >= _PROGRESS_LOG_INTERVAL:
                last_log = loop.time()
                logger.info(
                    "ramp_progress",
                    scenario=run.name,
                    elapsed_seconds=round(elapsed, 1),
                    target_workers=target,
                    live_workers=run.live_workers,
                )
            tasks = [t for t in tasks if not t.done()]

            if await self._stop_within(min(self._tick, total - elapsed)):
                break

        await self._drain(run, tasks, scenario_stop)

    def _scale(
        self,
        run: ScenarioRun,
        active: list[tuple[Worker, asyncio.Task[None]]],
        retiring: list[asyncio.Task[None]],
        tasks: list[asyncio.Task[None]],
        target: int,
        scenario_stop: asyncio.Event,
    ) -> None:
        """Spawn or retire workers until *target* are in flight.

        The newest workers retire first. A retiring worker finishes its
        current iteration and keeps counting against *target* until it
        exits, so a ramp that turns back up never runs more than *target*
        iterations at once.
        """
        retiring[:] = [t for t in retiring if not t.done()]
        while len(active) > target:
            worker, task = active.pop()
            worker.retire()
            retiring.append(task)
        while len(active) + len(retiring) < target:
            active.append(self._spawn(run, scenario_stop, None))
            tasks.append(active[-1][1])
        run.live_workers = len(active) + len(retiring)
        run.peak_workers = max(run.peak_workers, run.live_workers)

    # ---- wind-down ----------------------------------------------------------

    async def _wait_workers(
        self, tasks: list[asyncio.Task[None]], timeout: float | None
    ) -> bool:
        """Wait for *tasks* until they finish, *timeout* passes or the run stops.

        Returns ``True`` only if every task finished.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        remaining = {t for t in tasks if not t.done()}
        stop_wait = asyncio.create_task(self._stop.wait())
        try:
            while remaining:
                if stop_wait.done():
                    return False
                wait_for = None if deadline is None else deadline - loop.time()
                if wait_for is not None and wait_for <= 0:
                    return False
                done, _ = await asyncio.wait(
                    remaining | {stop_wait},
                    timeout=wait_for,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                remaining -= done
            return True
        finally:
            stop_wait.cancel()

    async def _drain(
        self,
        run: ScenarioRun,
        tasks: list[asyncio.Task[None]],
        scenario_stop: asyncio.Event,
    ) -> None:
        """Let in-flight iterations finish, then cancel whatever is left."""
        scenario_stop.set()
        pending = [t for t in tasks if not t.done()]
        if not pending:
            return
        _, still_running = await asyncio.wait(pending, timeout=self._graceful_stop)
        if not still_running:
            return

        run.abandoned_workers += len(still_running)
        logger.warning(
            "workers_abandoned",
            scenario=run.name,
            count=len(still_running),
            graceful_stop_seconds=self._graceful_stop,
        )
        for task in still_running:
            task.cancel()
        await asyncio.gather(*still_running, return_exceptions=True)
