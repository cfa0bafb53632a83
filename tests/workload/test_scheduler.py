"""Tests for the scenario scheduler."""

import asyncio
import time

import httpx
import pytest

from ledger_stress.domain import Endpoint
from ledger_stress.errors import ConfigurationError
from ledger_stress.workload import (
    CheckTally,
    FixedProfile,
    MetricsAggregator,
    RampingProfile,
    RequestExecutor,
    ScenarioConfig,
    ScenarioScheduler,
    ScenarioState,
    Stage,
    WorkerContext,
)


def _factory(checks: CheckTally | None = None):
    checks = checks or CheckTally()
    metrics = MetricsAggregator(Endpoint)
    executor = RequestExecutor(
        httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    )

    def make(scenario: str, index: int) -> WorkerContext:
        return WorkerContext(
            scenario=scenario,
            index=index,
            executor=executor,
            metrics=metrics,
            checks=checks,
            base_url="http://ledger.test",
        )

    return make


class LiveCounter:
    """Tracks how many body iterations run at the same time."""

    def __init__(self, hold: float = 0.01) -> None:
        self.hold = hold
        self.live = 0
        self.peak = 0
        self.started = 0
        self.finished = 0

    async def __call__(self, ctx: WorkerContext) -> None:
        self.started += 1
        self.live += 1
        self.peak = max(self.peak, self.live)
        try:
            await asyncio.sleep(self.hold)
        finally:
            self.live -= 1
        self.finished += 1


class TestPlanValidation:
    def test_unknown_body(self):
        plan = [ScenarioConfig(name="x", profile=FixedProfile(workers=1), body="missing")]
        with pytest.raises(ConfigurationError):
            ScenarioScheduler(plan, {}, _factory())

    def test_duplicate_names(self):
        async def body(ctx) -> None:
            return None

        plan = [
            ScenarioConfig(name="x", profile=FixedProfile(workers=1)),
            ScenarioConfig(name="x", profile=FixedProfile(workers=2)),
        ]
        with pytest.raises(ConfigurationError):
            ScenarioScheduler(plan, {"x": body}, _factory())

    def test_empty_plan(self):
        with pytest.raises(ConfigurationError):
            ScenarioScheduler([], {}, _factory())


class TestFixedProfile:
    @pytest.mark.asyncio
    async def test_workers_times_iterations(self):
        calls: list[tuple[str, int]] = []

        async def body(ctx: WorkerContext) -> None:
            calls.append((ctx.scenario, ctx.index))
            await asyncio.sleep(0)

        plan = [
            ScenarioConfig(
                name="fixed", profile=FixedProfile(workers=3, iterations=2), body="count"
            )
        ]
        scheduler = ScenarioScheduler(plan, {"count": body}, _factory())
        assert scheduler.runs["fixed"].state == ScenarioState.PENDING

        runs = await scheduler.run()

        run = runs["fixed"]
        assert len(calls) == 6
        assert {index for _, index in calls} == {1, 2, 3}
        assert run.state == ScenarioState.COMPLETED
        assert run.workers_started == 3
        assert run.peak_workers == 3
        assert run.live_workers == 0

    @pytest.mark.asyncio
    async def test_start_offset_delays_scenario(self):
        body = LiveCounter(hold=0)
        plan = [
            ScenarioConfig(name="now", profile=FixedProfile(workers=1), body="b"),
            ScenarioConfig(
                name="late", profile=FixedProfile(workers=1), start_offset=0.2, body="b"
            ),
        ]
        runs = await ScenarioScheduler(plan, {"b": body}, _factory()).run()
        assert runs["now"].started_at < 0.1
        assert runs["late"].started_at >= 0.19
        assert body.finished == 2

    @pytest.mark.asyncio
    async def test_scenarios_run_concurrently(self):
        handshake = asyncio.Event()

        async def waiter(ctx) -> None:
            await asyncio.wait_for(handshake.wait(), timeout=2)
            ctx.check("met the other scenario", True)

        async def setter(ctx) -> None:
            await asyncio.sleep(0.05)
            handshake.set()

        checks = CheckTally()
        plan = [
            ScenarioConfig(name="waiter", profile=FixedProfile(workers=1)),
            ScenarioConfig(name="setter", profile=FixedProfile(workers=1)),
        ]
        scheduler = ScenarioScheduler(
            plan, {"waiter": waiter, "setter": setter}, _factory(checks)
        )
        await asyncio.wait_for(scheduler.run(), timeout=5)
        assert checks.counts("met the other scenario", "waiter").passes == 1

    @pytest.mark.asyncio
    async def test_max_duration_lets_iterations_finish(self):
        checks = CheckTally()
        body = LiveCounter(hold=0.2)
        plan = [
            ScenarioConfig(
                name="slow", profile=FixedProfile(workers=2, max_duration=0.05), body="b"
            )
        ]
        scheduler = ScenarioScheduler(
            plan, {"b": body}, _factory(checks), graceful_stop_seconds=2.0
        )
        runs = await scheduler.run()
        assert runs["slow"].abandoned_workers == 0
        assert body.finished == 2
        assert checks.iterations("slow").completed == 2

    @pytest.mark.asyncio
    async def test_stragglers_abandoned_after_graceful_stop(self):
        checks = CheckTally()
        body = LiveCounter(hold=10)
        plan = [
            ScenarioConfig(
                name="stuck", profile=FixedProfile(workers=2, max_duration=0.05), body="b"
            )
        ]
        scheduler = ScenarioScheduler(
            plan, {"b": body}, _factory(checks), graceful_stop_seconds=0.05
        )
        t0 = time.monotonic()
        runs = await scheduler.run()
        assert time.monotonic() - t0 < 2
        assert runs["stuck"].abandoned_workers == 2
        assert runs["stuck"].state == ScenarioState.COMPLETED
        assert checks.iterations("stuck").interrupted == 2
        assert body.live == 0


class TestRampingProfile:
    @pytest.mark.asyncio
    async def test_ramp_up_reaches_target_without_overshoot(self):
        body = LiveCounter(hold=0.01)
        plan = [
            ScenarioConfig(
                name="ramp",
                profile=RampingProfile(
                    start_workers=1,
                    stages=[Stage(duration=0.3, target=4), Stage(duration=0.2, target=4)],
                ),
                body="b",
            )
        ]
        scheduler = ScenarioScheduler(plan, {"b": body}, _factory(), tick_seconds=0.01)
        runs = await scheduler.run()

        run = runs["ramp"]
        assert run.state == ScenarioState.COMPLETED
        assert run.peak_workers == 4
        assert run.workers_started == 4
        assert body.peak <= 4
        assert run.completed_at - run.started_at >= 0.45
        # Workers loop for as long as the scenario runs.
        assert body.finished > 4

    @pytest.mark.asyncio
    async def test_ramp_down_lets_in_flight_iterations_finish(self):
        body = LiveCounter(hold=0.05)
        plan = [
            ScenarioConfig(
                name="down",
                profile=RampingProfile(start_workers=4, stages=[Stage(duration=0.2, target=0)]),
                body="b",
            )
        ]
        scheduler = ScenarioScheduler(
            plan, {"b": body}, _factory(), tick_seconds=0.01, graceful_stop_seconds=2.0
        )
        runs = await scheduler.run()

        run = runs["down"]
        assert run.peak_workers == 4
        assert run.workers_started == 4
        assert run.abandoned_workers == 0
        assert body.started == body.finished
        assert body.live == 0


    @pytest.mark.asyncio
    async def test_ramp_back_up_waits_for_retiring_workers(self):
        body = LiveCounter(hold=0.1)
        plan = [
            ScenarioConfig(
                name="dip",
                profile=RampingProfile(
                    start_workers=3,
                    stages=[
                        Stage(duration=0.02, target=1),
                        Stage(duration=0.02, target=3),
                        Stage(duration=0.25, target=3),
                    ],
                ),
                body="b",
            )
        ]
        scheduler = ScenarioScheduler(
            plan, {"b": body}, _factory(), tick_seconds=0.01, graceful_stop_seconds=2.0
        )
        runs = await scheduler.run()

        run = runs["dip"]
        assert body.peak <= 3
        assert run.peak_workers == 3
        # The two retired workers are replaced once their iteration ends.
        assert run.workers_started == 5
        assert run.abandoned_workers == 0

class TestCancellation:
    @pytest.mark.asyncio
    async def test_timeout_stops_run(self):
        body = LiveCounter(hold=0.01)
        plan = [
            ScenarioConfig(
                name="long",
                profile=RampingProfile(start_workers=2, stages=[Stage(duration=30, target=2)]),
                body="b",
            ),
            ScenarioConfig(
                name="never", profile=FixedProfile(workers=1), start_offset=20, body="b"
            ),
        ]
        scheduler = ScenarioScheduler(plan, {"b": body}, _factory(), tick_seconds=0.01)

        t0 = time.monotonic()
        runs = await scheduler.run(timeout=0.2)

        assert time.monotonic() - t0 < 3
        assert scheduler.stopping
        assert runs["long"].state == ScenarioState.COMPLETED
        assert runs["never"].state == ScenarioState.COMPLETED
        assert runs["never"].started_at is None
        assert body.started == body.finished

    @pytest.mark.asyncio
    async def test_external_stop(self):
        body = LiveCounter(hold=0.01)
        plan = [
            ScenarioConfig(
                name="fixed-long",
                profile=FixedProfile(workers=3, iterations=10_000),
                body="b",
            )
        ]
        scheduler = ScenarioScheduler(plan, {"b": body}, _factory())

        async def stop_soon() -> None:
            await asyncio.sleep(0.1)
            scheduler.stop()

        stopper = asyncio.create_task(stop_soon())
        runs = await asyncio.wait_for(scheduler.run(), timeout=5)
        await stopper

        assert runs["fixed-long"].state == ScenarioState.COMPLETED
        assert 0 < body.finished < 30_000
        assert body.started == body.finished
