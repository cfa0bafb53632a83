"""Run orchestration: one client, one aggregator, one scheduler per run."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
import structlog

from ledger_stress.config import Settings
from ledger_stress.domain import CLIENTS, Endpoint
from ledger_stress.errors import ConfigurationError, TransportError
from ledger_stress.workload import (
    DEFAULT_PLAN,
    SCENARIO_BODIES,
    CheckTally,
    MetricsAggregator,
    RequestExecutor,
    ScenarioBody,
    ScenarioConfig,
    ScenarioRun,
    ScenarioScheduler,
    WorkerContext,
    build_client,
)

logger = structlog.get_logger()


@dataclass
class RunResult:
    metrics: MetricsAggregator
    checks: CheckTally
    scenarios: dict[str, ScenarioRun]
    started_at: datetime
    finished_at: datetime

    @property
    def passed(self) -> bool:
        return self.checks.all_passed


class StressTestRunner:
    """Drives the scenario plan against the ledger API at ``settings.base_url``."""

    def __init__(
        self,
        settings: Settings,
        plan: Iterable[ScenarioConfig] = DEFAULT_PLAN,
        bodies: Mapping[str, ScenarioBody] = SCENARIO_BODIES,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.plan = list(plan)
        self.bodies = bodies
        self._transport = transport

    async def preflight(self, executor: RequestExecutor) -> None:
        """Make sure the target answers before any worker starts."""
        url = f"{self.settings.base_url}/clientes/{CLIENTS[0].id}/extrato"
        try:
            res = await executor.get(url)
        except TransportError as exc:
            raise ConfigurationError(
                f"target {self.settings.base_url} is unreachable: {exc.reason}"
            ) from exc
        logger.info("preflight_ok", base_url=self.settings.base_url, status=res.status)

    async def run(self, timeout: float | None = None) -> RunResult:
        cfg = self.settings
        metrics = MetricsAggregator(Endpoint)
        checks = CheckTally()

        async with build_client(cfg, transport=self._transport) as client:
            executor = RequestExecutor(client)

            def make_context(scenario: str, index: int) -> WorkerContext:
                return WorkerContext(
                    scenario=scenario,
                    index=index,
                    executor=executor,
                    metrics=metrics,
                    checks=checks,
                    base_url=cfg.base_url,
                    consistency_pause_seconds=cfg.consistency_pause_seconds,
                )

            scheduler = ScenarioScheduler(
                self.plan,
                self.bodies,
                make_context,
                tick_seconds=cfg.ramp_tick_seconds,
                graceful_stop_seconds=cfg.graceful_stop_seconds,
            )
            await self.preflight(executor)

            started_at = datetime.now(UTC)
            logger.info(
                "run_started",
                base_url=cfg.base_url,
                scenarios=[c.name for c in self.plan],
            )
            scenarios = await scheduler.run(timeout=timeout)
            finished_at = datetime.now(UTC)

        logger.info(
            "run_completed",
            duration_seconds=round((finished_at - started_at).total_seconds(), 3),
            checks_passed=checks.total_passes,
            checks_failed=checks.total_fails,
        )
        return RunResult(
            metrics=metrics,
            checks=checks,
            scenarios=scenarios,
            started_at=started_at,
            finished_at=finished_at,
        )
