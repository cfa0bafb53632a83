"""Virtual client workers: one simulated actor running a scenario body."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from ledger_stress.domain import CLIENTS, Client, Endpoint
from ledger_stress.errors import TransportError

from .executor import RequestExecutor, RequestResult
from .metrics import CheckTally, MetricsAggregator

logger = structlog.get_logger()

TRANSPORT_CHECK = "request completed"


@dataclass
class WorkerContext:
    """Everything a scenario body may touch during one worker's lifetime."""

    scenario: str
    index: int
    executor: RequestExecutor
    metrics: MetricsAggregator
    checks: CheckTally
    base_url: str
    clients: Sequence[Client] = field(default=CLIENTS)
    consistency_pause_seconds: float = 1.0

    def check(self, name: str, passed: bool) -> bool:
        return self.checks.record(name, passed, scenario=self.scenario)

    async def transaction(self, client_id: int, payload: dict[str, Any]) -> RequestResult:
        """POST a transaction body for *client_id* and record its latency."""
        url = f"{self.base_url}/clientes/{client_id}/transacoes"
        return await self._request(Endpoint.TRANSACTIONS, "POST", url, payload)

    async def statement(self, client_id: int) -> RequestResult:
        """GET the statement of *client_id* and record its latency."""
        url = f"{self.base_url}/clientes/{client_id}/extrato"
        return await self._request(Endpoint.STATEMENT, "GET", url, None)

    async def pause(self) -> None:
        await asyncio.sleep(self.consistency_pause_seconds)

    async def _request(
        self, endpoint: Endpoint, method: str, url: str, body: dict[str, Any] | None
    ) -> RequestResult:
        try:
            result = await self.executor.execute(method, url, body)
        except TransportError:
            self.check(TRANSPORT_CHECK, False)
            raise
        self.metrics.record(endpoint, result.duration_ms)
        return result


ScenarioBody = Callable[[WorkerContext], Awaitable[None]]


class Worker:
    """Runs a scenario body repeatedly until told to stop.

    Retirement and stop requests are honoured only between iterations, so an
    in-flight request is never aborted by a ramp-down.
    """

    def __init__(self, context: WorkerContext, body: ScenarioBody) -> None:
        self.context = context
        self.body = body
        self.iterations = 0
        self._retired = asyncio.Event()

    @property
    def retired(self) -> bool:
        return self._retired.is_set()

    def retire(self) -> None:
        self._retired.set()

    async def run_once(self) -> bool:
        """Run one iteration. Returns ``False`` if it was cut short."""
        ctx = self.context
        try:
            await self.body(ctx)
        except TransportError as exc:
            # Already recorded as a failed check by the context.
            ctx.checks.record_iteration(ctx.scenario, "interrupted")
            logger.warning(
                "iteration_interrupted",
                scenario=ctx.scenario,
                worker=ctx.index,
                error=str(exc),
            )
            return False
        except asyncio.CancelledError:
            ctx.checks.record_iteration(ctx.scenario, "interrupted")
            raise
        except Exception:
            ctx.checks.record_iteration(ctx.scenario, "errored")
            logger.exception("iteration_error", scenario=ctx.scenario, worker=ctx.index)
            return False
        finally:
            self.iterations += 1
        ctx.checks.record_iteration(ctx.scenario, "completed")
        return True

    async def run(
        self, iterations: int | None = None, stop: asyncio.Event | None = None
    ) -> None:
        """Loop for *iterations* (or forever) until retired or *stop* is set."""
        done = 0
        while iterations is None or done < iterations:
            if self.retired or (stop is not None and stop.is_set()):
                break
            await self.run_once()
            done += 1
            # An iteration against a fast target may never suspend; let the
            # scheduler and the other workers in before looping.
            await asyncio.sleep(0)
