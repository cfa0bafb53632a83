"""Shared test fixtures for the ledger stress harness.

The target API is replaced by ``FakeLedger``, an in-memory implementation of
the two endpoints served through ``httpx.MockTransport``.
"""

import json
import re
import threading
from collections.abc import Callable
from datetime import UTC, datetime

import httpx
import pytest
import structlog

from ledger_stress.config import Settings
from ledger_stress.domain import CLIENTS, Endpoint
from ledger_stress.workload import CheckTally, MetricsAggregator, RequestExecutor, WorkerContext

BASE_URL = "http://ledger.test"

_PATH = re.compile(r"^/clientes/(\d+)/(transacoes|extrato)$")


class FakeLedger:
    """Minimal ledger honouring the limit rule and input validation."""

    def __init__(
        self,
        *,
        violate_limit: bool = False,
        oldest_first: bool = False,
        rejected_status: int = 422,
    ) -> None:
        self.limits = {c.id: c.limit for c in CLIENTS}
        self.balances = {c.id: 0 for c in CLIENTS}
        self.history: dict[int, list[dict]] = {c.id: [] for c in CLIENTS}
        self.violate_limit = violate_limit
        self.oldest_first = oldest_first
        self.rejected_status = rejected_status
        self.request_count = 0
        self._lock = threading.Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.request_count += 1
            match = _PATH.match(request.url.path)
            if match is None:
                return httpx.Response(404)
            client_id, resource = int(match.group(1)), match.group(2)
            if client_id not in self.limits:
                return httpx.Response(404)
            if resource == "extrato" and request.method == "GET":
                return self._statement(client_id)
            if resource == "transacoes" and request.method == "POST":
                return self._transaction(client_id, request)
            return httpx.Response(405)

    def _statement(self, client_id: int) -> httpx.Response:
        recent = self.history[client_id][-10:]
        if not self.oldest_first:
            recent = list(reversed(recent))
        return httpx.Response(
            200,
            json={
                "saldo": {
                    "total": self.balances[client_id],
                    "data_extrato": datetime.now(UTC).isoformat(),
                    "limite": self.limits[client_id],
                },
                "ultimas_transacoes": recent,
            },
        )

    def _transaction(self, client_id: int, request: httpx.Request) -> httpx.Response:
        try:
            body = json.loads(request.content)
        except ValueError:
            return httpx.Response(self.rejected_status)
        if not isinstance(body, dict):
            return httpx.Response(self.rejected_status)
        value = body.get("valor")
        kind = body.get("tipo")
        description = body.get("descricao")
        if (
            not isinstance(value, int)
            or isinstance(value, bool)
            or value <= 0
            or kind not in ("c", "d")
            or not isinstance(description, str)
            or not 1 <= len(description) <= 10
        ):
            return httpx.Response(self.rejected_status)

        limit = self.limits[client_id]
        balance = self.balances[client_id] + (value if kind == "c" else -value)
        if balance < -limit:
            return httpx.Response(422)
        self.balances[client_id] = balance
        self.history[client_id].append(
            {
                "valor": value,
                "tipo": kind,
                "descricao": description,
                "realizada_em": datetime.now(UTC).isoformat(),
            }
        )
        if self.violate_limit:
            balance = -(limit + 1)
        return httpx.Response(200, json={"limite": limit, "saldo": balance})


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo any logging setup a test performed, such as a CLI run."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        base_url=BASE_URL,
        consistency_pause_seconds=0.0,
        ramp_tick_seconds=0.01,
        graceful_stop_seconds=1.0,
    )


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def fake_ledger_factory() -> type[FakeLedger]:
    return FakeLedger


@pytest.fixture
def make_context() -> Callable[..., WorkerContext]:
    """Build a ``WorkerContext`` wired to *handler* through ``MockTransport``."""

    def _make(
        handler: Callable[[httpx.Request], httpx.Response],
        scenario: str = "test",
        index: int = 1,
        metrics: MetricsAggregator | None = None,
        checks: CheckTally | None = None,
    ) -> WorkerContext:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return WorkerContext(
            scenario=scenario,
            index=index,
            executor=RequestExecutor(client),
            metrics=metrics or MetricsAggregator(Endpoint),
            checks=checks or CheckTally(),
            base_url=BASE_URL,
            consistency_pause_seconds=0.0,
        )

    return _make
