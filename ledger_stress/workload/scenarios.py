"""Scenario bodies and the registry the scheduler dispatches from.

Each body is one iteration of one worker. Request outcomes become checks;
nothing here raises for a bad status or a malformed response.
"""

from ledger_stress.domain import (
    NOT_FOUND_CLIENT_ID,
    Statement,
    TransactionKind,
    TransactionRequest,
    TransactionResult,
    client_for_worker,
)

from . import validation
from .payloads import INVALID_TRANSACTIONS, pick_client_id, random_transaction
from .worker import ScenarioBody, WorkerContext

CHECK_STATUS_200 = "status 200"
CHECK_STATUS_200_OR_422 = "status 200 or 422"
CHECK_STATUS_404 = "status 404"
CHECK_BALANCE_LIMIT = "balance within limit"
CHECK_STATEMENT_LIMIT = "statement within limit"
CHECK_LIMIT_MATCHES_SEED = "limit matches seed"
CHECK_INITIAL_BALANCE_ZERO = "initial balance is zero"
CHECK_RECENT_ORDER = "recent transactions in order"
CHECK_INVALID_REJECTED = "invalid payload rejected"

# Fixed transactions of the validation sequence, in the order they are sent.
LEND = TransactionRequest(value=1, kind=TransactionKind.CREDIT, description="toma")
GIVE_BACK = TransactionRequest(value=1, kind=TransactionKind.DEBIT, description="devolve")


async def debits(ctx: WorkerContext) -> None:
    payload = random_transaction(TransactionKind.DEBIT).to_payload()
    res = await ctx.transaction(pick_client_id(ctx.clients), payload)

    # 422 is the API refusing a debit past the client's limit.
    ctx.check(CHECK_STATUS_200_OR_422, validation.status_matches(res.status, {200, 422}))
    if res.status == 200:
        ctx.check(
            CHECK_BALANCE_LIMIT,
            validation.transaction_within_limit(TransactionResult.parse(res.body)),
        )


async def credits(ctx: WorkerContext) -> None:
    payload = random_transaction(TransactionKind.CREDIT).to_payload()
    res = await ctx.transaction(pick_client_id(ctx.clients), payload)

    ctx.check(CHECK_STATUS_200, validation.status_matches(res.status, 200))
    if res.status == 200:
        ctx.check(
            CHECK_BALANCE_LIMIT,
            validation.transaction_within_limit(TransactionResult.parse(res.body)),
        )


async def statements(ctx: WorkerContext) -> None:
    res = await ctx.statement(pick_client_id(ctx.clients))

    ctx.check(CHECK_STATUS_200, validation.status_matches(res.status, 200))
    if res.status == 200:
        ctx.check(
            CHECK_STATEMENT_LIMIT,
            validation.statement_within_limit(Statement.parse(res.body)),
        )


async def validations(ctx: WorkerContext) -> None:
    """Scripted consistency run against the client assigned to this worker.

    Steps run strictly in order; later ordering checks depend on it.
    """
    client = client_for_worker(ctx.index, ctx.clients)

    res = await ctx.statement(client.id)
    statement = Statement.parse(res.body)
    ctx.check(CHECK_STATUS_200, validation.status_matches(res.status, 200))
    ctx.check(CHECK_LIMIT_MATCHES_SEED, validation.statement_limit_matches(statement, client))
    ctx.check(CHECK_INITIAL_BALANCE_ZERO, validation.statement_balance_is_zero(statement))

    for tx in (LEND, GIVE_BACK):
        res = await ctx.transaction(client.id, tx.to_payload())
        ctx.check(CHECK_STATUS_200, validation.status_matches(res.status, 200))
        ctx.check(
            CHECK_BALANCE_LIMIT,
            validation.transaction_within_limit(TransactionResult.parse(res.body)),
        )

    await ctx.pause()

    res = await ctx.statement(client.id)
    ctx.check(
        CHECK_RECENT_ORDER,
        validation.transaction_order_correct(Statement.parse(res.body), [LEND, GIVE_BACK]),
    )

    for payload in INVALID_TRANSACTIONS:
        res = await ctx.transaction(client.id, payload)
        ctx.check(
            CHECK_INVALID_REJECTED,
            validation.status_matches(res.status, validation.REJECTED_STATUSES),
        )


async def client_not_found(ctx: WorkerContext) -> None:
    res = await ctx.statement(NOT_FOUND_CLIENT_ID)
    ctx.check(CHECK_STATUS_404, validation.status_matches(res.status, 404))


SCENARIO_BODIES: dict[str, ScenarioBody] = {
    "validations": validations,
    "client_not_found": client_not_found,
    "debits": debits,
    "credits": credits,
    "statements": statements,
}
