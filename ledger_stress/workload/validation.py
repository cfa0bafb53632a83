"""Consistency checks over ledger responses.

Every predicate answers ``False`` for missing or mistyped data rather than
raising. A malformed response is a failed check, not a harness fault.
"""

from collections.abc import Collection, Sequence
from typing import Any

from ledger_stress.domain import (
    Client,
    Statement,
    TransactionRequest,
    TransactionResult,
)

# The API may answer 400 or 422 for a refused payload; both count as rejected.
REJECTED_STATUSES: frozenset[int] = frozenset({422, 400})


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def balance_within_limit(balance: Any, limit: Any) -> bool:
    """A balance may go negative, but never below ``-limit``."""
    if not (_is_int(balance) and _is_int(limit)):
        return False
    return balance >= -limit


def transaction_within_limit(result: TransactionResult | None) -> bool:
    if result is None:
        return False
    return balance_within_limit(result.balance, result.limit)


def statement_within_limit(statement: Statement | None) -> bool:
    if statement is None or statement.balance is None:
        return False
    return balance_within_limit(statement.balance.total, statement.balance.limit)


def statement_matches_seed(statement: Statement | None, client: Client) -> bool:
    """For a client without transactions: seeded limit and a zero balance."""
    return statement_limit_matches(statement, client) and statement_balance_is_zero(statement)


def statement_limit_matches(statement: Statement | None, client: Client) -> bool:
    if statement is None or statement.balance is None:
        return False
    return statement.balance.limit == client.limit


def statement_balance_is_zero(statement: Statement | None) -> bool:
    if statement is None or statement.balance is None:
        return False
    total = statement.balance.total
    return _is_int(total) and total == 0


def transaction_order_correct(
    statement: Statement | None,
    expected_sequence: Sequence[TransactionRequest],
) -> bool:
    """Check the newest statement entries against transactions issued in order.

    *expected_sequence* is oldest first, as the transactions were sent; the
    statement lists newest first, so its first ``len(expected_sequence)``
    entries must match the sequence reversed on kind and description.
    """
    if statement is None or statement.recent_transactions is None:
        return False
    recent = statement.recent_transactions
    if len(recent) < len(expected_sequence):
        return False
    for entry, expected in zip(recent, reversed(expected_sequence)):
        if entry.description != expected.description:
            return False
        if entry.kind != expected.kind.value:
            return False
    return True


def status_matches(actual: int, expected: int | Collection[int]) -> bool:
    if isinstance(expected, int):
        return actual == expected
    return actual in expected
