"""Synthetic transaction payloads and client selection."""

import random
import string
from collections.abc import Sequence
from typing import Any

from ledger_stress.domain import CLIENTS, Client, TransactionKind, TransactionRequest

MIN_AMOUNT = 1
MAX_AMOUNT = 10_000
DESCRIPTION_LENGTH = 10

_DESCRIPTION_ALPHABET = string.ascii_letters + string.digits

# Bodies the API must refuse with a client error. Sent raw, bypassing the
# request model, since none of them would pass its validation.
INVALID_TRANSACTIONS: tuple[dict[str, Any], ...] = (
    {"valor": 1.2, "tipo": "d", "descricao": "devolve"},
    {"valor": 1, "tipo": "x", "descricao": "devolve"},
    {"valor": 1, "tipo": "c", "descricao": "123456789 e mais"},
    {"valor": 1, "tipo": "c", "descricao": ""},
    {"valor": 1, "tipo": "c", "descricao": None},
)


def pick_client_id(clients: Sequence[Client] = CLIENTS) -> int:
    return random.choice(clients).id


def random_amount() -> int:
    return random.randint(MIN_AMOUNT, MAX_AMOUNT)


def random_description() -> str:
    return "".join(random.choices(_DESCRIPTION_ALPHABET, k=DESCRIPTION_LENGTH))


def random_transaction(kind: TransactionKind) -> TransactionRequest:
    """Build a valid transaction of *kind* with random amount and description."""
    return TransactionRequest(
        value=random_amount(),
        kind=kind,
        description=random_description(),
    )
