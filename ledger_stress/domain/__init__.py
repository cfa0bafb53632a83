"""Ledger API domain: seed clients, request payloads and typed responses."""

from .models import (
    Client,
    Endpoint,
    Statement,
    StatementBalance,
    StatementEntry,
    TransactionKind,
    TransactionRequest,
    TransactionResult,
)
from .seed import CLIENTS, NOT_FOUND_CLIENT_ID, client_for_worker

__all__ = [
    "CLIENTS",
    "NOT_FOUND_CLIENT_ID",
    "Client",
    "Endpoint",
    "Statement",
    "StatementBalance",
    "StatementEntry",
    "TransactionKind",
    "TransactionRequest",
    "TransactionResult",
    "client_for_worker",
]
