"""Pydantic models for the ledger API surface exercised by the harness.

Response models mirror the wire format (Portuguese keys are aliases) and make
every field optional, so a missing or mistyped field shows up as ``None`` or a
failed ``parse`` instead of an exception deep inside a check.
"""

from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError

# --- Enums ---


class TransactionKind(StrEnum):
    CREDIT = "c"
    DEBIT = "d"


class Endpoint(StrEnum):
    TRANSACTIONS = "/clientes/:id/transacoes"
    STATEMENT = "/clientes/:id/extrato"


# --- Seed data ---


class Client(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    limit: int = Field(ge=0)


# --- Request Models ---


class TransactionRequest(BaseModel):
    value: int = Field(gt=0)
    kind: TransactionKind
    description: str = Field(min_length=1, max_length=10)

    def to_payload(self) -> dict[str, Any]:
        return {
            "valor": self.value,
            "tipo": self.kind.value,
            "descricao": self.description,
        }


# --- Response Models ---


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def parse(cls, body: Any) -> Self | None:
        """Build the model from a decoded JSON body, ``None`` if it does not fit."""
        if not isinstance(body, dict):
            return None
        try:
            return cls.model_validate(body)
        except ValidationError:
            return None


class TransactionResult(_WireModel):
    balance: StrictInt | None = Field(default=None, alias="saldo")
    limit: StrictInt | None = Field(default=None, alias="limite")


class StatementBalance(_WireModel):
    total: StrictInt | None = None
    limit: StrictInt | None = Field(default=None, alias="limite")
    timestamp: StrictStr | None = Field(default=None, alias="data_extrato")


class StatementEntry(_WireModel):
    value: StrictInt | None = Field(default=None, alias="valor")
    kind: StrictStr | None = Field(default=None, alias="tipo")
    description: StrictStr | None = Field(default=None, alias="descricao")
    timestamp: StrictStr | None = Field(default=None, alias="realizada_em")


class Statement(_WireModel):
    balance: StatementBalance | None = Field(default=None, alias="saldo")
    recent_transactions: list[StatementEntry] | None = Field(
        default=None, alias="ultimas_transacoes"
    )

    @classmethod
    def parse(cls, body: Any) -> Self | None:
        """Parse ``saldo`` and ``ultimas_transacoes`` independently.

        A malformed section comes back as ``None`` without hiding the other
        one, so a bad entry in the history does not fail the balance checks.
        """
        if not isinstance(body, dict):
            return None
        return cls(
            balance=StatementBalance.parse(body.get("saldo")),
            recent_transactions=_parse_entries(body.get("ultimas_transacoes")),
        )


def _parse_entries(raw: Any) -> list[StatementEntry] | None:
    # Ordering checks need every entry; one bad entry voids the list.
    if not isinstance(raw, list):
        return None
    entries = [StatementEntry.parse(item) for item in raw]
    if any(entry is None for entry in entries):
        return None
    return entries
