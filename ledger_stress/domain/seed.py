"""Clients seeded in the target database before a run."""

from collections.abc import Sequence

from .models import Client

CLIENTS: tuple[Client, ...] = (
    Client(id=1, limit=1000 * 100),
    Client(id=2, limit=800 * 100),
    Client(id=3, limit=10000 * 100),
    Client(id=4, limit=100000 * 100),
    Client(id=5, limit=5000 * 100),
)

# First id past the seeded range; only the not-found scenario uses it.
NOT_FOUND_CLIENT_ID = len(CLIENTS) + 1


def client_for_worker(index: int, clients: Sequence[Client] = CLIENTS) -> Client:
    """Assign seeded clients one-to-one to 1-based worker indexes."""
    return clients[(index - 1) % len(clients)]
