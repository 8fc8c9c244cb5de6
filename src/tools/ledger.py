"""
Mock token ledger.

In production, this would call the platform's token wallet service, which
holds fan balances and deposit tokens escrowed against bookings.
"""

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Ledger(Protocol):
    async def get_balance(self, fan_id: str) -> int: ...

    async def release_deposit_tokens(self, booking_id: str) -> bool: ...


class InMemoryLedger:
    """Balances and deposit releases kept in memory."""

    def __init__(self, balances: dict[str, int] | None = None) -> None:
        self._balances: dict[str, int] = {str(k): v for k, v in (balances or {}).items()}
        self.released_deposits: list[str] = []

    def set_balance(self, fan_id: str, balance: int) -> None:
        self._balances[str(fan_id)] = balance

    async def get_balance(self, fan_id: str) -> int:
        return self._balances.get(str(fan_id), 0)

    async def release_deposit_tokens(self, booking_id: str) -> bool:
        self.released_deposits.append(str(booking_id))
        logger.info("Deposit tokens released for booking %s", booking_id)
        return True
