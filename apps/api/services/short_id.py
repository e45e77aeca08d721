"""Short identifier generation and bounded retry helper."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from config import settings


T = TypeVar("T")


def generate_short_id(length: Optional[int] = None, alphabet: Optional[str] = None) -> str:
    """Return a random identifier of ``length`` symbols drawn uniformly from ``alphabet``."""
    size = int(length if length is not None else settings.SHORT_ID_LENGTH)
    symbols = alphabet or settings.SHORT_ID_ALPHABET
    return "".join(secrets.choice(symbols) for _ in range(size))


@dataclass(frozen=True)
class RetryOutcome(Generic[T]):
    value: Optional[T]
    attempts: int

    @property
    def exhausted(self) -> bool:
        return self.value is None


async def retry_bounded(
    attempt: Callable[[int], Awaitable[Optional[T]]],
    max_attempts: int,
) -> RetryOutcome[T]:
    """
    Call ``attempt`` sequentially until it returns a value or the budget runs out.

    ``attempt`` receives the 1-based attempt number and returns ``None`` to ask
    for another try. Exceptions are not caught.
    """
    budget = max(int(max_attempts), 1)
    for number in range(1, budget + 1):
        value = await attempt(number)
        if value is not None:
            return RetryOutcome(value=value, attempts=number)
    return RetryOutcome(value=None, attempts=budget)
