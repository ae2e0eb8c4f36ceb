import asyncio
import logging
import random
from typing import Protocol

from chatstore.models.schemas import Message

logger = logging.getLogger(__name__)


class DeliveryChannel(Protocol):
    async def deliver(self, session_id: int, message: Message) -> None:
        """Return once the message is accepted; raise to signal failure."""
        ...


class SimulatedDeliveryChannel:
    """Sleeps for a random round-trip latency instead of calling a network."""

    def __init__(
        self,
        min_delay: float = 1.0,
        max_delay: float = 3.0,
        rng: random.Random | None = None,
    ):
        if min_delay < 0 or max_delay < min_delay:
            raise ValueError(
                f"Invalid delay bounds: min={min_delay}, max={max_delay}"
            )
        self.min_delay = min_delay
        self.max_delay = max_delay
        self._rng = rng or random.Random()

    async def deliver(self, session_id: int, message: Message) -> None:
        delay = self._rng.uniform(self.min_delay, self.max_delay)
        logger.debug(
            "[SIMULATED] Delivering message %s to session %s in %.2fs",
            message.id,
            session_id,
            delay,
        )
        await asyncio.sleep(delay)
