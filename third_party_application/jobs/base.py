"""Common behaviour of scheduled job bodies."""

import logging
from typing import Generic, TypeVar

from ..config import JobConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ScheduledJob(Generic[T]):
    """A unit of periodic work driven by an external scheduler.

    The scheduler reads ``config`` for timing and calls ``run``. A disabled
    job does nothing and returns None.
    """

    name = "ScheduledJob"

    def __init__(self, config: JobConfig):
        self.config = config

    async def run(self) -> T | None:
        if not self.config.enabled:
            logger.info(f"{self.name} is disabled, skipping")
            return None

        logger.info(f"Starting {self.name}")
        result = await self.execute()
        logger.info(f"{self.name} finished: {result}")
        return result

    async def execute(self) -> T:
        raise NotImplementedError
