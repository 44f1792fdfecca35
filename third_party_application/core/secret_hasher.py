"""bcrypt hashing of client secrets on a bounded thread pool."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

import bcrypt

from ..config import CredentialConfig

logger = logging.getLogger(__name__)


class SecretHasher:
    """Hashes and checks secrets without blocking the event loop.

    bcrypt is CPU-bound, so every call runs on a dedicated executor whose size
    caps how many hashes can be in flight at once.
    """

    def __init__(self, config: CredentialConfig):
        self.work_factor = config.hash_function_work_factor
        self._executor = ThreadPoolExecutor(
            max_workers=config.hash_pool_max_workers, thread_name_prefix="secret-hasher"
        )

    def _hash(self, secret: str) -> str:
        return bcrypt.hashpw(secret.encode(), bcrypt.gensalt(rounds=self.work_factor)).decode()

    @staticmethod
    def _check(secret: str, hashed_secret: str) -> bool:
        try:
            return bcrypt.checkpw(secret.encode(), hashed_secret.encode())
        except ValueError:
            logger.warning("Stored client secret hash is malformed")
            return False

    async def hash_secret(self, secret: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._hash, secret)

    async def check_secret(self, secret: str, hashed_secret: str) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._check, secret, hashed_secret)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
