import asyncio
import contextlib
import logging
from typing import Optional

from redis.exceptions import LockError

from launchkit.config import settings
from launchkit.exceptions import AccountBusyError

logger = logging.getLogger(__name__)


class Lease:
    """A held lock. ``renew`` resets its expiry and fails once the lock is no longer ours."""

    def __init__(self, lock, name: str):
        self.lock = lock
        self.name = name

    async def renew(self):
        try:
            await self.lock.reacquire()
        except LockError as e:
            raise AccountBusyError(f"Lock on {self.name[:16]}... expired mid-operation") from e


class AccountLocks:
    """One Redis lock per account (and per project), so no two steps transact from the same one at once.

    While held, a lock is renewed every third of its timeout, so long dispersals
    and sequential sends don't outlive it. Callers also ``renew`` before each
    transfer or submission, which stops the step if the lock was lost anyway.
    """

    def __init__(self, redis_client=None, timeout: Optional[float] = None, blocking_timeout: float = 5.0):
        if redis_client is None:
            from launchkit.config import redis_client
        self.redis = redis_client
        self.timeout = timeout or settings.ACCOUNT_LOCK_TIMEOUT
        self.blocking_timeout = blocking_timeout

    def hold(self, address: str):
        return self._hold(f"account:{address}", f"Account {address[:8]}... is busy with another operation")

    def hold_project(self, project_id: str):
        return self._hold(f"project:{project_id}", f"Project {project_id} is already being launched")

    @contextlib.asynccontextmanager
    async def _hold(self, name: str, busy_message: str):
        lock = self.redis.lock(
            f"launchkit:{name}",
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout
        )
        if not await lock.acquire():
            raise AccountBusyError(busy_message)

        lease = Lease(lock, name)
        keep_alive = asyncio.create_task(self._keep_alive(lease))
        try:
            yield lease
        finally:
            keep_alive.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await keep_alive
            try:
                await lock.release()
            except LockError as e:
                # Lock expired while we held it
                logger.warning(f"Lock {name[:16]}... was already released: {e}")

    async def _keep_alive(self, lease: Lease):
        while True:
            await asyncio.sleep(self.timeout / 3)
            try:
                await lease.renew()
            except AccountBusyError as e:
                logger.error(f"❌ {e}")
                return


def guard(locks: Optional[AccountLocks], address: str):
    if locks is None:
        return contextlib.nullcontext()
    return locks.hold(address)


def guard_project(locks: Optional[AccountLocks], project_id: str):
    if locks is None:
        return contextlib.nullcontext()
    return locks.hold_project(project_id)
