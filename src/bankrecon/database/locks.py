"""Expiring named locks stored in the run_locks table."""

import asyncio
import time
import uuid
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from bankrecon.database.base import LockManager
from bankrecon.database.models import RunLock
from bankrecon.domain.errors import (
    DependencyError,
    LockTimeoutError,
    lock_not_acquired,
)
from bankrecon.domain.result import Err, Ok, Result
from bankrecon.logging_setup import get_logger

_logger = get_logger("bankrecon.locks")

T = TypeVar("T")

DEFAULT_POLL_INTERVAL_SECONDS = 0.5


class SQLAlchemyLockManager(LockManager):
    """Lock manager that keeps lock rows in the database.

    A lock row names its holder and an absolute expiry time. Once expired, any
    caller may take it over, so a crashed run cannot block later ones forever.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ):
        self.session_factory = session_factory
        self.poll_interval = poll_interval

    async def with_lock(
        self,
        lock_id: str,
        fn: Callable[[], Awaitable[T]],
        acquire_timeout: float,
        expiry: float,
    ) -> Result[T, Exception]:
        try:
            token = await self.acquire(lock_id, acquire_timeout, expiry)
        except SQLAlchemyError as e:
            _logger.warning("lock:acquire_failed lock_id=%s error=%s", lock_id, e)
            return Err(DependencyError(f"Failed to acquire lock for {lock_id}: {e}"))
        if token is None:
            return Err(LockTimeoutError(lock_not_acquired(lock_id, acquire_timeout)))

        try:
            result = Ok(await fn())
        except Exception as e:  # noqa: BLE001
            _logger.warning("lock:fn_failed lock_id=%s error=%s", lock_id, e)
            result = Err(e)

        try:
            self.release(lock_id, token)
        except SQLAlchemyError as e:
            # The row still expires, so a later run can take it over
            _logger.warning("lock:release_failed lock_id=%s holder=%s error=%s", lock_id, token, e)
        return result

    async def acquire(self, lock_id: str, acquire_timeout: float, expiry: float) -> Optional[str]:
        """Wait up to ``acquire_timeout`` seconds for the lock.

        Returns:
            Holder token on success, None on timeout
        """
        token = uuid.uuid4().hex
        deadline = time.monotonic() + acquire_timeout
        while True:
            if self._try_acquire(lock_id, token, expiry):
                _logger.debug("lock:acquired lock_id=%s holder=%s", lock_id, token)
                return token
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                _logger.info("lock:timeout lock_id=%s timeout=%s", lock_id, acquire_timeout)
                return None
            await asyncio.sleep(min(self.poll_interval, remaining))

    def release(self, lock_id: str, token: str) -> None:
        """Release the lock if ``token`` still holds it."""
        with self.session_factory() as session:
            session.execute(
                delete(RunLock).where(RunLock.lock_id == lock_id, RunLock.holder == token)
            )
            session.commit()
        _logger.debug("lock:released lock_id=%s holder=%s", lock_id, token)

    def _try_acquire(self, lock_id: str, token: str, expiry: float) -> bool:
        now = time.time()
        with self.session_factory() as session:
            lock = session.get(RunLock, lock_id)
            if lock is None:
                session.add(
                    RunLock(lock_id=lock_id, holder=token, acquired_at=now, expires_at=now + expiry)
                )
                try:
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    return False
                return True

            if lock.expires_at > now:
                return False

            # Conditional on the old holder so only one caller wins the takeover
            previous_holder = lock.holder
            outcome = session.execute(
                update(RunLock)
                .where(RunLock.lock_id == lock_id, RunLock.holder == previous_holder)
                .values(holder=token, acquired_at=now, expires_at=now + expiry)
            )
            session.commit()
            if outcome.rowcount != 1:
                return False
            _logger.warning(
                "lock:expired_takeover lock_id=%s previous_holder=%s", lock_id, previous_holder
            )
            return True
