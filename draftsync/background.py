"""Background poller: periodically re-syncs the mailboxes of online users."""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from draftsync.config import BACKGROUND_SYNC_INTERVAL_SECONDS
from draftsync.utils.logger import get_logger, log_context

logger = get_logger("draftsync.background")

SyncFn = Callable[[str], Awaitable[Any]]
OnlineUsersFn = Callable[[], Awaitable[list[str]]]


class BackgroundSyncService:
    """Runs ``sync_fn(uid)`` for every uid returned by ``list_online_users`` every ``interval`` seconds.

    A failure for one user is logged and does not stop the loop.
    """

    def __init__(
        self,
        sync_fn: SyncFn,
        list_online_users: OnlineUsersFn,
        interval: float = BACKGROUND_SYNC_INTERVAL_SECONDS,
    ):
        self._sync_fn = sync_fn
        self._list_online_users = list_online_users
        self._interval = interval
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="draftsync-background-sync")
        logger.info("background.started", interval=self._interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("background.stopped")

    async def run_once(self) -> int:
        """One pass over online users; returns how many synced without error."""
        uids = await self._list_online_users()
        ok = 0
        for uid in uids:
            with log_context(uid=uid, operation="background_sync"):
                try:
                    result = await self._sync_fn(uid)
                except Exception as e:
                    logger.exception("background.sync.error", error=str(e))
                    continue
                if getattr(result, "success", True):
                    ok += 1
                else:
                    logger.warning("background.sync.failed", error=getattr(result, "error", None))
        logger.debug("background.pass.complete", users=len(uids), ok=ok)
        return ok

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("background.pass.error", error=str(e))
            await asyncio.sleep(self._interval)
