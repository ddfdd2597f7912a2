"""
proxylogger.services.reconciliation_service — Channel Reconciliation Loop
==========================================================================

Background task that re-walks every known backend server through
:meth:`ChannelProvisioner.reconcile` every two minutes, starting
immediately.  This is both the startup discovery pass and the self-heal
for categories or channels deleted by hand in Discord.

A failing pass is logged and the loop carries on; provisioning failures
inside a pass are already handled per server by the provisioner.
"""

from __future__ import annotations

import asyncio
import logging

from proxylogger.constants import RECONCILE_INTERVAL_SECONDS
from proxylogger.services.channel_service import ChannelProvisioner

logger = logging.getLogger(__name__)


class ReconciliationLoop:
    """Fixed-interval driver for one provisioner."""

    def __init__(
        self,
        provisioner: ChannelProvisioner,
        interval: float = RECONCILE_INTERVAL_SECONDS,
    ) -> None:
        self.provisioner = provisioner
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> dict | None:
        try:
            return await self.provisioner.reconcile()
        except Exception:
            logger.exception("Reconciliation pass failed")
            return None

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Start the loop; the first pass runs right away."""
        if self._task is not None:
            return

        async def _reconcile_loop() -> None:
            while True:
                await self.run_once()
                await asyncio.sleep(self.interval)

        loop = loop or asyncio.get_running_loop()
        self._task = loop.create_task(_reconcile_loop(), name="channel-reconcile")
        logger.info("Channel reconciliation started (every %ss)", self.interval)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to unwind.

        Provisioning already in flight is not cancelled with it; see
        :meth:`ChannelProvisioner.close`.
        """
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
