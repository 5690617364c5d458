# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import asyncio
import collections
import logging
from typing import Callable

from sovereign_gateway.audit.review import ReviewReport
from sovereign_gateway.gateway import DecisionGateway

logger = logging.getLogger("sovereign.gateway.scheduler")

ReviewHandler = Callable[[ReviewReport], None]


class ReviewScheduler:
    """
    Runs :meth:`DecisionGateway.trigger_review` on a fixed interval.

    Only the latest ``max_reports`` reports are retained; ``on_report`` sees
    every one.

    Example::

        scheduler = ReviewScheduler(gateway, period_days=7, interval_seconds=86_400)
        scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        gateway: DecisionGateway,
        period_days: int = 7,
        interval_seconds: float = 86_400.0,
        on_report: ReviewHandler | None = None,
        max_reports: int = 52,
    ) -> None:
        if period_days <= 0:
            raise ValueError(f"period_days must be > 0; got {period_days}.")
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be > 0; got {interval_seconds}.")
        if max_reports < 1:
            raise ValueError(f"max_reports must be >= 1; got {max_reports}.")
        self._gateway = gateway
        self._period_days = period_days
        self._interval = interval_seconds
        self._on_report = on_report
        self._task: asyncio.Task[None] | None = None
        self._reports: collections.deque[ReviewReport] = collections.deque(maxlen=max_reports)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def reports(self) -> list[ReviewReport]:
        """The most recent ``max_reports`` reports, oldest first."""
        return list(self._reports)

    def start(self) -> None:
        """
        Start the periodic task on the running event loop.

        Raises:
            RuntimeError: If already running or no loop is running.
        """
        if self.running:
            raise RuntimeError("ReviewScheduler is already running.")
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Cancel the periodic task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def run_once(self) -> ReviewReport:
        """Run one review immediately."""
        report = self._gateway.trigger_review(self._period_days)
        self._reports.append(report)
        if self._on_report is not None:
            self._on_report(report)
        return report

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.run_once()
            except Exception:
                logger.exception("scheduled_review_failed", extra={"period_days": self._period_days})
