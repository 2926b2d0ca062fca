# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""FIFO delivery queue for deferred batch sending.

``enqueue`` only records the message; ``process`` replays queued entries
through a delivery callable in the order they were added. One failing
message never stops the batch.

The queue has no internal locking and assumes a single thread calls
``enqueue`` and ``process``.
"""

from __future__ import annotations

from collections import deque
from typing import Callable

from .logger import get_logger
from .models import DeliveryResult, Message, QueueEntry, SendOptions
from .prometheus import MailMetrics

DeliverCallable = Callable[[QueueEntry], DeliveryResult]

logger = get_logger("mail_dispatch.queue")


class DeliveryQueue:
    """Buffer messages and deliver them in batches."""

    def __init__(self, deliver: DeliverCallable, metrics: MailMetrics | None = None):
        self._deliver = deliver
        self._entries: deque[QueueEntry] = deque()
        self.metrics = metrics

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def pending(self) -> list[QueueEntry]:
        """Queued entries, oldest first."""
        return list(self._entries)

    def _refresh_gauge(self) -> None:
        if self.metrics is not None:
            self.metrics.set_pending(len(self._entries))

    def enqueue(self, message: Message, options: SendOptions | None = None) -> QueueEntry:
        """Append ``message`` without attempting delivery."""
        entry = QueueEntry(message=message, options=options)
        self._entries.append(entry)
        self._refresh_gauge()
        logger.info("Email queued to: %s", ", ".join(message.recipients()))
        return entry

    def clear(self) -> int:
        """Drop every pending entry and return how many were dropped."""
        dropped = len(self._entries)
        self._entries.clear()
        self._refresh_gauge()
        return dropped

    def process(self, batch_size: int = 0) -> tuple[int, int]:
        """Deliver up to ``batch_size`` entries (0 means all queued).

        Returns:
            ``(successes, failures)`` for the processed entries.
        """
        if batch_size < 0:
            raise ValueError("batch_size must be >= 0")
        count = len(self._entries) if batch_size == 0 else min(batch_size, len(self._entries))
        successes = failures = 0

        for _ in range(count):
            entry = self._entries.popleft()
            self._refresh_gauge()
            try:
                result = self._deliver(entry)
            except Exception:
                logger.exception("Unexpected error delivering queued email to %s", ", ".join(entry.message.recipients()))
                failures += 1
                continue
            if result.ok:
                successes += 1
            else:
                failures += 1

        if count:
            logger.info("Processed %d queued emails: %d sent, %d failed", count, successes, failures)
        return successes, failures
