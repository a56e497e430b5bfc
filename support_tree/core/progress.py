"""
Progress notifications for long-running pipeline stages.

The pipeline emits three notification kinds: a stage starts with a
description, reports integer percentages, then ends. Notifications are
one-way; listeners cannot pause or cancel the computation.
"""

import logging
from typing import Optional

from tqdm import tqdm

logger = logging.getLogger(__name__)


class ProgressListener:
    """Base listener. Subclasses override the hooks they care about."""

    def computation_started(self, description: str) -> None:
        pass

    def computation_progress(self, percent: int) -> None:
        pass

    def computation_ended(self) -> None:
        pass


class NullProgress(ProgressListener):
    """Listener that ignores every notification."""


class LoggingProgress(ProgressListener):
    """Listener that writes notifications to the module logger."""

    def __init__(self, level: int = logging.INFO):
        self.level = level
        self._description = ""

    def computation_started(self, description: str) -> None:
        self._description = description
        logger.log(self.level, "%s", description)

    def computation_progress(self, percent: int) -> None:
        logger.log(self.level, "%s %d%%", self._description, percent)

    def computation_ended(self) -> None:
        logger.log(self.level, "%s done", self._description)


class TqdmProgress(ProgressListener):
    """Listener that drives a tqdm progress bar, one bar per stage."""

    def __init__(self, disable: bool = False, **tqdm_kwargs):
        self.disable = disable
        self.tqdm_kwargs = tqdm_kwargs
        self._bar: Optional[tqdm] = None

    def computation_started(self, description: str) -> None:
        self.computation_ended()
        self._bar = tqdm(
            total=100, desc=description, unit="%", disable=self.disable, **self.tqdm_kwargs
        )

    def computation_progress(self, percent: int) -> None:
        if self._bar is None:
            return
        delta = percent - self._bar.n
        if delta > 0:
            self._bar.update(delta)

    def computation_ended(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


class ProgressTracker:
    """
    Converts step counts into clamped integer percentages.

    Only changes in the integer percentage are forwarded to the listener.
    """

    def __init__(self, listener: Optional[ProgressListener], description: str, total: float):
        self.listener = listener or NullProgress()
        self.description = description
        self.total = total
        self._last = -1

    def __enter__(self) -> "ProgressTracker":
        self.listener.computation_started(self.description)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.listener.computation_ended()

    def update(self, step: float) -> None:
        if self.total <= 0:
            percent = 100
        else:
            percent = int(100 * step / self.total)
        percent = max(0, min(100, percent))
        if percent != self._last:
            self._last = percent
            self.listener.computation_progress(percent)


__all__ = [
    "ProgressListener",
    "NullProgress",
    "LoggingProgress",
    "TqdmProgress",
    "ProgressTracker",
]
