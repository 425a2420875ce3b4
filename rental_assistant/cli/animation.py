"""
Thinking spinner shown while a question is being answered.

Purely cosmetic: rich refreshes the spinner on its own thread and the
answer never waits on it.
"""

import random
from typing import Optional

from rich.console import Console
from rich.status import Status

# Animation style -> rich spinner name
SPINNERS = {
    "dots": "dots",
    "brain": "aesthetic",
    "gears": "dots8Bit",
    "pulse": "point",
    "search": "bouncingBall",
}

MESSAGES = [
    "Analyzing properties...",
    "Processing your request...",
    "Searching database...",
    "Finding best matches...",
    "Preparing response...",
    "Almost ready...",
]


class ThinkingAnimation:
    """Start/stop wrapper around a rich status spinner."""

    def __init__(self, console: Console, style: str = "dots"):
        self.console = console
        self.style = style
        self._status: Optional[Status] = None

    @property
    def is_animating(self) -> bool:
        return self._status is not None

    def start(self) -> None:
        if self._status is not None:
            return
        message = random.choice(MESSAGES)
        self._status = self.console.status(
            f"[yellow]{message}[/]",
            spinner=SPINNERS.get(self.style, "dots"),
            spinner_style="cyan",
        )
        self._status.start()

    def stop(self) -> None:
        if self._status is None:
            return
        status, self._status = self._status, None
        status.stop()
