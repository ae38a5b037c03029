"""
Front-end capability and run control.

The trial engine never branches on the kind of user interface attached to
it. It calls a ``FrontEnd`` at two fixed yield points:

- once per timestep: ``poll_events()``
- at the end of every trial: ``on_trial_end(...)``, then ``poll_events()``
  repeatedly while the run is paused

``RunControl`` holds the pause and cancellation flags shared between the
engine and the front end. The engine only reads ``cancelled`` between
trials, so a trial in progress always completes.

Implementations:
- ``HeadlessFrontEnd``: batch runs; does nothing
- ``TerminalFrontEnd``: single-key commands from a raw-mode terminal
- Graphical front ends subclass ``FrontEnd`` and drain their event loop in
  ``poll_events``.
"""

from __future__ import annotations

import logging
import os
import select
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional, TextIO

if TYPE_CHECKING:
    from cbmsim.constants import CellType
    from cbmsim.stats.spike_sums import FiringRate

logger = logging.getLogger(__name__)


@dataclass
class RunControl:
    """Level-triggered run flags."""

    in_run: bool = False
    paused: bool = False
    cancelled: bool = False

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def cancel(self) -> None:
        """Stop at the next trial boundary (also releases a pause)."""
        self.cancelled = True
        self.paused = False

    def start(self) -> None:
        self.in_run = True
        self.cancelled = False

    def finish(self) -> None:
        self.in_run = False

    @property
    def should_stop(self) -> bool:
        return self.cancelled


class FrontEnd:
    """Base front end: every hook is a no-op.

    Subclasses receive the shared ``RunControl`` through ``bind`` before the
    run starts and may call ``pause``/``resume``/``cancel`` on it from
    ``poll_events``.
    """

    def __init__(self) -> None:
        self.control: Optional[RunControl] = None

    def bind(self, control: RunControl) -> None:
        self.control = control

    def poll_events(self) -> None:
        """Process whatever input is pending, without blocking."""

    def is_paused(self) -> bool:
        return self.control is not None and self.control.paused

    def on_run_start(self, total_trials: int) -> None:
        pass

    def on_trial_end(self, trial: int, rates: Dict["CellType", "FiringRate"]) -> None:
        pass

    def on_run_end(self) -> None:
        pass


class HeadlessFrontEnd(FrontEnd):
    """Front end for batch runs."""


class TerminalFrontEnd(FrontEnd):
    """Keyboard control from a terminal in raw mode.

    Keys:
        p   pause at the end of the current trial
        c   continue
        q   quit at the end of the current trial

    The terminal is switched to cbreak mode in ``on_run_start`` and restored
    in ``on_run_end``. When ``stream`` is not a TTY the mode switch is
    skipped and input is still read without blocking.
    """

    PAUSE_KEY = "p"
    CONTINUE_KEY = "c"
    QUIT_KEY = "q"
    PAUSED_POLL_SECONDS = 0.05

    def __init__(self, stream: Optional[TextIO] = None):
        super().__init__()
        self.stream = stream if stream is not None else sys.stdin
        self._saved_attrs = None

    def on_run_start(self, total_trials: int) -> None:
        if not self.stream.isatty():
            return
        import termios
        import tty

        fd = self.stream.fileno()
        self._saved_attrs = termios.tcgetattr(fd)
        tty.setcbreak(fd)
        logger.info(
            "Press '%s' to pause, '%s' to continue, '%s' to quit.",
            self.PAUSE_KEY, self.CONTINUE_KEY, self.QUIT_KEY,
        )

    def on_run_end(self) -> None:
        if self._saved_attrs is None:
            return
        import termios

        termios.tcsetattr(self.stream.fileno(), termios.TCSADRAIN, self._saved_attrs)
        self._saved_attrs = None

    def poll_events(self) -> None:
        for key in self._read_pending():
            self.handle_key(key)

    def handle_key(self, key: str) -> None:
        if self.control is None:
            return
        key = key.lower()
        if key == self.PAUSE_KEY and not self.control.paused:
            logger.info("Pause requested.")
            self.control.pause()
        elif key == self.CONTINUE_KEY and self.control.paused:
            self.control.resume()
        elif key == self.QUIT_KEY:
            logger.info("Quit requested; stopping after the current trial.")
            self.control.cancel()

    def _read_pending(self) -> str:
        # Wait briefly while paused so the trial-end loop does not spin
        timeout = self.PAUSED_POLL_SECONDS if self.is_paused() else 0
        ready, _, _ = select.select([self.stream], [], [], timeout)
        if not ready:
            return ""
        data = os.read(self.stream.fileno(), 64)
        return data.decode(errors="ignore")
