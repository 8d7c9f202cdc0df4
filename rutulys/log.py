from __future__ import annotations

import datetime as dt
import sys
import threading
from typing import Optional, TextIO

BOLD = "\033[1m"
RED = "\033[1;31m"
YELLOW = "\033[33m"
RESET = "\033[0m"


class Logger:
    """Thread-safe message sink shared by every stage of a build.

    Each call produces exactly one line on the stream while holding the lock,
    so messages from concurrent workers never interleave.
    """

    def __init__(self, stream: Optional[TextIO] = None, verbose: bool = False, color: Optional[bool] = None) -> None:
        self.stream = stream if stream is not None else sys.stderr
        self.verbose = verbose
        if color is None:
            isatty = getattr(self.stream, "isatty", None)
            color = bool(isatty and isatty())
        self.color = color
        self._lock = threading.Lock()

    def _emit(self, text: str, style: str = "") -> None:
        stamp = dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-2]
        if style and self.color:
            text = f"{style}{text}{RESET}"
        with self._lock:
            print(f"[{stamp}] {text}", file=self.stream, flush=True)

    def debug(self, text: str) -> None:
        if self.verbose:
            self._emit(text)

    def info(self, text: str) -> None:
        self._emit(text)

    def notice(self, text: str) -> None:
        self._emit(text, BOLD)

    def warning(self, text: str) -> None:
        self._emit(text, YELLOW)

    def error(self, text: str) -> None:
        self._emit(text, RED)
