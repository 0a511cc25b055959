from __future__ import annotations

import sys
import threading
import time
from typing import Optional

# ═══════════════════════════════════════════════════════════════════════════════
# ANSI Colors
# ═══════════════════════════════════════════════════════════════════════════════

_ANSI = {
    "mauve": "\033[38;5;141m",      # Purple - primary accent
    "peach": "\033[38;5;209m",      # Orange - warnings
    "sky": "\033[38;5;117m",        # Light blue - info
    "yellow": "\033[38;5;221m",     # Yellow - fallback
    "green": "\033[38;5;114m",      # Success green
    "red": "\033[38;5;203m",        # Error red
    "gray": "\033[38;5;245m",       # Muted gray
    "dim": "\033[38;5;240m",        # Very dim
    "reset": "\033[0m",
    "bold": "\033[1m",
    "italic": "\033[3m",
}


def style(text: str, color: str, enabled: bool, *, italic: bool = False, bold: bool = False) -> str:
    if not enabled:
        return text
    parts = []
    if bold:
        parts.append(_ANSI["bold"])
    if italic:
        parts.append(_ANSI["italic"])
    parts.append(_ANSI.get(color, ""))
    prefix = "".join(parts)
    if not prefix:
        return text
    return f"{prefix}{text}{_ANSI['reset']}"


# ═══════════════════════════════════════════════════════════════════════════════
# Single-line spinner
# ═══════════════════════════════════════════════════════════════════════════════

class Spinner:
    """Minimal single-line spinner shown while a backend call is in flight."""

    _FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"

    def __init__(self, enabled: bool = True, color: str = "mauve") -> None:
        self.enabled = enabled and sys.stdout.isatty()
        self.color = color
        self._text = ""
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def start(self, initial: str = "") -> None:
        self._text = initial
        if not self.enabled:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def update(self, text: str) -> None:
        with self._lock:
            self._text = text

    def stop(self, final: Optional[str] = None, color: Optional[str] = None) -> None:
        if self.enabled:
            self._stop.set()
            if self._thread:
                self._thread.join(timeout=0.3)
            sys.stdout.write("\r\033[K")
            sys.stdout.flush()
        if final:
            print(style(final, color or "green", self.enabled, bold=True), file=sys.stderr)

    def _run(self) -> None:
        idx = 0
        while not self._stop.is_set():
            with self._lock:
                text = self._text
            frame = style(self._FRAMES[idx % len(self._FRAMES)], self.color, True, bold=True)
            sys.stdout.write(f"\r{frame} {style(text, 'gray', True, italic=True)}\033[K")
            sys.stdout.flush()
            idx += 1
            time.sleep(0.08)


__all__ = ["Spinner", "style"]
