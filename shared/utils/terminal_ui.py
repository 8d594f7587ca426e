"""
Shared terminal UI primitives: ANSI colors, panel rendering, progress line.

Used by ``libscan_platform.scanner.cli`` for the configuration banner,
the in-place scan progress line and the conclusion report. Everything here
writes to stdout; diagnostics go through logging to stderr.
"""
from __future__ import annotations

import shutil
import sys
import textwrap
from typing import Any, TextIO

from shared.utils.env import env_value


# ── ANSI escape codes ────────────────────────────────────────────────

class Ansi:
    RESET  = "\033[0m"
    BOLD   = "\033[1m"
    DIM    = "\033[2m"
    CYAN   = "\033[36m"
    GREEN  = "\033[32m"
    YELLOW = "\033[33m"
    RED    = "\033[31m"
    BLUE   = "\033[34m"


# ── Helpers ──────────────────────────────────────────────────────────

def color_enabled() -> bool:
    force = (env_value("LIBSCAN_FORCE_COLOR", "auto") or "auto").lower()
    if force in {"0", "false", "no"}:
        return False
    return sys.stdout.isatty() or force in {"1", "true", "yes"}


def color(text: str, color_code: str) -> str:
    if not color_enabled():
        return text
    return f"{color_code}{text}{Ansi.RESET}"


def terminal_width() -> int:
    width = shutil.get_terminal_size((100, 20)).columns
    return max(72, min(width, 140))


# ── Text wrapping ────────────────────────────────────────────────────

def wrap_row(label: str, value: Any, width: int) -> list[str]:
    """Format ``label: value`` with continuation-indent wrapping."""
    prefix = f"{label}: "
    available = max(12, width - len(prefix))
    chunks: list[str] = []
    for raw_line in str(value).splitlines() or [""]:
        chunks.extend(textwrap.wrap(raw_line, width=available) or [""])
    lines = [f"{prefix}{chunks[0]}"]
    indent = " " * len(prefix)
    for extra in chunks[1:]:
        lines.append(f"{indent}{extra}")
    return lines


# ── Panel rendering ─────────────────────────────────────────────────

def render_panel(title: str, rows: list[tuple[str, Any]], width: int | None = None) -> list[str]:
    """Render a Unicode box of ``label: value`` rows, without color."""
    max_w = (width or terminal_width()) - 4
    title_text = f" {title} "
    body: list[str] = []
    for label, value in rows:
        body.extend(wrap_row(label, value, max_w))

    content_w = max(len(title_text), max((len(line) for line in body), default=0), 36)
    content_w = min(content_w, max_w)

    top = f"╭─{title_text}{'─' * max(0, content_w - len(title_text))}╮"
    bottom = f"╰{'─' * (content_w + 1)}╯"
    out = [top]
    for line in body:
        out.append(f"│ {line[:content_w].ljust(content_w)}│")
    out.append(bottom)
    return out


def print_panel(title: str, rows: list[tuple[str, Any]], color_code: str) -> None:
    lines = render_panel(title, rows)
    print("")
    print("\n".join(color(line, color_code) for line in lines))


# ── Progress line ───────────────────────────────────────────────────

class ProgressLine:
    """Rewrites a single stdout line in place: ``Scanning modules (12 of 40)...``."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout
        self._active = False
        self._last_width = 0

    def update(self, phase: str, done: int, total: int) -> None:
        text = f"Scanning {phase} ({done} of {total})..."
        padding = " " * max(0, self._last_width - len(text))
        self.stream.write(f"\r{text}{padding}")
        self.stream.flush()
        self._last_width = len(text)
        self._active = True

    def finish(self, message: str = "done.") -> None:
        if not self._active:
            return
        self.stream.write(f" {message}\n")
        self.stream.flush()
        self._active = False
        self._last_width = 0
