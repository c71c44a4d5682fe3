"""Common data structures used by the preview driver and the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class PreviewResult:
    """Outcome of one headless preview run."""

    config: str
    params: str
    page: str
    screen: str
    duration_ms: int = 0
    screenshot: Optional[str] = None
