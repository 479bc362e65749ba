"""
File: hottopic/models.py
Internal data structures passed between pipeline stages.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel


@dataclass
class CollectorOutcome:
    """Settled result of one collector branch.

    Exactly one of ``metrics`` / ``error`` is set.
    """

    source: str
    metrics: Optional[BaseModel] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ReportResult:
    """Where a rendered report lives and how to refer to it."""

    report_id: str
    file_path: str
    file_name: str


__all__ = ["CollectorOutcome", "ReportResult"]
