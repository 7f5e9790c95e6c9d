"""Diagnostic records for best-effort scrape runs.

Session and extraction failures never abort a scrape. Instead they are recorded
on a :class:`ScrapeReport` that travels alongside the (possibly empty) result so
callers and tests can see what degraded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any

from bookmirror.logging_config import get_logger

LOGGER = get_logger(__name__)


class DiagnosticKind(str, Enum):
    """Classification of a degraded scrape step."""

    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    EXTRACTION_EMPTY = "extraction_empty"
    PERSISTENCE_SKIPPED = "persistence_skipped"
    BANNER_NOT_DISMISSED = "banner_not_dismissed"
    PAGE_LIMIT_REACHED = "page_limit_reached"
    FALLBACK_TARGET = "fallback_target"


_LEVELS = {
    DiagnosticKind.UPSTREAM_UNAVAILABLE: logging.WARNING,
    DiagnosticKind.EXTRACTION_EMPTY: logging.INFO,
    DiagnosticKind.PERSISTENCE_SKIPPED: logging.WARNING,
    DiagnosticKind.BANNER_NOT_DISMISSED: logging.DEBUG,
    DiagnosticKind.PAGE_LIMIT_REACHED: logging.WARNING,
    DiagnosticKind.FALLBACK_TARGET: logging.WARNING,
}


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class ScrapeReport:
    """Collects diagnostics for one pipeline invocation."""

    label: str
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def record(self, kind: DiagnosticKind, message: str, **details: Any) -> Diagnostic:
        entry = Diagnostic(kind=kind, message=message, details=details)
        self.diagnostics.append(entry)
        LOGGER.log(
            _LEVELS.get(kind, logging.INFO),
            "%s | %s | %s",
            self.label,
            kind.value,
            message,
            extra={"diagnostic": kind.value, **{f"d_{k}": v for k, v in details.items()}},
        )
        return entry

    def record_upstream_unavailable(self, *, url: str, reason: str) -> Diagnostic:
        return self.record(DiagnosticKind.UPSTREAM_UNAVAILABLE, reason, url=url)

    def record_extraction_empty(self, *, url: str | None = None) -> Diagnostic:
        return self.record(
            DiagnosticKind.EXTRACTION_EMPTY,
            "No candidate records survived filtering",
            url=url,
        )

    def record_persistence_skipped(self, *, slug: str) -> Diagnostic:
        return self.record(
            DiagnosticKind.PERSISTENCE_SKIPPED,
            f"No persisted category for slug={slug}; results not stored",
            slug=slug,
        )

    def has(self, kind: DiagnosticKind) -> bool:
        return any(entry.kind == kind for entry in self.diagnostics)

    def kinds(self) -> list[DiagnosticKind]:
        return [entry.kind for entry in self.diagnostics]

    @property
    def degraded(self) -> bool:
        return bool(self.diagnostics)
