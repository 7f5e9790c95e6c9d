"""Collapse candidate records to one per title."""

from __future__ import annotations

from typing import Iterable

from bookmirror.extractors.schemas import CandidateRecord


def dedupe_by_title(candidates: Iterable[CandidateRecord]) -> list[CandidateRecord]:
    """Keep the last-seen candidate for each title.

    Output order follows each title's first appearance, values follow its last.
    """

    latest: dict[str, CandidateRecord] = {}
    for candidate in candidates:
        latest[candidate.title] = candidate
    return list(latest.values())
