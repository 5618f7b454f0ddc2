# src/taskdump/extraction/extractor.py

"""
Extraction pipeline.

Composes the independent scanners into one IntentFrame per line. The
Extractor holds only the owner configuration; scanners share no state.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date

from ..config import DEFAULT_OWNER
from ..tasks.normalizer import coerce_date
from ..tasks.task_models import IntentFrame
from . import scanners

logger = logging.getLogger(__name__)


def _as_reference(value: date | str | None) -> date:
    if isinstance(value, date):
        return value
    iso = coerce_date(value)
    return date.fromisoformat(iso) if iso else date.today()


class Extractor:
    """Deterministic text -> IntentFrame pipeline for a fixed owner list."""

    def __init__(self, owners: Sequence[str] = (), default_owner: str | None = None) -> None:
        self.owners: tuple[str, ...] = tuple(o for o in owners if isinstance(o, str) and o.strip())
        self.default_owner = (
            (default_owner or "").strip()
            or (self.owners[0] if self.owners else DEFAULT_OWNER)
        )

    def extract(self, raw_line: str | None, reference_date: date | str | None = None) -> IntentFrame | None:
        """
        Extract every field from raw_line.

        Returns None for empty/whitespace input. Never raises.
        """
        if raw_line is None:
            return None
        raw = str(raw_line)
        if not raw.strip():
            return None

        reference = _as_reference(reference_date)

        frame = IntentFrame(
            title=scanners.clean_title(raw, self.owners),
            owner=scanners.parse_owner(raw, self.owners, self.default_owner),
            urgent=scanners.parse_urgent(raw),
            date=scanners.parse_date(raw, reference),
            duration=scanners.parse_duration(raw),
            recurrence=scanners.parse_recurrence(raw),
            project=scanners.parse_project(raw),
            time=scanners.parse_time(raw),
        )
        logger.debug(
            "Extracted date=%s owner=%s urgent=%s title=%r",
            frame.date,
            frame.owner,
            frame.urgent,
            frame.title,
        )
        return frame


def extract(
    raw_line: str | None,
    reference_date: date | str | None = None,
    *,
    owners: Sequence[str] = (),
    default_owner: str | None = None,
) -> IntentFrame | None:
    """Convenience wrapper around a one-off Extractor."""
    return Extractor(owners, default_owner).extract(raw_line, reference_date)
