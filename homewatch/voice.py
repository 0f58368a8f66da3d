# homewatch/voice.py
from __future__ import annotations
from datetime import datetime
from typing import Any, Sequence

from homewatch.clock import Clock, as_utc, system_clock, today_range
from homewatch.errors import AcknowledgmentCommitFailure
from homewatch.labels import label_counts
from homewatch.logging import get_logger
from homewatch.store import DetectionStore

log = get_logger("voice")

COMMIT_SNAPSHOT = "snapshot"
COMMIT_FILTER = "filter"


def compose_summary(rows: Sequence[Any], *, verbosity_threshold: int = 10, time_format: str = "%H:%M") -> str:
    """
    Spoken sentence for an ordered slice of unacknowledged detections, e.g.
      "2 cars, 1 person, 1 new detection results. person seen at 14:05."
    Empty slice -> "".
    """
    if not rows:
        return ""

    parts = []
    if len(rows) > verbosity_threshold:
        parts.append("I have seen ")

    clauses = [f"{lc.value} {lc.label}" + ("s" if lc.value > 1 else "") for lc in label_counts(rows)]
    parts.append(", ".join(clauses) + ", ")

    results = sum(1 for r in rows if getattr(r, "detection_result", ""))
    if results > 0:
        parts.append(f"{results} new detection results. ")

    latest = rows[-1]
    seen_at = as_utc(latest.file_create_date).strftime(time_format)
    parts.append(f"{latest.label} seen at {seen_at}.")
    return "".join(parts)


class VoiceSummarizer:
    """
    Builds the "what happened today" sentence and marks the reported detections
    so the next call does not repeat them. Marking failures are logged only:
    the composed message is returned either way.
    """

    def __init__(self, store: DetectionStore, *, clock: Clock = system_clock,
                 verbosity_threshold: int = 10, time_format: str = "%H:%M",
                 commit_mode: str = COMMIT_FILTER):
        if commit_mode not in (COMMIT_SNAPSHOT, COMMIT_FILTER):
            raise ValueError(f"unknown commit_mode: {commit_mode}")
        self.store = store
        self.clock = clock
        self.verbosity_threshold = verbosity_threshold
        self.time_format = time_format
        self.commit_mode = commit_mode

    async def _commit(self, rows: Sequence[Any], start: datetime, end: datetime):
        try:
            if self.commit_mode == COMMIT_FILTER:
                n = await self.store.acknowledge_matching(start, end)
            else:
                n = await self.store.acknowledge_ids([r.id for r in rows])
            log.info(f"[voice] acknowledged {n} detections (read {len(rows)})")
        except AcknowledgmentCommitFailure as e:
            log.error(f"[voice] acknowledgment failed, summary may repeat: {e}")

    async def summarize(self) -> str:
        start, end = today_range(self.clock())
        # StoreQueryFailure from the read propagates; only the commit is isolated
        rows = await self.store.unacknowledged(start, end)
        message = compose_summary(rows, verbosity_threshold=self.verbosity_threshold,
                                  time_format=self.time_format)
        if rows:
            await self._commit(rows, start, end)
        return message
