# homewatch/labels.py
from __future__ import annotations
from typing import Any, Dict, Iterable, List

from homewatch.schemas import LabelCount


def _label_of(record: Any) -> str:
    if isinstance(record, dict):
        return str(record.get("label", ""))
    if isinstance(record, str):
        return record
    return str(getattr(record, "label", ""))


def label_counts(records: Iterable[Any]) -> List[LabelCount]:
    """
    Occurrences per label, most frequent first.
    Accepts ORM rows, dicts or bare label strings. Equal counts keep the order
    in which the labels first appeared (dicts keep insertion order, sorted() is stable).
    """
    counts: Dict[str, int] = {}
    for rec in records:
        lbl = _label_of(rec)
        counts[lbl] = counts.get(lbl, 0) + 1
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return [LabelCount(label=k, value=v) for k, v in ranked]
