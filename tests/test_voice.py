"""Spoken summary composition and the acknowledgment transition."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from homewatch.clock import today_range
from homewatch.errors import AcknowledgmentCommitFailure
from homewatch.voice import COMMIT_SNAPSHOT, VoiceSummarizer, compose_summary
from services.intel_dashboard.main import build_context

from conftest import NOW

START, END = today_range(NOW)


def _row(label, hour, minute=0, result=""):
    return SimpleNamespace(label=label, detection_result=result,
                           file_create_date=START + timedelta(hours=hour, minutes=minute))


def test_compose_empty_is_neutral():
    assert compose_summary([]) == ""


def test_compose_lists_labels_results_and_latest():
    rows = [_row("car", 8), _row("car", 9), _row("person", 14, 5, result="plate123")]
    msg = compose_summary(rows)
    assert msg == "2 cars, 1 person, 1 new detection results. person seen at 14:05."
    assert not msg.startswith("I have seen")


def test_compose_omits_zero_results_clause():
    msg = compose_summary([_row("dog", 7, 45)])
    assert msg == "1 dog, dog seen at 07:45."
    assert "detection results" not in msg


def test_compose_lead_in_only_above_threshold():
    ten = [_row("car", 1)] * 10
    assert not compose_summary(ten).startswith("I have seen ")
    eleven = ten + [_row("bike", 2)]
    assert compose_summary(eleven).startswith("I have seen 10 cars, 1 bike, ")
    assert compose_summary(ten, verbosity_threshold=3).startswith("I have seen ")


async def _seed(store):
    await store.add("car", "a.png", START + timedelta(hours=8))
    await store.add("car", "b.png", START + timedelta(hours=9))
    await store.add("person", "c.png", START + timedelta(hours=14, minutes=5), detection_result="plate123")


async def test_summarize_acknowledges_and_is_idempotent(store, clock):
    await _seed(store)
    voice = VoiceSummarizer(store, clock=clock)

    msg = await voice.summarize()
    assert "2 cars" in msg
    assert "1 person" in msg
    assert "1 new detection results." in msg
    assert msg.endswith("person seen at 14:05.")
    assert await store.unacknowledged(START, END) == []

    assert await voice.summarize() == ""


async def test_summarize_ignores_other_days(store, clock):
    await store.add("car", "y.png", START - timedelta(minutes=1))
    assert await VoiceSummarizer(store, clock=clock).summarize() == ""


async def test_snapshot_commit_leaves_late_rows_for_next_summary(store, clock):
    await _seed(store)
    voice = VoiceSummarizer(store, clock=clock, commit_mode=COMMIT_SNAPSHOT)
    original = store.acknowledge_ids

    async def insert_then_ack(ids):
        # a detection lands between the read and the commit
        await store.add("cat", "late.png", START + timedelta(hours=15))
        return await original(ids)

    store.acknowledge_ids = insert_then_ack
    await voice.summarize()
    store.acknowledge_ids = original

    assert await voice.summarize() == "1 cat, cat seen at 15:00."


async def test_default_commit_sweeps_late_rows(store, clock):
    await _seed(store)
    voice = build_context({}, store=store, clock=clock).voice
    original = store.acknowledge_matching

    async def insert_then_ack(start, end):
        await store.add("cat", "late.png", START + timedelta(hours=15))
        return await original(start, end)

    store.acknowledge_matching = insert_then_ack
    await voice.summarize()
    store.acknowledge_matching = original

    assert await store.unacknowledged(START, END) == []
    assert await voice.summarize() == ""


async def test_commit_failure_still_returns_message(store, clock):
    await _seed(store)

    async def failing(start, end):
        raise AcknowledgmentCommitFailure("database is locked")

    store.acknowledge_matching = failing
    voice = VoiceSummarizer(store, clock=clock)
    msg = await voice.summarize()
    assert msg.endswith("person seen at 14:05.")
    # nothing was marked, so the same summary comes back
    assert await voice.summarize() == msg


def test_unknown_commit_mode():
    with pytest.raises(ValueError):
        VoiceSummarizer(None, commit_mode="sometimes")


def test_latest_time_is_utc():
    plus2 = timezone(timedelta(hours=2))
    row = SimpleNamespace(label="car", detection_result="",
                          file_create_date=datetime(2024, 5, 10, 16, 20, tzinfo=plus2))
    assert compose_summary([row]).endswith("car seen at 14:20.")
