#!/usr/bin/env python3

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from imagedrop import events


def test_log_event_disabled_by_default(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    events.configure_event_log(None)

    events.log_event("image_saved", filename="a.jpg")

    assert list(tmp_path.iterdir()) == []


def test_log_event_writes_jsonl(tmp_path):
    log_path = tmp_path / "logs" / "events.jsonl"
    events.configure_event_log(log_path)
    try:
        events.log_event("image_saved", filename="a.jpg", size=3)
        events.log_event("image_duplicate", filename="a.jpg")
    finally:
        events.configure_event_log(None)

    lines = log_path.read_text().strip().splitlines()
    assert len(lines) == 2

    payload = json.loads(lines[0])
    assert payload["event_type"] == "image_saved"
    assert payload["filename"] == "a.jpg"
    assert payload["size"] == 3
    assert "timestamp" in payload


def test_log_event_ignores_write_errors(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    events.configure_event_log(blocker / "events.jsonl")
    try:
        events.log_event("bot_started")
    finally:
        events.configure_event_log(None)
