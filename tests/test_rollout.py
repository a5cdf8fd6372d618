"""Tests for codexline.rollout"""

import json

import pytest

from codexline import rollout
from codexline.collect import collect
from codexline.config import Config
from codexline.render import render
from codexline.segments import build_segments


def session_meta(thread_id="thread-1", cli_version="0.42.0", provider="openai"):
    return {
        "type": "session_meta",
        "payload": {"id": thread_id, "cli_version": cli_version, "model_provider": provider},
    }


def turn_context(model="gpt-5-codex"):
    return {"type": "turn_context", "payload": {"model": model}}


class TestParseRolloutFile:
    def test_token_count_percentages(self, write_rollout, token_count):
        path = write_rollout("a.jsonl", [token_count(200, 10, 550, 1000)])
        info = rollout.parse_rollout_file(path)
        assert info.usage.input_tokens == 200
        assert info.usage.output_tokens == 10
        assert info.usage.total_tokens == 550
        assert info.usage.used_percent == 55
        assert info.usage.remaining_percent == 45

    def test_used_percent_clamped(self, write_rollout, token_count):
        path = write_rollout("a.jsonl", [token_count(total_tokens=5000, window=1000)])
        usage = rollout.parse_rollout_file(path).usage
        assert usage.used_percent == 100
        assert usage.remaining_percent == 0

    def test_missing_window_leaves_percent_unset(self, write_rollout, token_count):
        path = write_rollout("a.jsonl", [token_count(window=None)])
        usage = rollout.parse_rollout_file(path).usage
        assert usage.used_percent is None
        assert usage.remaining_percent is None

    def test_last_token_count_wins(self, write_rollout, token_count):
        path = write_rollout("a.jsonl", [
            token_count(total_tokens=100, window=1000),
            token_count(total_tokens=300, window=1000),
        ])
        assert rollout.parse_rollout_file(path).usage.used_percent == 30

    def test_top_level_token_count(self, write_rollout):
        record = {
            "type": "token_count",
            "payload": {
                "total_token_usage": {"input_tokens": 1, "output_tokens": 2, "total_tokens": 3},
                "model_context_window": 100,
            },
        }
        path = write_rollout("a.jsonl", [record])
        usage = rollout.parse_rollout_file(path).usage
        assert usage.total_tokens == 3
        assert usage.used_percent == 3

    def test_limits_only_when_present(self, write_rollout, token_count):
        path = write_rollout("a.jsonl", [token_count(primary=12.5), token_count()])
        info = rollout.parse_rollout_file(path)
        assert info.limits.primary_used_percent == 12.5
        assert info.limits.secondary_used_percent is None

    def test_session_meta_and_model(self, write_rollout):
        path = write_rollout("a.jsonl", [session_meta(), turn_context("gpt-5")])
        info = rollout.parse_rollout_file(path)
        assert info.session.thread_id == "thread-1"
        assert info.session.cli_version == "0.42.0"
        # provider seeds the model before any turn_context arrives
        assert info.model == "openai"

    def test_turn_context_model(self, write_rollout):
        path = write_rollout("a.jsonl", [turn_context("gpt-5-codex")])
        assert rollout.parse_rollout_file(path).model == "gpt-5-codex"

    def test_malformed_lines_are_skipped(self, write_rollout, token_count):
        path = write_rollout(
            "a.jsonl",
            [token_count(total_tokens=100, window=1000)],
            raw_lines=["{not json", "[1, 2, 3]", json.dumps({"type": "unknown", "payload": 5}), ""],
        )
        info = rollout.parse_rollout_file(path)
        assert info.usage.used_percent == 10

    @pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_constants_are_skipped(self, write_rollout, token_count, constant):
        odd = (
            '{"type": "event_msg", "payload": {"type": "token_count", "info": null, '
            '"rate_limits": {"primary": {"used_percent": ' + constant + '}}}}'
        )
        path = write_rollout("a.jsonl", [token_count(primary=20.0)], raw_lines=[odd])
        info = rollout.parse_rollout_file(path)
        assert info.limits.primary_used_percent == 20.0
        assert info.usage.total_tokens == 550

    def test_non_finite_numbers_are_ignored(self):
        assert rollout._as_float(float("nan")) is None
        assert rollout._as_float(float("inf")) is None
        assert rollout._as_int(float("-inf")) is None
        assert rollout._as_float(42) == 42.0

    def test_deeply_nested_line_is_skipped(self, write_rollout, token_count):
        path = write_rollout("a.jsonl", [token_count(total_tokens=300, window=1000)],
                             raw_lines=["[" * 200000])
        assert rollout.parse_rollout_file(path).usage.used_percent == 30

    def test_unreadable_file_is_empty(self, tmp_path):
        assert rollout.parse_rollout_file(tmp_path / "missing.jsonl").empty


class TestScan:
    def test_newest_file_with_data_wins(self, sessions_dir, write_rollout, token_count, now):
        write_rollout("2026/02/28/old.jsonl", [session_meta("old"), token_count(total_tokens=900)],
                      age_minutes=60)
        newest = write_rollout("2026/03/01/new.jsonl", [token_count(total_tokens=100)],
                               age_minutes=1)
        info = rollout.scan(sessions_dir, 14, 200, now=now)
        assert info.path == newest
        assert info.usage.total_tokens == 100
        # no cross-file merge
        assert info.session is None

    def test_empty_newest_file_is_skipped(self, sessions_dir, write_rollout, token_count, now):
        older = write_rollout("older.jsonl", [token_count(total_tokens=100)], age_minutes=10)
        write_rollout("newer.jsonl", [{"type": "response_item", "payload": {}}], age_minutes=1)
        assert rollout.scan(sessions_dir, 14, 200, now=now).path == older

    def test_age_window(self, sessions_dir, write_rollout, token_count, now):
        write_rollout("stale.jsonl", [token_count()], age_minutes=60 * 24 * 20)
        assert rollout.scan(sessions_dir, 14, 200, now=now).empty
        assert not rollout.scan(sessions_dir, 30, 200, now=now).empty

    def test_max_files(self, sessions_dir, write_rollout, token_count, now):
        write_rollout("with-data.jsonl", [token_count()], age_minutes=10)
        write_rollout("no-data.jsonl", [], age_minutes=1)
        assert rollout.scan(sessions_dir, 14, 1, now=now).empty
        assert not rollout.scan(sessions_dir, 14, 2, now=now).empty

    def test_extension_match_is_case_insensitive(self, sessions_dir, write_rollout, token_count, now):
        path = write_rollout("UPPER.JSONL", [token_count()], age_minutes=1)
        write_rollout("notes.txt", [token_count()], age_minutes=0)
        assert rollout.scan(sessions_dir, 14, 200, now=now).path == path

    def test_missing_root(self, tmp_path, now):
        assert rollout.scan(tmp_path / "nope", 14, 200, now=now).empty

    def test_inaccessible_root(self, tmp_path, now, monkeypatch):
        def denied(self):
            raise PermissionError(13, "Permission denied", str(self))

        monkeypatch.setattr(rollout.Path, "is_dir", denied)
        assert rollout.scan(tmp_path / "locked" / "sessions", 14, 200, now=now).empty


class TestOddRecordsRender:
    def test_nan_limit_line_still_renders(self, codex_home, no_git, write_rollout, token_count,
                                          tmp_path, now):
        write_rollout("r.jsonl", [token_count(primary=40.0)], age_minutes=1, raw_lines=[
            '{"type": "event_msg", "payload": {"type": "token_count", '
            '"rate_limits": {"primary": {"used_percent": NaN}}}}',
        ])
        cfg = Config()
        ctx = collect(cfg, cwd=tmp_path, now=now).context
        line = render(cfg, build_segments(cfg, ctx), plain=True)
        assert "40%" in line
