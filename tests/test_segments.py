"""Tests for codexline.segments"""

import dataclasses

import pytest

from codexline import segments
from codexline.config import Config, SegmentId, StyleMode
from codexline.context import GitStatus, RateLimitSnapshot, round_half_up


def plain_config() -> Config:
    cfg = Config()
    cfg.style.mode = StyleMode.PLAIN
    for seg in cfg.segments:
        seg.enabled = True
    return cfg


def values(pieces):
    return {p.id: p.value for p in pieces}


class TestHelpers:
    @pytest.mark.parametrize("value,expected", [
        (0, "0"), (999, "999"), (1000, "1.0K"), (1200, "1.2K"),
        (999_999, "1000.0K"), (2_300_000, "2.3M"),
    ])
    def test_compact_tokens(self, value, expected):
        assert segments.compact_tokens(value) == expected

    @pytest.mark.parametrize("model,expected", [
        ("claude-sonnet-4-20250514", "Sonnet 4"),
        ("Claude-4-Sonnet", "Sonnet 4"),
        ("claude-3-7-sonnet-latest", "Sonnet 3.7"),
        ("gpt-5-codex-high", "gpt-5-codex"),
        ("GPT-5", "gpt-5"),
        ("o3-mini", "o3-mini"),
    ])
    def test_simplify_model_name(self, model, expected):
        assert segments.simplify_model_name(model) == expected

    @pytest.mark.parametrize("value,expected", [(0.5, 1), (1.5, 2), (2.5, 3), (12.4, 12), (99.5, 100)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestBuildSegments:
    def test_all_segments_plain(self, full_context):
        pieces = segments.build_segments(plain_config(), full_context)
        assert [p.id for p in pieces] == list(SegmentId)
        assert values(pieces) == {
            SegmentId.MODEL: "gpt-5-codex",
            SegmentId.CWD: "project",
            SegmentId.GIT: "main * ↑2",
            SegmentId.CONTEXT: "85% left",
            SegmentId.TOKENS: "1.2K in 340 out 1.5K total",
            SegmentId.LIMITS: "5h 13% weekly 40%",
            SegmentId.SESSION: "0199a1b2",
            SegmentId.CODEX_VERSION: "v0.42.0",
        }
        assert pieces[0].icon == "M"

    def test_empty_context_keeps_only_cwd(self, empty_context):
        pieces = segments.build_segments(plain_config(), empty_context)
        assert [p.id for p in pieces] == [SegmentId.CWD]

    def test_disabled_git_never_produced(self, full_context):
        cfg = plain_config()
        cfg.segment(SegmentId.GIT).enabled = False
        pieces = segments.build_segments(cfg, full_context)
        assert SegmentId.GIT not in [p.id for p in pieces]

    def test_configured_order(self, full_context):
        cfg = plain_config()
        cfg.segments.reverse()
        pieces = segments.build_segments(cfg, full_context)
        assert [p.id for p in pieces] == list(reversed(list(SegmentId)))

    def test_colors_and_bold_carried(self, full_context):
        cfg = plain_config()
        model = cfg.segment(SegmentId.MODEL)
        model.bold = True
        piece = segments.build_segments(cfg, full_context)[0]
        assert piece.bold is True
        assert piece.icon_color == model.colors.icon
        assert piece.text_color == model.colors.text

    def test_nerd_font_icons(self, full_context):
        cfg = plain_config()
        cfg.style.mode = StyleMode.NERD_FONT
        cfg.segment(SegmentId.CWD).icon.nerd_font = ""
        pieces = {p.id: p for p in segments.build_segments(cfg, full_context)}
        assert pieces[SegmentId.MODEL].icon == cfg.segment(SegmentId.MODEL).icon.nerd_font
        # empty nerd glyph falls back to the plain icon
        assert pieces[SegmentId.CWD].icon == "DIR"


class TestSegmentValues:
    def test_cwd_full_path(self, full_context):
        cfg = plain_config()
        cfg.segment(SegmentId.CWD).options["basename"] = False
        assert values(segments.build_segments(cfg, full_context))[SegmentId.CWD] == str(full_context.cwd)

    def test_git_clean_glyphs(self, full_context):
        clean = dataclasses.replace(full_context, git=GitStatus(branch="main"))
        seg = Config().segment(SegmentId.GIT)
        assert segments.segment_value(StyleMode.PLAIN, seg, clean) == "main ok"
        assert segments.segment_value(StyleMode.NERD_FONT, seg, clean) == "main ✓"

    def test_git_conflict_wins(self, full_context):
        ctx = dataclasses.replace(full_context, git=GitStatus(branch="main", unstaged=1, conflicted=1))
        seg = Config().segment(SegmentId.GIT)
        assert segments.segment_value(StyleMode.PLAIN, seg, ctx) == "main !"

    def test_git_detailed(self, full_context):
        git = GitStatus(branch="dev", staged=1, unstaged=2, untracked=3, behind=4)
        ctx = dataclasses.replace(full_context, git=git)
        seg = Config().segment(SegmentId.GIT)
        seg.options["detailed"] = True
        assert segments.segment_value(StyleMode.POWERLINE, seg, ctx) == "dev ● ↓4 S1 U2 N3"

    def test_context_used_mode(self, full_context):
        seg = Config().segment(SegmentId.CONTEXT)
        seg.options["mode"] = "used"
        assert segments.segment_value(StyleMode.PLAIN, seg, full_context) == "15% used"

    def test_tokens_hidden_when_zero(self, full_context):
        usage = dataclasses.replace(full_context.usage, total_tokens=0)
        ctx = dataclasses.replace(full_context, usage=usage)
        seg = Config().segment(SegmentId.TOKENS)
        assert segments.segment_value(StyleMode.PLAIN, seg, ctx) is None

    def test_limits_partial(self, full_context):
        ctx = dataclasses.replace(full_context, limits=RateLimitSnapshot(secondary_used_percent=70.5))
        seg = Config().segment(SegmentId.LIMITS)
        assert segments.segment_value(StyleMode.PLAIN, seg, ctx) == "weekly 71%"

    def test_limits_empty_snapshot(self, full_context):
        ctx = dataclasses.replace(full_context, limits=RateLimitSnapshot())
        seg = Config().segment(SegmentId.LIMITS)
        assert segments.segment_value(StyleMode.PLAIN, seg, ctx) is None
