"""Tests for tag and category suggestion providers."""

import subprocess
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any

import pytest

from polish.config import ConfigError
from polish.config.models import ApiSettings, TaggingSettings
from polish.suggestion import (
    AnthropicSuggestionProvider,
    ClaudeCodeSuggestionProvider,
    FallbackSuggestionProvider,
    HeuristicSuggestionProvider,
    SuggestionError,
    TagCandidate,
    build_provider,
    rank_tags,
)

MARCH_2024 = datetime(2024, 3, 14, 12, 0, tzinfo=timezone.utc)


def test_heuristic_tags_for_meeting_notes(make_file) -> None:
    info = make_file("project-meeting-notes.txt", "agenda", modified=MARCH_2024)

    tags = [candidate.tag for candidate in HeuristicSuggestionProvider().suggest_tags(info)]

    assert tags == [
        "type/document",
        "format/txt",
        "date/2024/03",
        "topic/project",
        "topic/meeting",
        "topic/notes",
    ]


def test_heuristic_drops_short_tokens_and_keeps_duplicates(make_file) -> None:
    info = make_file("a_big.data-data.csv", "x", modified=MARCH_2024)

    topics = [
        candidate.tag
        for candidate in HeuristicSuggestionProvider().suggest_tags(info)
        if candidate.source == "filename"
    ]

    assert topics == ["topic/data", "topic/data"]


def test_heuristic_confidences_and_sources(make_file) -> None:
    info = make_file("quarterly.csv", "x", modified=MARCH_2024)

    candidates = {c.tag: c for c in HeuristicSuggestionProvider().suggest_tags(info)}

    assert candidates["type/data"].confidence == 1.0
    assert candidates["type/data"].source == "type"
    assert candidates["date/2024/03"].source == "context"
    assert candidates["topic/quarterly"].confidence == pytest.approx(0.7)


def test_heuristic_honors_toggles_and_custom_patterns(make_file) -> None:
    info = make_file("invoice-2024.pdf", b"%PDF", modified=MARCH_2024)
    tagging = TaggingSettings(
        auto_type_tags=False,
        auto_date_tags=False,
        custom_patterns={r"^invoice": "finance/invoice"},
    )

    candidates = HeuristicSuggestionProvider(tagging).suggest_tags(info)

    assert [(c.tag, c.confidence) for c in candidates] == [
        ("topic/invoice", 0.7),
        ("topic/2024", 0.7),
        ("finance/invoice", 0.9),
    ]


def test_invalid_custom_pattern_raises_config_error() -> None:
    with pytest.raises(ConfigError):
        HeuristicSuggestionProvider(TaggingSettings(custom_patterns={"(": "broken"}))


def test_category_defaults_to_type_label(make_file) -> None:
    info = make_file("summary.txt")

    decision = HeuristicSuggestionProvider().suggest_category(info, [])

    assert decision.category == "Document"
    assert decision.confidence == pytest.approx(0.8)
    assert decision.reasoning


def test_category_prefers_first_matching_folder(make_file) -> None:
    info = make_file("Quarterly-Reports-Projects.txt")

    decision = HeuristicSuggestionProvider().suggest_category(
        info, ["Archive", "Projects", "Reports"]
    )

    assert decision.category == "Projects"


def _candidate(tag: str, confidence: float) -> TagCandidate:
    return TagCandidate(tag=tag, confidence=confidence, source="filename")


def test_rank_tags_keeps_highest_with_stable_ties() -> None:
    candidates = [
        _candidate("a", 0.7),
        _candidate("b", 1.0),
        _candidate("c", 0.7),
        _candidate("d", 1.0),
        _candidate("e", 0.5),
        _candidate("f", 0.7),
        _candidate("g", 0.9),
    ]

    ranked = rank_tags(candidates, 5)

    assert [c.tag for c in ranked] == ["b", "d", "g", "a", "c"]


def test_rank_tags_deduplicates_with_max_confidence() -> None:
    ranked = rank_tags(
        [_candidate("x", 0.7), _candidate("y", 0.8), _candidate("x", 0.9), _candidate("y", 0.1)],
        10,
    )

    assert [(c.tag, c.confidence) for c in ranked] == [("x", 0.9), ("y", 0.8)]


class _FakeMessages:
    def __init__(self, text: str | None = None, error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self.text)])


def _client(messages: _FakeMessages) -> Any:
    return SimpleNamespace(messages=messages)


def test_anthropic_provider_parses_tags_and_category(make_file) -> None:
    info = make_file("roadmap.md", "# Plans")
    messages = _FakeMessages(
        '```json\n{"tags": [{"tag": "Topic/Planning", "confidence": 0.95}, "project/alpha"]}\n```'
    )
    provider = AnthropicSuggestionProvider(ApiSettings(mode="api"), client=_client(messages))

    tags = provider.suggest_tags(info, "# Plans")

    assert [(c.tag, c.confidence, c.source) for c in tags] == [
        ("topic/planning", 0.95, "content"),
        ("project/alpha", 0.7, "content"),
    ]
    assert messages.calls[0]["model"] == ApiSettings().model

    messages.text = '{"category": "Projects", "confidence": 2, "reasoning": "Roadmap"}'
    decision = provider.suggest_category(info, ["Projects"])
    assert (decision.category, decision.confidence) == ("Projects", 1.0)


def test_anthropic_provider_rejects_malformed_response(make_file) -> None:
    info = make_file("roadmap.md")
    provider = AnthropicSuggestionProvider(
        ApiSettings(mode="api"), client=_client(_FakeMessages("no json here"))
    )

    with pytest.raises(SuggestionError):
        provider.suggest_tags(info)


def test_anthropic_provider_requires_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    with pytest.raises(ConfigError):
        AnthropicSuggestionProvider(ApiSettings(mode="api"))


def test_claude_code_provider_runs_cli(make_file, monkeypatch: pytest.MonkeyPatch) -> None:
    info = make_file("roadmap.md")
    seen: list[list[str]] = []

    def _run(args: list[str], **_: Any) -> subprocess.CompletedProcess[str]:
        seen.append(args)
        return subprocess.CompletedProcess(args, 0, stdout='{"category": "Plans"}', stderr="")

    monkeypatch.setattr("polish.suggestion.engine.subprocess.run", _run)

    decision = ClaudeCodeSuggestionProvider(ApiSettings(mode="claude-code")).suggest_category(
        info, []
    )

    assert decision.category == "Plans"
    assert seen[0][:2] == ["claude", "--print"]


def test_claude_code_provider_missing_cli(make_file) -> None:
    info = make_file("roadmap.md")
    provider = ClaudeCodeSuggestionProvider(
        ApiSettings(mode="claude-code"), executable="definitely-not-installed-polish"
    )

    with pytest.raises(SuggestionError):
        provider.suggest_tags(info)


class _Broken(HeuristicSuggestionProvider):
    name = "broken"

    def suggest_tags(self, file, content=None):  # type: ignore[no-untyped-def]
        raise SuggestionError("boom")

    def suggest_category(self, file, existing_folders):  # type: ignore[no-untyped-def]
        raise SuggestionError("boom")


def test_fallback_provider_uses_heuristics_on_failure(make_file, caplog) -> None:
    info = make_file("project-notes.txt", modified=MARCH_2024)
    provider = FallbackSuggestionProvider(_Broken(), HeuristicSuggestionProvider())

    with caplog.at_level("WARNING", logger="polish"):
        tags = provider.suggest_tags(info)
        decision = provider.suggest_category(info, [])

    assert "topic/project" in [c.tag for c in tags]
    assert decision.category == "Document"
    assert "using fallback" in caplog.text


def test_build_provider_selects_by_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    tagging = TaggingSettings()

    assert isinstance(build_provider(ApiSettings(mode="local"), tagging), HeuristicSuggestionProvider)
    assert isinstance(
        build_provider(ApiSettings(mode="claude-code"), tagging), FallbackSuggestionProvider
    )
    # Hybrid without credentials degrades to the heuristics.
    assert isinstance(build_provider(ApiSettings(mode="hybrid"), tagging), HeuristicSuggestionProvider)
    with pytest.raises(ConfigError):
        build_provider(ApiSettings(mode="api"), tagging)

    hybrid = build_provider(ApiSettings(mode="hybrid", api_key="sk-test"), tagging)
    assert isinstance(hybrid, FallbackSuggestionProvider)
    assert isinstance(hybrid.primary, AnthropicSuggestionProvider)
