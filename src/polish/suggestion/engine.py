"""Tag and category suggestion providers.

The heuristic provider is the default, offline implementation. Remote providers ask an
LLM (through the Anthropic SDK or the Claude Code CLI) and can be wrapped in
:class:`FallbackSuggestionProvider` so any failure degrades to the heuristics without the
organization engine noticing.
"""

from __future__ import annotations

import json
import logging
import os
import re
import subprocess
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional, Sequence

import anthropic

from polish.config.exceptions import ConfigError
from polish.config.models import ApiSettings, TaggingSettings
from polish.ingestion.models import FileInfo

from .models import CategoryDecision, TagCandidate

LOGGER = logging.getLogger(__name__)

_TOKEN_SEPARATORS = re.compile(r"[._-]")
_PROMPT_CONTENT_CHARS = 4000


class SuggestionError(Exception):
    """Raised when a provider cannot produce a suggestion."""


class SuggestionProvider(ABC):
    """Capability producing tag and category suggestions for a file."""

    name = "provider"

    @abstractmethod
    def suggest_tags(self, file: FileInfo, content: Optional[str] = None) -> list[TagCandidate]:
        """Return tag candidates in the order they were produced."""

    @abstractmethod
    def suggest_category(self, file: FileInfo, existing_folders: Sequence[str]) -> CategoryDecision:
        """Return the category chosen for the file."""


class HeuristicSuggestionProvider(SuggestionProvider):
    """Deterministic suggestions derived from type, extension, dates, and filename tokens."""

    name = "heuristic"

    def __init__(self, tagging: TaggingSettings | None = None) -> None:
        self.tagging = tagging or TaggingSettings()
        self._patterns: list[tuple[re.Pattern[str], str]] = []
        for pattern, tag in self.tagging.custom_patterns.items():
            try:
                self._patterns.append((re.compile(pattern, re.IGNORECASE), tag))
            except re.error as exc:
                raise ConfigError(f"Invalid custom tag pattern {pattern!r}: {exc}") from exc

    def suggest_tags(self, file: FileInfo, content: Optional[str] = None) -> list[TagCandidate]:
        """Return heuristic tags; ``content`` is accepted for interface parity only."""
        tags: list[TagCandidate] = []

        if self.tagging.auto_type_tags:
            tags.append(TagCandidate(tag=f"type/{file.type.value}", confidence=1.0, source="type"))
            tags.append(TagCandidate(tag=f"format/{file.extension}", confidence=1.0, source="type"))

        if self.tagging.auto_date_tags:
            modified = file.modified_at
            tags.append(
                TagCandidate(
                    tag=f"date/{modified.year:04d}/{modified.month:02d}",
                    confidence=1.0,
                    source="context",
                )
            )

        for word in filename_tokens(file.stem):
            tags.append(TagCandidate(tag=f"topic/{word}", confidence=0.7, source="filename"))

        for pattern, tag in self._patterns:
            if pattern.search(file.name):
                tags.append(TagCandidate(tag=tag, confidence=0.9, source="filename"))

        return tags

    def suggest_category(self, file: FileInfo, existing_folders: Sequence[str]) -> CategoryDecision:
        """Match existing folder names against the filename, defaulting to the type label."""
        category = file.type.label
        lowered = file.name.lower()
        for folder in existing_folders:
            if folder and folder.lower() in lowered:
                category = folder
                break

        return CategoryDecision(
            category=category,
            confidence=0.8,
            reasoning="Based on file type and name analysis",
        )


class _PromptedProvider(SuggestionProvider):
    """Shared prompt construction and response parsing for LLM-backed providers."""

    def suggest_tags(self, file: FileInfo, content: Optional[str] = None) -> list[TagCandidate]:
        prompt = (
            "Suggest up to 10 tags for organizing this file in a markdown knowledge base. "
            "Use lowercase namespaced tags such as topic/<word>, project/<name>, or "
            "person/<name>.\n\n"
            f"{_describe(file, content)}\n\n"
            'Respond with ONLY JSON: {"tags": [{"tag": "topic/example", "confidence": 0.8}]}'
        )
        payload = _parse_json(self._complete(prompt))
        entries = payload.get("tags")
        if not isinstance(entries, list):
            raise SuggestionError("Response did not contain a tag list.")

        source = "content" if content else "filename"
        tags: list[TagCandidate] = []
        for entry in entries:
            if isinstance(entry, str):
                tag, confidence = entry, 0.7
            elif isinstance(entry, dict) and isinstance(entry.get("tag"), str):
                tag, confidence = entry["tag"], _clamp(entry.get("confidence", 0.7))
            else:
                continue
            tag = tag.strip().lower()
            if tag:
                tags.append(TagCandidate(tag=tag, confidence=confidence, source=source))
        return tags

    def suggest_category(self, file: FileInfo, existing_folders: Sequence[str]) -> CategoryDecision:
        folders = ", ".join(existing_folders) if existing_folders else "(none yet)"
        prompt = (
            "Choose one category folder for this file. Prefer an existing folder when one "
            f"fits; existing folders: {folders}.\n\n"
            f"{_describe(file, None)}\n\n"
            'Respond with ONLY JSON: {"category": "Name", "confidence": 0.8, '
            '"reasoning": "one sentence"}'
        )
        payload = _parse_json(self._complete(prompt))
        category = payload.get("category")
        if not isinstance(category, str) or not category.strip():
            raise SuggestionError("Response did not contain a category.")
        reasoning = payload.get("reasoning")
        return CategoryDecision(
            category=category.strip(),
            confidence=_clamp(payload.get("confidence", 0.8)),
            reasoning=reasoning.strip() if isinstance(reasoning, str) else "",
        )

    @abstractmethod
    def _complete(self, prompt: str) -> str:
        """Return the raw model response for a prompt."""


class AnthropicSuggestionProvider(_PromptedProvider):
    """Suggestions from the Anthropic Messages API."""

    name = "api"

    def __init__(self, api: ApiSettings, *, client: Any | None = None) -> None:
        self.api = api
        if client is None:
            api_key = api.api_key or os.environ.get("ANTHROPIC_API_KEY")
            if not api_key:
                raise ConfigError(
                    "API mode requires an Anthropic API key. Set `api.api_key` or "
                    "ANTHROPIC_API_KEY, or switch to `local` mode."
                )
            client = anthropic.Anthropic(api_key=api_key, timeout=api.timeout_seconds)
        self._client = client

    def _complete(self, prompt: str) -> str:
        try:
            response = self._client.messages.create(
                model=self.api.model,
                max_tokens=self.api.max_tokens,
                temperature=self.api.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as exc:
            raise SuggestionError(f"Anthropic request failed: {exc}") from exc

        text = "".join(
            getattr(block, "text", "")
            for block in response.content
            if getattr(block, "type", "text") == "text"
        )
        if not text.strip():
            raise SuggestionError("Anthropic response was empty.")
        return text


class ClaudeCodeSuggestionProvider(_PromptedProvider):
    """Suggestions from the locally installed Claude Code CLI (``claude --print``)."""

    name = "claude-code"

    def __init__(self, api: ApiSettings, *, executable: str = "claude") -> None:
        self.api = api
        self.executable = executable

    def _complete(self, prompt: str) -> str:
        try:
            result = subprocess.run(
                [self.executable, "--print", prompt],
                capture_output=True,
                text=True,
                timeout=self.api.timeout_seconds,
                check=False,
            )
        except FileNotFoundError as exc:
            raise SuggestionError(f"Claude Code CLI not found: {self.executable}") from exc
        except subprocess.TimeoutExpired as exc:
            raise SuggestionError("Claude Code CLI timed out.") from exc

        if result.returncode != 0:
            raise SuggestionError(f"Claude Code CLI failed: {result.stderr.strip()}")
        return result.stdout


class FallbackSuggestionProvider(SuggestionProvider):
    """Use a primary provider and fall back to another whenever it fails."""

    def __init__(self, primary: SuggestionProvider, fallback: SuggestionProvider) -> None:
        self.primary = primary
        self.fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"

    def suggest_tags(self, file: FileInfo, content: Optional[str] = None) -> list[TagCandidate]:
        try:
            return self.primary.suggest_tags(file, content)
        except SuggestionError as exc:
            LOGGER.warning("Tag suggestion failed for %s (%s); using fallback.", file.name, exc)
            return self.fallback.suggest_tags(file, content)

    def suggest_category(self, file: FileInfo, existing_folders: Sequence[str]) -> CategoryDecision:
        try:
            return self.primary.suggest_category(file, existing_folders)
        except SuggestionError as exc:
            LOGGER.warning(
                "Category suggestion failed for %s (%s); using fallback.", file.name, exc
            )
            return self.fallback.suggest_category(file, existing_folders)


def build_provider(api: ApiSettings, tagging: TaggingSettings) -> SuggestionProvider:
    """Return the provider selected by ``api.mode``.

    Raises:
        ConfigError: If the selected mode is missing required credentials.
    """
    heuristic = HeuristicSuggestionProvider(tagging)
    if api.mode == "local":
        return heuristic
    if api.mode == "api":
        return AnthropicSuggestionProvider(api)
    if api.mode == "hybrid":
        try:
            remote = AnthropicSuggestionProvider(api)
        except ConfigError as exc:
            LOGGER.warning("%s Falling back to local heuristics.", exc)
            return heuristic
        return FallbackSuggestionProvider(remote, heuristic)
    return FallbackSuggestionProvider(ClaudeCodeSuggestionProvider(api), heuristic)


def filename_tokens(stem: str) -> list[str]:
    """Split a filename stem on ``.``, ``_``, ``-`` and whitespace, keeping words over 3 chars."""
    words = _TOKEN_SEPARATORS.sub(" ", stem.lower()).split()
    return [word for word in words if len(word) > 3]


def rank_tags(candidates: Iterable[TagCandidate], max_tags: int) -> list[TagCandidate]:
    """Deduplicate, stable-sort by descending confidence, and keep the first ``max_tags``.

    A repeated tag keeps the position of its first occurrence and the highest confidence
    seen for it.
    """
    unique: dict[str, TagCandidate] = {}
    for candidate in candidates:
        existing = unique.get(candidate.tag)
        if existing is None:
            unique[candidate.tag] = candidate
        elif candidate.confidence > existing.confidence:
            unique[candidate.tag] = existing.model_copy(
                update={"confidence": candidate.confidence}
            )
    ranked = sorted(unique.values(), key=lambda candidate: -candidate.confidence)
    return ranked[: max(max_tags, 0)]


def _describe(file: FileInfo, content: Optional[str]) -> str:
    lines = [
        f"Filename: {file.name}",
        f"Type: {file.type.value}",
        f"Extension: {file.extension}",
        f"Modified: {file.modified_at.date().isoformat()}",
    ]
    if content:
        lines.append("Content excerpt:")
        lines.append("---")
        lines.append(content[:_PROMPT_CONTENT_CHARS])
        lines.append("---")
    return "\n".join(lines)


def _parse_json(text: str) -> dict[str, Any]:
    cleaned = text.strip()
    if "```" in cleaned:
        fenced = re.search(r"```(?:json)?\s*(.*?)```", cleaned, re.DOTALL)
        if fenced:
            cleaned = fenced.group(1)
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end <= start:
        raise SuggestionError("Response did not contain a JSON object.")
    try:
        payload = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as exc:
        raise SuggestionError(f"Response was not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise SuggestionError("Response JSON must be an object.")
    return payload


def _clamp(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.5
    return min(max(number, 0.0), 1.0)


__all__ = [
    "SuggestionError",
    "SuggestionProvider",
    "HeuristicSuggestionProvider",
    "AnthropicSuggestionProvider",
    "ClaudeCodeSuggestionProvider",
    "FallbackSuggestionProvider",
    "build_provider",
    "filename_tokens",
    "rank_tags",
]
