"""Tag and category suggestion providers."""

from .engine import (
    AnthropicSuggestionProvider,
    ClaudeCodeSuggestionProvider,
    FallbackSuggestionProvider,
    HeuristicSuggestionProvider,
    SuggestionError,
    SuggestionProvider,
    build_provider,
    rank_tags,
)
from .models import CategoryDecision, TagCandidate

__all__ = [
    "AnthropicSuggestionProvider",
    "CategoryDecision",
    "ClaudeCodeSuggestionProvider",
    "FallbackSuggestionProvider",
    "HeuristicSuggestionProvider",
    "SuggestionError",
    "SuggestionProvider",
    "TagCandidate",
    "build_provider",
    "rank_tags",
]
