"""Suggestion data models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class TagCandidate(BaseModel):
    """A namespaced tag (``namespace/value``) proposed for a file.

    Attributes:
        tag: Tag text, e.g. ``type/document`` or ``date/2024/03``.
        confidence: Confidence in the range [0, 1].
        source: What produced the tag.
    """

    tag: str
    confidence: float = Field(ge=0.0, le=1.0)
    source: Literal["type", "context", "filename", "content"]


class CategoryDecision(BaseModel):
    """The single organizational category chosen for a file.

    Attributes:
        category: Category label, e.g. ``Document`` or an existing vault folder name.
        confidence: Confidence in the range [0, 1].
        reasoning: Human-readable rationale.
    """

    category: str
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""


__all__ = ["TagCandidate", "CategoryDecision"]
