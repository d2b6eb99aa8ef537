"""Configuration models describing Polish settings."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from polish.ingestion.classifier import default_supported_formats


class PolishBaseModel(BaseModel):
    """Shared configuration for Polish Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class VaultStructure(PolishBaseModel):
    """Folder names used inside the vault for each coarse category.

    Attributes:
        documents: Folder receiving notes for documents.
        media: Folder receiving notes for images and audio/video files.
        code: Folder receiving notes for source code.
        references: Folder receiving notes for everything else.
    """

    documents: str = "Documents"
    media: str = "Media"
    code: str = "Code"
    references: str = "References"


class VaultSettings(PolishBaseModel):
    """Location and layout of the markdown vault.

    Attributes:
        path: Root directory of the Obsidian vault.
        structure: Category folder names within the vault.
    """

    path: str = "~/ObsidianVault"
    structure: VaultStructure = Field(default_factory=VaultStructure)


class OriginalsSettings(PolishBaseModel):
    """Placement rules for relocated original files.

    Attributes:
        path: Root directory of the organized originals tree.
        organization_style: Layout applied beneath the root.
        create_year_folders: Whether to insert the modification year as a folder.
        conflict_resolution: Strategy applied when a destination already exists.
    """

    path: str = "~/OrganizedFiles"
    organization_style: Literal["type-based", "date-based", "project-based"] = "type-based"
    create_year_folders: bool = True
    conflict_resolution: Literal["append_number", "overwrite", "fail"] = "append_number"


class SourceSettings(PolishBaseModel):
    """A directory scanned for files to organize.

    Attributes:
        path: Directory to scan.
        include_subfolders: Whether to descend into subdirectories.
    """

    path: str
    include_subfolders: bool = True


class ProcessingOptions(PolishBaseModel):
    """Processing limits governing scanning, extraction, and archive expansion.

    Attributes:
        extract_text: Whether to extract textual content at all.
        max_file_size_mb: Files larger than this are skipped by the scanner.
        max_text_size_mb: Ceiling for reading documents, code, and data as text.
        max_media_size_mb: Ceiling for probing image and media metadata.
        supported_formats: Allow-list of lowercase extensions without the dot.
        max_archive_depth: How many archive layers are expanded.
        max_archive_members: Maximum number of entries extracted from one archive.
        max_archive_size_mb: Maximum total uncompressed bytes extracted from one archive.
    """

    extract_text: bool = True
    max_file_size_mb: int = 50
    max_text_size_mb: int = 10
    max_media_size_mb: int = 50
    supported_formats: List[str] = Field(default_factory=default_supported_formats)
    max_archive_depth: int = 1
    max_archive_members: int = 500
    max_archive_size_mb: int = 200

    @field_validator("supported_formats")
    @classmethod
    def _normalize_formats(cls, value: List[str]) -> List[str]:
        return [item.lower().lstrip(".") for item in value if item]


class TaggingSettings(PolishBaseModel):
    """Limits and toggles for tag generation.

    Attributes:
        max_tags: Number of tags kept per file after ranking.
        auto_type_tags: Whether to emit `type/` and `format/` tags.
        auto_date_tags: Whether to emit `date/YYYY/MM` tags.
        custom_patterns: Regular expressions matched against the filename, mapped to tags.
    """

    max_tags: int = Field(default=10, ge=1)
    auto_type_tags: bool = True
    auto_date_tags: bool = True
    custom_patterns: Dict[str, str] = Field(default_factory=dict)


class ApiSettings(PolishBaseModel):
    """Suggestion backend selection and credentials.

    Attributes:
        mode: Which suggestion provider to use.
        api_key: Anthropic API key; `ANTHROPIC_API_KEY` is used when unset.
        model: Model name for remote requests.
        max_tokens: Maximum number of tokens in responses.
        temperature: Sampling temperature for remote requests.
        timeout_seconds: Timeout applied to remote or subprocess calls.
    """

    mode: Literal["claude-code", "api", "hybrid", "local"] = "local"
    api_key: Optional[str] = None
    model: str = "claude-3-5-haiku-latest"
    max_tokens: int = 1_000
    temperature: float = 0.2
    timeout_seconds: float = 60.0


class LoggingSettings(PolishBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
    """

    level: str = "WARNING"


class CLIOptions(PolishBaseModel):
    """CLI behavior defaults.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        progress_default: Whether `organize` prints a line per processed file.
    """

    quiet_default: bool = False
    progress_default: bool = True


class PolishConfig(PolishBaseModel):
    """Top-level configuration struct held by every profile."""

    vault: VaultSettings = Field(default_factory=VaultSettings)
    originals: OriginalsSettings = Field(default_factory=OriginalsSettings)
    sources: List[SourceSettings] = Field(default_factory=list)
    processing: ProcessingOptions = Field(default_factory=ProcessingOptions)
    tagging: TaggingSettings = Field(default_factory=TaggingSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "PolishBaseModel",
    "VaultStructure",
    "VaultSettings",
    "OriginalsSettings",
    "SourceSettings",
    "ProcessingOptions",
    "TaggingSettings",
    "ApiSettings",
    "LoggingSettings",
    "CLIOptions",
    "PolishConfig",
]
