"""
Extraction Profile Configuration.

Loads and validates the selectors used to scan SearXNG result pages from
config/extractor.yaml, falling back to built-in defaults.

Design:
- Selectors are externalized so a markup change upstream can be fixed
  without code changes
- One profile per result category; a category without a profile is rejected
- Each field declares how its value is read: element text, an attribute,
  or a colon-delimited "Label: value" text node
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import soupsieve
import yaml
from bs4 import Tag
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from searx_edge.utils.config import deep_merge, get_config_dir, load_yaml_with_local_override
from searx_edge.utils.errors import UnsupportedCategoryError
from searx_edge.utils.logging import get_logger

logger = get_logger(__name__)


DEFAULT_CONFIG: dict[str, Any] = {
    "query": {"selector": "input#q", "attr": "value"},
    "engine_status": {
        "table": "table.engine-stats",
        "row": "tr",
        "name": "td.engine-name",
        "error": "td.response-error",
    },
    "categories": {
        "general": {
            "block": "article.result-default.category-general",
            "fields": {
                "url": {"selector": "a.url_header", "kind": "attr", "attr": "href"},
                "title": {"selector": "h3 a"},
                "content": {"selector": "p.content"},
                "published_date": {
                    "selector": "time.published_date",
                    "kind": "attr",
                    "attr": "datetime",
                },
                "engines": {"selector": "div.engines span", "multiple": True},
            },
        },
        "images": {
            "block": "article.result-images",
            "fields": {
                "url": {"selector": "p.result-url a", "kind": "attr", "attr": "href"},
                "title": {"selector": "div.result-images-labels h4"},
                "content": {"selector": "p.result-content"},
                "img_src": {"selector": "a.result-images-source", "kind": "attr", "attr": "href"},
                "thumbnail_src": {"selector": "img.image_thumbnail", "kind": "attr", "attr": "src"},
                "author": {"selector": "p.result-author", "kind": "label"},
                "source": {"selector": "p.result-source", "kind": "label"},
                "resolution": {"selector": "p.result-resolution", "kind": "label"},
                "filesize": {"selector": "p.result-filesize", "kind": "label"},
                "img_format": {"selector": "p.result-format", "kind": "label"},
                "engines": {"selector": "p.result-engine", "kind": "label", "multiple": True},
            },
        },
    },
}


# =============================================================================
# Text helpers
# =============================================================================


def normalize_text(text: str) -> str:
    """Collapse whitespace runs (including non-breaking spaces) and trim."""
    return " ".join(text.replace("\xa0", " ").split())


def split_label(text: str) -> str:
    """Recover the value of a "Label: value" text node.

    Splits once on the first colon, trims, and discards the label. Text
    without a colon is returned trimmed.
    """
    _, colon, value = text.partition(":")
    if not colon:
        return normalize_text(text)
    return normalize_text(value)


# =============================================================================
# Pydantic Schema Models
# =============================================================================


class FieldKind(str, Enum):
    """How a field value is read from a matched element."""

    TEXT = "text"
    ATTR = "attr"
    LABEL = "label"


class FieldSchema(BaseModel):
    """Schema for a single field selector."""

    selector: str = Field(..., description="CSS selector relative to the block")
    kind: FieldKind = Field(default=FieldKind.TEXT)
    attr: str | None = Field(default=None, description="Attribute read by 'attr' fields")
    multiple: bool = Field(default=False, description="Keep each match as a separate value")

    @field_validator("selector")
    @classmethod
    def validate_selector(cls, v: str) -> str:
        """Ensure selector is not empty."""
        if not v.strip():
            raise ValueError("Selector cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def validate_attr(self) -> FieldSchema:
        """Attribute fields must name their attribute."""
        if self.kind is FieldKind.ATTR and not self.attr:
            raise ValueError("Field of kind 'attr' requires 'attr'")
        return self


class CategoryProfileSchema(BaseModel):
    """Schema for one category's result block."""

    block: str = Field(..., description="Selector of the recurring result container")
    fields: dict[str, FieldSchema] = Field(default_factory=dict)


class QuerySchema(BaseModel):
    selector: str = "input#q"
    attr: str = "value"


class EngineStatusSchema(BaseModel):
    table: str = "table.engine-stats"
    row: str = "tr"
    name: str = "td.engine-name"
    error: str = "td.response-error"


class ExtractorConfigSchema(BaseModel):
    """Root schema for extractor.yaml."""

    query: QuerySchema = Field(default_factory=QuerySchema)
    engine_status: EngineStatusSchema = Field(default_factory=EngineStatusSchema)
    categories: dict[str, CategoryProfileSchema] = Field(default_factory=dict)


# =============================================================================
# Resolved runtime configuration
# =============================================================================


@dataclass
class FieldSpec:
    """Resolved field selector, compiled for matching."""

    name: str
    selector: str
    kind: FieldKind = FieldKind.TEXT
    attr: str | None = None
    multiple: bool = False
    _matcher: Any = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._matcher = soupsieve.compile(self.selector)

    def matches(self, element: Tag) -> bool:
        return bool(self._matcher.match(element))

    def read(self, element: Tag) -> str | None:
        """Read this field's raw value from a matched element."""
        if self.kind is FieldKind.ATTR:
            value = element.get(self.attr or "")
            if value is None:
                return None
            return " ".join(value) if isinstance(value, list) else str(value)
        text = "".join(element.strings)
        if self.kind is FieldKind.LABEL:
            return split_label(text)
        return text


@dataclass
class CategoryProfile:
    """Resolved extraction profile for a result category."""

    category: str
    block_selector: str
    fields: list[FieldSpec] = field(default_factory=list)

    def __post_init__(self) -> None:
        # Invalid block selectors raise SelectorSyntaxError here
        soupsieve.compile(self.block_selector)

    def get_field(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None


@dataclass
class ExtractorConfig:
    """Resolved document-level selectors plus category profiles."""

    query: QuerySchema
    engine_status: EngineStatusSchema
    profiles: dict[str, CategoryProfile]

    @property
    def categories(self) -> list[str]:
        return sorted(self.profiles)

    def get_profile(self, category: str) -> CategoryProfile:
        """Get the profile for a category.

        Raises:
            UnsupportedCategoryError: If no profile is configured.
        """
        profile = self.profiles.get(category.strip().lower())
        if profile is None:
            raise UnsupportedCategoryError(category, self.categories)
        return profile


def build_extractor_config(data: dict[str, Any]) -> ExtractorConfig:
    """Validate raw configuration data and resolve it for runtime use."""
    schema = ExtractorConfigSchema(**data)
    profiles = {}
    for category, profile_schema in schema.categories.items():
        profiles[category.lower()] = CategoryProfile(
            category=category.lower(),
            block_selector=profile_schema.block,
            fields=[
                FieldSpec(
                    name=name,
                    selector=spec.selector,
                    kind=spec.kind,
                    attr=spec.attr,
                    multiple=spec.multiple,
                )
                for name, spec in profile_schema.fields.items()
            ],
        )
    return ExtractorConfig(
        query=schema.query,
        engine_status=schema.engine_status,
        profiles=profiles,
    )


def load_extractor_config(config_dir: Path | None = None) -> ExtractorConfig:
    """Load extractor.yaml on top of the built-in defaults.

    An unreadable or invalid file is logged and the defaults are used.
    """
    if config_dir is None:
        config_dir = get_config_dir()

    try:
        overrides = load_yaml_with_local_override(config_dir, "extractor.yaml", "extractor")
        config = build_extractor_config(deep_merge(DEFAULT_CONFIG, overrides))
    except (yaml.YAMLError, ValidationError, OSError, soupsieve.SelectorSyntaxError) as e:
        logger.error(
            "Failed to load extractor config, using defaults",
            error=str(e),
            path=str(config_dir / "extractor.yaml"),
        )
        return build_extractor_config(DEFAULT_CONFIG)

    logger.debug("Extractor config loaded", categories=config.categories)
    return config


# =============================================================================
# Module-level singleton access
# =============================================================================

_config_instance: ExtractorConfig | None = None
_config_lock = threading.Lock()


def get_extractor_config() -> ExtractorConfig:
    """Get the shared ExtractorConfig instance."""
    global _config_instance

    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = load_extractor_config()

    return _config_instance


def reset_extractor_config() -> None:
    """Reset the shared instance (for testing)."""
    global _config_instance

    with _config_lock:
        _config_instance = None
