"""
Invoice identifier pattern. The shape is part of the external contract (what counts as an
identifier), so it is versioned and overridable through settings.

Default shape: FV/<number>/PL/<4-digit year>, e.g. FV/123/PL/2025.
"""
from __future__ import annotations

import re
from functools import cached_property
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_TEXT_REGEX = r"FV/\d+/PL/\d{4}"
# Narrower on raw bytes: long digit runs there are mostly stream noise
DEFAULT_RAW_REGEX = r"FV/\d{1,4}/PL/\d{4}"
DEFAULT_VERSION = "fv-pl-1"


class IdentifierPattern(BaseModel):
    model_config = ConfigDict(frozen=True, ignored_types=(cached_property,))

    text_regex: str = DEFAULT_TEXT_REGEX
    raw_regex: str = DEFAULT_RAW_REGEX
    version: str = DEFAULT_VERSION

    @field_validator("text_regex", "raw_regex")
    @classmethod
    def _must_compile(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid identifier pattern {value!r}: {exc}") from exc
        return value

    @cached_property
    def text(self) -> re.Pattern:
        return re.compile(self.text_regex)

    @cached_property
    def raw(self) -> re.Pattern:
        return re.compile(self.raw_regex)

    @classmethod
    def from_settings(cls, settings) -> "IdentifierPattern":
        return cls(
            text_regex=settings.text_pattern,
            raw_regex=settings.raw_pattern,
            version=settings.pattern_version,
        )


def find_identifiers(text: Optional[str], pattern: re.Pattern) -> list[str]:
    """All matches of pattern in text, deduplicated, first-seen order."""
    if not text:
        return []
    return list(dict.fromkeys(m.group(0) for m in pattern.finditer(text)))
