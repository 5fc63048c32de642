"""Alias and character-variant table for station names.

The table is a versioned data file (data/aliases.json) rather than inline
conditionals, so the directory algorithm can be tested against any table:

    {
      "version": "2024.1",
      "aliases": {"北車": "臺北", ...},
      "variants": {"台": "臺"}
    }
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from ..domain.errors import DirectoryDataError

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^0-9a-z]+")
_STATION_SUFFIX = re.compile(r"(?:火車站|車站|[台臺]鐵站|站|\s*main\s+station|\s*station)$")


class AliasTableFile(BaseModel):
    """On-disk schema of the alias table."""

    version: str
    aliases: Dict[str, str] = Field(default_factory=dict)
    variants: Dict[str, str] = Field(default_factory=dict)


def romanized_key(text: str) -> str:
    """Lowercase and drop everything but ASCII letters and digits."""
    return _NON_ALNUM.sub("", text.lower())


@dataclass(frozen=True)
class AliasTable:
    """Immutable synonym and variant-character table.

    Attributes:
        version: Data version string
        aliases: Abbreviation or synonym -> canonical station name
        variants: Variant character -> canonical character (e.g., 台 -> 臺)
    """

    version: str = "empty"
    aliases: Mapping[str, str] = field(default_factory=dict)
    variants: Mapping[str, str] = field(default_factory=dict)
    _alias_keys: Dict[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # Suffixes stay in alias keys; 北站 must not become 北
        keys = {self.alias_key(alias): target for alias, target in self.aliases.items()}
        object.__setattr__(self, "_alias_keys", keys)

    def alias_key(self, text: str) -> str:
        """Trim, lowercase, fold variants and drop inner whitespace."""
        return re.sub(r"\s+", "", self.fold(text.strip().lower()))

    def fold(self, text: str) -> str:
        """Replace variant characters with their canonical form."""
        if not self.variants:
            return text
        return "".join(self.variants.get(ch, ch) for ch in text)

    def normalize(self, text: str) -> str:
        """Trim, lowercase, fold variants, drop inner whitespace and station suffixes."""
        cleaned = self.fold(text.strip().lower())
        cleaned = _STATION_SUFFIX.sub("", cleaned) or cleaned
        return re.sub(r"\s+", "", cleaned)

    def expand(self, text: str) -> Optional[str]:
        """Return the canonical name for an alias, or None.

        The query is tried as typed, then with its station suffix removed.
        """
        return self._alias_keys.get(self.alias_key(text)) or self._alias_keys.get(
            self.normalize(text)
        )

    def query_forms(self, text: str) -> List[str]:
        """Normalized forms of a query: raw, then alias-expanded.

        Returns:
            Distinct non-empty forms, in evaluation order.
        """
        forms: List[str] = []
        for candidate in (self.normalize(text), self.expand(text)):
            if candidate:
                normalized = self.normalize(candidate)
                if normalized and normalized not in forms:
                    forms.append(normalized)
        return forms


def load_alias_table(path: Path) -> AliasTable:
    """Load the alias table from JSON.

    Args:
        path: Path to the alias JSON file.

    Returns:
        The loaded table.

    Raises:
        DirectoryDataError: If the file is missing or malformed.
    """
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        parsed = AliasTableFile.model_validate(payload)
    except (OSError, ValueError, ValidationError) as e:
        raise DirectoryDataError(
            f"Failed to load alias table: {e}",
            file_path=str(path),
            cause=e,
        )

    logger.info(
        "Alias table loaded",
        extra={
            "version": parsed.version,
            "aliases": len(parsed.aliases),
            "variants": len(parsed.variants),
        },
    )
    return AliasTable(
        version=parsed.version,
        aliases=dict(parsed.aliases),
        variants=dict(parsed.variants),
    )
