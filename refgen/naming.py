"""Brand name resolution and deterministic artifact file names."""

from __future__ import annotations

import re
from typing import List

from .config import ReferenceData
from .logging import get_logger
from .models import ResolvedName

TIER_BRAND = "brand"
TIER_COMPOUND = "compound"
TIER_FALLBACK = "fallback"

_NON_SLUG = re.compile(r"[^a-z0-9]+")


class NameResolver:
    """Maps namespace identifiers to display names, slugs and tool file names.

    Resolution is a strict three-tier lookup: the brand mapping table wins,
    then the compound-word table, then a plain lower-case/title-case fallback.
    The fallback is an ordinary outcome and only logged.
    """

    def __init__(self, reference_data: ReferenceData) -> None:
        self._data = reference_data
        self.logger = get_logger("naming")

    def resolve(self, identifier: str, *, log_fallback: bool = True) -> ResolvedName:
        mapping = self._data.brand_mappings.get(identifier)
        if mapping is not None:
            return ResolvedName(mapping.brand_name, mapping.slug, TIER_BRAND)

        compound = self._data.compound_words.get(identifier)
        if compound is not None:
            words = [word for word in compound.split("-") if word]
            label = " ".join(_title_word(word) for word in words)
            return ResolvedName(label, "-".join(word.lower() for word in words), TIER_COMPOUND)

        if log_fallback:
            self.logger.info(
                "No brand mapping or compound word for '%s'; using identifier as name", identifier
            )
        return ResolvedName(_title_word(identifier), identifier.lower(), TIER_FALLBACK)

    def tool_file_base(self, command: str) -> str:
        """Return the artifact identifier shared by tool pages and the verifier.

        ``storage blob container get`` with a brand slug of ``azure-storage``
        becomes ``azure-storage-blob-container-get``; compound words in the
        remaining tokens are expanded (``nodepool`` -> ``node-pool``).
        """
        tokens = command.split()
        if not tokens:
            return "unknown"
        prefix = _slug(self.resolve(tokens[0], log_fallback=False).slug) or "unknown"
        remaining: List[str] = []
        for token in tokens[1:]:
            for part in token.lower().split("-"):
                if not part:
                    continue
                expanded = self._data.compound_words.get(part, part)
                remaining.extend(piece for piece in expanded.split("-") if piece)
        suffix = _slug("-".join(remaining))
        return f"{prefix}-{suffix}" if suffix else prefix


def _title_word(word: str) -> str:
    if not word:
        return word
    return word[0].upper() + word[1:].lower()


def _slug(value: str) -> str:
    return _NON_SLUG.sub("-", value.lower()).strip("-")


__all__ = ["NameResolver", "TIER_BRAND", "TIER_COMPOUND", "TIER_FALLBACK"]
