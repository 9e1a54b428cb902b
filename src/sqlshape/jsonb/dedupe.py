"""Normalization and deduplication of inferred type descriptions."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Iterable

from .arena import TypeDefinition

logger = logging.getLogger(__name__)

_PUNCT_SPACING = re.compile(r"\s*([{}\[\]:,;|])\s*")


@dataclass
class DeduplicationResult:
    types: list[TypeDefinition]
    removed_count: int = 0
    aliases: dict[str, str] = field(default_factory=dict)  # dropped name -> kept name


def normalize_type_definition(type_definition: str) -> str:
    """Canonical form of a type description for comparison.

    Whitespace runs collapse to one space and whitespace around structural
    punctuation is removed. Object key order is left untouched.
    """
    collapsed = " ".join(type_definition.split())
    return _PUNCT_SPACING.sub(r"\1", collapsed).strip()


def deduplicate_types(types: Iterable[TypeDefinition]) -> DeduplicationResult:
    """Keep the first type of each distinct normalized description.

    Names of dropped types are recorded as aliases of the kept type, and
    references to them inside the kept descriptions are rewritten.

    Args:
        types: Types in output order

    Returns:
        DeduplicationResult with kept types in first-seen order
    """
    types = list(types)
    canonical: dict[str, TypeDefinition] = {}
    aliases: dict[str, str] = {}

    for definition in types:
        key = normalize_type_definition(definition.type_definition)
        kept = canonical.get(key)
        if kept is None:
            canonical[key] = definition
        elif definition.name != kept.name:
            aliases[definition.name] = kept.name

    kept_types = list(canonical.values())
    if aliases:
        pattern = re.compile(r"\b(" + "|".join(re.escape(name) for name in aliases) + r")\b")
        kept_types = [
            replace(t, type_definition=pattern.sub(lambda m: aliases[m.group(1)], t.type_definition))
            for t in kept_types
        ]

    removed_count = len(types) - len(kept_types)
    if removed_count:
        logger.info(f"Removed {removed_count} duplicate type(s)")

    return DeduplicationResult(types=kept_types, removed_count=removed_count, aliases=aliases)
