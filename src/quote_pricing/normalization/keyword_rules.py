"""Ordered keyword rule tables used for classification.

Service type, cargo, equipment and container classification are all
first-match-wins lookups over ordered (predicate, category) pairs. The
tables are plain data so they can be tuned from a JSON file without code
changes (see load_rule_overrides).
"""

import json
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional, Sequence

from quote_pricing.config import get_settings

logger = logging.getLogger(__name__)

# Keywords with punctuation such as 40' or 20ft break \b semantics
_PUNCTUATION = re.compile(r"[^a-z0-9\s-]")


def _optional_plural(word: str) -> str:
    safe = re.escape(word)
    if len(word) <= 4 or word.endswith("s") or not re.fullmatch(r"[a-z0-9-]+", word):
        return safe
    return f"{safe}s?"


@lru_cache(maxsize=2048)
def keyword_pattern(keyword: str) -> Optional[re.Pattern]:
    """Compile a word-boundary-aware pattern for a keyword.

    Multi-word phrases accept any run of spaces or hyphens between words,
    and the last word of a phrase (or a single word) longer than four
    characters may carry a plural "s". Returns None for keywords that must be
    matched as plain substrings.
    """
    k = keyword.lower().strip()
    if not k or _PUNCTUATION.search(k):
        return None
    parts = k.split()
    patterns = [re.escape(p) for p in parts[:-1]] + [_optional_plural(parts[-1])]
    return re.compile(r"\b" + r"(?:[\s-]+)".join(patterns) + r"\b", re.IGNORECASE)


def contains_keyword(text: str, keyword: str) -> bool:
    """Word-boundary keyword test; "freight" does not contain "fr"."""
    k = keyword.lower().strip()
    if not k:
        return False
    pattern = keyword_pattern(k)
    if pattern is None:
        return k in text.lower()
    return pattern.search(text) is not None


def contains_substring(text: str, keyword: str) -> bool:
    return keyword.lower() in text.lower()


@dataclass(frozen=True)
class KeywordRule:
    """One (predicate, category) pair.

    Attributes:
        category: Category returned when the rule matches
        keywords: Any keyword hit makes the rule match
        matcher: Keyword test; word-boundary by default
    """
    category: str
    keywords: tuple[str, ...]
    matcher: Callable[[str, str], bool] = contains_keyword

    def matches(self, text: str) -> bool:
        return any(self.matcher(text, k) for k in self.keywords)


class RuleTable:
    """First-match-wins classifier over ordered keyword rules."""

    def __init__(self, rules: Sequence[KeywordRule], default: Optional[str] = None):
        self.rules = tuple(rules)
        self.default = default

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, Iterable[str]],
        default: Optional[str] = None,
        matcher: Callable[[str, str], bool] = contains_keyword,
    ) -> "RuleTable":
        """Build a table from {category: [keywords]}; mapping order is rule order."""
        return cls(
            [KeywordRule(category, tuple(keywords), matcher) for category, keywords in mapping.items()],
            default=default,
        )

    def classify(self, text: Optional[str]) -> Optional[str]:
        if not text:
            return self.default
        for rule in self.rules:
            if rule.matches(text):
                return rule.category
        return self.default

    def categories(self) -> list[str]:
        return [rule.category for rule in self.rules]


def load_rule_overrides(path: Optional[str]) -> dict[str, dict[str, list[str]]]:
    """Load keyword table overrides from a JSON file.

    The file maps a table name ("service_types", "cargo_categories",
    "equipment_types", "us_regions", "intl_regions") to an ordered
    {category: [keywords]} object. A missing or unreadable file yields no
    overrides and is logged; classification then uses the built-in tables.
    """
    if not path:
        return {}
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(
            "Could not load classification rule overrides",
            extra={"path": path, "error": str(e)},
        )
        return {}
    if not isinstance(data, dict):
        logger.warning("Classification rule overrides must be a JSON object", extra={"path": path})
        return {}
    return {
        name: {str(cat): [str(k) for k in kws] for cat, kws in table.items()}
        for name, table in data.items()
        if isinstance(table, dict)
    }


@lru_cache()
def rule_overrides() -> dict[str, dict[str, list[str]]]:
    """Overrides configured through CLASSIFICATION_RULES_PATH (cached)."""
    return load_rule_overrides(get_settings().CLASSIFICATION_RULES_PATH)
