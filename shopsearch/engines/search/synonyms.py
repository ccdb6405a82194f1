"""
Synonym dictionary and query expansion.

The dictionary is built once at start-up and never mutated; it is shared by
every request without locking and also feeds the index-time synonym filter of
the Elasticsearch backend.
"""
import json
import logging
import re
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Tuple, Union

logger = logging.getLogger(__name__)


DEFAULT_SYNONYMS: Dict[str, List[str]] = {
    "phone": ["mobile", "smartphone", "cell", "device"],
    "laptop": ["computer", "notebook", "pc"],
    "shirt": ["top", "blouse", "tee"],
    "shoes": ["footwear", "sneakers", "boots"],
    "bag": ["purse", "handbag", "backpack"],
    "watch": ["timepiece", "clock"],
}


class SynonymDictionary:
    """Read-only mapping from a canonical term to its equivalent terms"""

    def __init__(self, entries: Mapping[str, Iterable[str]]):
        normalized = {}
        for key, values in entries.items():
            canonical = key.strip().lower()
            if not canonical:
                continue
            terms = tuple(dict.fromkeys(
                value.strip().lower() for value in values
                if value.strip() and value.strip().lower() != canonical
            ))
            normalized[canonical] = terms
        self._entries = MappingProxyType(normalized)

    @classmethod
    def default(cls) -> "SynonymDictionary":
        return cls(DEFAULT_SYNONYMS)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "SynonymDictionary":
        """
        Load a dictionary from a JSON object of ``{"term": ["synonym", ...]}``

        Args:
            path: Location of the JSON file

        Returns:
            SynonymDictionary with the file's entries
        """
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)

        if not isinstance(data, dict) or not all(isinstance(v, list) for v in data.values()):
            raise ValueError(f"Synonym file {path} must map terms to lists of terms")

        dictionary = cls(data)
        logger.info(f"Loaded {len(dictionary)} synonym groups from {path}")
        return dictionary

    def __len__(self) -> int:
        return len(self._entries)

    def groups_for(self, token: str) -> List[Tuple[str, ...]]:
        """Every ``(key, *synonyms)`` group the token belongs to"""
        return [
            (key,) + values
            for key, values in self._entries.items()
            if token == key or token in values
        ]

    def to_synonym_rules(self) -> List[str]:
        """Equivalence rules for a search engine synonym filter, e.g. ``phone,mobile,cell``"""
        return [",".join((key,) + values) for key, values in self._entries.items()]


class SynonymExpander:
    """
    Single-token synonym substitution.

    For every query token found in a synonym group, each other term of the group
    produces one variant of the query with that token replaced. Tokens are not
    combined with each other.

    The default replacement is a case-insensitive substring pattern, so a token
    may also be rewritten inside longer words ("pc" inside "topic"). Pass
    ``whole_word=True`` to only replace whole words.
    """

    def __init__(self, dictionary: SynonymDictionary, whole_word: bool = False):
        self.dictionary = dictionary
        self.whole_word = whole_word

    def expand(self, query: str) -> List[str]:
        """
        Expand a query into its synonym variants

        Args:
            query: Raw search query

        Returns:
            Distinct query strings, the original query first
        """
        variants = [query]
        tokens = query.lower().split()

        for token in tokens:
            for group in self.dictionary.groups_for(token):
                for synonym in group:
                    if synonym != token:
                        variants.append(self._replace(query, token, synonym))

        return list(dict.fromkeys(variants))

    def _replace(self, query: str, token: str, synonym: str) -> str:
        pattern = re.escape(token)
        if self.whole_word:
            pattern = rf"(?<!\w){pattern}(?!\w)"
        return re.sub(pattern, lambda _: synonym, query, flags=re.IGNORECASE)
