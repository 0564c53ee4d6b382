"""
Run-scoped substitution cache shared by concurrent table tasks.
"""

import threading
import unicodedata
from typing import Any, Hashable, Iterable, Optional

KEY_SEPARATOR = '|'


def normalize_value(value: Any) -> str:
    """Fold diacritics, trim and case-fold a value for use in cache keys."""
    text = unicodedata.normalize('NFKD', str(value))
    text = ''.join(ch for ch in text if not unicodedata.combining(ch))
    return text.strip().casefold()


def cache_keys(detected_type: str, sub_types: Iterable[str], normalized: str) -> tuple[str, str]:
    """Primary (with sub-types) and secondary (type only) cache keys."""
    primary = KEY_SEPARATOR.join((detected_type, ','.join(sub_types), normalized))
    secondary = KEY_SEPARATOR.join((detected_type, normalized))
    return primary, secondary


class SubstitutionCache:
    """Key-value store with an atomic insert-if-absent."""

    def __init__(self):
        self._entries: dict[Hashable, Any] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def get(self, key: Hashable, default: Optional[Any] = None) -> Any:
        with self._lock:
            return self._entries.get(key, default)

    def put_if_absent(self, key: Hashable, value: Any) -> Any:
        """Store ``value`` unless the key exists; return whichever value is stored."""
        with self._lock:
            return self._entries.setdefault(key, value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
