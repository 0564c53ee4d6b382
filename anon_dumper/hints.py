"""
Hierarchical anonymization hints.

Hints are registered per table, column, JSON parent path and JSON element, any
of which may be the ``*`` wildcard. Resolution walks from the deepest level up
to the table level and returns the first match, trying the exact key before
its wildcard variants at each level.
"""

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from .exceptions import ConfigurationError
from .models import WILDCARD

SCOPE_DEPTH = 4

HINT_KEYS = frozenset({
    'type', 'keyColumn', 'key_column', 'subTypes', 'sub_types', 'passthrough',
})

# Detector options a hint may carry inside a seed tree.
HINT_OPTION_KEYS = frozenset({'values', 'options'})


def _is_name(value: Any) -> bool:
    return value is None or isinstance(value, str)


_HINT_FIELD_SHAPES = {
    'type': _is_name,
    'keyColumn': _is_name,
    'key_column': _is_name,
    'subTypes': lambda v: v is None or isinstance(v, (str, list, tuple)),
    'sub_types': lambda v: v is None or isinstance(v, (str, list, tuple)),
    'passthrough': lambda v: isinstance(v, bool),
    'values': lambda v: isinstance(v, (list, tuple)),
    'options': lambda v: v is None or isinstance(v, dict),
}


@dataclass
class Hint:
    """Anonymization policy override for one scope."""
    type: Optional[str] = None
    key_column: Optional[str] = None
    sub_types: tuple[str, ...] = ()
    passthrough: bool = False
    options: dict[str, Any] = field(default_factory=dict)
    table: Optional[str] = None
    column: Optional[str] = None
    json_parent: Optional[str] = None
    json_element: Optional[str] = None
    key_value: Any = None

    @classmethod
    def from_value(cls, value: Any, **scope: Optional[str]) -> "Hint":
        """
        Build a hint from its configuration form.

        A string is shorthand for ``{'type': value}``. Mappings understand
        ``type``, ``keyColumn``, ``subTypes`` and ``passthrough``. An
        ``options`` mapping and any other key are kept in ``options`` for the
        detector.
        """
        if isinstance(value, Hint):
            return value
        if isinstance(value, str):
            return cls(type=value, **scope)
        if not isinstance(value, dict):
            raise ConfigurationError(f"Invalid hint value {value!r} for {scope}")

        nested = value.get('options') or {}
        if not isinstance(nested, dict):
            raise ConfigurationError(f"Hint options must be a mapping, got {nested!r} for {scope}")
        options = {k: v for k, v in value.items() if k not in HINT_KEYS and k != 'options'}
        options.update(nested)
        sub_types = value.get('subTypes', value.get('sub_types')) or ()
        if isinstance(sub_types, str):
            sub_types = (sub_types,)
        return cls(
            type=value.get('type'),
            key_column=value.get('keyColumn', value.get('key_column')),
            sub_types=tuple(sub_types),
            passthrough=bool(value.get('passthrough', False)),
            options=options,
            **scope
        )


def is_hint_value(value: Any) -> bool:
    """
    True if a seed tree node is a hint rather than a mapping of children.

    A mapping is a hint only when it holds a hint key, all of its keys are hint
    keys or ``values``/``options``, and each holds a value of the right shape.
    ``{'type': 'enum', 'email': 'email'}`` is therefore two columns. A lone
    column called ``type`` must be nested: ``{'type': {'type': 'enum'}}``.
    """
    if isinstance(value, (str, Hint)):
        return True
    if not isinstance(value, dict) or not HINT_KEYS.intersection(value):
        return False
    if not HINT_KEYS.union(HINT_OPTION_KEYS).issuperset(value):
        return False
    return all(_HINT_FIELD_SHAPES[key](item) for key, item in value.items())


class HintRegistry:
    """Thread-safe store of hints keyed by (table, column, json_parent, json_element)."""

    def __init__(self):
        self._hints: dict[tuple[str, ...], Hint] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._hints)

    def set_hint(
        self,
        table: str,
        column: Optional[str],
        json_parent: Optional[str],
        json_element: Optional[str],
        value: Any
    ) -> Hint:
        """Store a hint at the most specific scope given."""
        key = _scope_key(table, column, json_parent, json_element)
        scope = dict(zip(('table', 'column', 'json_parent', 'json_element'), key))
        hint = Hint.from_value(value, **scope)
        with self._lock:
            self._hints[key] = hint
        logging.debug(f"Hint {'.'.join(key)} -> {hint.type}")
        return hint

    def set_default_hint(
        self,
        table: str,
        column: Optional[str],
        json_parent: Optional[str],
        json_element: Optional[str],
        value: Any
    ) -> Hint:
        """Store a hint unless one is already registered for exactly this scope."""
        key = _scope_key(table, column, json_parent, json_element)
        with self._lock:
            existing = self._hints.get(key)
            if existing is not None:
                return existing
            return self.set_hint(table, column, json_parent, json_element, value)

    def resolve_hint(
        self,
        table: str,
        column: Optional[str],
        json_parent: Optional[str] = None,
        json_element: Optional[str] = None
    ) -> Optional[Hint]:
        """Return the most specific hint for a cell, or None."""
        key = _scope_key(table, column, json_parent, json_element)
        with self._lock:
            for level in range(len(key), 0, -1):
                for candidate in _candidates(key[:level]):
                    hint = self._hints.get(candidate)
                    if hint is not None:
                        return hint
        return None

    def load_tree(self, tree: Optional[dict[str, Any]]) -> int:
        """
        Install a nested seed tree of hints.

        The tree nests table -> column -> json parent -> json element. A node
        that is a string or holds any hint key is registered at its depth;
        other mappings are descended into.

        Returns:
            Number of hints registered.
        """
        if not tree:
            return 0
        return self._load(tree, ())

    def _load(self, tree: dict[str, Any], scope: tuple[str, ...]) -> int:
        count = 0
        for name, value in tree.items():
            node_scope = scope + (str(name),)
            if is_hint_value(value):
                padded = node_scope + (None,) * (SCOPE_DEPTH - len(node_scope))
                self.set_hint(*padded, value)
                count += 1
            elif isinstance(value, dict) and len(node_scope) < SCOPE_DEPTH:
                count += self._load(value, node_scope)
            else:
                raise ConfigurationError(f"Invalid hint at {'.'.join(node_scope)}: {value!r}")
        return count

    def clear(self) -> None:
        with self._lock:
            self._hints.clear()


def _scope_key(*parts: Optional[str]) -> tuple[str, ...]:
    """Trim trailing None parts; inner gaps become wildcards."""
    parts = list(parts)
    while parts and parts[-1] is None:
        parts.pop()
    if not parts:
        raise ValueError("A hint needs at least a table")
    return tuple(WILDCARD if p is None else str(p) for p in parts)


def _candidates(key: tuple[str, ...]):
    """Exact key first, then wildcard variants widening the rightmost parts first."""
    options = [(part,) if part == WILDCARD else (part, WILDCARD) for part in key]
    return itertools.product(*options)
