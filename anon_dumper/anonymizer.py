"""
Per-cell anonymization pipeline.
"""

import dataclasses
import json
import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Optional

from .cache import cache_keys, normalize_value
from .detector import Detector
from .exceptions import EncodingError
from .geometry import Point, Geometry
from .hints import Hint
from .models import DetectionResult
from .session import DumpSession
from .stats import NOT_MATCHED

_MISSING = object()
_NO_MATCH = object()

CHECKABLE_TYPES = (str, int, float, Decimal, datetime, date, time, timedelta)


class ValueAnonymizer:
    """
    Applies the configured anonymization policy to single cell values.

    Key columns pass through untouched. JSON documents are walked leaf by leaf.
    Every other value is classified by the detector and replaced by a
    substitute that is cached per detected type and normalized value, so the
    same input maps to the same output across rows and tables.
    """

    MAX_JSON_DEPTH = 64
    JSON_ROOT = '$'

    def __init__(self, session: DumpSession, detector: Detector):
        self.session = session
        self.detector = detector

    def anonymize(self, table: str, column: str, key_value: Any, value: Any) -> Any:
        """
        Return the anonymized form of ``value`` stored in ``table.column``.

        Args:
            table: Table name.
            column: Column name.
            key_value: Value of the row's key column, passed to the detector
                       when the resolved hint declares ``keyColumn``.
            value: Raw cell value.
        """
        if self.session.is_constrained(table, column):
            return value

        document = self._parse_json(table, column, value)
        if document is not _MISSING:
            anonymized = self._anonymize_json(table, column, key_value, document, [], 0)
            return json.dumps(anonymized, ensure_ascii=False)

        if not _is_checkable(value):
            return value
        return self._anonymize_scalar(table, column, None, None, _label(table, column), key_value, value)

    def key_value_for(self, table: str, column: str, row: dict[str, Any]) -> Any:
        """Value of the key column named by the cell's hint, if any."""
        hint = self.session.hints.resolve_hint(table, column)
        if hint is None or not hint.key_column:
            return None
        return row.get(hint.key_column)

    def _parse_json(self, table: str, column: str, value: Any) -> Any:
        """Parsed document for JSON columns and JSON object/array strings."""
        if isinstance(value, (dict, list)):
            return value
        if not isinstance(value, str):
            return _MISSING

        declared = self.session.is_json_column(table, column)
        if not declared and not value.lstrip().startswith(('{', '[')):
            return _MISSING
        try:
            document = json.loads(value)
        except ValueError:
            if declared:
                logging.debug(f"{table}.{column}: JSON column holds unparseable text")
            return _MISSING
        if declared or isinstance(document, (dict, list)):
            return document
        return _MISSING

    def _anonymize_json(
        self,
        table: str,
        column: str,
        key_value: Any,
        node: Any,
        path: list[str],
        depth: int
    ) -> Any:
        if depth > self.MAX_JSON_DEPTH:
            raise EncodingError(
                f"{table}.{column}: JSON nested deeper than {self.MAX_JSON_DEPTH} levels"
            )
        if isinstance(node, dict):
            return {
                key: self._anonymize_json(table, column, key_value, item, path + [str(key)], depth + 1)
                for key, item in node.items()
            }
        if isinstance(node, list):
            # Array items share their array's path.
            return [
                self._anonymize_json(table, column, key_value, item, path, depth + 1)
                for item in node
            ]
        if not _is_checkable(node):
            return node

        if path:
            json_parent = '.'.join(path[:-1]) or self.JSON_ROOT
            json_element = path[-1]
            label = _label(table, column, *path)
        else:
            json_parent = json_element = None
            label = _label(table, column)
        return self._anonymize_scalar(table, column, json_parent, json_element, label, key_value, node)

    def _anonymize_scalar(
        self,
        table: str,
        column: str,
        json_parent: Optional[str],
        json_element: Optional[str],
        label: str,
        key_value: Any,
        value: Any
    ) -> Any:
        hint = self.session.hints.resolve_hint(table, column, json_parent, json_element)
        if hint is not None and hint.key_column:
            hint = dataclasses.replace(hint, key_value=key_value)

        normalized = normalize_value(value)
        result = self._detect(value, label, hint, normalized)
        # Column labels keep their original names for generated hints.
        scope = (table, column) if json_element is None else (None, None)
        if result is None:
            self.session.stats.record(label, NOT_MATCHED, *scope)
            return value

        self.session.stats.record(label, result.type, *scope)
        passthrough = hint is not None and hint.passthrough
        primary, secondary = cache_keys(result.type, result.sub_types, normalized)
        cache = self.session.cache

        if not passthrough:
            for key in (primary, secondary):
                cached = cache.get(key, _MISSING)
                if cached is not _MISSING:
                    return cached

        if result.anonymized is None or result.anonymized == value:
            substitute = value
        else:
            substitute = result.anonymized

        stored = cache.put_if_absent(primary, substitute)
        cache.put_if_absent(secondary, stored)
        return substitute if passthrough else stored

    def _detect(
        self,
        value: Any,
        label: str,
        hint: Optional[Hint],
        normalized: str
    ) -> Optional[DetectionResult]:
        """
        Run the detector once per label, policy and normalized value.

        Passthrough hints are never memoized; every value gets a fresh check.
        """
        if hint is not None and hint.passthrough:
            results = self.detector.check(value, label, hint)
            return results[0] if results else None

        memo_key = (
            label,
            hint.type if hint else None,
            None if hint is None or hint.key_value is None else str(hint.key_value),
            normalized,
        )
        memo = self.session.detections.get(memo_key, _MISSING)
        if memo is _MISSING:
            results = self.detector.check(value, label, hint)
            memo = self.session.detections.put_if_absent(memo_key, results[0] if results else _NO_MATCH)
        return None if memo is _NO_MATCH else memo


def _is_checkable(value: Any) -> bool:
    if isinstance(value, (bool, Point, Geometry)):
        return False
    return isinstance(value, CHECKABLE_TYPES)


def _label(*parts: str) -> str:
    return '.'.join(parts).lower()
