"""
Per-run detection statistics and phase timers.
"""

import copy
import logging
import threading
import time
from collections import Counter
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import yaml

from .hints import is_hint_value

NOT_MATCHED = 'NOT_MATCHED'


class AnonymizationStats:
    """Counts detected types per ``table.column`` label."""

    def __init__(self):
        self._counts: dict[str, Counter] = {}
        self._columns: dict[str, tuple[str, str]] = {}
        self._lock = threading.Lock()

    def record(
        self,
        label: str,
        detected_type: str,
        table: Optional[str] = None,
        column: Optional[str] = None
    ) -> None:
        """Count one check; ``table``/``column`` keep the original names of a column label."""
        with self._lock:
            self._counts.setdefault(label, Counter())[detected_type] += 1
            if table is not None and column is not None:
                self._columns.setdefault(label, (table, column))

    def snapshot(self) -> dict[str, dict[str, int]]:
        with self._lock:
            return {label: dict(counts) for label, counts in self._counts.items()}

    def clear(self) -> None:
        with self._lock:
            self._counts.clear()
            self._columns.clear()

    def log_summary(self) -> None:
        """Log one line per label, most frequent type first."""
        snapshot = self.snapshot()
        if not snapshot:
            logging.info("No values were checked for anonymization")
            return
        logging.info("Anonymization statistics:")
        for label in sorted(snapshot):
            counts = Counter(snapshot[label]).most_common()
            logging.info(f"  {label}: {', '.join(f'{t}={n}' for t, n in counts)}")

    def to_hint_tree(self, seed: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Turn stable detections into fixed column hints.

        A ``table.column`` label whose matched values all share one detected
        type becomes ``{table: {column: type}}``, using the table and column
        names as recorded. Entries already present in ``seed`` are left as
        configured.
        """
        tree = copy.deepcopy(seed) if seed else {}
        with self._lock:
            columns_by_label = dict(self._columns)
        for label, counts in sorted(self.snapshot().items()):
            scope = columns_by_label.get(label)
            if scope is None:
                parts = label.split('.')
                if len(parts) != 2:
                    continue
                scope = tuple(parts)
            matched = [t for t in counts if t != NOT_MATCHED]
            if len(matched) != 1:
                continue

            table, column = scope
            columns = tree.setdefault(table, {})
            if not isinstance(columns, dict) or is_hint_value(columns):
                continue
            columns.setdefault(column, matched[0])
        return tree

    def write_hint_file(self, path: str, seed: Optional[dict[str, Any]] = None) -> Path:
        """Write ``to_hint_tree`` as YAML, usable as ``matcher_hints``."""
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.to_hint_tree(seed), f, default_flow_style=False, sort_keys=True)
        logging.info(f"Fixed hints written to {output_path}")
        return output_path


class PhaseTimers:
    """Wall-clock duration of named phases within a run."""

    def __init__(self):
        self._timings: dict[str, float] = {}
        self._lock = threading.Lock()

    @contextmanager
    def measure(self, name: str) -> Iterator[None]:
        started = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - started
            with self._lock:
                self._timings[name] = self._timings.get(name, 0.0) + elapsed

    def snapshot(self) -> dict[str, float]:
        with self._lock:
            return dict(self._timings)

    def clear(self) -> None:
        with self._lock:
            self._timings.clear()

    def log_summary(self) -> None:
        for name, elapsed in self.snapshot().items():
            logging.info(f"  {name}: {elapsed:.3f}s")
