"""
Run-scoped state shared by every dump task.
"""

from dataclasses import dataclass, field

from .cache import SubstitutionCache
from .hints import HintRegistry
from .models import ColumnInfo
from .stats import AnonymizationStats, PhaseTimers


@dataclass
class DumpSession:
    """
    State for one dump run.

    ``hints``, ``cache``, ``detections`` and ``stats`` are written concurrently
    by table tasks and synchronize internally. ``constraints`` and
    ``column_types`` are filled during metadata discovery and only read after.
    """
    hints: HintRegistry = field(default_factory=HintRegistry)
    cache: SubstitutionCache = field(default_factory=SubstitutionCache)
    detections: SubstitutionCache = field(default_factory=SubstitutionCache)
    stats: AnonymizationStats = field(default_factory=AnonymizationStats)
    timers: PhaseTimers = field(default_factory=PhaseTimers)
    constraints: set[tuple[str, str]] = field(default_factory=set)
    column_types: dict[tuple[str, str], ColumnInfo] = field(default_factory=dict)

    def is_constrained(self, table: str, column: str) -> bool:
        return (table, column) in self.constraints

    def is_json_column(self, table: str, column: str) -> bool:
        info = self.column_types.get((table, column))
        return info is not None and info.is_json

    def reset(self) -> None:
        """Drop everything gathered during a run."""
        self.hints.clear()
        self.cache.clear()
        self.detections.clear()
        self.stats.clear()
        self.timers.clear()
        self.constraints.clear()
        self.column_types.clear()
