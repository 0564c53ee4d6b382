"""
Shared fixtures for the test suite.
"""

import threading
import time

import pytest
from mysql.connector.errors import PoolError

from anon_dumper.detector import Detector
from anon_dumper.models import DetectionResult
from anon_dumper.session import DumpSession


class FakeDetector(Detector):
    """
    Detector driven by hint types.

    Values whose hint has a type in ``substitutes`` match that type and are
    replaced by the mapped value (a callable receives the original). Every
    call is recorded.
    """

    def __init__(self, substitutes=None, sub_types=()):
        self.substitutes = substitutes or {}
        self.sub_types = tuple(sub_types)
        self.calls = []

    def check(self, value, label, hint):
        self.calls.append((value, label, hint))
        if hint is None or hint.type not in self.substitutes:
            return []
        substitute = self.substitutes[hint.type]
        anonymized = substitute(value) if callable(substitute) else substitute
        return [DetectionResult(hint.type, self.sub_types, value, anonymized)]


class FakePool:
    """
    Connection pool that refuses to hand out more than ``size`` connections.

    ``respond(sql)`` returns ``(rows, column_names)`` for each executed query.
    Queries take ``delay`` seconds so concurrent callers overlap.
    """

    def __init__(self, size, respond, delay=0.01):
        self.size = size
        self.respond = respond
        self.delay = delay
        self.in_use = 0
        self.peak = 0
        self._lock = threading.Lock()

    def get_connection(self):
        with self._lock:
            if self.in_use >= self.size:
                raise PoolError("Failed getting connection; pool exhausted")
            self.in_use += 1
            self.peak = max(self.peak, self.in_use)
        return FakeConnection(self)

    def release(self):
        with self._lock:
            self.in_use -= 1


class FakeConnection:
    def __init__(self, pool):
        self.pool = pool

    def cursor(self, dictionary=False):
        return FakeCursor(self.pool)

    def close(self):
        self.pool.release()


class FakeCursor:
    def __init__(self, pool):
        self.pool = pool
        self.rows = []
        self.column_names = ()

    def execute(self, sql, params=None):
        time.sleep(self.pool.delay)
        self.rows, self.column_names = self.pool.respond(sql)

    def fetchall(self):
        return self.rows

    def close(self):
        pass


@pytest.fixture
def session():
    return DumpSession()


@pytest.fixture
def detector():
    return FakeDetector({"email": "REDACTED", "name": lambda v: f"anon-{v}"})
