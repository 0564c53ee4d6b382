"""
Unit tests for cache.py and stats.py
"""

import threading

import pytest
import yaml

from anon_dumper.cache import SubstitutionCache, cache_keys, normalize_value
from anon_dumper.stats import NOT_MATCHED, AnonymizationStats, PhaseTimers


class TestNormalizeValue:
    """Tests for normalize_value."""

    def test_case_and_whitespace(self):
        """Test trimming and case folding."""
        assert normalize_value("  Alice@Example.COM ") == "alice@example.com"

    def test_diacritics(self):
        """Test diacritics are folded."""
        assert normalize_value("Zoë Müller") == "zoe muller"
        assert normalize_value("José") == normalize_value("jose")

    def test_non_string(self):
        """Test non-string values are stringified."""
        assert normalize_value(42) == "42"


class TestCacheKeys:
    """Tests for cache_keys."""

    def test_primary_and_secondary(self):
        """Test the primary key carries sub-types and the secondary does not."""
        primary, secondary = cache_keys("name", ("first", "last"), "alice")
        assert primary == "name|first,last|alice"
        assert secondary == "name|alice"

    def test_no_sub_types(self):
        """Test keys without sub-types."""
        primary, secondary = cache_keys("email", (), "a@x.com")
        assert primary == "email||a@x.com"
        assert secondary == "email|a@x.com"


class TestSubstitutionCache:
    """Tests for SubstitutionCache."""

    def test_get_missing(self):
        """Test missing keys return the default."""
        cache = SubstitutionCache()
        assert cache.get("x") is None
        assert cache.get("x", "fallback") == "fallback"

    def test_put_if_absent_keeps_first(self):
        """Test the first stored value wins."""
        cache = SubstitutionCache()
        assert cache.put_if_absent("k", "first") == "first"
        assert cache.put_if_absent("k", "second") == "first"
        assert cache.get("k") == "first"
        assert len(cache) == 1
        assert "k" in cache

    def test_clear(self):
        """Test clearing the cache."""
        cache = SubstitutionCache()
        cache.put_if_absent("k", "v")
        cache.clear()
        assert len(cache) == 0

    def test_concurrent_put_if_absent(self):
        """Test concurrent writers agree on one value."""
        cache = SubstitutionCache()
        seen = []
        lock = threading.Lock()

        def writer(index):
            value = cache.put_if_absent("shared", f"value-{index}")
            with lock:
                seen.append(value)

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(set(seen)) == 1
        assert cache.get("shared") == seen[0]


class TestAnonymizationStats:
    """Tests for AnonymizationStats."""

    def test_record_and_snapshot(self):
        """Test counting per label and type."""
        stats = AnonymizationStats()
        stats.record("users.email", "email")
        stats.record("users.email", "email")
        stats.record("users.email", NOT_MATCHED)
        assert stats.snapshot() == {"users.email": {"email": 2, NOT_MATCHED: 1}}

    def test_clear(self):
        """Test clearing statistics."""
        stats = AnonymizationStats()
        stats.record("users.email", "email")
        stats.clear()
        assert stats.snapshot() == {}

    def test_log_summary(self, caplog):
        """Test the summary is logged per label."""
        import logging
        caplog.set_level(logging.INFO)
        stats = AnonymizationStats()
        stats.record("users.email", "email")
        stats.log_summary()
        assert "users.email: email=1" in caplog.text

    def test_to_hint_tree(self):
        """Test single-type columns become fixed hints."""
        stats = AnonymizationStats()
        stats.record("users.email", "email")
        stats.record("users.email", NOT_MATCHED)
        stats.record("users.note", "email")
        stats.record("users.note", "phone")
        stats.record("users.bio", NOT_MATCHED)
        stats.record("users.profile.$.phone", "phone")

        assert stats.to_hint_tree() == {"users": {"email": "email"}}

    def test_to_hint_tree_keeps_original_names(self):
        """Test generated hints use the recorded table and column names."""
        stats = AnonymizationStats()
        stats.record("customers.email", "email", "Customers", "eMail")
        stats.record("customers.email", "email", "Customers", "eMail")

        assert stats.to_hint_tree() == {"Customers": {"eMail": "email"}}

    def test_to_hint_tree_keeps_seed(self):
        """Test configured hints are not replaced."""
        stats = AnonymizationStats()
        stats.record("users.email", "email")
        stats.record("users.phone", "phone")
        stats.record("logs.message", "email")
        seed = {"users": {"email": {"type": "generic"}}, "logs": "generic"}

        tree = stats.to_hint_tree(seed)

        assert tree["users"] == {"email": {"type": "generic"}, "phone": "phone"}
        assert tree["logs"] == "generic"
        assert seed == {"users": {"email": {"type": "generic"}}, "logs": "generic"}

    def test_write_hint_file(self, tmp_path):
        """Test the hint tree is written as YAML."""
        stats = AnonymizationStats()
        stats.record("users.email", "email")
        path = stats.write_hint_file(str(tmp_path / "out" / "hints.yaml"))
        assert yaml.safe_load(path.read_text()) == {"users": {"email": "email"}}


class TestPhaseTimers:
    """Tests for PhaseTimers."""

    def test_measure(self):
        """Test a measured phase is recorded."""
        timers = PhaseTimers()
        with timers.measure("phase"):
            pass
        assert "phase" in timers.snapshot()
        assert timers.snapshot()["phase"] >= 0

    def test_measure_records_on_error(self):
        """Test the phase is recorded even if it raises."""
        timers = PhaseTimers()
        with pytest.raises(RuntimeError):
            with timers.measure("broken"):
                raise RuntimeError("boom")
        assert "broken" in timers.snapshot()

    def test_clear(self):
        """Test clearing timers."""
        timers = PhaseTimers()
        with timers.measure("phase"):
            pass
        timers.clear()
        assert timers.snapshot() == {}
