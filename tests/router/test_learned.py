"""Tests for the learned pattern store."""

import threading

import pytest

from filerouter.router.learned import LearnedPatternStore
from filerouter.router.models import RoutingMethod
from filerouter.storage.memory import MemoryKeyValueStore


class TestLearnedPatternStore:
    """Test LearnedPatternStore."""

    def test_init_defaults(self, patterns):
        assert patterns.base_confidence == 0.92
        assert patterns.max_confidence == 0.99
        assert patterns.growth == 0.5

    def test_init_rejects_bad_curve(self):
        with pytest.raises(ValueError):
            LearnedPatternStore(MemoryKeyValueStore(), base_confidence=0.95, max_confidence=0.9)
        with pytest.raises(ValueError):
            LearnedPatternStore(MemoryKeyValueStore(), max_confidence=1.0)
        with pytest.raises(ValueError):
            LearnedPatternStore(MemoryKeyValueStore(), growth=0.0)

    def test_lookup_missing(self, patterns):
        assert patterns.lookup("document:fattura") is None
        assert patterns.candidate("document:fattura") is None

    def test_confirm_new_pattern(self, patterns):
        pattern = patterns.confirm("document:fattura", ["Amministrativo", "Fatture"])

        assert pattern.leaf_path == ("Amministrativo", "Fatture")
        assert pattern.times_confirmed == 1
        assert pattern.updated_at is not None
        assert patterns.lookup("document:fattura") == pattern

    def test_confirm_same_path_increments(self, patterns):
        patterns.confirm("document:fattura", ["Amministrativo", "Fatture"])
        pattern = patterns.confirm("document:fattura", "Amministrativo/Fatture")

        assert pattern.times_confirmed == 2

    def test_correction_overwrites_and_resets(self, patterns):
        """Confirmed twice, then a different folder: last write wins, count restarts."""
        patterns.confirm("fattura", ["Amministrativo", "Fatture"])
        patterns.confirm("fattura", ["Amministrativo", "Fatture"])
        assert patterns.lookup("fattura").times_confirmed == 2

        pattern = patterns.confirm("fattura", ["Contabilita"])

        assert pattern.leaf_path == ("Contabilita",)
        assert pattern.times_confirmed == 1
        assert patterns.lookup("fattura").leaf_path == ("Contabilita",)

    def test_flip_flopping_corrections(self, patterns):
        """Alternating corrections never accumulate confidence."""
        for _ in range(3):
            patterns.confirm("fattura", ["A"])
            patterns.confirm("fattura", ["B"])

        pattern = patterns.lookup("fattura")
        assert pattern.leaf_path == ("B",)
        assert pattern.times_confirmed == 1
        assert patterns.confidence_for(pattern) == patterns.base_confidence

    def test_confirm_empty_path(self, patterns):
        with pytest.raises(ValueError):
            patterns.confirm("fattura", [])

    def test_confidence_curve(self, patterns):
        """Confidence grows with confirmations and stays below max."""
        patterns.confirm("sig", ["A"])
        previous = patterns.candidate("sig").confidence
        assert previous == 0.92

        for _ in range(20):
            patterns.confirm("sig", ["A"])
            current = patterns.candidate("sig").confidence
            assert current >= previous
            assert current <= 0.99
            previous = current

        assert previous == pytest.approx(0.99, abs=1e-4)

    def test_candidate(self, patterns):
        patterns.confirm("document:fattura", ["9_PARCELLA"])

        candidate = patterns.candidate("document:fattura")

        assert candidate.method == RoutingMethod.LEARNED
        assert candidate.leaf_path == ("9_PARCELLA",)
        assert "1 confirmed" in candidate.reasoning

    def test_clear(self, patterns):
        patterns.confirm("a", ["A"])

        assert patterns.clear("a") is True
        assert patterns.clear("a") is False
        assert patterns.lookup("a") is None

    def test_all_and_clear_all(self, patterns):
        patterns.confirm("b", ["B"])
        patterns.confirm("a", ["A"])

        assert [p.signature for p in patterns.all()] == ["a", "b"]
        assert patterns.count() == 2
        assert patterns.clear_all() == 2
        assert patterns.count() == 0

    def test_concurrent_confirmations_are_counted(self, patterns):
        """Confirmations of one signature from many threads are not lost."""
        def confirm_many():
            for _ in range(25):
                patterns.confirm("document:verbale", ["6_VERBALI_NOTIF_COMUNICAZIONI", "VERBALI"])

        threads = [threading.Thread(target=confirm_many) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert patterns.lookup("document:verbale").times_confirmed == 100
