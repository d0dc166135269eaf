"""Learned signature -> folder mappings built from confirmed placements."""

from datetime import datetime
from typing import Optional, Sequence

from loguru import logger

from filerouter.storage.base import KeyValueStore
from filerouter.utils.locks import KeyedLock

from .models import LearnedPattern, RoutingCandidate, RoutingMethod, as_leaf_path

PATTERN_PREFIX = "pattern:"


class LearnedPatternStore:
    """
    Persistent mapping from normalized signature to confirmed folder.

    Lookups are exact key matches. A confirmation of the same folder bumps
    ``times_confirmed``; a confirmation of a different folder replaces the
    folder and restarts the count at 1 (a correction supersedes history).
    Entries are only removed by ``clear`` / ``clear_all``.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        base_confidence: float = 0.92,
        max_confidence: float = 0.99,
        growth: float = 0.5,
    ):
        """
        Args:
            kv: Persistence backend
            base_confidence: Confidence of a pattern confirmed once
            max_confidence: Ceiling approached as confirmations accumulate
            growth: Fraction of the remaining gap closed per extra confirmation
        """
        if not 0.0 <= base_confidence <= max_confidence < 1.0:
            raise ValueError("Expected 0 <= base_confidence <= max_confidence < 1")
        if not 0.0 < growth <= 1.0:
            raise ValueError("growth must be in (0, 1]")
        self.kv = kv
        self.base_confidence = base_confidence
        self.max_confidence = max_confidence
        self.growth = growth
        self._locks = KeyedLock()

    @staticmethod
    def _key(signature: str) -> str:
        return f"{PATTERN_PREFIX}{signature}"

    def lookup(self, signature: str) -> Optional[LearnedPattern]:
        """Exact-match lookup of a signature."""
        data = self.kv.get(self._key(signature))
        return LearnedPattern.from_dict(data) if data else None

    def confirm(self, signature: str, leaf_path: Sequence[str]) -> LearnedPattern:
        """
        Record that ``signature`` belongs in ``leaf_path``.

        Returns:
            The stored pattern after the update
        """
        path = as_leaf_path(leaf_path)
        if not path:
            raise ValueError("Cannot confirm an empty folder path")

        with self._locks.hold(signature):
            existing = self.lookup(signature)
            if existing is None:
                pattern = LearnedPattern(signature=signature, leaf_path=path, times_confirmed=1)
                logger.info(f"Learned new pattern {signature!r} -> {'/'.join(path)}")
            elif existing.leaf_path == path:
                pattern = existing
                pattern.times_confirmed += 1
                logger.debug(f"Pattern {signature!r} confirmed {pattern.times_confirmed}x")
            else:
                pattern = LearnedPattern(signature=signature, leaf_path=path, times_confirmed=1)
                logger.info(
                    f"Pattern {signature!r} corrected: "
                    f"{'/'.join(existing.leaf_path)} -> {'/'.join(path)}"
                )

            pattern.updated_at = datetime.now().isoformat(timespec="microseconds")
            self.kv.set(self._key(signature), pattern.to_dict())

        return pattern

    def clear(self, signature: str) -> bool:
        """Remove a single pattern (administrative cleanup only)."""
        with self._locks.hold(signature):
            removed = self.kv.delete(self._key(signature))
        if removed:
            logger.info(f"Cleared learned pattern {signature!r}")
        return removed

    def clear_all(self) -> int:
        """Remove every learned pattern. Returns how many were removed."""
        count = 0
        for key, _ in list(self.kv.iter_prefix(PATTERN_PREFIX)):
            if self.kv.delete(key):
                count += 1
        logger.info(f"Cleared {count} learned patterns")
        return count

    def all(self) -> list[LearnedPattern]:
        """Every stored pattern, ordered by signature."""
        return [LearnedPattern.from_dict(data) for _, data in self.kv.iter_prefix(PATTERN_PREFIX)]

    def count(self) -> int:
        return sum(1 for _ in self.kv.iter_prefix(PATTERN_PREFIX))

    def confidence_for(self, pattern: LearnedPattern) -> float:
        """
        Confidence contributed by a pattern.

        Increases with ``times_confirmed`` and stays at or below
        ``max_confidence``, which is itself below 1.0.
        """
        extra = max(0, pattern.times_confirmed - 1)
        if extra == 0:
            return self.base_confidence
        gap = self.max_confidence - self.base_confidence
        return self.base_confidence + gap * (1.0 - (1.0 - self.growth) ** extra)

    def candidate(self, signature: str) -> Optional[RoutingCandidate]:
        """Lookup wrapped as a routing candidate."""
        pattern = self.lookup(signature)
        if pattern is None:
            return None
        return RoutingCandidate(
            leaf_path=pattern.leaf_path,
            confidence=self.confidence_for(pattern),
            method=RoutingMethod.LEARNED,
            reasoning=f"Learned from {pattern.times_confirmed} confirmed placement(s)",
        )
