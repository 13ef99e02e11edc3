"""Metrics collection for the rankset module."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class SelectionMetrics:
    """Metrics for pair selection and vote recording.

    Attributes:
        pairs_by_strategy: Pairs handed out per strategy name.
        no_pair_total: Selections that found no pair available.
        votes_recorded: Comparison outcomes applied to the set.
        files_loaded: Save files or name lists loaded.
        files_saved: Save files written.
    """

    pairs_by_strategy: dict[str, int] = field(default_factory=dict)
    no_pair_total: int = 0
    votes_recorded: int = 0
    files_loaded: int = 0
    files_saved: int = 0

    _instance: ClassVar["SelectionMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "SelectionMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_pair(self, strategy: str) -> None:
        """Record a pair handed out by a strategy.

        Args:
            strategy: Strategy name.
        """
        self.pairs_by_strategy[strategy] = self.pairs_by_strategy.get(strategy, 0) + 1

    def record_no_pair(self) -> None:
        """Record a selection that found fewer than two active entries."""
        self.no_pair_total += 1

    def record_vote(self) -> None:
        """Record one applied comparison outcome."""
        self.votes_recorded += 1

    def record_load(self) -> None:
        """Record a loaded file."""
        self.files_loaded += 1

    def record_save(self) -> None:
        """Record a written file."""
        self.files_saved += 1

    @property
    def pairs_total(self) -> int:
        """Total pairs handed out across all strategies."""
        return sum(self.pairs_by_strategy.values())

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "pairs_total": self.pairs_total,
            "pairs_by_strategy": dict(self.pairs_by_strategy),
            "no_pair_total": self.no_pair_total,
            "votes_recorded": self.votes_recorded,
            "files_loaded": self.files_loaded,
            "files_saved": self.files_saved,
        }
