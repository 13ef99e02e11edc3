"""Ranked set of entries voted on pair by pair."""

import math
import random
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

import structlog

from src.rankset import persistence, selection
from src.rankset.metrics import SelectionMetrics
from src.rankset.models import Entry
from src.rankset.persistence import SaveFormat
from src.rankset.selection import Pair, PairStrategy


logger = structlog.get_logger()


def _percentage_sort_key(entry: Entry) -> tuple[bool, float]:
    """Sort key placing higher percentages first and NaN last.

    Entries without votes all map to the same key, so the stable sort keeps
    their relative order.
    """
    percentage = entry.percentage()
    if math.isnan(percentage):
        return True, 0.0
    return False, -percentage


class RankedSet:
    """Ordered collection of entries plus a private random source.

    The random source is only used by the pair selection strategies. It is
    never persisted: every construction or load gets its own, either the
    one passed in or a freshly seeded ``random.Random``.

    Selection strategies return positions into the live collection so the
    caller can update the chosen entries in place.
    """

    def __init__(
        self,
        entries: Iterable[Entry] | None = None,
        rng: random.Random | None = None,
        metrics: SelectionMetrics | None = None,
    ) -> None:
        """Initialize the set.

        Args:
            entries: Initial entries, kept in the given order.
            rng: Random source for pair selection.
            metrics: Optional metrics instance.
        """
        self._entries: list[Entry] = list(entries or [])
        self._rng = rng if rng is not None else random.Random()
        self._metrics = metrics or SelectionMetrics.get_instance()
        self._log = logger.bind(component="rankset")

    @classmethod
    def create(
        cls, names: Iterable[str], rng: random.Random | None = None
    ) -> "RankedSet":
        """Build a set of fresh entries, one per name (duplicates allowed).

        Args:
            names: Entry names in display order.
            rng: Random source for pair selection.

        Returns:
            New RankedSet.
        """
        return cls((Entry.from_name(name) for name in names), rng=rng)

    @classmethod
    def load(
        cls,
        path: Path,
        save_format: SaveFormat | None = None,
        rng: random.Random | None = None,
    ) -> "RankedSet":
        """Load a set from a save file.

        Args:
            path: Save file to read.
            save_format: Expected format; detected from the file when None.
            rng: Random source for pair selection.

        Returns:
            New RankedSet holding the file's entries.

        Raises:
            OSError: If the file cannot be read.
            FormatMismatchError: If the file is not a recognized save file.
            DecodeError: If the file body is invalid.
        """
        if save_format is None:
            save_format = persistence.detect_format(path)
        entries = persistence.read_entries(path, save_format)
        ranked = cls(entries, rng=rng)
        ranked._metrics.record_load()
        ranked._log.info(
            "rankset_loaded",
            path=str(path),
            format=save_format.value,
            entries=len(entries),
        )
        return ranked

    @classmethod
    def from_names_file(
        cls, path: Path, rng: random.Random | None = None
    ) -> "RankedSet":
        """Bootstrap a set from a newline-delimited list of names.

        Args:
            path: Text file with one name per line.
            rng: Random source for pair selection.

        Returns:
            New RankedSet with zeroed counters.

        Raises:
            OSError: If the file cannot be read.
            DecodeError: If the file is not valid UTF-8.
        """
        ranked = cls.create(persistence.read_names(path), rng=rng)
        ranked._metrics.record_load()
        ranked._log.info("names_imported", path=str(path), entries=len(ranked))
        return ranked

    def save(self, path: Path, save_format: SaveFormat = SaveFormat.JSON) -> None:
        """Write the set to ``path``, overwriting any existing file.

        Args:
            path: Target file.
            save_format: Encoding to write.

        Raises:
            EncodeError: If a counter does not fit in 32 bits.
            OSError: If the file cannot be written.
        """
        size = persistence.write_entries(path, self._entries, save_format)
        self._metrics.record_save()
        self._log.info(
            "rankset_saved",
            path=str(path),
            format=save_format.value,
            entries=len(self._entries),
            bytes=size,
        )

    @property
    def entries(self) -> list[Entry]:
        """Live list of entries."""
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> Entry:
        return self._entries[index]

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RankedSet):
            return NotImplemented
        return self._entries == other._entries

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"RankedSet({self._entries!r})"

    def add(self, name: str) -> None:
        """Append a fresh entry named ``name``."""
        self._entries.append(Entry.from_name(name))

    def remove(self, predicate: Callable[[Entry], bool]) -> int:
        """Delete every entry matching ``predicate``, keeping the rest in order.

        Args:
            predicate: Returns True for entries to delete.

        Returns:
            Number of entries removed.
        """
        before = len(self._entries)
        self._entries[:] = [entry for entry in self._entries if not predicate(entry)]
        return before - len(self._entries)

    def reset(self) -> None:
        """Reset counters and lock flags of every entry."""
        for entry in self._entries:
            entry.reset()

    def record_vote(self, winner: int, loser: int) -> None:
        """Apply one comparison outcome.

        Args:
            winner: Position of the preferred entry.
            loser: Position of the other entry.
        """
        self._entries[winner].record_result(won=True)
        self._entries[loser].record_result(won=False)
        self._metrics.record_vote()

    def sort_by_percentage(self) -> None:
        """Sort in place by descending percentage, zero-vote entries last."""
        self._entries.sort(key=_percentage_sort_key)

    def active_indices(self) -> list[int]:
        """Positions of unlocked entries."""
        return selection.active_indices(self._entries)

    def min_votes(self) -> list[int]:
        """Positions of active entries sharing the minimum vote count."""
        return selection.min_votes(self._entries)

    def random_pair(self) -> Pair | None:
        """Two distinct active entries chosen uniformly."""
        return selection.random_pair(self._entries, self._rng)

    def min_pair(self) -> Pair | None:
        """A least-voted entry paired with any other active entry."""
        return selection.min_pair(self._entries, self._rng)

    def equal_pair(self) -> Pair | None:
        """Two active entries with equal percentages, if any."""
        return selection.equal_pair(self._entries, self._rng)

    def nearest_pair(self) -> Pair | None:
        """The two active entries with the closest percentages."""
        return selection.nearest_pair(self._entries, self._rng)

    def min_equal_pair(self) -> Pair | None:
        """Coin flip between equal_pair (or min_pair) and min_pair."""
        return selection.min_equal_pair(self._entries, self._rng)

    def select_pair(self, strategy: PairStrategy) -> Pair | None:
        """Select the next pair with the named strategy.

        Args:
            strategy: Strategy to apply.

        Returns:
            Pair of positions, or None when the session should end.
        """
        pair = selection.STRATEGIES[strategy](self._entries, self._rng)

        if pair is None:
            self._metrics.record_no_pair()
            self._log.info(
                "no_pair_available",
                strategy=strategy.value,
                active=len(self.active_indices()),
            )
            return None

        self._metrics.record_pair(strategy.value)
        self._log.debug(
            "pair_selected",
            strategy=strategy.value,
            first=self._entries[pair[0]].name,
            second=self._entries[pair[1]].name,
        )
        return pair
