"""
N-gram Counter

Maps variable-length sequences of token ids to non-negative integer counts.
Keys are tuples, so sequences of different lengths (including the empty
sequence) share one table and compare structurally.
"""

from typing import Dict, Iterable, Iterator, List, Sequence, TextIO, Tuple
from collections import Counter

from .errors import CountFileError, VocabError
from .vocab import Vocabulary


NGram = Tuple[int, ...]


class NGramCounter:
    """Count table keyed by id sequences of any length."""

    def __init__(self):
        self._counts: Counter = Counter()

    def increment(self, sequence: Sequence[int]) -> int:
        """Increment the count of ``sequence`` and return the new count."""
        key = tuple(sequence)
        self._counts[key] += 1
        return self._counts[key]

    def count(self, sequence: Sequence[int]) -> int:
        """Return the count of ``sequence``, 0 if it was never incremented."""
        return self._counts.get(tuple(sequence), 0)

    def merge(self, other: 'NGramCounter') -> None:
        """Add every count of ``other`` into this counter."""
        self._counts.update(other._counts)

    def clear(self) -> None:
        self._counts.clear()

    def total(self) -> int:
        return sum(self._counts.values())

    def items(self) -> Iterator[Tuple[NGram, int]]:
        """Stored (sequence, count) pairs ordered by length, then ids."""
        for key in sorted(self._counts, key=lambda k: (len(k), k)):
            yield key, self._counts[key]

    def keys_of_length(self, length: int) -> List[NGram]:
        return [key for key, _ in self.items() if len(key) == length]

    def persist(self, stream: TextIO, vocabulary: Vocabulary) -> None:
        """
        Write one ``token token ... count`` line per stored sequence.

        The empty sequence is written as the vocabulary's epsilon symbol.
        """
        for key, count in self.items():
            if key:
                text = " ".join(vocabulary.token_of(idx) for idx in key)
            else:
                text = vocabulary.epsilon
            stream.write(f"{text} {count}\n")

    def load(self, lines: Iterable[str], vocabulary: Vocabulary) -> None:
        """
        Add counts parsed from lines in the :meth:`persist` format.

        Raises:
            CountFileError: If a line has no tokens or a non-integer count
            VocabError: If a token is not in the vocabulary
        """
        for line in lines:
            fields = line.split()
            if not fields:
                continue
            if len(fields) < 2:
                raise CountFileError(f"Malformed count line: {line.rstrip()!r}")
            try:
                count = int(fields[-1])
            except ValueError:
                raise CountFileError(f"Invalid count in line: {line.rstrip()!r}") from None
            if count < 0:
                raise CountFileError(f"Negative count in line: {line.rstrip()!r}")

            tokens = fields[:-1]
            if tokens == [vocabulary.epsilon]:
                key: NGram = ()
            else:
                ids = []
                for token in tokens:
                    idx = vocabulary.index_of(token)
                    if idx is None:
                        raise VocabError(f"Token not in vocabulary: {token!r}")
                    ids.append(idx)
                key = tuple(ids)
            self._counts[key] += count

    def to_dict(self) -> Dict[NGram, int]:
        return dict(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __contains__(self, sequence: Sequence[int]) -> bool:
        return tuple(sequence) in self._counts

    def __eq__(self, other) -> bool:
        if not isinstance(other, NGramCounter):
            return NotImplemented
        return self._counts == other._counts

    def __repr__(self) -> str:
        return f"NGramCounter(entries={len(self)})"
