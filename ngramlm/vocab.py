"""
Vocabulary

Bidirectional token <-> integer id mapping. Id 0 is reserved for the
epsilon placeholder, which only names the empty sequence when counts are
written out and is never counted as a real token.
"""

from typing import Dict, Iterable, List, Optional
from pathlib import Path

from .errors import VocabError


EPSILON_TOKEN = "<epsilon>"
EPSILON_ID = 0


class Vocabulary:
    """
    Token vocabulary with a reserved epsilon entry.

    Attributes:
        word_to_idx: Mapping from token to id (epsilon included)
        idx_to_word: Mapping from id to token (epsilon included)
    """

    def __init__(self, tokens: Iterable[str] = ()):
        self.word_to_idx: Dict[str, int] = {EPSILON_TOKEN: EPSILON_ID}
        self.idx_to_word: Dict[int, str] = {EPSILON_ID: EPSILON_TOKEN}

        for token in tokens:
            self.add(token)

    @classmethod
    def from_file(cls, path: str) -> 'Vocabulary':
        """
        Read a vocabulary file with one token per line.

        Only the first whitespace-separated field of each line is used and
        blank lines are skipped.
        """
        tokens = []
        with open(Path(path), 'r', encoding='utf-8') as f:
            for line in f:
                fields = line.split()
                if fields:
                    tokens.append(fields[0])
        return cls(tokens)

    def add(self, token: str) -> int:
        """Add a token if it is new and return its id."""
        idx = self.word_to_idx.get(token)
        if idx is None:
            idx = len(self.word_to_idx)
            self.word_to_idx[token] = idx
            self.idx_to_word[idx] = token
        return idx

    @property
    def epsilon(self) -> str:
        return EPSILON_TOKEN

    @property
    def epsilon_id(self) -> int:
        return EPSILON_ID

    def index_of(self, token: str) -> Optional[int]:
        """Return the id of a token, or None if it is not in the vocabulary."""
        return self.word_to_idx.get(token)

    def token_of(self, idx: int) -> str:
        try:
            return self.idx_to_word[idx]
        except KeyError:
            raise VocabError(f"Unknown token id: {idx}") from None

    def size(self) -> int:
        """Number of real tokens (epsilon excluded)."""
        return len(self.word_to_idx) - 1

    def ids(self) -> List[int]:
        """Ids of all real tokens, in id order."""
        return [idx for idx in sorted(self.idx_to_word) if idx != EPSILON_ID]

    def tokens(self) -> List[str]:
        return [self.idx_to_word[idx] for idx in self.ids()]

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, token: str) -> bool:
        return token in self.word_to_idx and token != EPSILON_TOKEN

    def __repr__(self) -> str:
        return f"Vocabulary(size={self.size()})"
