"""
Corpus Reading and Preprocessing

This module streams training sentences from a text file and converts
them into padded id sequences for n-gram counting.
"""

from typing import Generator, Iterable, List
from pathlib import Path

from .vocab import Vocabulary


# Default reserved tokens
START_TOKEN = "<s>"
END_TOKEN = "</s>"
UNK_TOKEN = "<UNK>"


def preprocess_text(text: str, lowercase: bool = False) -> List[str]:
    """
    Split a line of text into tokens.

    Args:
        text: Raw input line
        lowercase: Whether to lowercase the text first

    Returns:
        List of whitespace-separated tokens
    """
    if lowercase:
        text = text.lower()

    return text.split()


def add_sentence_markers(tokens: List, n: int,
                         start=START_TOKEN, end=END_TOKEN) -> List:
    """
    Add start and end markers to a sentence for n-gram training.

    Args:
        tokens: Tokens (or ids) of the sentence
        n: The n in n-gram (determines number of start markers)
        start: Start marker to prepend
        end: End marker to append

    Returns:
        Tokens with (n-1) start markers and one end marker
    """
    return [start] * (n - 1) + list(tokens) + [end]


def read_sentences(path: str, lowercase: bool = False) -> Generator[List[str], None, None]:
    """
    Stream tokenized sentences from a corpus file, one sentence per line.

    Blank lines yield empty sentences.
    """
    with open(Path(path), 'r', encoding='utf-8') as f:
        for line in f:
            yield preprocess_text(line, lowercase=lowercase)


def count_lines(path: str) -> int:
    """Count the sentences in a corpus file without keeping them."""
    with open(Path(path), 'r', encoding='utf-8') as f:
        return sum(1 for _ in f)


def words_to_indices(words: Iterable[str], vocab: Vocabulary, unk_idx: int) -> List[int]:
    """Map tokens to ids, substituting ``unk_idx`` for tokens not in the vocabulary."""
    return [vocab.index_of(word) if word in vocab else unk_idx for word in words]


def convert_words_to_indices(words: List[str], vocab: Vocabulary, n: int,
                             bos_idx: int, eos_idx: int, unk_idx: int) -> List[int]:
    """
    Map tokens to ids and pad the result for an order-n model.

    Args:
        words: Tokens of one sentence
        vocab: Vocabulary used for the lookup
        n: Model order
        bos_idx: Id of the begin-of-sentence marker
        eos_idx: Id of the end-of-sentence marker
        unk_idx: Id substituted for out-of-vocabulary tokens

    Returns:
        Padded id sequence
    """
    ids = words_to_indices(words, vocab, unk_idx)
    return add_sentence_markers(ids, n, start=bos_idx, end=eos_idx)
