"""
N-gram Language Model Implementation

This module contains the LangModel class, which collects the counts
needed for Witten-Bell smoothing in a single training pass and then
answers probability queries for n-grams up to the model order.
"""

import logging
import math
from typing import Callable, Dict, Iterable, List, Optional, Sequence
from pathlib import Path

from .config import ModelConfig
from .corpus import (
    START_TOKEN, END_TOKEN, UNK_TOKEN,
    convert_words_to_indices, read_sentences, words_to_indices
)
from .counter import NGramCounter
from .errors import CountFileError, FrozenModelError, InvalidArgument, VocabError
from .smoothing import WittenBellSmoother
from .vocab import Vocabulary


logger = logging.getLogger(__name__)

PRED_HEADER = "# Pred counts."
HIST_HEADER = "# Hist counts."
HIST_ONE_PLUS_HEADER = "# Hist 1+ counts."

ProgressCallback = Callable[[int, Optional[int], str], None]


class LangModel:
    """
    N-gram Language Model with Witten-Bell smoothing

    Attributes:
        vocab: Vocabulary used to map tokens to ids
        n: The order of the model (e.g., 2 for bigram, 3 for trigram)
        bos_idx, eos_idx, unk_idx: Ids of the reserved tokens
        pred_counts: Counts of (history + predicted token) n-grams
        hist_counts: Number of times each history was followed by any token
        hist_one_plus_counts: Number of distinct tokens seen after each history
    """

    def __init__(self, vocab: Vocabulary, n: int = 3,
                 bos: str = START_TOKEN, eos: str = END_TOKEN, unk: str = UNK_TOKEN):
        """
        Initialize an untrained model.

        Args:
            vocab: Vocabulary containing the reserved tokens
            n: Order of the model (default: 3 for trigram)
            bos: Begin-of-sentence token
            eos: End-of-sentence token
            unk: Token standing in for out-of-vocabulary words

        Raises:
            InvalidArgument: If n is less than 1
            VocabError: If a reserved token is missing from the vocabulary
        """
        if n < 1:
            raise InvalidArgument("n must be at least 1")

        self.vocab = vocab
        self.n = n
        self.bos_idx = self._reserved_index(bos)
        self.eos_idx = self._reserved_index(eos)
        self.unk_idx = self._reserved_index(unk)

        # Counts
        self.pred_counts = NGramCounter()
        self.hist_counts = NGramCounter()
        self.hist_one_plus_counts = NGramCounter()

        self.smoother = WittenBellSmoother(
            vocab.size(), self.pred_counts, self.hist_counts, self.hist_one_plus_counts
        )

        self.is_frozen = False
        self.training_stats: Dict = {}

    def _reserved_index(self, token: str) -> int:
        idx = self.vocab.index_of(token)
        if idx is None or idx == self.vocab.epsilon_id:
            raise VocabError(f"Vocabulary missing reserved token: {token!r}")
        return idx

    @classmethod
    def from_config(cls, config: ModelConfig,
                    progress_callback: Optional[ProgressCallback] = None) -> 'LangModel':
        """
        Load the vocabulary, train on the corpus and write counts if configured.

        Args:
            config: Validated model configuration
            progress_callback: Optional callback(current, total, stage)

        Returns:
            Trained, frozen model
        """
        vocab = Vocabulary.from_file(config.vocab)
        logger.info("Loaded vocabulary of %d tokens from %s", vocab.size(), config.vocab)

        model = cls(vocab, n=config.n, bos=config.bos, eos=config.eos, unk=config.unk)
        model.train_file(config.train, lowercase=config.lowercase,
                         progress_callback=progress_callback)

        if config.count_file:
            model.write_counts(config.count_file)

        return model

    # Training

    def _check_mutable(self) -> None:
        if self.is_frozen:
            raise FrozenModelError("Model is frozen; counts can no longer be updated")

    def count_sentence_ngrams(self, ids: Sequence[int]) -> None:
        """
        Update all counts for one padded sentence.

        Args:
            ids: Sentence ids with (n-1) begin markers prepended and one
                end marker appended
        """
        self._check_mutable()

        for t in range(self.n - 1, len(ids)):
            word = ids[t]
            for k in range(min(self.n - 1, t) + 1):
                history = tuple(ids[t - k:t])
                ngram = history + (word,)

                seen_before = self.pred_counts.count(ngram)
                self.pred_counts.increment(ngram)
                self.hist_counts.increment(history)
                if seen_before == 0:
                    self.hist_one_plus_counts.increment(history)

    def ids_for(self, tokens: Sequence[str]) -> List[int]:
        """Map surface tokens to ids, unknown ones to the UNK id."""
        return words_to_indices(tokens, self.vocab, self.unk_idx)

    def encode(self, tokens: List[str]) -> List[int]:
        """Convert a tokenized sentence to padded ids."""
        return convert_words_to_indices(
            tokens, self.vocab, self.n,
            self.bos_idx, self.eos_idx, self.unk_idx
        )

    def train(self, sentences: Iterable[List[str]],
              total: Optional[int] = None,
              progress_callback: Optional[ProgressCallback] = None) -> Dict:
        """
        Count every sentence, then freeze the model.

        Args:
            sentences: Iterable of tokenized sentences, consumed once
            total: Number of sentences, if known, for progress reporting
            progress_callback: Optional callback(current, total, stage)

        Returns:
            Dictionary of training statistics
        """
        self._check_mutable()
        logger.info("Training order-%d model", self.n)

        num_sentences = 0
        num_tokens = 0
        num_oov = 0

        for tokens in sentences:
            self.count_sentence_ngrams(self.encode(tokens))
            num_sentences += 1
            num_tokens += len(tokens)
            num_oov += sum(1 for token in tokens if token not in self.vocab)

            if num_sentences % 1000 == 0:
                logger.debug("Counted %d sentences", num_sentences)
                if progress_callback:
                    progress_callback(num_sentences, total, "Counting n-grams")

        if progress_callback:
            progress_callback(num_sentences, total or num_sentences, "Complete")

        self.freeze()

        self.training_stats = {
            'n': self.n,
            'vocab_size': self.vocab.size(),
            'num_sentences': num_sentences,
            'num_tokens': num_tokens,
            'oov_tokens': num_oov,
            'unique_ngrams': len(self.pred_counts),
            'unique_histories': len(self.hist_counts),
        }
        logger.info("Counted %d sentences (%d tokens, %d out of vocabulary)",
                    num_sentences, num_tokens, num_oov)

        return self.training_stats

    def train_file(self, path: str, lowercase: bool = False,
                   total: Optional[int] = None,
                   progress_callback: Optional[ProgressCallback] = None) -> Dict:
        """Stream a corpus file with one sentence per line into :meth:`train`."""
        logger.info("Reading training data from %s", path)
        return self.train(read_sentences(path, lowercase=lowercase),
                          total=total, progress_callback=progress_callback)

    def merge(self, other: 'LangModel') -> None:
        """
        Add the counts of another model trained on different sentences.

        Prediction and history counts are summed. Distinct-continuation
        counts are not additive across shards, so they are recomputed from
        the merged prediction counts.

        Raises:
            InvalidArgument: If the models differ in order, vocabulary size
                or reserved ids
            FrozenModelError: If this model is already frozen
        """
        self._check_mutable()
        if (other.n != self.n or other.vocab.size() != self.vocab.size()
                or (other.bos_idx, other.eos_idx, other.unk_idx)
                != (self.bos_idx, self.eos_idx, self.unk_idx)):
            raise InvalidArgument("Cannot merge counts of incompatible models")

        self.pred_counts.merge(other.pred_counts)
        self.hist_counts.merge(other.hist_counts)

        self.hist_one_plus_counts.clear()
        for ngram, count in self.pred_counts.items():
            if count > 0:
                self.hist_one_plus_counts.increment(ngram[:-1])

    def freeze(self) -> None:
        self.is_frozen = True

    # Queries

    def _check_ngram(self, ngram: Sequence[int]) -> None:
        if len(ngram) < 1 or len(ngram) > self.n:
            raise InvalidArgument(
                f"Invalid n-gram size {len(ngram)}; expected 1 to {self.n}"
            )

    def get_probability(self, ngram: Sequence[int]) -> float:
        """
        Calculate the smoothed probability of the last id given the others.

        Args:
            ngram: 1 to n token ids, oldest first

        Returns:
            Probability in (0, 1]

        Raises:
            InvalidArgument: If the n-gram is empty or longer than n
        """
        self._check_ngram(ngram)
        return self.smoother.probability(ngram)

    def backoff_weight(self, history: Sequence[int]) -> float:
        """Return the interpolation weight λ of a history of length 0 to n-1."""
        if len(history) > self.n - 1:
            raise InvalidArgument(
                f"Invalid history size {len(history)}; expected 0 to {self.n - 1}"
            )
        return self.smoother.backoff_weight(history)

    def log_probability(self, ngram: Sequence[int]) -> float:
        """Calculate the natural log probability of an n-gram."""
        return math.log(self.get_probability(ngram))

    def score_tokens(self, tokens: Sequence[str]) -> float:
        """Score an n-gram given as surface tokens, mapping unknown ones to UNK."""
        return self.get_probability(self.ids_for(tokens))

    def _sentence_ngrams(self, tokens: List[str]):
        ids = self.encode(tokens)
        for t in range(self.n - 1, len(ids)):
            yield ids[t - self.n + 1:t + 1]

    def sentence_log_probability(self, tokens: List[str]) -> float:
        """
        Calculate the log probability of a sentence, end marker included.

        Args:
            tokens: List of tokens

        Returns:
            Natural log probability of the sentence
        """
        return sum(self.log_probability(ngram) for ngram in self._sentence_ngrams(tokens))

    def perplexity(self, sentences: Iterable[List[str]]) -> float:
        """
        Calculate perplexity on a set of sentences.

        Perplexity = exp(-1/T * sum(log P(w_i|history)))

        Where T counts every predicted token, end markers included.

        Raises:
            InvalidArgument: If there is nothing to score
        """
        total_log_prob = 0.0
        total_words = 0

        for sent in sentences:
            for ngram in self._sentence_ngrams(sent):
                total_log_prob += self.log_probability(ngram)
                total_words += 1

        if total_words == 0:
            raise InvalidArgument("Cannot compute perplexity of an empty corpus")

        return math.exp(-total_log_prob / total_words)

    # Count files

    def write_counts(self, path: str) -> None:
        """Write the three count tables to a plain-text file."""
        path = Path(path)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(PRED_HEADER + "\n")
            self.pred_counts.persist(f, self.vocab)
            f.write(HIST_HEADER + "\n")
            self.hist_counts.persist(f, self.vocab)
            f.write(HIST_ONE_PLUS_HEADER + "\n")
            self.hist_one_plus_counts.persist(f, self.vocab)

        logger.info("Wrote counts to %s", path)

    @classmethod
    def read_counts(cls, path: str, vocab: Vocabulary, n: int = 3,
                    bos: str = START_TOKEN, eos: str = END_TOKEN,
                    unk: str = UNK_TOKEN) -> 'LangModel':
        """
        Rebuild a frozen model from a file written by :meth:`write_counts`.

        Raises:
            CountFileError: If the file has no section headers, a line before
                the first header, or an n-gram longer than n
        """
        model = cls(vocab, n=n, bos=bos, eos=eos, unk=unk)
        sections = {
            PRED_HEADER: model.pred_counts,
            HIST_HEADER: model.hist_counts,
            HIST_ONE_PLUS_HEADER: model.hist_one_plus_counts,
        }

        lines: Dict[str, List[str]] = {}
        current = None
        with open(Path(path), 'r', encoding='utf-8') as f:
            for line in f:
                stripped = line.strip()
                if stripped in sections:
                    current = stripped
                    lines.setdefault(current, [])
                elif stripped:
                    if current is None:
                        raise CountFileError(f"Count line before any section header: {stripped!r}")
                    lines[current].append(stripped)

        if not lines:
            raise CountFileError(f"No count sections found in {path}")

        for header, section_lines in lines.items():
            sections[header].load(section_lines, vocab)

        longest = max((len(key) for key, _ in model.pred_counts.items()), default=0)
        if longest > n:
            raise CountFileError(f"Count file holds {longest}-grams but n is {n}")

        model.freeze()
        model.training_stats = {
            'n': n,
            'vocab_size': vocab.size(),
            'unique_ngrams': len(model.pred_counts),
            'unique_histories': len(model.hist_counts),
        }
        logger.info("Loaded counts from %s", path)
        return model
