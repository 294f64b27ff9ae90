"""
Witten-Bell Smoothing

This module implements the recursive Witten-Bell estimator used by the
language model. Each history interpolates its maximum-likelihood estimate
with the estimate of the next shorter history, weighted by how many
distinct tokens were seen after it. The empty history backs off to the
uniform distribution over the vocabulary.
"""

from typing import Sequence

from .counter import NGramCounter


class Smoother:
    """Base class for smoothing implementations."""

    def __init__(self, vocab_size: int):
        self.vocab_size = vocab_size

    def probability(self, ngram: Sequence[int]) -> float:
        """Return the smoothed probability of the last id given the others."""
        raise NotImplementedError


class WittenBellSmoother(Smoother):
    """
    Witten-Bell Smoothing

    P(w|h)  = λ(h) * P_ML(w|h) + (1 - λ(h)) * P(w|h')
    P(w|()) = λ(()) * P_ML(w|()) + (1 - λ(())) / V

    Where λ(h) = C(h) / (C(h) + N1+(h)), C(h) is the number of times h was
    followed by any token, N1+(h) the number of distinct tokens that
    followed it, and h' is h without its oldest token.
    """

    def __init__(self, vocab_size: int, pred_counts: NGramCounter,
                 hist_counts: NGramCounter, hist_one_plus_counts: NGramCounter):
        if vocab_size < 1:
            raise ValueError("vocab_size must be at least 1")
        super().__init__(vocab_size)
        self.pred_counts = pred_counts
        self.hist_counts = hist_counts
        self.hist_one_plus_counts = hist_one_plus_counts

    def backoff_weight(self, history: Sequence[int]) -> float:
        """Return λ(h); 0 for a history that was never observed."""
        hist_count = self.hist_counts.count(history)
        if hist_count == 0:
            return 0.0
        return hist_count / (hist_count + self.hist_one_plus_counts.count(history))

    def probability(self, ngram: Sequence[int]) -> float:
        ngram = tuple(ngram)
        word = ngram[-1]
        history = ngram[:-1]

        # Walk from the empty history up to the full one, reusing the
        # shorter-context estimate at each step.
        prob = 1.0 / self.vocab_size
        for k in range(len(history) + 1):
            suffix = history[len(history) - k:]
            hist_count = self.hist_counts.count(suffix)
            if hist_count == 0:
                continue
            lam = hist_count / (hist_count + self.hist_one_plus_counts.count(suffix))
            ml = self.pred_counts.count(suffix + (word,)) / hist_count
            prob = lam * ml + (1.0 - lam) * prob

        return prob
