"""
Witten-Bell N-gram Language Model Package

Counts n-gram statistics over a sentence corpus in one pass and scores
n-grams with recursive Witten-Bell interpolation.
"""

from .config import ModelConfig
from .counter import NGramCounter
from .errors import (
    LanguageModelError, ConfigError, VocabError, InvalidArgument,
    FrozenModelError, CountFileError
)
from .model import LangModel
from .smoothing import WittenBellSmoother
from .vocab import Vocabulary

__version__ = "0.1.0"
__all__ = [
    "LangModel", "ModelConfig", "NGramCounter", "Vocabulary", "WittenBellSmoother",
    "LanguageModelError", "ConfigError", "VocabError", "InvalidArgument",
    "FrozenModelError", "CountFileError",
]
