"""
Exceptions raised by the language model package.
"""


class LanguageModelError(Exception):
    """Base class for all errors raised by ngramlm."""


class ConfigError(LanguageModelError):
    """A required configuration option is missing or has an invalid value."""


class VocabError(LanguageModelError):
    """A token or id could not be resolved against the vocabulary."""


class InvalidArgument(LanguageModelError, ValueError):
    """A query or operation was called with an unusable argument."""


class FrozenModelError(LanguageModelError, RuntimeError):
    """Counts were updated after training had completed."""


class CountFileError(LanguageModelError):
    """A count file could not be parsed."""
