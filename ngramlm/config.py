"""
Model Configuration

Parameters arrive as a flat mapping of option name to string value, from
command-line flags, ``key=value`` pairs or a JSON config file, and are
validated into a :class:`ModelConfig`.
"""

import json
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, Optional
from pathlib import Path

from .corpus import START_TOKEN, END_TOKEN, UNK_TOKEN
from .errors import ConfigError


Params = Dict[str, str]

_TRUE_VALUES = ('1', 'true', 'yes', 'on')
_FALSE_VALUES = ('0', 'false', 'no', 'off', '')


def get_string_param(params: Params, name: str, default: Optional[str] = None) -> Optional[str]:
    value = params.get(name)
    if value is None:
        return default
    return str(value)


def get_required_string_param(params: Params, name: str) -> str:
    """Return a parameter value, raising ConfigError when it is missing or empty."""
    value = get_string_param(params, name)
    if not value:
        raise ConfigError(f"Missing required parameter: {name}")
    return value


def get_int_param(params: Params, name: str, default: int) -> int:
    value = params.get(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Parameter {name} must be an integer, got {value!r}") from None


def get_bool_param(params: Params, name: str, default: bool = False) -> bool:
    value = params.get(name)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"Parameter {name} must be a boolean, got {value!r}")


def parse_param_pairs(pairs: Iterable[str]) -> Params:
    """
    Parse ``key=value`` strings into a parameter mapping.

    Later pairs override earlier ones.
    """
    params: Params = {}
    for pair in pairs:
        key, sep, value = pair.partition('=')
        key = key.strip()
        if not sep or not key:
            raise ConfigError(f"Expected key=value, got {pair!r}")
        params[key] = value.strip()
    return params


def load_config_file(path: str) -> Params:
    """Load parameters from a JSON object file."""
    with open(Path(path), 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in config file {path}: {e}") from None

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")

    # Values are kept as given; the getters above coerce them.
    return {str(k): v for k, v in data.items() if v is not None}


@dataclass
class ModelConfig:
    """Validated options for building and training a model."""
    vocab: str
    train: str
    n: int = 3
    bos: str = START_TOKEN
    eos: str = END_TOKEN
    unk: str = UNK_TOKEN
    count_file: Optional[str] = None
    lowercase: bool = False

    def __post_init__(self):
        if self.n < 1:
            raise ConfigError(f"n must be at least 1, got {self.n}")

    @classmethod
    def from_params(cls, params: Params) -> 'ModelConfig':
        """
        Build a config from a parameter mapping.

        Raises:
            ConfigError: If ``vocab`` or ``train`` is missing, or a value is invalid
        """
        return cls(
            vocab=get_required_string_param(params, 'vocab'),
            train=get_required_string_param(params, 'train'),
            n=get_int_param(params, 'n', 3),
            bos=get_string_param(params, 'bos', START_TOKEN),
            eos=get_string_param(params, 'eos', END_TOKEN),
            unk=get_string_param(params, 'unk', UNK_TOKEN),
            count_file=get_string_param(params, 'count_file') or None,
            lowercase=get_bool_param(params, 'lowercase', False),
        )

    def to_dict(self) -> Dict:
        return asdict(self)
