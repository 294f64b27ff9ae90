#!/usr/bin/env python3
"""
N-gram Language Model Training Script

Train a Witten-Bell n-gram model on a corpus file with rich terminal output.

Usage:
    python train.py --vocab vocab.txt --train corpus.txt -n 3
    python train.py --config lm.json --count-file counts.txt
    python train.py --vocab vocab.txt --load-counts counts.txt --query "the cat sat"
"""

import argparse
import logging
import sys
from typing import List, Optional

from ngramlm import LangModel, LanguageModelError, ModelConfig, Vocabulary
from ngramlm.config import (
    get_bool_param, get_int_param, get_string_param, load_config_file, parse_param_pairs
)
from ngramlm.corpus import START_TOKEN, END_TOKEN, UNK_TOKEN
from ngramlm.training import (
    console, setup_logging, train_model_cli, evaluate_model_cli,
    create_query_table, interactive_demo
)


logger = logging.getLogger("train")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Train a Witten-Bell smoothed n-gram language model",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --vocab vocab.txt --train corpus.txt
  %(prog)s --vocab vocab.txt --train corpus.txt -n 2 --count-file counts.txt
  %(prog)s --config lm.json --eval heldout.txt
  %(prog)s vocab=vocab.txt train=corpus.txt n=4 count_file=counts.txt
  %(prog)s --vocab vocab.txt --load-counts counts.txt -n 2 --query "the cat"

Config files are JSON objects with the keys vocab, train, n, bos, eos,
unk, count_file and lowercase. The same keys may be given as KEY=VALUE
arguments, which override the config file; flags override both.
        """
    )

    parser.add_argument('params', nargs='*', metavar='KEY=VALUE',
                        help='Model parameters, e.g. vocab=vocab.txt n=2')
    parser.add_argument('--config', type=str, default=None,
                        help='JSON file with model parameters')
    parser.add_argument('--vocab', type=str, default=None,
                        help='Vocabulary file, one token per line (required)')
    parser.add_argument('--train', type=str, default=None,
                        help='Training corpus, one sentence per line (required)')
    parser.add_argument('-n', '--n', type=int, default=None,
                        help='Order of the n-gram model (default: 3)')
    parser.add_argument('--bos', type=str, default=None,
                        help=f'Begin-of-sentence token (default: {START_TOKEN})')
    parser.add_argument('--eos', type=str, default=None,
                        help=f'End-of-sentence token (default: {END_TOKEN})')
    parser.add_argument('--unk', type=str, default=None,
                        help=f'Unknown-word token (default: {UNK_TOKEN})')
    parser.add_argument('--count-file', type=str, default=None,
                        help='Write the trained counts to this file')
    parser.add_argument('--lowercase', action='store_true', default=None,
                        help='Lowercase corpus lines before counting')
    parser.add_argument('--load-counts', type=str, default=None,
                        help='Load counts from a count file instead of training')
    parser.add_argument('--eval', type=str, default=None,
                        help='Report perplexity on this held-out file')
    parser.add_argument('-q', '--query', type=str, action='append', default=[],
                        help='Score an n-gram given as space-separated tokens (repeatable)')
    parser.add_argument('-i', '--interactive', action='store_true',
                        help='Score n-grams interactively after training')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    return parser


def collect_params(args: argparse.Namespace) -> dict:
    """Merge config-file parameters, key=value pairs and flags, in that order."""
    params = load_config_file(args.config) if args.config else {}
    params.update(parse_param_pairs(args.params))

    for name in ('vocab', 'train', 'n', 'bos', 'eos', 'unk', 'count_file', 'lowercase'):
        value = getattr(args, name)
        if value is not None:
            params[name] = value

    return params


def load_model(params: dict, counts_path: str) -> LangModel:
    vocab = Vocabulary.from_file(params['vocab'])
    with console.status(f"[cyan]Loading counts from {counts_path}..."):
        model = LangModel.read_counts(
            counts_path, vocab,
            n=get_int_param(params, 'n', 3),
            bos=get_string_param(params, 'bos', START_TOKEN),
            eos=get_string_param(params, 'eos', END_TOKEN),
            unk=get_string_param(params, 'unk', UNK_TOKEN),
        )
    console.print(f"[green]✓[/green] Counts loaded from: [bold]{counts_path}[/bold]")
    return model


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        params = collect_params(args)

        if args.load_counts:
            if not params.get('vocab'):
                logger.error("--load-counts requires --vocab")
                return 1
            model = load_model(params, args.load_counts)
        else:
            model = train_model_cli(ModelConfig.from_params(params))

        lowercase = get_bool_param(params, 'lowercase', False)

        if args.eval:
            evaluate_model_cli(model, args.eval, lowercase=lowercase)

        if args.query:
            queries = [q.lower().split() if lowercase else q.split() for q in args.query]
            console.print()
            console.print(create_query_table(model, queries))

    except (LanguageModelError, OSError) as e:
        logger.error("%s", e)
        return 1

    if args.interactive:
        interactive_demo(model)

    return 0


if __name__ == '__main__':
    sys.exit(main())
