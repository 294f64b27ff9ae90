#!/usr/bin/env python3
"""
Convenience script to run the scoring API.

Usage:
    python run_server.py
    python run_server.py --port 8080
    python run_server.py --vocab vocab.txt --load-counts counts.txt -n 3
"""

import argparse
import logging
from typing import List, Optional

from ngramlm import LangModel, Vocabulary
from ngramlm.corpus import START_TOKEN, END_TOKEN, UNK_TOKEN
from ngramlm.server import app, set_model
from ngramlm.training import setup_logging


logger = logging.getLogger("run_server")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Run N-gram Model Scoring API')
    parser.add_argument('--host', default='127.0.0.1', help='Host to bind to')
    parser.add_argument('--port', type=int, default=5000, help='Port to bind to')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode')
    parser.add_argument('--vocab', default=None, help='Vocabulary for --load-counts')
    parser.add_argument('--load-counts', default=None, help='Serve a model rebuilt from a count file')
    parser.add_argument('-n', '--n', type=int, default=3, help='Model order of the count file')
    parser.add_argument('--bos', default=START_TOKEN, help=f'Begin-of-sentence token (default: {START_TOKEN})')
    parser.add_argument('--eos', default=END_TOKEN, help=f'End-of-sentence token (default: {END_TOKEN})')
    parser.add_argument('--unk', default=UNK_TOKEN, help=f'Unknown-word token (default: {UNK_TOKEN})')
    return parser


def load_served_model(args: argparse.Namespace) -> Optional[LangModel]:
    """Rebuild the model named by --load-counts, if any."""
    if not args.load_counts:
        return None
    return LangModel.read_counts(
        args.load_counts, Vocabulary.from_file(args.vocab),
        n=args.n, bos=args.bos, eos=args.eos, unk=args.unk
    )


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.debug)

    if args.load_counts and not args.vocab:
        parser.error('--load-counts requires --vocab')
    set_model(load_served_model(args))

    logger.info("Serving n-gram scoring API on http://%s:%d", args.host, args.port)
    app.run(host=args.host, port=args.port, debug=args.debug, threaded=True)


if __name__ == '__main__':
    main()
