"""
Training Module with Rich Terminal UI

This module provides training, evaluation and query helpers with
progress bars, tables and log output rendered by the Rich library.
"""

import logging
from typing import Dict, List

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    Progress, SpinnerColumn, TextColumn, BarColumn,
    TaskProgressColumn, TimeElapsedColumn
)
from rich.panel import Panel
from rich.table import Table
from rich import box

from .config import ModelConfig
from .corpus import count_lines, read_sentences
from .errors import InvalidArgument
from .model import LangModel
from .vocab import Vocabulary


console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Route library logging through a Rich handler on the shared console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=verbose)],
        force=True,
    )


def create_stats_table(stats: Dict) -> Table:
    """Create a Rich table displaying training statistics."""
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="green")
    table.add_column("Value", style="yellow", justify="right")

    for key, value in stats.items():
        display_key = key.replace('_', ' ').title()

        if isinstance(value, float):
            display_value = f"{value:,.4f}"
        elif isinstance(value, bool):
            display_value = str(value)
        elif isinstance(value, int):
            display_value = f"{value:,}"
        elif value is None:
            display_value = "-"
        else:
            display_value = str(value)

        table.add_row(display_key, display_value)

    return table


def create_config_table(config: ModelConfig) -> Table:
    config_table = Table(box=box.SIMPLE, show_header=False)
    config_table.add_column("Setting", style="cyan")
    config_table.add_column("Value", style="white")
    config_table.add_row("Model Order (n)", str(config.n))
    config_table.add_row("Vocabulary", config.vocab)
    config_table.add_row("Training Data", config.train)
    config_table.add_row("Reserved Tokens", f"{config.bos} {config.eos} {config.unk}")
    config_table.add_row("Lowercase", "yes" if config.lowercase else "no")
    config_table.add_row("Count File", config.count_file or "None")
    return config_table


def train_model_cli(config: ModelConfig) -> LangModel:
    """
    Train a model with terminal progress output.

    Args:
        config: Validated model configuration

    Returns:
        Trained, frozen LangModel
    """
    console.print()
    console.print(Panel.fit(
        "[bold blue]Witten-Bell N-gram Model Training[/bold blue]",
        border_style="blue"
    ))
    console.print()
    console.print(Panel(create_config_table(config), title="[bold]Configuration[/bold]",
                        border_style="green"))
    console.print()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console
    ) as progress:

        task = progress.add_task("[cyan]Loading vocabulary...", total=None)
        vocab = Vocabulary.from_file(config.vocab)
        total = count_lines(config.train)
        progress.remove_task(task)

        console.print(f"[green]✓[/green] Loaded {vocab.size():,} vocabulary tokens, "
                      f"{total:,} training sentences")

        model = LangModel(vocab, n=config.n, bos=config.bos, eos=config.eos, unk=config.unk)

        train_task = progress.add_task("[cyan]Counting n-grams...", total=total)

        def update_progress(current, _total, stage=""):
            progress.update(train_task, completed=current, description=f"[cyan]{stage}")

        stats = model.train_file(
            config.train,
            lowercase=config.lowercase,
            total=total,
            progress_callback=update_progress
        )

        progress.remove_task(train_task)

    console.print("[green]✓[/green] Training complete!")
    console.print()
    console.print(Panel(
        create_stats_table(stats),
        title="[bold]Training Statistics[/bold]",
        border_style="yellow"
    ))

    if config.count_file:
        with console.status("[cyan]Writing counts..."):
            model.write_counts(config.count_file)
        console.print(f"[green]✓[/green] Counts written to: [bold]{config.count_file}[/bold]")

    return model


def evaluate_model_cli(model: LangModel, path: str, lowercase: bool = False) -> Dict:
    """
    Compute perplexity on a held-out file and display the result.

    Returns:
        Dictionary of evaluation metrics
    """
    console.print()
    with console.status(f"[cyan]Computing perplexity on {path}..."):
        sentences = list(read_sentences(path, lowercase=lowercase))
        perplexity = model.perplexity(sentences)

    results = {
        'perplexity': perplexity,
        'test_sentences': len(sentences),
    }

    console.print(Panel(
        create_stats_table(results),
        title="[bold]Evaluation Results[/bold]",
        border_style="green"
    ))

    return results


def create_query_table(model: LangModel, queries: List[List[str]]) -> Table:
    """Score each query n-gram and lay the results out as a table."""
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("N-gram", style="white")
    table.add_column("λ(history)", style="green", justify="right")
    table.add_column("Probability", style="yellow", justify="right")

    for tokens in queries:
        prob = model.score_tokens(tokens)
        history_ids = model.ids_for(tokens[:-1])
        table.add_row(" ".join(tokens), f"{model.backoff_weight(history_ids):.4f}",
                      f"{prob:.6f}")

    return table


def interactive_demo(model: LangModel):
    """Score n-grams typed at the prompt until the user quits."""
    console.print()
    console.print(Panel.fit(
        "[bold magenta]Interactive Scoring[/bold magenta]\n"
        f"Enter 1 to {model.n} tokens; the last one is predicted.\n"
        "Type 'quit' to exit.",
        border_style="magenta"
    ))
    console.print()

    while True:
        try:
            user_input = console.input("[bold cyan]N-gram:[/bold cyan] ")
        except (KeyboardInterrupt, EOFError):
            break

        if user_input.strip().lower() in ('quit', 'exit', 'q'):
            break

        tokens = user_input.split()
        try:
            console.print(create_query_table(model, [tokens]))
        except InvalidArgument as e:
            console.print(f"[red]{e}[/red]")

    console.print("\n[yellow]Goodbye![/yellow]")
