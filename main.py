#!/usr/bin/env python3
"""
ToeRank - Segment Backtest Scoring & Bounded Ranking
Main CLI entry point
"""

import sys
from functools import partial
from pathlib import Path

# Add src/ to Python path
ROOT_DIR = Path(__file__).parent
sys.path.insert(0, str(ROOT_DIR))

import click
from rich.console import Console
from rich.table import Table

from src.config import load_config
from src.utils import setup_logging, get_logger

console = Console()

VERSION = "1.0.0"


@click.group()
@click.version_option(version=VERSION)
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), default='config/config.yaml',
              help='Path to config YAML')
@click.pass_context
def cli(ctx, config_path):
    """
    ToeRank - score backtest segments and keep the best strategies

    \b
    Quick start:
        toerank status                              # Show configuration
        toerank rank results/*.json                 # Rank executor output files
        toerank rank out.json --segment-config segments.json --persist
    """
    if ctx.obj is None:
        ctx.obj = {}

    try:
        ctx.obj['config'] = load_config(config_path)
    except Exception as e:
        console.print(f"[red]Failed to load configuration:[/red] {e}")
        sys.exit(1)

    config = ctx.obj['config']
    setup_logging(
        log_file=config.get('logging.file', 'logs/toerank.log'),
        log_level=config.get('logging.level', 'INFO'),
        max_bytes=config.get('logging.max_bytes', 10485760),
        backup_count=config.get('logging.backup_count', 5),
        module_levels=config.get('logging.modules')
    )

    ctx.obj['logger'] = get_logger('toerank.cli')


# ==============================================================================
# STATUS
# ==============================================================================

@cli.command()
@click.pass_context
def status(ctx):
    """Show the active scoring configuration"""
    config = ctx.obj['config']

    console.print(f"\n[bold cyan]ToeRank v{VERSION}[/bold cyan]")
    console.print("Status: [green]Configuration loaded[/green]\n")

    console.print(f"System: {config.get('system.name')} ({config.get('system.server')})")

    console.print("\n[bold]Scoring:[/bold]")
    console.print(f"  Method: {config.get('scoring.method')}")
    console.print(f"  Filter fee: {config.get('scoring.filter_fee'):.4%}")
    console.print(
        "  Validation fees: "
        + ", ".join(f"{fee:.2%}" for fee in config.get('scoring.validation_fees', []))
    )
    console.print(f"  Test split ratio: {config.get('scoring.split.test_ratio', 0.8)}")

    console.print("\n[bold]Ranking:[/bold]")
    console.print(f"  Capacity: {config.get('ranking.capacity')}")
    console.print(f"  Parallel runners: {config.get('runner.parallel_runners')}")
    console.print(f"  Pre-filter: {'on' if config.get('runner.prefilter.enabled') else 'off'}")

    console.print("\n[bold]Database:[/bold]")
    console.print(f"  URL: {config.get('database.url')}\n")


# ==============================================================================
# RANK
# ==============================================================================

@cli.command()
@click.argument('result_files', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option('--segment-config', type=click.Path(exists=True, dir_okay=False), default=None,
              help='Segment config JSON with train/test flags')
@click.option('--method', type=click.Choice(['mcda', 'composite']), default=None,
              help='Override scoring.method')
@click.option('--top', type=int, default=20, help='Rows to display')
@click.option('--name', 'batch_name', type=str, default='cli-batch', help='Batch run name')
@click.option('--persist/--no-persist', default=False, help='Write the ranking to the database')
@click.pass_context
def rank(ctx, result_files, segment_config, method, top, batch_name, persist):
    """Score executor output files and show the final leaderboard"""
    logger = ctx.obj['logger']
    config = ctx.obj['config']

    from src.backtester import load_evaluation_result, load_segment_config
    from src.database import InMemorySink, SqlAlchemySink, init_db
    from src.orchestration import BacktestJob, ParallelRunner
    from src.scorer import RegistryError

    raw_config = dict(config.as_dict())
    if method:
        raw_config['scoring'] = {**raw_config.get('scoring', {}), 'method': method}

    seg_config = load_segment_config(segment_config) if segment_config else None

    jobs = [
        BacktestJob(
            name=Path(path).stem,
            load=partial(load_evaluation_result, path),
            segment_config=seg_config,
        )
        for path in result_files
    ]

    if persist:
        init_db()
        sink = SqlAlchemySink()
    else:
        sink = InMemorySink()

    runner = ParallelRunner(raw_config, sink=sink)

    try:
        summary = runner.run(jobs, name=batch_name)
    except RegistryError as e:
        logger.critical(f"Ranking aborted: {e}")
        console.print(f"[red]Ranking aborted:[/red] {e}")
        sys.exit(2)

    console.print(
        f"\n[bold]Batch {batch_name}[/bold]: {summary.completed_jobs}/{summary.job_count} jobs, "
        f"{summary.failed_jobs} failed, {summary.total_strategies} strategies, "
        f"{summary.uploaded_strategies} ranked"
    )
    console.print(f"Counters: {summary.counters}\n")

    if not summary.top_strategies:
        console.print("[yellow]No strategy passed the filters[/yellow]")
        return

    table = Table(title=f"Top {min(top, len(summary.top_strategies))} strategies")
    table.add_column("Rank", justify="right", style="cyan")
    table.add_column("Executor", style="magenta")
    table.add_column("Quality", justify="right", style="green")
    table.add_column("Consistency", justify="right")
    table.add_column("Val Win Rate", justify="right")
    table.add_column("Val Sharpe", justify="right")
    table.add_column("Notes")

    for position, entry in enumerate(summary.top_strategies[:top], start=1):
        report = entry.primary_report
        val = report.validation_performance
        table.add_row(
            str(position),
            entry.candidate.config_reference or entry.candidate.candidate_id[:8],
            f"{entry.quality_score:.2f}",
            f"{report.consistency_score:.1f}",
            f"{val.win_rate:.1%}",
            f"{val.sharpe_ratio:.2f}",
            str(len(report.notes)),
        )

    console.print(table)

    if persist:
        console.print(f"\n[green]Saved batch run {summary.batch_run_id}[/green]")


if __name__ == '__main__':
    cli(obj={})
