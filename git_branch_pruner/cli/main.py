"""Command-line entry point hosting one branch pruner per repository."""

import asyncio
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from rich.console import Console

from git_branch_pruner.cli.args import parse_args
from git_branch_pruner.config import Config
from git_branch_pruner.core import BranchPruner
from git_branch_pruner.logging_config import get_logger, setup_logging
from git_branch_pruner.models.repository import Repository
from git_branch_pruner.services.git import GitOperations
from git_branch_pruner.services.prune_state_service import PruneStateService
from git_branch_pruner.services.repository_state_cache import GitRepositoryStateCache

console = Console()
logger = get_logger(__name__)


def build_config(parsed_args) -> Config:
    """Build a Config from parsed arguments."""
    return Config(
        background_interval_hours=parsed_args.interval_hours,
        minimum_prune_spacing_hours=parsed_args.spacing_hours,
        checkout_lookback_days=parsed_args.lookback_days,
        dry_run=parsed_args.dry_run,
        require_remote_deleted=parsed_args.require_remote_deleted,
        verbose=parsed_args.verbose,
        debug=parsed_args.debug,
        remote_name=parsed_args.remote,
        main_branch=parsed_args.main_branch,
        state_dir=parsed_args.state_dir,
    )


def create_pruners(repositories: List[Repository], config: Config) -> List[BranchPruner]:
    """Wire a BranchPruner for each repository around shared services."""
    git_operations = GitOperations(config)
    state_cache = GitRepositoryStateCache(git_operations)
    state_service = PruneStateService(config.state_path)

    async def on_prune_completed(repository: Repository) -> None:
        state_cache.invalidate(repository)
        console.print(f"[green]Pruned merged branches in {repository.name}[/green]")

    return [
        BranchPruner(
            repository,
            git_operations,
            state_service,
            state_cache,
            on_prune_completed,
            config,
        )
        for repository in repositories
    ]


def print_result(pruner: BranchPruner) -> None:
    result = pruner.last_result
    name = pruner.repository.name
    if result is None or not result.did_prune:
        console.print(f"[dim]{name}: no branches to prune[/dim]")
        return

    for branch_name in result.pruned:
        console.print(f"{name}: [green]deleted[/green] {branch_name}")
    for branch_name in result.marked:
        console.print(f"{name}: [yellow]would delete[/yellow] {branch_name}")
    for branch_name in result.failed:
        console.print(f"{name}: [red]could not delete[/red] {branch_name}")


async def run_once(pruners: List[BranchPruner], config: Config, ignore_recency: bool) -> None:
    """Run a single manual prune on every repository."""
    cutoff = None
    if not ignore_recency:
        cutoff = datetime.now(timezone.utc) - config.checkout_lookback

    for pruner in pruners:
        await pruner.prune(cutoff)
        print_result(pruner)


async def run_background(pruners: List[BranchPruner]) -> None:
    """Start every pruner and keep them scheduled until cancelled."""
    try:
        for pruner in pruners:
            await pruner.start()
            logger.info(f"Scheduled background pruning of {pruner.repository.name}")
        await asyncio.Event().wait()
    finally:
        for pruner in pruners:
            pruner.stop()
            await pruner.wait_for_notifications()


def main(argv=None):
    """Main entry point for the application."""
    parsed_args = None
    try:
        parsed_args = parse_args(argv)

        log_file = Path(parsed_args.log_file).expanduser() if parsed_args.log_file else None
        setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug, log_file=log_file)

        config = build_config(parsed_args)

        if parsed_args.debug:
            console.print("[yellow]Debug mode enabled[/yellow]")
            console.print("[yellow]Configuration:[/yellow]")
            for key, value in config.to_dict().items():
                console.print(f"  {key}: {value}")

        repo_paths = parsed_args.repos or [os.getcwd()]
        repositories = [Repository.from_path(path, config.remote_name) for path in repo_paths]
        for repository in repositories:
            if repository.github_repository is None and not parsed_args.once:
                console.print(
                    f"[yellow]ℹ {repository.name} has no GitHub remote - background pruning disabled[/yellow]"
                )

        pruners = create_pruners(repositories, config)

        if parsed_args.once:
            asyncio.run(run_once(pruners, config, ignore_recency=parsed_args.all))
        else:
            console.print(
                f"Pruning {len(pruners)} repositories every {config.background_interval_hours:g} hours "
                "(Ctrl-C to stop)"
            )
            asyncio.run(run_background(pruners))

        return 0
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if parsed_args is not None and parsed_args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
