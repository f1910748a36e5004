"""CLI interface for pyziphyr."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from . import __version__
from .api import GitHubClient
from .config import TOKEN_ENV_VARS, config
from .exceptions import ZiphyrConfigError
from .output import OutputFormatter
from .sync import SyncEngine, SyncResult
from .utils import is_repository_name

logger = logging.getLogger(__name__)


@click.group()
@click.option(
    "--token",
    "-t",
    envvar=list(TOKEN_ENV_VARS),
    help="GitHub token (needed for private repositories)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__, prog_name="ziphyr")
@click.pass_context
def main(
    ctx: Any,
    token: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """ziphyr - Mirror GitHub repositories without git."""
    ctx.ensure_object(dict)
    ctx.obj["token"] = token
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pyziphyr").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


def _create_engine(ctx: Any, workers: Optional[int]) -> SyncEngine:
    """Build a sync engine from the global options and configuration.

    Exits with status 1 on invalid configuration.
    """
    out: OutputFormatter = ctx.obj["out"]
    try:
        client = GitHubClient(token=ctx.obj["token"])
        max_workers = workers if workers is not None else config.max_workers
    except ZiphyrConfigError as e:
        out.error(f"Configuration error: {e}")
        ctx.exit(1)
        raise  # Unreachable, ctx.exit raises

    if not client.token:
        logger.debug("No token configured, only public repositories are reachable")
    ctx.call_on_close(client.close)
    return SyncEngine(client, out, max_workers=max_workers)


def _finish(ctx: Any, results: list[SyncResult]) -> None:
    """Print JSON output and set the exit status."""
    out: OutputFormatter = ctx.obj["out"]

    if out.json_output:
        summaries = [result.to_dict() for result in results]
        out.output_json(summaries[0] if len(summaries) == 1 else summaries)

    failed = sum(len(result.failed) for result in results)
    if failed:
        out.warning(
            f"{failed} file(s) failed to download. "
            "Run 'ziphyr pull' in the mirror directory to retry."
        )

    if any(not result.is_successful for result in results):
        ctx.exit(1)


def _clone_target(
    repo_name: str, directory: Optional[str], repository_count: int
) -> Optional[Path]:
    """Mirror root for one repository of a clone command."""
    if directory is None:
        return None
    if repository_count == 1:
        return Path(directory)
    return Path(directory) / repo_name.split("/", 1)[-1]


@main.command()
@click.argument("repositories", nargs=-1, required=True)
@click.option(
    "--dir",
    "-d",
    "directory",
    type=click.Path(file_okay=False),
    default=None,
    help="Target directory (default: ./NAME). With several repositories, "
    "each one is cloned into DIR/NAME.",
)
@click.option(
    "--ver",
    "version",
    default=None,
    help="Branch, tag or commit to clone (default: the default branch)",
)
@click.option(
    "--workers",
    "-j",
    type=click.IntRange(min=1),
    default=None,
    help="Number of parallel workers (default: 1)",
)
@click.pass_context
def clone(
    ctx: Any,
    repositories: tuple[str, ...],
    directory: Optional[str],
    version: Optional[str],
    workers: Optional[int],
) -> None:
    """Clone one or more repositories into local mirror directories.

    REPOSITORIES: One or more OWNER/NAME identifiers

    Examples:
        ziphyr clone octocat/Hello-World
        ziphyr clone octocat/Hello-World --ver v1.0 -d ./hello
        ziphyr clone octocat/Hello-World octocat/Spoon-Knife -d ./mirrors
    """
    out: OutputFormatter = ctx.obj["out"]

    invalid = [name for name in repositories if not is_repository_name(name)]
    if invalid:
        out.error(
            f"Invalid repository name(s): {', '.join(invalid)} (expected OWNER/NAME)"
        )
        ctx.exit(1)

    engine = _create_engine(ctx, workers)
    results: list[SyncResult] = []

    try:
        for repo_name in repositories:
            target = _clone_target(repo_name, directory, len(repositories))
            results.append(engine.clone(repo_name, target, version=version))
            out.print("")
    except KeyboardInterrupt:
        out.warning("Clone cancelled by user")
        ctx.exit(130)

    _finish(ctx, results)


@main.command()
@click.argument("path", required=False, type=click.Path(file_okay=False))
@click.option(
    "--dry-run", is_flag=True, help="Show what would be downloaded without downloading"
)
@click.option(
    "--workers",
    "-j",
    type=click.IntRange(min=1),
    default=None,
    help="Number of parallel workers (default: 1)",
)
@click.pass_context
def pull(
    ctx: Any,
    path: Optional[str],
    dry_run: bool,
    workers: Optional[int],
) -> None:
    """Update a previously cloned mirror.

    PATH: Mirror directory (default: current directory)

    Remote changes are downloaded and local edits or deletions are
    overwritten with the remote copy. The version pinned at clone time
    is kept.

    Examples:
        ziphyr pull
        ziphyr pull ./Hello-World --dry-run
    """
    out: OutputFormatter = ctx.obj["out"]
    engine = _create_engine(ctx, workers)

    try:
        result = engine.pull(path, dry_run=dry_run)
    except KeyboardInterrupt:
        out.warning("Pull cancelled by user")
        ctx.exit(130)
        return

    _finish(ctx, [result])


if __name__ == "__main__":
    main()
