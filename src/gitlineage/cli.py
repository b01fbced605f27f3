"""Command-line interface for gitlineage."""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table

from gitlineage import __version__
from gitlineage.extraction import GitRepository
from gitlineage.logs import configure_logging
from gitlineage.metadata import RepoMetadataProvider
from gitlineage.models import Branch, RepositoryConfig, Settings, VersioningConfig

app = typer.Typer(
    name="gitlineage",
    help="Branch relationship metadata - version tags, merge bases and branch sources",
    add_completion=False,
)
console = Console()


def _open(repo_path: Path, verbose: bool) -> Tuple[RepoMetadataProvider, Settings]:
    settings = Settings()
    configure_logging("DEBUG" if verbose else settings.log_level, settings.log_json)
    repository = GitRepository(RepositoryConfig(repo_path=repo_path))
    return RepoMetadataProvider(repository), settings


def _require_branch(provider: RepoMetadataProvider, name: str) -> Branch:
    branch = provider.repository.find_branch(name)
    if branch is None:
        raise ValueError(f"Branch not found: {name}")
    return branch


def _short(commit) -> str:
    return commit.hexsha[:7] if commit is not None else "-"


@app.command()
def tags(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    prefix: Optional[str] = typer.Option(None, "--prefix", "-p", help="Tag prefix regex"),
    older_than: Optional[datetime] = typer.Option(None, "--older-than", help="Ignore tags on commits newer than this"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """List tags that are valid semantic versions."""
    try:
        provider, settings = _open(repo_path, verbose)
        version_tags = provider.get_valid_version_tags(prefix or settings.tag_prefix, older_than)

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Tag", style="cyan")
        table.add_column("Version", style="green")
        table.add_column("Commit", style="yellow", width=10)
        table.add_column("Date", style="blue")

        for version_tag in sorted(version_tags, key=lambda vt: vt.version, reverse=True):
            table.add_row(
                version_tag.name,
                str(version_tag.version),
                _short(version_tag.commit),
                version_tag.commit.committed_datetime.strftime("%Y-%m-%d %H:%M"),
            )

        console.print(table)
        console.print(f"\n[bold green]✓[/bold green] {len(version_tags)} version tags")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command(name="branch-tags")
def branch_tags(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    branch_name: str = typer.Argument(..., help="Branch name"),
    prefix: Optional[str] = typer.Option(None, "--prefix", "-p", help="Tag prefix regex"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """List versions tagged on a branch's history, newest commit first."""
    try:
        provider, settings = _open(repo_path, verbose)
        branch = _require_branch(provider, branch_name)
        versions = provider.get_version_tags_on_branch(branch, prefix or settings.tag_prefix)

        console.print(f"[bold blue]Branch:[/bold blue] {branch.friendly_name}")
        for version in versions:
            console.print(f"  • {version}")
        if not versions:
            console.print("[dim]No version tags on this branch[/dim]")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def containing(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    rev: str = typer.Argument(..., help="Commit hash or revision"),
    tracked: bool = typer.Option(False, "--tracked", "-t", help="Only search branches with an upstream"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """List branches that contain a commit."""
    try:
        provider, _ = _open(repo_path, verbose)
        commit = provider.repository.resolve_commit(rev)

        found = 0
        for branch in provider.get_branches_containing_commit(commit, only_tracked=tracked):
            console.print(f"  [cyan]{branch.friendly_name}[/cyan] [dim]{_short(branch.tip)}[/dim]")
            found += 1

        console.print(f"\n[bold green]✓[/bold green] {found} branches contain {_short(commit)}")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command(name="merge-base")
def merge_base(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    branch_name: str = typer.Argument(..., help="Branch whose fork point is wanted"),
    other_name: str = typer.Argument(..., help="Branch it was forked from"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Show the merge base of two branches, skipping forward merges."""
    try:
        provider, _ = _open(repo_path, verbose)
        branch = _require_branch(provider, branch_name)
        other = _require_branch(provider, other_name)

        commit = provider.find_merge_base(branch, other)
        if commit is None:
            console.print("[yellow]No common history[/yellow]")
            return

        console.print(f"[cyan]Merge base:[/cyan] {commit.hexsha}")
        console.print(f"[cyan]Date:[/cyan] {commit.committed_datetime}")
        console.print(f"[cyan]Message:[/cyan] {commit.summary}")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def source(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    branch_name: str = typer.Argument(..., help="Branch whose source is wanted"),
    exclude: List[str] = typer.Option([], "--exclude", "-x", help="Branch never considered as a source"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON branch configuration"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Guess which branch a branch was created from."""
    try:
        provider, settings = _open(repo_path, verbose)
        config = (
            VersioningConfig.from_file(config_file)
            if config_file
            else settings.load_versioning_config()
        )
        branch = _require_branch(provider, branch_name)
        excluded = [_require_branch(provider, name) for name in exclude]

        result = provider.find_commit_branch_was_branched_from(branch, config, excluded)
        if not result:
            console.print("[yellow]No source branch found[/yellow]")
            return

        console.print(f"[cyan]Source branch:[/cyan] {result.branch.friendly_name}")
        console.print(f"[cyan]Branched at:[/cyan] {result.commit.hexsha}")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show gitlineage version."""
    console.print(f"gitlineage version {__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
