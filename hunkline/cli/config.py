"""CLI commands for repository configuration management."""

import typer

from hunkline.git import GitError, get_repo_root
from hunkline.user_config import (
    DEFAULT_CONFIG,
    get_config,
    get_config_file,
    load_config,
    save_config,
)

# Subcommand group for configuration management
config_app = typer.Typer(
    name="config",
    help="Manage repository configuration in .hunkline/config.yaml",
    add_completion=False,
)


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration."""
    try:
        repo_root = get_repo_root()
    except GitError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    config = get_config(repo_root)
    config_file = get_config_file(repo_root)

    source = str(config_file) if config_file.exists() else "defaults"
    typer.echo(f"Current hunkline configuration ({source}):")
    typer.echo()
    typer.echo("  Signs:")
    typer.echo(f"    staged: {config.signs.staged}")
    typer.echo(f"    unstaged: {config.signs.unstaged}")
    typer.echo(f"    untracked: {config.signs.untracked}")
    typer.echo(f"    conflict: {config.signs.conflict}")
    typer.echo()
    typer.echo(f"  Sections: {', '.join(section.value for section in config.status.sections)}")
    typer.echo(f"  Visibility level: {config.status.visibility_level}")
    typer.echo(f"  Worktrees min count: {config.status.worktrees_min_count}")


@config_app.command("init")
def config_init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite an existing config file with the defaults",
    ),
) -> None:
    """Write the default configuration to .hunkline/config.yaml."""
    try:
        repo_root = get_repo_root()
    except GitError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    config_file = get_config_file(repo_root)
    if config_file.exists() and not force:
        typer.echo(f"Configuration already exists at {config_file}. Use --force to overwrite.")
        raise typer.Exit(0)

    save_config(repo_root, DEFAULT_CONFIG)
    typer.echo(f"Wrote default configuration to {config_file}")


@config_app.command("set-level")
def config_set_level(
    level: int = typer.Argument(..., min=1, max=4, help="Default visibility level (1-4)"),
) -> None:
    """Set the default visibility level."""
    try:
        repo_root = get_repo_root()
    except GitError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    config = load_config(repo_root)
    config["status"]["visibility_level"] = level
    save_config(repo_root, config)
    typer.echo(f"Default visibility level set to {level}")
