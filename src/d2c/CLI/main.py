"""
Command Line Interface for D2C.
"""
import click
import curses
import logging
import os
import yaml
from ..config import Settings
from ..exceptions import RegistryError
from ..MODELS.project import ProjectModel
from ..PARSERS.compose_parser import ComposeParser
from ..REGISTRY.registry_client import RegistryClient
from ..TUI.app import run_tui
from ..WIZARD.session import Session

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(log_file):
    # The terminal belongs to curses, so logs only go to a file when asked.
    if not log_file:
        return
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger = logging.getLogger("d2c")
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG)


def _load_project(path):
    try:
        return ComposeParser().parse(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"cannot load {path}: {e}")


@click.group(invoke_without_command=True)
@click.option('--file', '-f', default=None, help='Compose file path (default: docker-compose.yaml)')
@click.option('--log-file', default=None, type=click.Path(dir_okay=False), help='Write debug logs to this file')
@click.pass_context
def cli(ctx, file, log_file):
    """
    D2C - Docker to Compose.

    Interactive wizard that searches Docker Hub, picks image tags and
    writes a docker-compose.yaml. Runs the wizard when no command is given.
    """
    ctx.ensure_object(dict)
    _configure_logging(log_file)
    settings = Settings.from_env(output_file=file)
    ctx.obj['settings'] = settings
    ctx.obj['registry'] = RegistryClient(settings)
    if ctx.invoked_subcommand is None:
        ctx.invoke(tui)


@cli.command()
@click.option('--edit', '-e', is_flag=True, help='Load the existing compose file and keep editing it')
@click.pass_context
def tui(ctx, edit):
    """Run the interactive compose wizard."""
    settings = ctx.obj['settings']
    project = ProjectModel()
    if edit:
        if not os.path.exists(settings.output_file):
            raise click.ClickException(f"{settings.output_file} not found.")
        project = _load_project(settings.output_file)

    session = Session(
        ctx.obj['registry'],
        settings,
        project,
        project_name=os.path.basename(os.getcwd()) or "d2c",
    )
    try:
        run_tui(session)
    except curses.error as e:
        raise click.ClickException(f"cannot start the terminal UI: {e}")

    if session.written_path:
        click.echo(f"Wrote {session.written_path}")


@cli.command('search-tags')
@click.argument('namespace', default='library')
@click.argument('repo', default='nginx')
@click.argument('query', default='')
@click.option('--limit', '-l', default=15, show_default=True, help='Maximum number of tags')
@click.pass_context
def search_tags(ctx, namespace, repo, query, limit):
    """List a repository's tags, best match first."""
    try:
        tags = ctx.obj['registry'].search_tags(namespace, repo, query, limit)
    except RegistryError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    click.echo(f"search namespace={namespace} repo={repo} query='{query}' limit={limit}")
    for tag in tags:
        click.echo(tag)


@cli.command('auto-tags')
@click.argument('image', default='')
@click.argument('query', default='')
@click.option('--limit', '-l', default=15, show_default=True, help='Maximum number of tags')
@click.pass_context
def auto_tags(ctx, image, query, limit):
    """Resolve an image term on Docker Hub, then list its tags."""
    try:
        result = ctx.obj['registry'].auto_search_tags(image, query, limit)
    except RegistryError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    if result is None:
        click.echo(f"No repository found for image term '{image}'")
        return
    resolved, tags = result
    click.echo(
        f"auto image='{image}' -> namespace={resolved.namespace} repo={resolved.repo} "
        f"query='{query}' limit={limit}"
    )
    for tag in tags:
        click.echo(tag)


@cli.command()
@click.argument('namespace')
@click.argument('repo')
@click.argument('tag')
@click.pass_context
def ports(ctx, namespace, repo, tag):
    """Print the ports an image tag exposes."""
    try:
        exposed = ctx.obj['registry'].list_exposed_ports(namespace, repo, tag)
    except RegistryError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    if not exposed:
        click.echo(f"{namespace}/{repo}:{tag} exposes no ports")
    for port in exposed:
        click.echo(port)


@cli.command()
@click.pass_context
def preview(ctx):
    """Print the compose file as the wizard would write it."""
    path = ctx.obj['settings'].output_file
    if not os.path.exists(path):
        click.echo(f"Error: {path} not found.", err=True)
        ctx.exit(1)
    click.echo(_load_project(path).compose_yaml(), nl=False)


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
