"""
Main CLI interface for Wrapped-So-Far

Commands:
- login / logout / status: session management
- dashboard: the year-in-review report (or its JSON form)
- recent: recently played tracks
- config: effective settings

Guarded commands go through the session gate, which re-checks the stored
credential on every invocation; an expired or missing session shows the
connect prompt instead of calling the API.
"""

import asyncio
import functools
import json
import sys

import click

from . import __version__
from .config.auth import LoginFlow, handle_callback
from .config.session import GateState, SessionContext
from .config.settings import get_settings, reload_settings
from .dashboard.aggregator import DashboardLoader, load_dashboard
from .dashboard.report import build_report
from .exceptions import ApiError, RequiredDataUnavailable, SessionInvalid
from .utils.helpers import format_duration_ms, format_timestamp, truncate_string
from .utils.logger import configure_from_settings, get_logger


logger = get_logger(__name__)

LOAD_FAILED_MESSAGE = "Failed to load your Spotify data. Your session may have expired."


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    KeyboardInterrupt exits with 130; any other unexpected error is logged,
    shown in red and exits with 1.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)
        except Exception as e:
            logger.error(f"Command failed: {e}")
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def connect_prompt():
    """Shown wherever guarded content is requested without a valid session"""
    click.echo("Connect your Spotify account to see your Wrapped So Far.")
    click.echo("   Run 'wrapped login' to connect")
    sys.exit(1)


def load_failed():
    click.echo(click.style(LOAD_FAILED_MESSAGE, fg='red'), err=True)
    click.echo("   Run 'wrapped login' to connect again", err=True)
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging on the console')
@click.option('--config', type=click.Path(), help='Path to config file')
@click.pass_context
def cli(ctx, version, verbose, config):
    """
    Wrapped-So-Far - your Spotify year in review, so far

    Connect your account with 'wrapped login', then run 'wrapped dashboard'.
    """
    ctx.ensure_object(dict)

    if version:
        click.echo(f"Wrapped-So-Far v{__version__}")
        return

    if config:
        settings = reload_settings(config)
    else:
        settings = ctx.obj.get('settings') or get_settings()
    ctx.obj['settings'] = settings

    if verbose:
        settings.logging.level = "DEBUG"
        ctx.obj['verbose'] = True
    configure_from_settings(settings, verbose=verbose)
    if verbose:
        logger.info("Verbose mode enabled")

    if 'session' not in ctx.obj:
        ctx.obj['session'] = SessionContext.from_settings(settings)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.option('--token', help='Use a token obtained elsewhere instead of the browser flow')
@click.option('--no-browser', is_flag=True, help='Print the login URL instead of opening a browser')
@click.pass_context
@handle_error
def login(ctx, token, no_browser):
    """
    Connect your Spotify account

    Opens the Wrapped-So-Far login page and waits for the redirect back
    to a local callback. With --token the given token is stored directly.
    """
    settings = ctx.obj['settings']
    session_context: SessionContext = ctx.obj['session']

    if token is not None:
        session = handle_callback(session_context, token)
    else:
        if session_context.gate.evaluate() is GateState.AUTHENTICATED:
            profile = session_context.store.cached_profile()
            name = profile.display_name if profile else "your Spotify account"
            click.echo(f"Already logged in as: {name}")
            click.echo("   Run 'wrapped logout' first to switch accounts")
            return
        session = LoginFlow(settings, session_context).authorize(open_browser=not no_browser)

    click.echo(click.style("Successfully logged in", fg='green'))
    click.echo(f"   Session valid until: {format_timestamp(session.expires_at)}")


@cli.command()
@click.pass_context
@handle_error
def logout(ctx):
    """Remove the stored session"""
    ctx.obj['session'].logout()
    click.echo("Successfully logged out")


@cli.command()
@click.pass_context
@handle_error
def status(ctx):
    """Show whether a valid session is stored"""
    session_context: SessionContext = ctx.obj['session']
    state = session_context.gate.evaluate()

    click.echo(f"Session Status: {state.value.capitalize()}")
    session = session_context.store.current()
    if session is None:
        click.echo("   Run 'wrapped login' to connect")
        return

    click.echo(f"   Expires: {format_timestamp(session.expires_at)}")
    profile = session_context.store.cached_profile()
    if profile:
        click.echo(f"   User: {profile.display_name}")
        click.echo(f"   Followers: {profile.followers}")


@cli.command()
@click.option('--json', 'as_json', is_flag=True, help='Print the dashboard as JSON')
@click.option('--artists', type=click.IntRange(1, 50), help='Number of top artists')
@click.option('--tracks', type=click.IntRange(1, 50), help='Number of top tracks')
@click.pass_context
@handle_error
def dashboard(ctx, as_json, artists, tracks):
    """
    Show your year in review

    Loads your profile, top artists and top tracks, plus listening stats and
    your music personality when available.
    """
    session_context: SessionContext = ctx.obj['session']
    loader = DashboardLoader(session_context, ctx.obj['settings'], ctx.obj.get('client_factory'))

    def show():
        try:
            view = load_dashboard(loader, artists_limit=artists, tracks_limit=tracks)
        except SessionInvalid:
            connect_prompt()
        except RequiredDataUnavailable as e:
            logger.error(f"Dashboard load failed: {e}")
            load_failed()

        if as_json:
            click.echo(json.dumps(view.to_dict(), indent=2, ensure_ascii=False))
        else:
            for line in build_report(view):
                click.echo(line)

    session_context.gate.guard(content=show, fallback=connect_prompt)


@cli.command()
@click.option('--limit', '-n', type=click.IntRange(1, 50), help='Number of tracks to show')
@click.pass_context
@handle_error
def recent(ctx, limit):
    """Show your recently played tracks"""
    session_context: SessionContext = ctx.obj['session']
    loader = DashboardLoader(session_context, ctx.obj['settings'], ctx.obj.get('client_factory'))

    def show():
        try:
            tracks = asyncio.run(loader.load_recent(limit))
        except SessionInvalid:
            connect_prompt()
        except ApiError as e:
            logger.error(f"Recent tracks load failed: {e}")
            load_failed()

        if not tracks:
            click.echo("No recently played tracks")
            return

        click.echo(f"Recently played ({len(tracks)} tracks):\n")
        for item in tracks:
            played = format_timestamp(item.played_at) if item.played_at else "unknown time"
            title = truncate_string(f"{item.track.name} - {item.track.artist_names}", 60)
            click.echo(f"   {played}  {title}  {format_duration_ms(item.track.duration_ms)}")

    session_context.gate.guard(content=show, fallback=connect_prompt)


@cli.command()
@click.option('--save', 'save_path', is_flag=False, flag_value='', default=None,
              help='Write the effective settings to a YAML file (default location if no path)')
@click.pass_context
@handle_error
def config(ctx, save_path):
    """Show current configuration"""
    settings = ctx.obj['settings']

    click.echo("Current Configuration:")
    click.echo(f"   Source: {settings.loaded_from or 'built-in defaults'}\n")
    for section, values in settings.to_dict().items():
        click.echo(f"{section.capitalize()}:")
        for key, value in values.items():
            click.echo(f"   {key}: {value}")
        click.echo("")

    problems = settings.validate()
    if problems:
        click.echo(click.style("Configuration problems:", fg='yellow'))
        for problem in problems:
            click.echo(f"   - {problem}")

    if save_path is not None:
        target = settings.save_config(save_path or None)
        click.echo(f"Configuration saved to: {target}")


if __name__ == '__main__':
    cli()
