"""CLI entry point for web2journal."""

import sys
from datetime import date, datetime

import click

from .client import JournalServerClient
from .config import Config, load_config
from .dispatcher import CaptureDispatcher
from .exceptions import ConfigError, Web2JournalError
from .extractor import extract_content
from .journal import JournalStore
from .matcher import find_matching_patterns
from .models import CaptureRequest, CaptureStatus
from .storage import PatternStorage, TokenStorage
from .utils import configure_logging, extract_domain
from .writer import write_daily_report


def _fail(message: str, code: int = 1) -> None:
    click.echo(message, err=True)
    sys.exit(code)


def _parse_date(value):
    if value is None:
        return date.today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter("Use YYYY-MM-DD", param_hint="--date")


def _token(config: Config) -> str:
    return config.auth_token or TokenStorage(config.data_path).get_or_create_token()


def _make_client(config: Config) -> JournalServerClient:
    return JournalServerClient(
        config.base_url, _token(config), timeout=config.dispatch_timeout
    )


def _connect(config: Config) -> JournalServerClient:
    client = _make_client(config)
    if not client.health():
        _fail(f"Capture server not reachable at {client.base_url}. Start it with `web2journal serve`.")
    return client


def _echo_status(status: CaptureStatus) -> None:
    site = extract_domain(status.url) or status.url
    if status.phase == "completed":
        click.echo(f"  [{site}] Saved as entry {status.entry_id}")
    elif status.phase == "processing":
        click.echo(f"  [{site}] {status.message}...")
    else:
        click.echo(f"  [{site}] {status.phase.capitalize()}: {status.message}", err=True)


@click.group()
@click.option(
    "--data-path",
    type=click.Path(file_okay=False),
    default=None,
    help="Journal data directory (default: ~/.web2journal-data or WEB2JOURNAL_DATA_PATH)",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable verbose output")
@click.pass_context
def main(ctx, data_path, verbose):
    """Personal journal that captures the web pages you read.

    Run `web2journal serve` to start the capture server, then add patterns
    that say which pages to capture and how to summarize them.
    """
    try:
        config = load_config(data_path=data_path, verbose=verbose)
    except ConfigError as e:
        _fail(f"Configuration error: {e}", 2)
    configure_logging(config.log_file, verbose=verbose)
    ctx.obj = config


# --- server ---

@main.command()
@click.option("--host", default=None, help="Interface to bind (default: 127.0.0.1)")
@click.option("--port", type=int, default=None, help="Port to listen on (default: 8765)")
@click.pass_obj
def serve(config: Config, host, port):
    """Run the local capture server."""
    from .llm import get_llm_provider
    from .server import create_app
    from .service import CaptureService
    from .transform import Transformer

    try:
        llm = get_llm_provider(config)
    except ConfigError as e:
        _fail(f"Configuration error: {e}", 2)

    storage = PatternStorage(config.data_path)
    try:
        patterns = storage.load()
    except Web2JournalError as e:
        _fail(f"Could not load patterns: {e}", 2)
    token = _token(config)
    service = CaptureService(
        token=token,
        patterns=patterns,
        transformer=Transformer(llm),
        journal=JournalStore(config.data_path),
        refresh_patterns=lambda: storage.refresh(patterns),
    )
    app = create_app(service, patterns, storage)

    host = host or config.server_host
    port = port or config.server_port
    click.echo(f"Provider: {config.llm_provider} ({config.default_model})")
    click.echo(f"Data path: {config.data_path}")
    click.echo(f"Patterns: {len(patterns)}")
    click.echo(f"Listening on http://{host}:{port}")
    click.echo(f"Auth token: {token}")
    app.run(host=host, port=port, threaded=True)


@main.command()
@click.option("--rotate", is_flag=True, default=False, help="Replace the stored token")
@click.pass_obj
def token(config: Config, rotate):
    """Show (or rotate) the auth token the extension must send."""
    storage = TokenStorage(config.data_path)
    if rotate:
        click.echo(storage.rotate_token())
        click.echo("Restart the server and update the extension settings.", err=True)
        return
    click.echo(_token(config))


# --- patterns ---

@main.group()
def patterns():
    """Manage content patterns."""


def _load_patterns(config: Config):
    storage = PatternStorage(config.data_path)
    try:
        return storage, storage.load()
    except Web2JournalError as e:
        _fail(f"Could not load patterns: {e}")


@patterns.command("list")
@click.pass_obj
def list_patterns(config: Config):
    """List patterns in match order."""
    _, store = _load_patterns(config)
    if not len(store):
        click.echo("No patterns defined.")
        return
    for i, p in enumerate(store.all(), start=1):
        state = "enabled" if p.enabled else "disabled"
        click.echo(f"{i}. {p.name} [{state}]")
        click.echo(f"   id:      {p.id}")
        click.echo(f"   pattern: {p.url_pattern}")
        if config.verbose:
            click.echo(f"   prompt:  {p.prompt}")


@patterns.command("add")
@click.argument("name")
@click.argument("url_pattern")
@click.argument("prompt")
@click.option("--disabled", is_flag=True, default=False, help="Create the pattern disabled")
@click.pass_obj
def add_pattern(config: Config, name, url_pattern, prompt, disabled):
    """Add a pattern. URL_PATTERN is a regular expression searched in the full URL."""
    storage, store = _load_patterns(config)
    try:
        pattern = store.create(name, url_pattern, prompt, enabled=not disabled)
    except Web2JournalError as e:
        _fail(str(e))
    storage.save(store)
    click.echo(f"Added pattern {pattern.id}")


@patterns.command("update")
@click.argument("pattern_id")
@click.option("--name", default=None)
@click.option("--url-pattern", default=None)
@click.option("--prompt", default=None)
@click.option("--enable/--disable", "enabled", default=None)
@click.pass_obj
def update_pattern(config: Config, pattern_id, name, url_pattern, prompt, enabled):
    """Edit a pattern in place (its position in match order is kept)."""
    changes = {
        key: value for key, value in (
            ("name", name), ("url_pattern", url_pattern),
            ("prompt", prompt), ("enabled", enabled),
        ) if value is not None
    }
    if not changes:
        _fail("Nothing to update.", 2)
    storage, store = _load_patterns(config)
    try:
        store.update(pattern_id, **changes)
    except Web2JournalError as e:
        _fail(str(e))
    storage.save(store)
    click.echo(f"Updated pattern {pattern_id}")


@patterns.command("remove")
@click.argument("pattern_id")
@click.pass_obj
def remove_pattern(config: Config, pattern_id):
    """Delete a pattern."""
    storage, store = _load_patterns(config)
    try:
        store.delete(pattern_id)
    except Web2JournalError as e:
        _fail(str(e))
    storage.save(store)
    click.echo(f"Removed pattern {pattern_id}")


@patterns.command("match")
@click.argument("url")
@click.pass_obj
def match_url(config: Config, url):
    """Show which patterns match URL; the first one listed would be used."""
    _, store = _load_patterns(config)
    matches = find_matching_patterns(url, store.all())
    if not matches:
        click.echo("No enabled pattern matches.")
        return
    for i, p in enumerate(matches):
        marker = "*" if i == 0 else " "
        click.echo(f"{marker} {p.name} ({p.id})")


# --- capturing ---

@main.command()
@click.argument("url")
@click.option("--pattern", "pattern_id", default=None, help="Use this pattern instead of matching")
@click.pass_obj
def capture(config: Config, url, pattern_id):
    """Capture one page now through the running server."""
    from .crawler import FirecrawlPageSource
    from .session import TabSession

    try:
        page_source = FirecrawlPageSource(config)
    except ConfigError as e:
        _fail(f"Configuration error: {e}", 2)
    client = _connect(config)
    dispatcher = CaptureDispatcher(client)

    if pattern_id:
        try:
            extracted = extract_content(page_source(url))
        except Web2JournalError as e:
            _fail(f"Nothing to capture: {e}")
        result = dispatcher.dispatch(
            CaptureRequest(url=url, title=extracted.title,
                           content=extracted.main_content, pattern_id=pattern_id,
                           metadata=dict(extracted.metadata))
        )
    else:
        session = TabSession(
            dispatcher, client.list_patterns, page_source=page_source, on_status=_echo_status,
        )
        future = session.on_navigation(url)
        if future is None:
            session.close()
            _fail("No enabled pattern matches this URL.")
        result = future.result()
        session.close()

    if result.success:
        click.echo(result.processed_content)
        click.echo(f"\nSaved as entry {result.entry_id}", err=True)
    else:
        _fail(f"Capture failed ({result.kind.value}): {result.error}")


@main.command()
@click.option("--no-auto", is_flag=True, default=False, help="Start with auto-processing off")
@click.pass_obj
def watch(config: Config, no_auto):
    """Read navigation URLs from stdin, one per line, and capture matches.

    A repeated URL is ignored; a new URL is a new page view. A line
    `:reprocess` captures the current page again; `:auto on` / `:auto off`
    toggle auto-processing.
    """
    from .crawler import FirecrawlPageSource
    from .session import TabSession

    try:
        page_source = FirecrawlPageSource(config)
    except ConfigError as e:
        _fail(f"Configuration error: {e}", 2)
    client = _connect(config)
    session = TabSession(
        CaptureDispatcher(client),
        client.list_patterns,
        page_source=page_source,
        auto_processing=config.auto_processing and not no_auto,
        on_status=_echo_status,
    )
    try:
        for line in click.get_text_stream("stdin"):
            line = line.strip()
            if not line:
                continue
            if line == ":reprocess":
                session.reprocess()
            elif line in (":auto on", ":auto off"):
                session.auto_processing = line.endswith("on")
                click.echo(f"Auto-processing {'on' if session.auto_processing else 'off'}")
            else:
                session.on_navigation(line)
    finally:
        session.close(wait=True)


# --- journal ---

@main.command()
@click.option("--date", "day", default=None, help="Day to show, YYYY-MM-DD (default: today)")
@click.pass_obj
def entries(config: Config, day):
    """List journal entries for a day."""
    day = _parse_date(day)
    items = JournalStore(config.data_path).list_entries(day)
    if not items:
        click.echo(f"No entries for {day.isoformat()}.")
        return
    for entry in items:
        time_label = entry.timestamp.astimezone().strftime("%H:%M")
        first_line = entry.content.strip().splitlines()[0] if entry.content.strip() else ""
        click.echo(f"{time_label} [{entry.category}] {entry.id}")
        click.echo(f"    {first_line[:100]}")
        if entry.metadata.get("url"):
            click.echo(f"    {entry.metadata['url']}")


@main.command()
@click.option("--date", "day", default=None, help="Day to report, YYYY-MM-DD (default: today)")
@click.pass_obj
def report(config: Config, day):
    """Write the daily markdown report."""
    day = _parse_date(day)
    items = JournalStore(config.data_path).list_entries(day)
    try:
        path = write_daily_report(day, items, config.data_path)
    except OSError as e:
        _fail(f"Failed to write report: {e}")
    click.echo(f"Wrote {len(items)} entries to: {path}")
