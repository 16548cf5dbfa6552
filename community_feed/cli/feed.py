"""CLI commands for the community feed."""

import json
import logging
import sys
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

import click
import structlog

from community_feed import __version__
from community_feed.graph import SocialGraph
from community_feed.observability.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
)
from community_feed.ranker import (
    AVAILABLE_MODES,
    CommunityOverview,
    FeedPage,
    FeedRanker,
    TagTrendAggregator,
)
from community_feed.settings import AppSettings, get_settings
from community_feed.store import SqliteDocumentStore, StoreError


logger = structlog.get_logger()


def _setup(verbose: bool) -> AppSettings:
    """Load settings and configure logging.

    Args:
        verbose: Force DEBUG level.

    Returns:
        Loaded application settings.
    """
    settings = get_settings()
    level = logging.DEBUG if verbose else settings.log_level_value
    configure_logging(level=level, json_format=settings.json_logs)
    return settings


@contextmanager
def _open_store(db_path: Path) -> Generator[SqliteDocumentStore]:
    """Open the store, exiting with status 1 on any store failure.

    Args:
        db_path: SQLite database path.

    Yields:
        Connected store.
    """
    try:
        with SqliteDocumentStore(db_path) as store:
            yield store
    except StoreError as e:
        logger.error("cli_store_error", component="cli", error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _echo_page(page: FeedPage) -> None:
    """Print a feed page as plain text."""
    if page.message:
        click.echo(page.message)
        return

    p = page.pagination
    click.echo(
        f"Mode: {page.mode.value}  Page {p.current_page}/{p.total_pages} "
        f"({p.total_posts} posts)"
    )
    click.echo("=" * 40)
    for item in page.posts:
        flags = []
        if item.is_from_connection:
            flags.append("connection")
        if item.is_recent:
            flags.append("recent")
        if item.is_liked:
            flags.append("liked")
        line = (
            f"  {item.post_id} by {item.post.author_id} "
            f"[{item.likes_count} likes, {item.comments_count} comments]"
        )
        if item.rank_score is not None:
            line += f" score={item.rank_score:.2f}"
        if flags:
            line += f" ({', '.join(flags)})"
        click.echo(line)

    stats = page.connection_stats
    click.echo("")
    click.echo(
        f"Connections: {stats.connections_count}  "
        f"Recent connection posts: {stats.recent_connection_posts}"
    )


_db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to SQLite database (default: COMMUNITY_FEED_DB_PATH).",
)
_json_option = click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output as JSON.",
)
_verbose_option = click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging.",
)


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """Community feed ranking CLI."""


@cli.command()
@_db_option
@click.option("--viewer", "viewer_id", required=True, help="Requesting user id.")
@click.option(
    "--mode",
    default="latest",
    show_default=True,
    help=f"Ranking mode: {', '.join(AVAILABLE_MODES)}.",
)
@click.option("--page", default="1", help="1-based page number.")
@click.option("--limit", "page_size", default=None, help="Posts per page.")
@_json_option
@_verbose_option
def feed(  # noqa: PLR0913
    db_path: Path | None,
    viewer_id: str,
    mode: str,
    page: str,
    page_size: str | None,
    json_output: bool,
    verbose: bool,
) -> None:
    """Show one page of a viewer's ranked feed.

    Unrecognized modes fall back to latest; invalid page values are clamped.
    """
    settings = _setup(verbose)
    bind_request_context(str(uuid.uuid4())[:8], viewer_id=viewer_id)
    try:
        with _open_store(db_path or settings.db_path) as store:
            ranker = FeedRanker(store, config=settings.ranking_config())
            viewer = SocialGraph(store).viewer_context(viewer_id)
            result = ranker.rank(viewer, ranker.page_request(page, page_size), mode)
    finally:
        clear_request_context()

    if json_output:
        click.echo(json.dumps(result.to_json_dict(), indent=2))
    else:
        _echo_page(result)


@cli.command("author-posts")
@_db_option
@click.option("--author", "author_id", required=True, help="Author user id.")
@click.option("--viewer", "viewer_id", default=None, help="Optional viewer id.")
@click.option("--page", default="1", help="1-based page number.")
@click.option("--limit", "page_size", default=None, help="Posts per page.")
@_json_option
@_verbose_option
def author_posts(  # noqa: PLR0913
    db_path: Path | None,
    author_id: str,
    viewer_id: str | None,
    page: str,
    page_size: str | None,
    json_output: bool,
    verbose: bool,
) -> None:
    """List one author's published posts, newest first."""
    settings = _setup(verbose)
    with _open_store(db_path or settings.db_path) as store:
        ranker = FeedRanker(store, config=settings.ranking_config())
        viewer = SocialGraph(store).viewer_context(viewer_id) if viewer_id else None
        result = ranker.author_posts(
            author_id, ranker.page_request(page, page_size), viewer=viewer
        )

    if json_output:
        click.echo(json.dumps(result.to_json_dict(), indent=2))
    else:
        _echo_page(result)


@cli.command("trending-tags")
@_db_option
@click.option(
    "--window-days",
    type=click.IntRange(min=1),
    default=None,
    help="Recency window in days (default: COMMUNITY_FEED_TRENDING_WINDOW_DAYS).",
)
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum tags (default: COMMUNITY_FEED_TRENDING_LIMIT).",
)
@_json_option
@_verbose_option
def trending_tags(
    db_path: Path | None,
    window_days: int | None,
    limit: int | None,
    json_output: bool,
    verbose: bool,
) -> None:
    """Show the most used tags over recent published posts."""
    settings = _setup(verbose)
    with _open_store(db_path or settings.db_path) as store:
        trends = TagTrendAggregator(store).trending_tags(
            window_days=window_days or settings.trending_window_days,
            limit=limit or settings.trending_limit,
        )

    if json_output:
        click.echo(json.dumps([t.model_dump(mode="json") for t in trends], indent=2))
        return

    if not trends:
        click.echo("No tags found")
        return
    click.echo("Trending Tags")
    click.echo("=" * 40)
    for trend in trends:
        click.echo(
            f"  #{trend.tag}: {trend.recent_count} recent, {trend.total_count} total"
        )


@cli.command()
@_db_option
@click.option(
    "--window-days",
    type=click.IntRange(min=1),
    default=7,
    show_default=True,
    help="Window for recent posts in days.",
)
@_json_option
@_verbose_option
def overview(
    db_path: Path | None, window_days: int, json_output: bool, verbose: bool
) -> None:
    """Show community activity counts."""
    settings = _setup(verbose)
    with _open_store(db_path or settings.db_path) as store:
        stats = CommunityOverview(store).overview(window_days=window_days)

    if json_output:
        click.echo(json.dumps(stats.model_dump(mode="json"), indent=2))
    else:
        click.echo("Community Overview")
        click.echo("=" * 40)
        click.echo(f"  Published posts: {stats.total_posts}")
        click.echo(f"  Accepted connections: {stats.total_connections}")
        click.echo(f"  Posts in last {stats.window_days} days: {stats.recent_posts}")


@cli.command("connection-status")
@_db_option
@click.option("--viewer", "viewer_id", required=True, help="Requesting user id.")
@click.option("--other", "other_id", required=True, help="User to check against.")
@_json_option
@_verbose_option
def connection_status(
    db_path: Path | None,
    viewer_id: str,
    other_id: str,
    json_output: bool,
    verbose: bool,
) -> None:
    """Show the connection between two users."""
    settings = _setup(verbose)
    with _open_store(db_path or settings.db_path) as store:
        lookup = SocialGraph(store).connection_status(viewer_id, other_id)

    if json_output:
        output = {
            "status": lookup.status_label,
            "connection_id": lookup.connection_id,
            "is_requester": lookup.is_requester,
        }
        click.echo(json.dumps(output, indent=2))
    else:
        click.echo(f"Status: {lookup.status_label}")
        if lookup.connection_id:
            role = "requester" if lookup.is_requester else "recipient"
            click.echo(f"  Connection: {lookup.connection_id} ({role})")


@cli.command("db-stats")
@_db_option
@_json_option
def db_stats(db_path: Path | None, json_output: bool) -> None:
    """Display database statistics.

    Shows row counts for all tables and the schema version.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level_value, json_format=False)

    with _open_store(db_path or settings.db_path) as store:
        stats = store.get_stats()
        schema_version = store.get_schema_version()

    if json_output:
        output = {"schema_version": schema_version, "tables": stats}
        click.echo(json.dumps(output, indent=2))
    else:
        click.echo("Database Statistics")
        click.echo("=" * 40)
        click.echo(f"  Schema Version: {schema_version}")
        click.echo("")
        click.echo("Table Row Counts:")
        for table, count in sorted(stats.items()):
            click.echo(f"  {table}: {count}")


if __name__ == "__main__":
    cli()
