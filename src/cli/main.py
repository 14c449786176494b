"""Main CLI entry point for the wiki-store command.

This module provides the Typer application used to administer a wiki
repository from the command line: create it, read pages and their history,
save pages (with staged media and a concurrent edit check), inspect and
replace access rules and sweep old staged media.
"""

import getpass
import logging
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterator, List, Optional

import typer

from src.access_control.engine import AccessControlEngine
from src.access_control.errors import RuleFormatError
from src.access_control.permission_helper import PagePermissionHelper
from src.access_control.serializer import parse_rules, serialize_rules
from src.cli.config_loader import ConfigLoader
from src.cli.errors import CLIError
from src.cli.models import ExitCode
from src.cli.output import OutputHandler
from src.content_converter.markdown_renderer import PandocRenderer
from src.git_backend.errors import (
    CommitOutcomeUnknownError,
    ConcurrentCommitError,
    NotFoundError,
    WikiError,
)
from src.git_backend.retry_logic import retry_on_concurrent_commit
from src.media_staging.cleanup_worker import TemporaryMediaCleanupWorker
from src.media_staging.staging import TemporaryMediaStaging, owner_key_for
from src.models.wiki_options import WikiOptions
from src.models.wiki_user import (
    WikiUser,
    WikiUserWithPermissions,
    git_email_from_external_identifier,
)
from src.page_editing.concurrency import save_if_unchanged
from src.page_editing.edit_orchestrator import EditOrchestrator
from src.page_store.errors import FrontMatterError, InvalidIdentifierError
from src.page_store.page_store import PageStore
from src.page_store.site_map import build_site_map
from src.page_store.template_service import TemplateService, resolve_placeholders

app = typer.Typer(
    name="wiki-store",
    help="Versioned, localized wiki pages stored in a git repository.",
    add_completion=False,
    rich_markup_mode=None,
    no_args_is_help=True,
)

# Module logger
logger = logging.getLogger(__name__)


@dataclass
class CLIContext:
    """Global options shared by every command."""
    config_path: str
    verbosity: int
    no_color: bool
    output: OutputHandler


@dataclass
class WikiServices:
    """Components wired from the loaded configuration."""
    options: WikiOptions
    pages: PageStore
    access: AccessControlEngine
    staging: TemporaryMediaStaging
    editor: EditOrchestrator


def _configure_logging(verbosity: int, logdir: Optional[str] = None) -> None:
    """Configure logging based on verbosity level.

    Configures only the 'src' namespace logger to avoid affecting third-party
    libraries. The root logger is left unchanged.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG)
        logdir: Optional directory for log files (creates timestamped log file)
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    app_logger = logging.getLogger("src")
    app_logger.setLevel(level)
    app_logger.handlers.clear()

    date_format = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter("%(asctime)s [%(levelname)8s] %(message)s", datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if logdir:
        log_path = Path(logdir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"wiki-store_{timestamp}.log"

        file_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt=date_format
        )
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        app_logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")


def _open_wiki(ctx: typer.Context, renderer: Optional[PandocRenderer] = None) -> WikiServices:
    """Load the configuration and wire the wiki components."""
    cli: CLIContext = ctx.obj
    options = ConfigLoader.load(cli.config_path)
    pages = PageStore(options, renderer=renderer)
    staging = TemporaryMediaStaging.from_options(options)
    return WikiServices(
        options=options,
        pages=pages,
        access=AccessControlEngine(pages.store, options),
        staging=staging,
        editor=EditOrchestrator(pages, staging, options.temp_media_url_template),
    )


def _author(name: Optional[str], identifier: Optional[str]) -> WikiUser:
    identifier = identifier or getpass.getuser()
    name = name or identifier
    return WikiUser(
        git_name=name,
        git_email=git_email_from_external_identifier(identifier),
        display_name=name,
    )


@contextmanager
def _handle_errors(output: OutputHandler) -> Iterator[None]:
    """Map wiki errors raised by a command to messages and exit codes."""
    try:
        yield
    except typer.Exit:
        raise
    except (InvalidIdentifierError, RuleFormatError, FrontMatterError) as e:
        output.error(str(e))
        raise typer.Exit(ExitCode.INVALID_INPUT)
    except NotFoundError as e:
        output.error(str(e))
        raise typer.Exit(ExitCode.NOT_FOUND)
    except ConcurrentCommitError as e:
        output.error(f"{e} (retries exhausted)")
        raise typer.Exit(ExitCode.CONFLICT)
    except CommitOutcomeUnknownError as e:
        output.warning(str(e))
        raise typer.Exit(ExitCode.OUTCOME_UNKNOWN)
    except (CLIError, WikiError) as e:
        logger.error(str(e))
        output.error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    except Exception as e:
        logger.exception("Unexpected error")
        output.error(f"Unexpected error: {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)


@app.callback()
def main(
    ctx: typer.Context,
    config: str = typer.Option(
        "wiki.yaml",
        "--config",
        "-c",
        help="YAML configuration file",
        envvar="WIKI_CONFIG",
    ),
    logdir: Optional[str] = typer.Option(
        None,
        "--logdir",
        help="Directory for log files (creates timestamped log file)",
    ),
    verbosity: int = typer.Option(
        0,
        "--verbosity",
        "-v",
        help="Verbosity level: 0=summary, 1=info, 2=debug",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
) -> None:
    """Versioned, localized wiki pages stored in a git repository."""
    _configure_logging(verbosity, logdir)
    ctx.obj = CLIContext(
        config_path=config,
        verbosity=verbosity,
        no_color=no_color,
        output=OutputHandler(verbosity=verbosity, no_color=no_color),
    )


@app.command()
def init(ctx: typer.Context) -> None:
    """Create the wiki repository with a home page."""
    output: OutputHandler = ctx.obj.output
    with _handle_errors(output):
        wiki = _open_wiki(ctx)
        if wiki.pages.ensure_repository_created():
            output.success(f"Created wiki repository at {wiki.options.repository_path}")
        else:
            output.info(f"Wiki repository already exists at {wiki.options.repository_path}")


@app.command()
def show(
    ctx: typer.Context,
    page_name: str = typer.Argument(..., help="Page name, e.g. docs/setup"),
    culture: Optional[str] = typer.Option(None, "--culture", "-l", help="Culture, e.g. fr"),
    revision: Optional[str] = typer.Option(None, "--revision", "-r", help="Commit id"),
    html: bool = typer.Option(False, "--html", help="Print HTML rendered with pandoc"),
) -> None:
    """Print a page (its content hash goes to the info output)."""
    output: OutputHandler = ctx.obj.output
    with _handle_errors(output):
        wiki = _open_wiki(ctx, renderer=PandocRenderer() if html else None)
        if revision:
            page = wiki.pages.get_page_at_revision(page_name, culture, revision)
        else:
            page = wiki.pages.get_page(page_name, culture)
        if page is None:
            output.error(f"Page '{page_name}' not found")
            raise typer.Exit(ExitCode.NOT_FOUND)

        output.info(f"Title: {page.title}")
        output.info(f"Hash: {page.content_hash}")
        output.info(f"Last modified by {page.last_modified_by} at {page.last_modified_at}")
        output.print(page.rendered_content if html else page.content)


@app.command()
def history(
    ctx: typer.Context,
    page_name: str = typer.Argument(..., help="Page name"),
    culture: Optional[str] = typer.Option(None, "--culture", "-l", help="Culture"),
) -> None:
    """List the revisions of a page, newest first."""
    output: OutputHandler = ctx.obj.output
    with _handle_errors(output):
        wiki = _open_wiki(ctx)
        output.print_history(wiki.pages.get_page_history(page_name, culture))


@app.command()
def pages(ctx: typer.Context) -> None:
    """List every page variant."""
    output: OutputHandler = ctx.obj.output
    with _handle_errors(output):
        wiki = _open_wiki(ctx)
        output.print_pages(wiki.pages.get_all_pages(), wiki.options.neutral_culture)


@app.command()
def sitemap(ctx: typer.Context) -> None:
    """Show the page hierarchy as a tree."""
    output: OutputHandler = ctx.obj.output
    with _handle_errors(output):
        wiki = _open_wiki(ctx)
        roots = build_site_map(wiki.pages.get_all_pages(), wiki.options.neutral_culture)
        output.print_site_map(roots)


@app.command()
def cultures(
    ctx: typer.Context,
    page_name: str = typer.Argument(..., help="Page name"),
) -> None:
    """List the cultures a page exists in."""
    output: OutputHandler = ctx.obj.output
    with _handle_errors(output):
        wiki = _open_wiki(ctx)
        for culture in wiki.pages.get_available_cultures(page_name):
            output.print(culture)


@app.command()
def save(
    ctx: typer.Context,
    page_name: str = typer.Argument(..., help="Page name"),
    file: str = typer.Option("-", "--file", "-f", help="Markdown file to save, '-' for stdin"),
    culture: Optional[str] = typer.Option(None, "--culture", "-l", help="Culture"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Commit message"),
    expected_hash: Optional[str] = typer.Option(
        None,
        "--expected-hash",
        help="Content hash the edit started from; refuse to save if the page changed",
    ),
    cleanup_media: bool = typer.Option(
        False, "--cleanup-media", help="Delete promoted staged media after saving"
    ),
    author_name: Optional[str] = typer.Option(None, "--author", envvar="WIKI_AUTHOR_NAME"),
    author_id: Optional[str] = typer.Option(None, "--author-id", envvar="WIKI_AUTHOR_ID"),
) -> None:
    """Save a page, promoting the staged media it references."""
    output: OutputHandler = ctx.obj.output
    with _handle_errors(output):
        wiki = _open_wiki(ctx)
        author = _author(author_name, author_id)
        if file == "-":
            content = sys.stdin.read()
        else:
            content = Path(file).read_text(encoding="utf-8")

        if not message:
            verb = "Update" if wiki.pages.page_exists(page_name, culture) else "Create"
            message = f"{verb} page {page_name}"

        outcome = retry_on_concurrent_commit(
            save_if_unchanged,
            wiki.editor, page_name, culture, content, message, author, expected_hash,
        )
        if outcome.stale_write is not None:
            stale = outcome.stale_write
            output.warning(stale.describe())
            output.print(f"Current hash: {stale.current_hash}")
            raise typer.Exit(ExitCode.CONFLICT)

        promotion = outcome.promotion
        output.success(f"Saved {page_name} in commit {promotion.commit_id[:10]}")
        output.debug(f"Committed as {author.git_name} <{author.git_email}>")
        for media_path in promotion.media_paths:
            output.info(f"  + {media_path}")
        for temporary_id in promotion.promoted_ids:
            output.debug(f"Promoted staged media {temporary_id}")
        if cleanup_media and promotion.promoted_ids:
            wiki.staging.cleanup(owner_key_for(author), promotion.promoted_ids)
            output.info(f"Removed {len(promotion.promoted_ids)} staged file(s)")


@app.command("stage-media")
def stage_media(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Media file to stage"),
    author_name: Optional[str] = typer.Option(None, "--author", envvar="WIKI_AUTHOR_NAME"),
    author_id: Optional[str] = typer.Option(None, "--author-id", envvar="WIKI_AUTHOR_ID"),
) -> None:
    """Stage a media file and print the URL to reference it with."""
    output: OutputHandler = ctx.obj.output
    with _handle_errors(output):
        wiki = _open_wiki(ctx)
        author = _author(author_name, author_id)
        temporary_id = wiki.staging.store(owner_key_for(author), file.name, file.read_bytes())
        output.success(f"Staged {file.name} as {temporary_id}")
        output.print(wiki.editor.temp_media_url(temporary_id))


@app.command("check-access")
def check_access(
    ctx: typer.Context,
    page_name: str = typer.Argument(..., help="Page name"),
    groups: Optional[List[str]] = typer.Option(
        None, "--group", "-g", help="Group of the caller (repeatable)"
    ),
) -> None:
    """Show what a set of groups may do on a page."""
    output: OutputHandler = ctx.obj.output
    with _handle_errors(output):
        wiki = _open_wiki(ctx)
        access = wiki.access.check_page_access(page_name, groups or [])
        output.print_access(page_name, access)


@app.command()
def rules(
    ctx: typer.Context,
    set_from: Optional[Path] = typer.Option(
        None, "--set", exists=True, dir_okay=False, help="Replace the rules with this file"
    ),
    export: bool = typer.Option(False, "--export", help="Print the rules in file format"),
    message: str = typer.Option("Update access rules", "--message", "-m"),
    author_name: Optional[str] = typer.Option(None, "--author", envvar="WIKI_AUTHOR_NAME"),
    author_id: Optional[str] = typer.Option(None, "--author-id", envvar="WIKI_AUTHOR_ID"),
) -> None:
    """Show or replace the page access rules."""
    output: OutputHandler = ctx.obj.output
    with _handle_errors(output):
        wiki = _open_wiki(ctx)
        if set_from is not None:
            new_rules = parse_rules(set_from.read_text(encoding="utf-8"))
            commit_id = retry_on_concurrent_commit(
                wiki.access.save_rules, new_rules, message, _author(author_name, author_id)
            )
            output.success(f"Saved {len(new_rules)} rule(s) in commit {commit_id[:10]}")
            return

        current = wiki.access.get_rules()
        if export:
            output.print(serialize_rules(current, include_examples=True))
        else:
            output.print_rules(current)


@app.command()
def templates(
    ctx: typer.Context,
    groups: Optional[List[str]] = typer.Option(
        None, "--group", "-g", help="Group of the caller (repeatable)"
    ),
    pattern_date: Optional[str] = typer.Option(
        None, "--date", help="Resolve name patterns for this date (YYYY-MM-DD)"
    ),
) -> None:
    """List the page templates readable by a set of groups."""
    output: OutputHandler = ctx.obj.output
    with _handle_errors(output):
        wiki = _open_wiki(ctx)
        caller = WikiUserWithPermissions(user=_author(None, None), groups=groups or [])
        permissions = PagePermissionHelper(wiki.pages, wiki.access, wiki.options)
        service = TemplateService(wiki.pages, permissions)
        now = datetime.strptime(pattern_date, "%Y-%m-%d") if pattern_date else None

        found = service.get_all_templates(caller)
        if not found:
            output.print("No templates")
        for template in found:
            line = f"{template.template_name}: {template.display_name}"
            if template.name_pattern:
                location = f"{template.default_location}/" if template.default_location else ""
                line += f" -> {location}{resolve_placeholders(template.name_pattern, now)}"
            output.print(line)
            if template.description:
                output.info(f"  {template.description}")


@app.command()
def sweep(
    ctx: typer.Context,
    max_age_hours: Optional[float] = typer.Option(
        None, "--max-age-hours", help="Delete staged media older than this (default from config)"
    ),
    watch: bool = typer.Option(
        False, "--watch", help="Keep running and sweep on the configured interval"
    ),
) -> None:
    """Delete old staged media."""
    output: OutputHandler = ctx.obj.output
    with _handle_errors(output):
        wiki = _open_wiki(ctx)
        max_age_seconds = (
            max_age_hours * 3600 if max_age_hours is not None
            else wiki.options.temp_media_max_age_seconds
        )
        worker = TemporaryMediaCleanupWorker(
            wiki.staging,
            interval_seconds=wiki.options.temp_media_cleanup_interval_seconds,
            max_age_seconds=max_age_seconds,
        )
        if not watch:
            removed = worker.run_once()
            output.success(f"Removed {removed} staged media file(s) older than {timedelta(seconds=max_age_seconds)}")
            return

        worker.start()
        output.info("Sweeping staged media periodically, press Ctrl+C to stop")
        try:
            while worker.is_running:
                time.sleep(1)
        except KeyboardInterrupt:
            pass
        finally:
            worker.stop()


if __name__ == "__main__":
    app()
