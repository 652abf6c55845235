import logging
from pathlib import Path

import typer
from pydantic import ValidationError

from drive_organizer.cancellation import CancellationToken, watch_signals
from drive_organizer.classifier.cache import ClassificationCache
from drive_organizer.classifier.gemini import GeminiClassifier, UsageTracker
from drive_organizer.data_models.decision import RunStatus
from drive_organizer.drive.auth import build_drive_service
from drive_organizer.drive.client import DriveStore
from drive_organizer.drive.folders import FolderResolver
from drive_organizer.drive.lister import TreeWalker
from drive_organizer.drive.mover import Mover
from drive_organizer.drive.retry import RetryExecutor
from drive_organizer.errors import OrganizerError
from drive_organizer.settings import OrganizerSettings, ensure_api_key, load_settings
from drive_organizer.stages.decision import InteractiveDecider
from drive_organizer.stages.reorganize import Reorganizer
from drive_organizer.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="driver-organizer",
    help=(
        "Organize Google Drive files using AI (Gemini).\n\n"
        "Moves everything at the Drive root into a backup folder, then suggests "
        "a destination folder and name for each file and asks before moving it."
    ),
    no_args_is_help=True,
)


def _settings(ctx: typer.Context, **overrides) -> OrganizerSettings:
    options = ctx.obj or {}
    try:
        settings = load_settings(
            options.get("config"),
            log_level=options.get("log_level"),
            dry_run=options.get("dry_run"),
            **overrides,
        )
    except (ValidationError, ValueError, FileNotFoundError) as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1)

    setup_logging(settings.log_level, settings.log_dir)
    return settings


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Configuration file (default: ~/.config/driver-organizer/config.yaml).",
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Log level: debug, info, warn, error."
    ),
    dry_run: bool | None = typer.Option(
        None, "--dry-run/--no-dry-run", help="Simulate operations without moving files."
    ),
):
    ctx.obj = {"config": config, "log_level": log_level, "dry_run": dry_run}


@app.command()
def organize(
    ctx: typer.Context,
    gemini_api_key: str | None = typer.Option(
        None, "--gemini-api-key", "--api-key", help="Google AI Studio API key for Gemini."
    ),
    gemini_model: str | None = typer.Option(
        None, "--gemini-model", "--model", help="Gemini model to use."
    ),
    backup_folder: str | None = typer.Option(
        None, "--backup-folder", help="Backup folder path (may be nested with '/')."
    ),
    batch_size: int | None = typer.Option(
        None, "--batch-size", help="Files per classification batch."
    ),
    max_cost: float | None = typer.Option(
        None, "--max-cost", help="Maximum estimated AI cost in USD."
    ),
    resume: bool | None = typer.Option(
        None, "--resume/--no-resume", help="Continue organizing from the backup folder."
    ),
):
    """
    Move everything to the backup folder, then reorganize it with AI suggestions.
    """
    settings = _settings(
        ctx,
        gemini_api_key=gemini_api_key,
        gemini_model=gemini_model,
        backup_folder=backup_folder,
        batch_size=batch_size,
        max_cost=max_cost,
        resume=resume,
    )

    token = CancellationToken()
    restore = watch_signals(
        token,
        on_signal=lambda: typer.echo(
            "\n\n⚠ Interrupt received, stopping safely (press Enter if waiting for input)..."
        ),
    )
    try:
        summary = run_organize(settings, token)
    except (OrganizerError, FileNotFoundError, ValueError) as e:
        logger.error(f"Organize failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        restore()

    if summary.status == RunStatus.CANCELLED:
        raise typer.Exit(130)


def run_organize(settings: OrganizerSettings, token: CancellationToken):
    settings = ensure_api_key(settings)

    typer.echo("📁 Connecting to Google Drive...")
    store = DriveStore(build_drive_service(settings.credentials_path, settings.token_path))
    executor = RetryExecutor(token)

    classifier = GeminiClassifier.from_api_key(
        settings.gemini_api_key,
        settings.gemini_model,
        language=settings.language,
        usage=UsageTracker(
            input_price_per_million=settings.input_price_per_million,
            output_price_per_million=settings.output_price_per_million,
            max_cost=settings.max_cost,
        ),
    )

    reorganizer = Reorganizer(
        settings,
        walker=TreeWalker(store, executor),
        folders=FolderResolver(store, executor),
        mover=Mover(store, executor),
        classifier=classifier,
        decider=InteractiveDecider(token=token),
        cache=ClassificationCache(),
        token=token,
    )
    summary = reorganizer.run()
    logger.info(
        f"Run finished: status={summary.status.value} organized={summary.organized} "
        f"skipped={summary.skipped} total={summary.total} "
        f"estimated_cost=${classifier.usage.cost:.4f}"
    )
    return summary


@app.command()
def auth(ctx: typer.Context):
    """
    Run the Google Drive OAuth2 flow and save the token locally.
    """
    settings = _settings(ctx)

    typer.echo("🔐 Starting Google Drive authentication...")
    typer.echo(f"   Using credentials: {settings.credentials_path}")
    typer.echo(f"   Token will be saved to: {settings.token_path}\n")

    try:
        build_drive_service(settings.credentials_path, settings.token_path, force=True)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Authentication failed: {e}", err=True)
        raise typer.Exit(1)

    typer.echo("\n✓ Authentication successful!")
    typer.echo("   You can now run: driver-organizer organize")


def main():
    app()


if __name__ == "__main__":
    main()
