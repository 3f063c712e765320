"""Command-line interface for Time Print photo restoration."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from timeprint import __version__
from timeprint.ai.gemini_restore import GeminiRestorationClient
from timeprint.batch import BatchOrchestrator
from timeprint.color.adjustments import export_photo
from timeprint.photos.collection import PhotoCollection
from timeprint.photos.item import PhotoItem, PhotoStatus
from timeprint.preprocessing.loader import find_photos
from timeprint.settings import EnvironmentKeySelector, RestorationMode, SessionSettings

# Load environment variables from .env
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%H:%M:%S'
)

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Time Print - Restore and upscale old photographs with Gemini image models."""
    pass


@main.command()
@click.argument('input_paths', nargs=-1, required=True, type=click.Path(exists=True))
@click.option(
    '--output',
    '-o',
    'output_dir',
    type=click.Path(),
    default='./output',
    help='Output directory for restored images'
)
@click.option(
    '--mode',
    type=click.Choice([m.value for m in RestorationMode]),
    default=RestorationMode.STANDARD.value,
    help='standard restoration, or ultra for 2K super-resolution'
)
@click.option(
    '--timeout',
    'timeout_seconds',
    type=click.FloatRange(min=1.0),
    default=90.0,
    help='Per-photo deadline in seconds'
)
@click.option(
    '--batch',
    is_flag=True,
    help='Process all images in directory'
)
@click.option(
    '--filter',
    'filter_pattern',
    type=str,
    help='Glob pattern to filter files (e.g., "*.jpg")'
)
@click.option('--brightness', type=float, default=100.0, help='Export brightness, 50-150')
@click.option('--contrast', type=float, default=100.0, help='Export contrast, 50-150')
@click.option('--saturation', type=float, default=100.0, help='Export saturation, 0-200')
@click.option('--sharpness', type=float, default=0.0, help='Export sharpness, 0-100')
@click.option(
    '--secrets',
    'secrets_path',
    type=click.Path(exists=True, dir_okay=False),
    help='Path to a secrets.json holding API_KEY or GEMINI_API_KEY'
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging'
)
def restore(
    input_paths: tuple,
    output_dir: str,
    mode: str,
    timeout_seconds: float,
    batch: bool,
    filter_pattern: Optional[str],
    brightness: float,
    contrast: float,
    saturation: float,
    sharpness: float,
    secrets_path: Optional[str],
    verbose: bool
) -> None:
    """Restore old photos and export them with display adjustments applied.

    INPUT_PATHS: One or more image files or directories to restore
    """
    # Set logging level
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    for input_path_str in input_paths:
        if Path(input_path_str).is_dir() and not batch:
            logger.error(f"Directory provided but --batch not specified: {input_path_str}")
            sys.exit(1)

    input_files = find_photos(input_paths, filter_pattern)
    if not input_files:
        logger.error("No input files found")
        sys.exit(1)

    settings = SessionSettings(
        timeout_ms=int(timeout_seconds * 1000),
        secrets_path=Path(secrets_path) if secrets_path else None,
    )
    settings.select_mode(mode)
    settings.refresh_credentials(EnvironmentKeySelector(settings.secrets_path))
    if settings.has_api_key is False:
        logger.error("No API key configured. Set GEMINI_API_KEY (or API_KEY) in the environment or .env")
        sys.exit(1)

    collection = PhotoCollection()
    try:
        collection.add_files(input_files)
        if not len(collection):
            logger.error("None of the input files could be loaded")
            sys.exit(1)

        for item in collection.snapshot():
            collection.update_adjustment(item.id, 'brightness', brightness)
            collection.update_adjustment(item.id, 'contrast', contrast)
            collection.update_adjustment(item.id, 'saturation', saturation)
            collection.update_adjustment(item.id, 'sharpness', sharpness)

        client = GeminiRestorationClient(secrets_path=settings.secrets_path)
        orchestrator = BatchOrchestrator(collection, client, settings)

        def _report(index: int, total: int, item: PhotoItem) -> None:
            if item.status is PhotoStatus.ERROR:
                click.echo(f"[{index}/{total}] {item.name}: " + click.style(f"failed - {item.error}", fg="red"))
            else:
                click.echo(f"[{index}/{total}] {item.name}: " + click.style("restored", fg="green"))

        summary = asyncio.run(orchestrator.process_all(on_progress=_report))

        # Export restored photos
        output_path = Path(output_dir)
        exported = 0
        written: set = set()
        for item in collection.snapshot():
            if item.status is not PhotoStatus.COMPLETED:
                continue
            try:
                saved = export_photo(item, output_path, taken=written)
                logger.info(f"Saved: {saved.name}")
                exported += 1
            except (OSError, ValueError) as e:
                logger.error(f"Error exporting {item.name}: {e}", exc_info=verbose)
                continue

        if settings.has_api_key is False:
            logger.warning("The API key was rejected; select a different key and retry the failed photos")

        # Print overall summary
        logger.info(f"\n{'=' * 60}")
        logger.info(
            f"COMPLETE: Restored {summary.completed}/{len(collection)} photo(s), "
            f"{summary.failed} failed, {exported} exported in {summary.elapsed:.1f}s"
        )
        logger.info(f"Output directory: {output_path.absolute()}")
        logger.info(f"{'=' * 60}")
    finally:
        collection.close()


@main.command('check-key')
@click.option(
    '--secrets',
    'secrets_path',
    type=click.Path(exists=True, dir_okay=False),
    help='Path to a secrets.json holding API_KEY or GEMINI_API_KEY'
)
def check_key(secrets_path: Optional[str]) -> None:
    """Report whether a Gemini API key is available."""
    settings = SessionSettings(secrets_path=Path(secrets_path) if secrets_path else None)
    if settings.refresh_credentials(EnvironmentKeySelector(settings.secrets_path)):
        click.echo(click.style("API key available", fg="green", bold=True))
    else:
        click.echo(click.style("No API key found", fg="yellow"))
        click.echo("Set GEMINI_API_KEY (platform key) or API_KEY (your own key) in the environment,")
        click.echo("a .env file, or secrets.json.")
        sys.exit(1)


if __name__ == '__main__':
    main()
