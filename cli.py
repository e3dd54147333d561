from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional

from config import OCRSettings, get_settings
from engines import DETECTOR, RECOGNIZER, available_engines, create_detector, create_recognizer
from engines.errors import EngineError, InputError
from engines.protocols import AccuracyMode, LanguageMode
from io_utils.logging_config import configure_logging
from io_utils.read import PDF, file_kind, iter_images, load_image
from io_utils.write import region_records, write_candidates, write_jsonl
from ocr.service import OCRService
from spatial.annotate import draw_regions

logger = logging.getLogger(__name__)


def setup_run(config: Optional[Path], log_level: str = "INFO", json_logs: bool = False) -> OCRSettings:
    """Configure logging and load validated settings."""
    configure_logging(level=log_level, json_format=json_logs)
    settings = get_settings(config)
    logger.debug("Loaded settings: %s", settings)
    return settings


def expand_paths(paths: List[Path]) -> List[Path]:
    """Replace directories with the images and PDFs they contain."""
    expanded: List[Path] = []
    for path in paths:
        if path.is_dir():
            expanded.extend(iter_images(path))
        else:
            expanded.append(path)
    return expanded


async def recognize_file(
    service: OCRService,
    path: Path,
    accuracy_mode: AccuracyMode,
    language_mode: LanguageMode,
    retry: bool = True,
) -> str:
    """Recognize one image or PDF file.

    PDF pages are always read with automatic language detection.
    """
    if file_kind(path) == PDF:
        return await service.extract_text(path, accuracy_mode)
    image = await asyncio.to_thread(load_image, path)
    if retry:
        return await service.perform_ocr_with_retry(image, accuracy_mode, language_mode)
    return (await service.perform_ocr(image, accuracy_mode, language_mode)).strip()


async def recognize_files(
    service: OCRService,
    paths: List[Path],
    accuracy_mode: AccuracyMode,
    language_mode: LanguageMode,
    retry: bool = True,
) -> Dict[Path, Optional[str]]:
    """Recognize ``paths`` one after another; unreadable files map to ``None``."""
    results: Dict[Path, Optional[str]] = {}
    for path in paths:
        try:
            results[path] = await recognize_file(service, path, accuracy_mode, language_mode, retry)
        except InputError as exc:
            logger.error("%s: %s", path, exc)
            results[path] = None
    return results


def ocr_cli(
    paths: List[Path],
    config: Optional[Path],
    accuracy: AccuracyMode,
    language: str,
    retry: bool,
    output: Optional[Path],
    log_level: str,
    json_logs: bool,
) -> int:
    """Recognize files and print the text; returns the process exit code."""
    import typer

    settings = setup_run(config, log_level, json_logs)
    service = OCRService.from_settings(settings)
    files = expand_paths(paths)
    results = asyncio.run(
        recognize_files(service, files, AccuracyMode(accuracy), LanguageMode.parse(language), retry)
    )

    for path, text in results.items():
        if text is None:
            continue
        if len(results) > 1:
            typer.echo(f"==> {path} <==")
        typer.echo(text)

    if output is not None:
        write_jsonl(output, ({"path": str(p), "text": t, "ok": t is not None} for p, t in results.items()))
        logger.info("Wrote %d results to %s", len(results), output)

    failed = sum(1 for text in results.values() if text is None)
    logger.info("Processed %d files (%d failed)", len(results), failed)
    return 1 if failed else 0


try:  # optional dependency
    import typer

    app = typer.Typer(help="Screen-region OCR with adaptive candidates and region detection")

    _CONFIG_OPTION = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        file_okay=True,
        help="Optional config file",
    )
    _ACCURACY_OPTION = typer.Option(AccuracyMode.STANDARD, "--accuracy", "-a", help="standard or high")
    _LOG_LEVEL_OPTION = typer.Option("INFO", "--log-level", help="DEBUG, INFO, WARNING, ERROR")
    _JSON_LOGS_OPTION = typer.Option(False, "--json-logs", help="Emit JSON log lines")

    def _check_language(value: str) -> str:
        try:
            LanguageMode.parse(value)
        except ValueError as exc:
            raise typer.BadParameter(f"{value!r} is not a language mode: {exc}") from exc
        return value

    @app.command()
    def ocr(
        paths: List[Path] = typer.Argument(..., exists=True, help="Image or PDF files, or directories"),
        config: Optional[Path] = _CONFIG_OPTION,
        accuracy: AccuracyMode = _ACCURACY_OPTION,
        language: str = typer.Option(
            "auto",
            "--language",
            "-l",
            help="auto, system, english, russian or comma separated BCP-47 tags",
            callback=_check_language,
        ),
        retry: bool = typer.Option(True, "--retry/--no-retry", help="Retry at high accuracy when nothing is found"),
        output: Optional[Path] = typer.Option(None, "--output", "-o", dir_okay=False, help="Write results as JSONL"),
        log_level: str = _LOG_LEVEL_OPTION,
        json_logs: bool = _JSON_LOGS_OPTION,
    ) -> None:
        """Recognize text in images and PDF documents."""
        raise typer.Exit(ocr_cli(paths, config, accuracy, language, retry, output, log_level, json_logs))

    @app.command()
    def regions(
        image: Path = typer.Argument(..., exists=True, dir_okay=False, help="Image file"),
        config: Optional[Path] = _CONFIG_OPTION,
        accuracy: AccuracyMode = _ACCURACY_OPTION,
        annotate: Optional[Path] = typer.Option(
            None, "--annotate", dir_okay=False, help="Save the detection image with region outlines"
        ),
        log_level: str = _LOG_LEVEL_OPTION,
        json_logs: bool = _JSON_LOGS_OPTION,
    ) -> None:
        """Print the text regions found in an image as JSON lines."""
        import json

        settings = setup_run(config, log_level, json_logs)
        service = OCRService.from_settings(settings)
        try:
            _, detection_image = service.candidates(load_image(image), AccuracyMode(accuracy))
        except InputError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(1)
        found = asyncio.run(service.regions(detection_image))
        for record in region_records(found, detection_image):
            typer.echo(json.dumps(record))
        if annotate is not None:
            draw_regions(detection_image, found).save(annotate)
            logger.info("Saved annotated detection image to %s", annotate)

    @app.command()
    def candidates(
        image: Path = typer.Argument(..., exists=True, dir_okay=False, help="Image file"),
        output: Path = typer.Option(..., "--output", "-o", file_okay=False, help="Output directory"),
        config: Optional[Path] = _CONFIG_OPTION,
        accuracy: AccuracyMode = _ACCURACY_OPTION,
        log_level: str = _LOG_LEVEL_OPTION,
        json_logs: bool = _JSON_LOGS_OPTION,
    ) -> None:
        """Write every recognition candidate of an image as PNG, in trial order."""
        settings = setup_run(config, log_level, json_logs)
        service = OCRService.from_settings(settings)
        try:
            generated, _ = service.candidates(load_image(image), AccuracyMode(accuracy))
        except InputError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(1)
        for path in write_candidates(output, generated):
            typer.echo(str(path))

    @app.command()
    def engines() -> None:
        """List registered recognizers and detectors."""
        for kind, factory in ((RECOGNIZER, create_recognizer), (DETECTOR, create_detector)):
            for name in available_engines(kind):
                try:
                    engine = factory(name)
                    status = "available" if getattr(engine, "is_available", True) else "unavailable"
                except (EngineError, ValueError, TypeError) as exc:
                    status = f"error ({exc})"
                typer.echo(f"{kind:<10} {name:<12} {status}")

    if __name__ == "__main__":
        app()
except ModuleNotFoundError:  # pragma: no cover
    app = None
