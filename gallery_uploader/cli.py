"""Command line interface for gallery_uploader package."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from rich.logging import RichHandler

from .cli_progress import BatchUploadProgressDisplay, render_configuration_summary
from .models import UploaderInfo
from .orchestrator import UploadOrchestrator
from .orchestrator.file_collector import FileCollector
from .services.transport import DEFAULT_STORAGE_URL


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _resolve_concurrency(value: Optional[int]) -> Optional[int]:
    if value is not None:
        if value < 1:
            raise CLIError("--concurrency must be at least 1")
        return value

    env_value = os.getenv("GALLERY_UPLOAD_CONCURRENCY")
    if not env_value:
        return None
    try:
        parsed = int(env_value)
    except ValueError as exc:
        raise CLIError(f"GALLERY_UPLOAD_CONCURRENCY is not a number: {env_value}") from exc
    if parsed < 1:
        raise CLIError("GALLERY_UPLOAD_CONCURRENCY must be at least 1")
    return parsed


def _collect_sources(sources: Sequence[Path]) -> List[Path]:
    missing = [str(source) for source in sources if not source.exists()]
    if missing:
        raise CLIError(f"source does not exist: {', '.join(missing)}")

    files = FileCollector.expand(sources)
    if not files:
        raise CLIError("no photos or audio files found in the given sources")
    return files


async def _run_upload(
    files: List[Path],
    gallery: str,
    concurrency: Optional[int],
    bucket: str,
    storage_url: str,
    storage_token: Optional[str],
    api_url: Optional[str],
    uploader_name: str,
    gallery_base_url: Optional[str],
    notify: bool,
) -> int:
    async with UploadOrchestrator(
        storage_bucket=bucket,
        storage_url=storage_url,
        storage_token=storage_token,
        api_url=api_url,
        api_token=os.getenv("GALLERY_API_TOKEN"),
        uploader_name=uploader_name,
        gallery_base_url=gallery_base_url,
        notify=notify,
    ) as orchestrator:
        display = BatchUploadProgressDisplay()
        process = orchestrator.upload_files(gallery, files, concurrency=concurrency)
        process.on_start(display.on_start)
        process.on_progress(display.on_progress)
        process.on_summary(display.on_summary)
        process.on_file_complete(display.on_file_complete)
        process.on_file_fail(display.on_file_fail)
        process.on_finish(display.on_finish)
        process.on_error(display.on_error)

        result = await process.wait()
        if result is None:
            error = process.error
            if error is not None:
                print(f"ERROR: {error}", file=sys.stderr)
            return 1

        if orchestrator.repository is not None and result.uploaded:
            uploader = UploaderInfo(name=uploader_name or "gallery-up")
            unsaved = await orchestrator.repository.save_photos(gallery, result.uploaded, uploader)
            if unsaved:
                print(f"WARNING: could not save records for: {', '.join(unsaved)}", file=sys.stderr)

        if result.failed_files:
            print("Files to retry manually:", file=sys.stderr)
            for name in result.failed_names:
                print(f"  {name}", file=sys.stderr)
            return 1

        return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gallery-up",
        description="Upload photos and voice memos to an event gallery.",
    )
    parser.add_argument("sources", nargs="*", type=Path, help="Files or folders to upload")
    parser.add_argument(
        "-g",
        "--gallery",
        default=None,
        help="Gallery id the files belong to (default from GALLERY_ID)",
    )
    parser.add_argument(
        "-c",
        "--concurrency",
        type=int,
        default=None,
        help="Requested simultaneous uploads (default from GALLERY_UPLOAD_CONCURRENCY or 1)",
    )
    parser.add_argument(
        "--storage-url",
        default=None,
        help=f"Object storage endpoint (default from GALLERY_STORAGE_URL or {DEFAULT_STORAGE_URL})",
    )
    parser.add_argument(
        "--bucket",
        default=None,
        help="Object storage bucket (default from GALLERY_STORAGE_BUCKET)",
    )
    parser.add_argument(
        "--api-url",
        default=None,
        help="Gallery API URL for photo records and notifications (default from GALLERY_API_URL)",
    )
    parser.add_argument(
        "--uploader-name",
        default=None,
        help="Name shown to gallery subscribers",
    )
    parser.add_argument(
        "--no-notify",
        action="store_true",
        help="Do not notify gallery subscribers after the upload",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="gallery-up (from gallery_uploader)",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level or os.getenv("LOG_LEVEL"),
    )

    if not args.sources:
        parser.print_help()
        return 0

    try:
        gallery = args.gallery or os.getenv("GALLERY_ID")
        if not gallery:
            raise CLIError("a gallery id is required (--gallery or GALLERY_ID)")
        bucket = args.bucket or os.getenv("GALLERY_STORAGE_BUCKET")
        if not bucket:
            raise CLIError("a storage bucket is required (--bucket or GALLERY_STORAGE_BUCKET)")
        concurrency = _resolve_concurrency(args.concurrency)
        files = _collect_sources([Path(source).expanduser() for source in args.sources])
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    storage_url = args.storage_url or os.getenv("GALLERY_STORAGE_URL") or DEFAULT_STORAGE_URL
    api_url = args.api_url or os.getenv("GALLERY_API_URL")
    gallery_base_url = os.getenv("GALLERY_BASE_URL")
    uploader_name = args.uploader_name or os.getenv("GALLERY_UPLOADER_NAME") or ""

    render_configuration_summary(
        {
            "Gallery": gallery,
            "Files": len(files),
            "Concurrency": concurrency or "(default)",
            "Storage": f"{storage_url} [{bucket}]",
            "Gallery API": api_url or "(records and notifications disabled)",
            "Notify": "no" if args.no_notify or not api_url else "yes",
            "Uploader": uploader_name or "-",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        return asyncio.run(
            _run_upload(
                files=files,
                gallery=gallery,
                concurrency=concurrency,
                bucket=bucket,
                storage_url=storage_url,
                storage_token=os.getenv("GALLERY_STORAGE_TOKEN"),
                api_url=api_url,
                uploader_name=uploader_name,
                gallery_base_url=gallery_base_url,
                notify=not args.no_notify,
            )
        )
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
