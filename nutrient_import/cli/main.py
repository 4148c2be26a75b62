from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, ImportConfig, load_config
from ..db.connection import db_connection
from ..excel.reader import InputError, preview_spreadsheet
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, set_debug, setup_logging
from ..models.import_result import ImportResult
from ..services.pipeline import PipelineError, import_file
from ..services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- load ``.env`` (python-dotenv, overriding the process environment)
- load ``config/import.yml`` (or ``--config``)
- import the spreadsheet (``--file`` overrides ``source_file``)
- print the SUMMARY line and exit with 0 / 2 / 1
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its values win over the existing environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="NUTTAB spreadsheet -> foods table importer")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--file", type=Path, default=None, help="Spreadsheet to import (overrides source_file)")
    p.add_argument("--dry-run", action="store_true", help="Normalize and dedup without touching the database")
    p.add_argument("--inspect-data", action="store_true", help="Print headers & first rows then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _inspect_data(path: Path) -> int:
    try:
        sheet = preview_spreadsheet(path, limit=3)
    except (FileNotFoundError, InputError) as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    print(f"FILE: {path.name}")
    print(f"  SHEET: {sheet.sheet_name} cols={sheet.columns}")
    # datetime を含む場合に備え isoformat で文字列化
    safe_rows = [
        {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in r.items()}
        for r in sheet.rows
    ]
    print("    sample_rows=", safe_rows)
    return EXIT_SUCCESS_ALL


def _run(cfg: ImportConfig, source: Path, dry_run: bool, error_log: ErrorLogBuffer) -> ImportResult:
    if dry_run:
        return import_file(source, None, cfg, error_log=error_log)
    with db_connection(cfg.database) as cur:
        return import_file(source, cur, cfg, error_log=error_log)


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみ sys.argv を読む ([] はテストからの明示的な空引数)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    source = args.file or Path(cfg.source_file)
    if not source.exists():
        logger.error(f"file not found: {source}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(source)

    logger.info(f"Importing foods from: {source}")
    error_log = ErrorLogBuffer()
    try:
        result = _run(cfg, source, args.dry_run, error_log)
    except (FileNotFoundError, InputError) as e:
        logger.error(f"input: {e}")
        return EXIT_FATAL
    except PipelineError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL
    except Exception as e:
        # 接続不可など開始前の致命的エラー
        logger.error(f"database: {e}")
        return EXIT_FATAL
    finally:
        try:
            written = error_log.flush()
        except OSError as e:
            logger.warning(f"failed to write error log: {e}")
        else:
            if written is not None:
                logger.info(f"error log: {written}")

    mode = "dry-run" if args.dry_run else "live"
    logger.info(f"mode={mode} total_rows={result.total_rows} valid={result.valid_rows}")
    if result.invalid_rows:
        logger.info(f"dropped {result.invalid_rows} rows without a name or nutrient values")

    summary_line = render_summary_line(result)
    log_summary(summary_line[len("SUMMARY "):])

    if result.has_failures:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL
