from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from contractor_dashboard.config.loader import ConfigError, load_config, resolve_config_path
from contractor_dashboard.excel.errors import WorkbookError
from contractor_dashboard.logging.init import set_debug, setup_logging

"""CLI entrypoint.

Flow:
- Load .env (python-dotenv) so environment overrides are visible to the loader
- Load and validate the YAML config
- ``--inspect-data``: print each sheet's detected headers and first rows, exit
- otherwise: serve the HTTP API
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1

INSPECT_SAMPLE_ROWS = 3


def _load_env_file(path: Path, override: bool = False) -> None:
    """Load .env using python-dotenv; a failure is reported and ignored."""
    try:
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
    except OSError as e:  # pragma: no cover
        print(f"WARNING: failed to load .env via python-dotenv: {e}")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Contractor dashboard API over spreadsheet workbooks")
    p.add_argument("--config", type=Path, default=None, help="Path to the YAML config (default: config/dashboard.yml)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print sheet headers & first rows then exit")
    p.add_argument("--host", default=None, help="Override server host")
    p.add_argument("--port", type=int, default=None, help="Override server port")
    return p.parse_args(argv)


def _inspect_data(cfg) -> int:
    from contractor_dashboard.excel.reader import normalize_sheet
    from contractor_dashboard.excel.workbook import WorkbookAccessor

    accessor = WorkbookAccessor(cfg.workbook_path, cfg.backup_directory)
    print(f"FILE: {accessor.path.name}")
    try:
        with accessor.opened() as wb:
            for index, sname in enumerate(wb.sheetnames):
                try:
                    sd = normalize_sheet(accessor.sheet_grid(wb, sname), sname, index, cfg.layout_for(sname))
                except Exception as e:  # pragma: no cover
                    print(f"  SHEET: {sname} error={e}")
                    continue
                print(f"  SHEET: {sname} header_row={sd.header_row_index} cols={sd.columns}")
                print("    sample_rows=", sd.rows[:INSPECT_SAMPLE_ROWS])
    except WorkbookError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # NOTE: 空リスト [] が与えられた場合に sys.argv[1:] が混入しないよう None のときのみ読む
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"))

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    config_path = resolve_config_path(args.config)
    try:
        cfg = load_config(config_path)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    logger.info(f"Workbook: {cfg.workbook_path}")
    if not cfg.workbook_path.exists():
        logger.warning(f"workbook not found: {cfg.workbook_path}")

    if args.inspect_data:
        return _inspect_data(cfg)

    from contractor_dashboard.api.app import create_app

    host = args.host or cfg.server.host
    port = args.port or cfg.server.port
    app = create_app(cfg)
    logger.info(f"Contractor Dashboard Backend running on http://{host}:{port}/api")
    app.run(host=host, port=port, debug=cfg.server.debug or args.debug)
    return EXIT_SUCCESS


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
