from __future__ import annotations

import logging
import os
import shutil
import time
import zipfile
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from ..models.config_models import DEFAULT_HEADER_ROW
from ..models.record import NO
from .coercion import parse_int_key
from .errors import (
    InvalidKeyError,
    SheetNotFoundError,
    WorkbookNotFoundError,
    WorkbookReadError,
    WorkbookWriteError,
)
from .reader import SheetGrid, is_blank

"""Workbook accessor: sheet listing, raw grid reads and in-place row mutation.

Every mutation is a full read-modify-write of the workbook file:

    copy file -> <stem>_backup_<epoch ms><suffix>
    save workbook over the original path
    success: delete backup / failure: copy backup back, raise WorkbookWriteError

There is no locking. Two writers racing on the same file can clobber each other
(last writer wins); the backup only protects against a failed write.
"""

__all__ = [
    "WorkbookAccessor",
]

logger = logging.getLogger(__name__)

_LOAD_ERRORS = (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError)


class WorkbookAccessor:
    """Reads and mutates one workbook file.

    The path (and backup directory) are given explicitly at construction; the
    accessor holds no other state, so every call sees the file as it is on disk.
    """

    def __init__(self, path: Path, backup_directory: Path | None = None) -> None:
        self.path = Path(path)
        self.backup_directory = Path(backup_directory) if backup_directory else self.path.parent

    @property
    def keep_vba(self) -> bool:
        # マクロ付きブック (.xlsm) は VBA を保持したまま保存する
        return self.path.suffix.lower() == ".xlsm"

    # ------------------------------------------------------------------ read
    def _ensure_exists(self) -> None:
        if not self.path.exists():
            raise WorkbookNotFoundError(f"Excel file not found at: {self.path}")

    def _load(self, *, data_only: bool = False) -> Workbook:
        self._ensure_exists()
        try:
            return load_workbook(self.path, data_only=data_only, keep_vba=self.keep_vba)
        except _LOAD_ERRORS as e:
            raise WorkbookReadError(f"cannot read workbook {self.path.name}: {e}") from e

    @staticmethod
    def _sheet(wb: Workbook, sheet_name: str) -> Worksheet:
        if sheet_name not in wb.sheetnames:
            raise SheetNotFoundError(sheet_name, wb.sheetnames)
        return wb[sheet_name]

    @contextmanager
    def opened(self) -> Iterator[Workbook]:
        """Load the workbook once (cached cell values) for several sheet reads."""
        wb = self._load(data_only=True)
        try:
            yield wb
        finally:
            wb.close()

    @classmethod
    def sheet_grid(cls, wb: Workbook, sheet_name: str) -> SheetGrid:
        """Return a sheet's used range as rows of raw cell values (row 0 = A1 row)."""
        ws = cls._sheet(wb, sheet_name)
        return [list(row) for row in ws.iter_rows(values_only=True)]

    def list_sheets(self) -> list[str]:
        with self.opened() as wb:
            return list(wb.sheetnames)

    def read_sheet_grid(self, sheet_name: str) -> SheetGrid:
        with self.opened() as wb:
            return self.sheet_grid(wb, sheet_name)

    # --------------------------------------------------------------- mutate
    def append_row(
        self, sheet_name: str, values: Sequence[Any], header_row: int = DEFAULT_HEADER_ROW
    ) -> int:
        """Append ``values`` after the sheet's used range.

        The next free row index is (rows from the header row onward) + header row,
        i.e. the row right after the used range, or the header row itself for a
        sheet that does not reach it yet. Returns the 1-based row number written.
        Values starting with "=" are stored as text, never as formulas.
        """
        wb = self._load()
        try:
            ws = self._sheet(wb, sheet_name)
            used_rows = sum(1 for _ in ws.iter_rows(values_only=True))
            next_index = max(used_rows - header_row, 0) + header_row
            row_number = next_index + 1
            for col, value in enumerate(values, start=1):
                cell = ws.cell(row=row_number, column=col, value=None if is_blank(value) else value)
                if isinstance(value, str) and value.startswith("="):
                    # 数式として解釈させず文字列のまま保存
                    cell.data_type = "s"
            logger.debug(f"append sheet={sheet_name} row={row_number} values={list(values)}")
            self._persist(wb)
        finally:
            wb.close()
        logger.info(f"New data added to sheet '{sheet_name}' at row {row_number}")
        return row_number

    def find_row_by_key(self, sheet_name: str, key: int, data_start_row: int = 1) -> int:
        """Return the 0-based index of the first data row whose first cell equals ``key``."""
        grid = self.read_sheet_grid(sheet_name)
        for idx in range(max(data_start_row, 0), len(grid)):
            row = grid[idx]
            if row and parse_int_key(row[0]) == key:
                return idx
        raise InvalidKeyError(f"No row with {NO} = {key} in sheet '{sheet_name}'")

    def delete_row(self, sheet_name: str, key: int, data_start_row: int = 1) -> None:
        """Delete the first data row whose first-column value equals ``key``.

        Every later row moves up by one and the used range shrinks by one row.
        """
        target = self.find_row_by_key(sheet_name, key, data_start_row)
        wb = self._load()
        try:
            ws = self._sheet(wb, sheet_name)
            ws.delete_rows(target + 1, 1)
            self._persist(wb)
        finally:
            wb.close()
        logger.info(f"Entry with {NO} {key} deleted from sheet '{sheet_name}' (row {target + 1})")

    # ---------------------------------------------------------- persistence
    def _backup_path(self) -> Path:
        stamp = int(time.time() * 1000)
        return self.backup_directory / f"{self.path.stem}_backup_{stamp}{self.path.suffix}"

    def _create_backup(self) -> Path | None:
        backup = self._backup_path()
        try:
            self.backup_directory.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self.path, backup)
        except OSError as e:
            logger.warning(f"Could not create backup: {e}")
            return None
        logger.debug(f"Backup created at: {backup}")
        return backup

    def _restore_backup(self, backup: Path | None) -> None:
        if backup is None or not backup.exists():
            logger.error(f"No backup available to restore {self.path.name}")
            return
        try:
            shutil.copyfile(backup, self.path)
        except OSError as e:
            # 復元失敗は記録のみ (元の書き込みエラーを優先して送出)
            logger.error(f"Could not restore from backup {backup}: {e}")
            return
        logger.info(f"Restored {self.path.name} from backup due to write error")
        self._discard_backup(backup)

    @staticmethod
    def _discard_backup(backup: Path | None) -> None:
        if backup is None:
            return
        try:
            backup.unlink()
        except OSError as e:
            logger.warning(f"Could not remove backup: {e}")

    def _persist(self, wb: Workbook) -> None:
        backup = self._create_backup()
        try:
            wb.save(self.path)
        except Exception as e:
            logger.error(f"Error writing to Excel file {self.path.name}: {e}")
            self._restore_backup(backup)
            raise WorkbookWriteError(
                "Failed to write to Excel file. Please ensure it is not open in another application."
            ) from e
        self._discard_backup(backup)

    # --------------------------------------------------------------- access
    def check_access(self) -> dict[str, Any]:
        """Report existence / permissions / size and sheet names without writing."""
        self._ensure_exists()
        return {
            "path": str(self.path),
            "readable": os.access(self.path, os.R_OK),
            "writable": os.access(self.path, os.W_OK),
            "fileSize": self.path.stat().st_size,
            "sheets": self.list_sheets(),
        }
