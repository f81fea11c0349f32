from __future__ import annotations

from pathlib import Path

import pandas as pd

from formdoc.domain.errors import ConfigurationError

_CSV_EXT = {".csv"}
_XLS_EXT = {".xlsx", ".xls"}


class SheetTabularSource:
    """Form response sheet exported as CSV or Excel.

    Rows are addressed the way the spreadsheet shows them: row 1 is the
    header row.
    """

    def __init__(self, *, path: str | Path, sheet_name: str | int = 0) -> None:
        self.path = Path(path)
        self._frame = _read_sheet(self.path, sheet_name=sheet_name)

    def header_row(self) -> list[object]:
        if self._frame.empty:
            return []
        return self._frame.iloc[0].tolist()

    def row(self, row_number: int) -> list[object] | None:
        if row_number < 1 or row_number > len(self._frame):
            return None
        return self._frame.iloc[row_number - 1].tolist()


def _read_sheet(path: Path, *, sheet_name: str | int) -> pd.DataFrame:
    ext = path.suffix.lower()
    if not path.is_file():
        raise ConfigurationError(f"sheet not found: {path}")
    if ext in _CSV_EXT:
        frame = pd.read_csv(path, header=None, dtype=str, keep_default_na=False)
    elif ext in _XLS_EXT:
        frame = pd.read_excel(path, sheet_name=sheet_name, header=None, dtype=object)
    else:
        raise ConfigurationError(f"unsupported sheet extension: {ext or '<none>'}")
    return frame.fillna("")
