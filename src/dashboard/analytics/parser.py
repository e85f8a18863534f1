"""
Spreadsheet decoder for uploaded ad reports.

Reads the first sheet of an Excel workbook or a delimited text file and
converts it into the row model used by the rest of the pipeline: a DataFrame
of object columns whose cells are text or None.
"""

import csv
import io
import logging
import math
import re
import zipfile
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Extensions read as delimited text
TEXT_EXTENSIONS = ['.csv', '.tsv', '.txt']

# Extensions read as workbooks
WORKBOOK_EXTENSIONS = ['.xlsx', '.xlsm', '.xls']

# Signature of legacy .xls (OLE2 compound document)
OLE_MAGIC = b'\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1'

# Delimiters tried when sniffing text files
CANDIDATE_DELIMITERS = ',;\t|'

# Plain decimal literal: optional sign, digits, optional fraction and exponent
_DECIMAL_RE = re.compile(r'[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?', re.ASCII)


class DecodeError(Exception):
    """Raised when an uploaded document cannot be turned into rows."""


def _parse_number(value: Any) -> Optional[float]:
    """Finite number held by a cell, or None when the cell is not numeric."""
    if value is None or isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, (int, float, np.number)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not _DECIMAL_RE.fullmatch(text):
            return None
        number = float(text)
    else:
        return None
    return number if math.isfinite(number) else None


def coerce_number(value: Any) -> float:
    """
    Coerce a cell to a number.

    Decimal strings ('12', '-1.5', '.5', '1e3') parse to their value;
    anything else, including 'inf', 'nan' and '1_000', as well as None, NaN
    and booleans, becomes 0.

    Args:
        value: Cell value

    Returns:
        Float value
    """
    number = _parse_number(value)
    return 0.0 if number is None else number


def is_numeric_like(value: Any) -> bool:
    """Check whether a cell holds a usable number (blank cells do not)."""
    return _parse_number(value) is not None


def cell_text(value: Any) -> str:
    """
    Trimmed text of a cell.

    None and NaN read as empty string; integral floats drop the trailing
    '.0' so that a year of 2024.0 reads as '2024'.

    Args:
        value: Cell value

    Returns:
        Text of the cell
    """
    if value is None or value is pd.NA:
        return ''
    if isinstance(value, float):
        if math.isnan(value):
            return ''
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def column_text(rows: pd.DataFrame, column: str) -> pd.Series:
    """Text of every cell in a column; a missing column reads as blanks."""
    if column not in rows.columns:
        return pd.Series('', index=rows.index, dtype=object)
    return rows[column].map(cell_text).astype(object)


def numeric_values(rows: pd.DataFrame, column: str) -> pd.Series:
    """Coerced numbers for a column; a missing column reads as zeros."""
    if column not in rows.columns:
        return pd.Series(0.0, index=rows.index, dtype=float)
    return rows[column].map(coerce_number).astype(float)


def _normalize_cell(value: Any) -> Optional[str]:
    """Blank cells become None, everything else becomes text."""
    if isinstance(value, str):
        return value if value.strip() else None
    text = cell_text(value)
    return text if text else None


def _unique_headers(header: Sequence[Any]) -> List[str]:
    """Name blank header cells and suffix duplicates so every column is addressable."""
    names = []
    seen = {}
    for cell in header:
        base = cell_text(cell) or '__EMPTY'
        name = base
        while name in seen:
            seen[base] += 1
            name = f"{base}_{seen[base]}"
        seen.setdefault(base, 0)
        seen[name] = 0
        names.append(name)
    return names


def rows_from_table(header: Sequence[Any], body: Sequence[Sequence[Any]]) -> pd.DataFrame:
    """
    Build the row model from a decoded table.

    Args:
        header: Header cells, in display order
        body: Data rows, each a sequence of cells aligned with the header

    Returns:
        DataFrame with one object column per header cell; blank cells are None
    """
    columns = _unique_headers(header)
    records = []
    for raw in body:
        cells = list(raw)[:len(columns)]
        cells += [None] * (len(columns) - len(cells))
        record = [_normalize_cell(cell) for cell in cells]
        if all(cell is None for cell in record):
            continue
        records.append(record)

    return pd.DataFrame(records, columns=columns, dtype=object)


class SpreadsheetParser:
    """Decoder for uploaded CSV and Excel documents."""

    def __init__(self, data: bytes, filename: str):
        """
        Initialize parser.

        Args:
            data: Raw bytes of the uploaded document
            filename: Original file name, used to pick the format
        """
        self.data = data
        self.filename = filename
        self.sheet_name = None

    def detect_format(self) -> str:
        """
        Decide whether the document is a workbook or delimited text.

        Known extensions win; otherwise the leading bytes are inspected
        for a zip (xlsx) or OLE2 (xls) signature.

        Returns:
            'workbook' or 'text'
        """
        suffix = Path(self.filename or '').suffix.lower()
        if suffix in TEXT_EXTENSIONS:
            return 'text'
        if suffix in WORKBOOK_EXTENSIONS:
            return 'workbook'
        if self.data[:2] == b'PK' or self.data[:8] == OLE_MAGIC:
            return 'workbook'
        return 'text'

    def _read_workbook(self) -> pd.DataFrame:
        workbook = pd.ExcelFile(io.BytesIO(self.data))
        if not workbook.sheet_names:
            raise DecodeError(f"{self.filename} contains no sheets")

        self.sheet_name = workbook.sheet_names[0]
        logger.info(f"Reading sheet '{self.sheet_name}' of {len(workbook.sheet_names)}")
        return pd.read_excel(workbook, sheet_name=self.sheet_name, header=None)

    def _decode_text(self) -> str:
        for encoding in ['utf-8-sig', 'cp1252', 'latin-1']:
            try:
                return self.data.decode(encoding)
            except UnicodeDecodeError:
                continue
        raise DecodeError(f"{self.filename} is not readable text")

    def _read_text(self) -> pd.DataFrame:
        text = self._decode_text()
        if Path(self.filename or '').suffix.lower() == '.tsv':
            delimiter = '\t'
        else:
            try:
                delimiter = csv.Sniffer().sniff(text[:4096], delimiters=CANDIDATE_DELIMITERS).delimiter
            except csv.Error:
                delimiter = ','

        return pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )

    def load_table(self) -> Tuple[List[Any], List[List[Any]]]:
        """
        Decode the document into a header row and data rows.

        Leading blank lines are skipped; the first non-blank line is the header.

        Returns:
            Tuple of (header cells, data rows)

        Raises:
            DecodeError: If the document is empty, corrupt or has no table
        """
        if not self.data:
            raise DecodeError(f"{self.filename} is empty")

        file_format = self.detect_format()
        logger.info(f"Decoding {self.filename} as {file_format}")

        try:
            if file_format == 'workbook':
                frame = self._read_workbook()
            else:
                frame = self._read_text()
        except DecodeError:
            raise
        except pd.errors.EmptyDataError as exc:
            raise DecodeError(f"{self.filename} has no data") from exc
        except (ValueError, KeyError, OSError, ImportError, csv.Error,
                zipfile.BadZipFile, InvalidFileException) as exc:
            raise DecodeError(f"Could not read {self.filename}: {exc}") from exc

        lines = [
            row for row in frame.values.tolist()
            if any(_normalize_cell(cell) is not None for cell in row)
        ]
        if not lines:
            raise DecodeError(f"{self.filename} has no header row")

        return lines[0], lines[1:]

    def parse(self) -> pd.DataFrame:
        """
        Decode the document into the row model.

        Returns:
            DataFrame of rows (text or None cells)
        """
        header, body = self.load_table()
        rows = rows_from_table(header, body)
        logger.info(f"Parsed {len(rows)} rows x {len(rows.columns)} columns from {self.filename}")
        return rows


def load_and_parse(data: bytes, filename: str) -> pd.DataFrame:
    """
    Convenience function to decode an uploaded document.

    Args:
        data: Raw bytes of the document
        filename: Original file name

    Returns:
        DataFrame of rows
    """
    return SpreadsheetParser(data, filename).parse()


def export_rows(rows: pd.DataFrame, filename: str) -> bytes:
    """
    Encode rows for download.

    '.csv' and '.txt' produce comma separated text, '.tsv' tab separated
    text; anything else produces an xlsx workbook with a single 'Data' sheet.

    Args:
        rows: Rows to export
        filename: Target file name

    Returns:
        Encoded document
    """
    suffix = Path(filename).suffix.lower()
    if suffix in ('.csv', '.txt'):
        return rows.to_csv(index=False).encode('utf-8')
    if suffix == '.tsv':
        return rows.to_csv(index=False, sep='\t').encode('utf-8')

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        rows.to_excel(writer, sheet_name='Data', index=False)
    logger.info(f"Exported {len(rows)} rows to {filename}")
    return buffer.getvalue()


def default_export_name(source_name: Optional[str], extension: str = '.xlsx') -> str:
    """Download name derived from the uploaded file name."""
    if not source_name:
        return f"export{extension}"
    return f"{Path(source_name).stem}_export{extension}"
