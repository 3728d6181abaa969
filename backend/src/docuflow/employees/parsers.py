"""CSV and Excel decoding for employee imports"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO, StringIO
from typing import Dict, List, Optional, Sequence
from zipfile import BadZipFile

import chardet
import openpyxl
import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

logger = logging.getLogger(__name__)

CSV_EXTENSIONS = {"csv"}
EXCEL_EXTENSIONS = {"xlsx"}

CSV_MIME_TYPES = {"text/csv", "application/csv", "text/comma-separated-values"}
EXCEL_MIME_TYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


class FileParseError(ValueError):
    """Raised when an import file cannot be decoded into rows."""


@dataclass
class ParsedFile:
    headers: List[str]
    rows: List[Dict[str, str]]
    sheet_names: List[str] = field(default_factory=list)


def detect_file_kind(filename: Optional[str], content_type: Optional[str]) -> Optional[str]:
    """Classify an upload as "csv" or "excel" by extension, then MIME type."""
    extension = (filename or "").rsplit(".", 1)[-1].lower() if "." in (filename or "") else ""
    if extension in CSV_EXTENSIONS:
        return "csv"
    if extension in EXCEL_EXTENSIONS:
        return "excel"

    mime = (content_type or "").split(";")[0].strip().lower()
    if mime in CSV_MIME_TYPES:
        return "csv"
    if mime in EXCEL_MIME_TYPES:
        return "excel"
    return None


def decode_text(file_bytes: bytes) -> str:
    """Decode uploaded text, honouring a UTF-8 BOM and guessing other encodings."""
    if file_bytes.startswith(b"\xef\xbb\xbf"):
        return file_bytes.decode("utf-8-sig")
    try:
        return file_bytes.decode("utf-8")
    except UnicodeDecodeError:
        pass

    detected = chardet.detect(file_bytes)
    encoding = detected["encoding"] or "utf-8"
    try:
        return file_bytes.decode(encoding)
    except (UnicodeDecodeError, LookupError):
        return file_bytes.decode("utf-8", errors="replace")


def parse_csv(file_bytes: bytes) -> ParsedFile:
    """
    Parse CSV bytes into headers and row dicts.

    Cells are trimmed and fully blank rows are skipped.

    Raises:
        FileParseError: If the CSV is empty or malformed
    """
    text = decode_text(file_bytes)
    if not text.strip():
        raise FileParseError("CSV file is empty")

    try:
        df = pd.read_csv(StringIO(text), dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        raise FileParseError("CSV file is empty")
    except pd.errors.ParserError as e:
        raise FileParseError(f"CSV parsing error: {str(e)}")

    headers = [str(column).strip() for column in df.columns]
    df.columns = headers

    rows = []
    for record in df.to_dict(orient="records"):
        row = {key: "" if pd.isna(value) else str(value).strip() for key, value in record.items()}
        if any(row.values()):
            rows.append(row)

    return ParsedFile(headers=headers, rows=rows)


def _cell_to_str(value) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_excel(file_bytes: bytes, sheet_name: Optional[str] = None) -> ParsedFile:
    """
    Parse an Excel workbook sheet into headers and row dicts.

    The first row holds the headers. Columns without a header and rows
    without any value are skipped.

    Args:
        file_bytes: Raw workbook bytes
        sheet_name: Sheet to read (default: first sheet)

    Raises:
        FileParseError: If the workbook cannot be read or has no usable sheet
    """
    try:
        wb = openpyxl.load_workbook(BytesIO(file_bytes), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError) as e:
        logger.warning(f"Unreadable Excel upload: {e}")
        raise FileParseError("Unable to read Excel file. Please upload a valid .xlsx workbook")

    try:
        sheet_names = list(wb.sheetnames)
        if not sheet_names:
            raise FileParseError("Excel file contains no sheets")

        if sheet_name:
            if sheet_name not in sheet_names:
                raise FileParseError(f"Sheet '{sheet_name}' not found in Excel file")
            sheet = wb[sheet_name]
        else:
            sheet = wb[sheet_names[0]]

        raw_rows = list(sheet.iter_rows(values_only=True))
        if not raw_rows:
            raise FileParseError("Excel sheet is empty")

        headers = [_cell_to_str(cell) for cell in raw_rows[0]]
        if not any(headers):
            raise FileParseError("No headers found in Excel sheet")

        rows = []
        for raw in raw_rows[1:]:
            row = {
                header: _cell_to_str(raw[idx]) if idx < len(raw) else ""
                for idx, header in enumerate(headers)
                if header
            }
            if any(row.values()):
                rows.append(row)
    finally:
        wb.close()

    return ParsedFile(headers=[h for h in headers if h], rows=rows, sheet_names=sheet_names)


def _csv_cell(value) -> str:
    text = "" if value is None else str(value)
    if any(ch in text for ch in (",", '"', "\n", "\r")):
        return '"' + text.replace('"', '""') + '"'
    return text


def convert_to_csv(headers: Sequence[str], rows: Sequence[Dict[str, object]]) -> str:
    """Serialize rows to CSV, quoting only values that need it."""
    lines = [",".join(_csv_cell(header) for header in headers)]
    for row in rows:
        lines.append(",".join(_csv_cell(row.get(header)) for header in headers))
    return "\n".join(lines)
