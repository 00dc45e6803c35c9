import io
import json
import logging

import pandas as pd

from engine import settings
from engine.exceptions import (
    EMPTY_FILE,
    INVALID_FORMAT,
    PARSE_ERROR,
    TOO_LARGE,
    FileParseError,
)

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ("csv", "json", "xlsx", "xls")


def file_extension(file_name):
    if "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[-1].lower()


# ---------------------------------------------------------
# DataFrame -> rows
# ---------------------------------------------------------
def _format_datetimes(series: pd.Series) -> pd.Series:
    times = series.dt.tz_localize(None) if series.dt.tz is not None else series
    has_time = (times.dropna() != times.dropna().dt.normalize()).any()
    fmt = "%Y-%m-%dT%H:%M:%S" if has_time else "%Y-%m-%d"
    return times.dt.strftime(fmt)


def _is_integral_with_gaps(series: pd.Series) -> bool:
    # pandas reads an integer column with blank cells as float64
    if not pd.api.types.is_float_dtype(series) or not series.isna().any():
        return False
    present = series.dropna()
    if present.empty or present.abs().max() >= 2**53:
        return False
    return bool((present == present.round()).all())


def dataframe_to_rows(df: pd.DataFrame) -> list:
    """
    Convert a DataFrame into row dicts of plain Python scalars.
    Missing values become None and datetimes become ISO strings.
    Integer columns that pandas widened to float because of blanks
    come back as ints.
    """
    df = df.copy()
    df.columns = [str(c) for c in df.columns]

    for col in df.columns:
        if pd.api.types.is_datetime64_any_dtype(df[col]):
            df[col] = _format_datetimes(df[col])
        elif _is_integral_with_gaps(df[col]):
            df[col] = df[col].astype("Int64")

    df = df.astype(object).where(df.notna(), None)
    return df.to_dict(orient="records")


# ---------------------------------------------------------
# Readers
# ---------------------------------------------------------
def _read_csv(content):
    try:
        return pd.read_csv(io.BytesIO(content))
    except pd.errors.EmptyDataError as e:
        raise FileParseError(EMPTY_FILE, "The file contains no data", str(e)) from e
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise FileParseError(PARSE_ERROR, "Could not parse CSV file", str(e)) from e


def _read_json(content):
    try:
        payload = json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise FileParseError(PARSE_ERROR, "Could not parse JSON file", str(e)) from e

    # Accept a bare array of records or {"data": [...]}
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        payload = payload["data"]

    if not isinstance(payload, list) or not all(isinstance(r, dict) for r in payload):
        raise FileParseError(
            INVALID_FORMAT,
            "JSON must be an array of objects",
            f"Got {type(payload).__name__}",
        )

    for row in payload:
        nested = [k for k, v in row.items() if isinstance(v, (list, dict))]
        if nested:
            raise FileParseError(
                INVALID_FORMAT,
                "JSON records must hold flat values",
                f"Nested value in field '{nested[0]}'",
            )
    return pd.DataFrame(payload)


def _read_excel(content):
    try:
        return pd.read_excel(io.BytesIO(content))
    except ImportError as e:
        raise FileParseError(PARSE_ERROR, "Excel support is not installed", str(e)) from e
    except ValueError as e:
        raise FileParseError(PARSE_ERROR, "Could not parse spreadsheet", str(e)) from e


READERS = {
    "csv": _read_csv,
    "json": _read_json,
    "xlsx": _read_excel,
    "xls": _read_excel,
}


# ---------------------------------------------------------
# ENTRYPOINT
# ---------------------------------------------------------
def parse_file(file_name: str, content: bytes, max_bytes: int = None) -> dict:
    max_bytes = settings.MAX_UPLOAD_BYTES if max_bytes is None else max_bytes
    extension = file_extension(file_name)

    if extension not in READERS:
        raise FileParseError(
            INVALID_FORMAT,
            f"Unsupported file type: .{extension}" if extension else "File has no extension",
            f"Supported types: {', '.join(SUPPORTED_EXTENSIONS)}",
        )

    if len(content) > max_bytes:
        raise FileParseError(
            TOO_LARGE,
            f"File is larger than {max_bytes // (1024 * 1024)} MB",
            f"{len(content)} bytes",
        )

    if not content.strip():
        raise FileParseError(EMPTY_FILE, "The file is empty")

    df = READERS[extension](content)

    if df.empty or len(df.columns) == 0:
        raise FileParseError(EMPTY_FILE, "The file contains no rows")

    rows = dataframe_to_rows(df)
    logger.info("Parsed %s: %d rows, %d fields", file_name, len(rows), len(df.columns))

    return {
        "data": rows,
        "fileName": file_name,
        "rowCount": len(rows),
        "fieldCount": len(df.columns),
    }
