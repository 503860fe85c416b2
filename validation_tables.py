# validation_tables.py
# Loads manual validation results (Raven-style selection tables exported per species)
# and reshapes them into one deduplicated table of file_name / valid / confidence_score.
import re
import warnings
from pathlib import Path

import pandas as pd

from fieldwork_config import (
    VALIDATION_SUFFIX, BEGIN_FILE_COL, VALID_COL, CONFIDENCE_TOKEN_WIDTH
)
from fieldwork_errors import MalformedRecordError, ValidationFileNotFoundError

_FIRST_ALPHA = re.compile(r"[a-zA-Z]")


def list_validation_files(directory, suffix=VALIDATION_SUFFIX) -> list:
    directory = Path(directory)
    if not directory.is_dir():
        raise ValidationFileNotFoundError(f"Validation directory not found: {directory}")
    files = sorted(p for p in directory.iterdir() if p.is_file() and p.name.endswith(suffix))
    if not files:
        raise ValidationFileNotFoundError(f"No '*{suffix}' validation files in {directory}")
    return files


def read_validation_table(path) -> pd.DataFrame:
    """
    Read one tab-delimited validation file and keep only the two columns we use.

    Args:
        path: selection table with at least 'Begin File' and 'Valid' columns
    Returns: DataFrame with columns file_name, valid
    """
    path = Path(path)
    if not path.exists():
        raise ValidationFileNotFoundError(f"Validation file not found: {path}")
    try:
        raw = pd.read_csv(path, sep="\t")
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise MalformedRecordError(f"Could not parse {path.name}: {e}") from e

    missing = {BEGIN_FILE_COL, VALID_COL} - set(raw.columns)
    if missing:
        raise MalformedRecordError(f"{path.name} is missing columns: {sorted(missing)}")

    table = raw[[BEGIN_FILE_COL, VALID_COL]].rename(
        columns={BEGIN_FILE_COL: "file_name", VALID_COL: "valid"}
    )
    table["file_name"] = table["file_name"].astype(str)
    return table


def confidence_token(file_name: str) -> str:
    # filenames are written as e.g. "0.873_XC12345_20240601_050000.wav"
    return str(file_name)[:CONFIDENCE_TOKEN_WIDTH]


def dedup_key(file_name: str) -> str:
    """Everything from the first letter on, i.e. the file name without its score prefix."""
    file_name = str(file_name)
    match = _FIRST_ALPHA.search(file_name)
    if match is None:
        return file_name
    return file_name[match.start():]


def add_confidence_scores(table: pd.DataFrame) -> pd.DataFrame:
    out = table.copy()
    tokens = out["file_name"].map(confidence_token)
    out["confidence_score"] = pd.to_numeric(tokens, errors="coerce")

    n_bad = int(out["confidence_score"].isna().sum())
    if n_bad:
        warnings.warn(f"{n_bad} file names do not start with a numeric confidence score")
    return out


def drop_duplicate_validations(table: pd.DataFrame) -> pd.DataFrame:
    # Files drawn for the 0.1-1.0 sample can be drawn again for the 0.85-1.0 sample
    out = table.assign(file_name_short=table["file_name"].map(dedup_key))
    out = out.drop_duplicates(subset="file_name_short", keep="first")
    return out.drop(columns="file_name_short").reset_index(drop=True)


def load_species_validations(directory, suffix=VALIDATION_SUFFIX) -> dict:
    """Load every validation file in a directory, keyed by file name minus extension."""
    species_tables = {}
    for path in list_validation_files(directory, suffix=suffix):
        table = read_validation_table(path)
        table = add_confidence_scores(table)
        n_before = len(table)
        table = drop_duplicate_validations(table)

        species = path.name[: -len(suffix)] if suffix else path.stem
        species_tables[species] = table
        print(f"  {species}: {len(table)} validations ({n_before - len(table)} duplicates removed)")
    return species_tables
