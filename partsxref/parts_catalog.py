from __future__ import annotations

"""
Utilities to normalise raw parts exports and build snapshot files.

Exports come from whatever system owns the parts table (Access dumps,
spreadsheets, CSV extracts), so column names vary.  This module maps
them onto a canonical schema, cleans the fields and writes a Parquet
snapshot that :class:`~partsxref.record_store.FileRecordStore` can
serve to the graph builder.
"""

from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from loguru import logger

from .config import PARTS_SNAPSHOT_PATH, RAW_EXPORT_DIR, PartRecord

CANONICAL_COLUMNS: List[str] = [
    "reference_number",
    "make",
    "part_number",
    "company",
    "description",
]

# Known spellings of each canonical column in the exports seen so far.
COLUMN_CANDIDATES: Dict[str, List[str]] = {
    "reference_number": [
        "reference_number",
        "referenceNumber",
        "Reference Number",
        "Reference No",
        "Ref No",
        "Ref",
        "reference",
    ],
    "part_number": [
        "part_number",
        "partNumber",
        "Part Number",
        "Part No",
        "MPN",
        "Manufacturer Part Number",
        "part",
    ],
    "make": [
        "make",
        "Make",
        "Manufacturer",
        "Brand",
    ],
    "company": [
        "company",
        "Company",
        "Supplier",
        "Vendor",
    ],
    "description": [
        "description",
        "Description",
        "Part Description",
        "Desc",
    ],
}


def _standardise_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Rename export columns to the canonical schema and add any missing
    canonical column as all-null.
    """
    col_map: Dict[str, str] = {}
    lower_to_original = {str(c).lower(): c for c in df.columns}

    for canon, candidates in COLUMN_CANDIDATES.items():
        for candidate in candidates:
            if candidate in df.columns:
                col_map[candidate] = canon
                break
            cand_lower = candidate.lower()
            if cand_lower in lower_to_original:
                col_map[lower_to_original[cand_lower]] = canon
                break

    logger.info("Standardising columns with map: {}", col_map)
    df_std = df.rename(columns=col_map)

    missing = [c for c in ("reference_number", "part_number") if c not in df_std.columns]
    if missing:
        logger.warning("Parts export is missing identifier columns: {}", missing)

    for col in CANONICAL_COLUMNS:
        if col not in df_std.columns:
            df_std[col] = None
    return df_std


def _clean_cell(value) -> Optional[str]:
    """Trimmed string, or None for NaN/blank cells."""
    if value is None:
        return None
    if not isinstance(value, str) and pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def normalise_parts_df(df_raw: pd.DataFrame) -> pd.DataFrame:
    """
    Map a raw export onto the canonical schema.  Every canonical column
    holds either a trimmed string or None.  Rows are kept even when
    both identifiers are missing; they are simply unreachable later.
    """
    logger.info("Normalising parts dataframe with {} raw rows", len(df_raw))
    df = _standardise_columns(df_raw.copy())
    df_out = pd.DataFrame(
        {col: pd.Series([_clean_cell(v) for v in df[col]], dtype=object) for col in CANONICAL_COLUMNS}
    )
    logger.info("Parts normalisation complete. Final rows: {}", len(df_out))
    return df_out


def records_from_df(df: pd.DataFrame) -> List[PartRecord]:
    """Convert a canonical frame into PartRecord values, in row order."""
    df = normalise_parts_df(df) if set(CANONICAL_COLUMNS) - set(df.columns) else df
    records: List[PartRecord] = []
    for row in df[CANONICAL_COLUMNS].itertuples(index=False, name=None):
        fields = dict(zip(CANONICAL_COLUMNS, (_clean_cell(v) for v in row)))
        records.append(PartRecord(**fields))
    return records


# ---------------------------
# IO helpers
# ---------------------------

def read_table(path: Path) -> pd.DataFrame:
    """Read a CSV, Excel or Parquet file into a DataFrame of strings."""
    ext = path.suffix.lower()
    if ext in {".xlsx", ".xls"}:
        return pd.read_excel(path, dtype=str)
    if ext == ".parquet":
        return pd.read_parquet(path)
    return pd.read_csv(path, dtype=str, keep_default_na=True)


def load_raw_export(path: Optional[Path] = None) -> pd.DataFrame:
    """
    Load a raw parts export.  Without a path, the first CSV/Excel file
    under ``data/parts_raw`` is used.
    """
    if path is None:
        candidates = sorted(
            p for p in RAW_EXPORT_DIR.glob("*") if p.suffix.lower() in {".csv", ".xlsx", ".xls"}
        )
        if not candidates:
            raise FileNotFoundError(
                f"No .csv/.xlsx files found under {RAW_EXPORT_DIR}. "
                f"Place the parts export there and re-run."
            )
        path = candidates[0]

    logger.info("Loading raw parts export from {}", path)
    df = read_table(path)
    logger.info("Loaded {} rows from raw export", len(df))
    return df


def build_parts_snapshot(
    raw_path: Optional[Path] = None,
    output_path: Path = PARTS_SNAPSHOT_PATH,
) -> Path:
    """
    End-to-end: load raw export → normalise → write Parquet snapshot.

    Returns the path actually written (CSV when no Parquet engine is
    available).
    """
    df_norm = normalise_parts_df(load_raw_export(raw_path))

    logger.info("Writing parts snapshot to {}", output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        df_norm.to_parquet(output_path, index=False)
        logger.info("Parts snapshot written with {} rows", len(df_norm))
    except Exception as e:
        logger.warning(
            "Failed to write parts snapshot as Parquet ({}). Falling back to CSV.", e
        )
        csv_path = output_path.with_suffix(".csv")
        df_norm.to_csv(csv_path, index=False)
        logger.info("Parts snapshot written as CSV with {} rows", len(df_norm))
        return csv_path
    return output_path


def load_parts_snapshot(path: Path = PARTS_SNAPSHOT_PATH) -> pd.DataFrame:
    """
    Load a snapshot file written by :func:`build_parts_snapshot`,
    trying the CSV sibling when the Parquet file cannot be read.
    """
    logger.info("Loading parts snapshot from {}", path)
    if path.suffix.lower() != ".parquet":
        df = read_table(path)
        logger.info("Loaded parts snapshot with {} rows", len(df))
        return df
    try:
        df = pd.read_parquet(path)
        logger.info("Loaded parts snapshot with {} rows", len(df))
        return df
    except Exception as e:
        logger.warning("Failed to load Parquet snapshot ({}). Trying CSV fallback.", e)
        csv_path = path.with_suffix(".csv")
        if not csv_path.exists():
            raise
        df = pd.read_csv(csv_path, dtype=str)
        logger.info("Loaded parts snapshot (CSV) with {} rows", len(df))
        return df


if __name__ == "__main__":
    # python -m partsxref.parts_catalog
    build_parts_snapshot()
