from __future__ import annotations
"""
Configuration for the parts cross-reference resolver.
"""

import os
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

# Paths
PROJECT_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = Path(os.getenv("PARTS_DATA_DIR", str(PROJECT_ROOT / "data")))
RAW_EXPORT_DIR = DATA_DIR / "parts_raw"
PARTS_SNAPSHOT_PATH = Path(
    os.getenv("PARTS_SNAPSHOT_PATH", str(DATA_DIR / "parts_snapshot.parquet"))
)

# Record source ("file" reads the snapshot file, "sqlite" reads PARTS_TABLE)
RECORD_SOURCE = os.getenv("PARTS_RECORD_SOURCE", "file").strip().lower()
PARTS_DB_PATH = Path(os.getenv("PARTS_DB_PATH", str(DATA_DIR / "parts.db")))
PARTS_TABLE = os.getenv("PARTS_TABLE", "access_parts")

# Result policy
RESULT_CAP = int(os.getenv("RESULT_CAP", "500"))

# Fuzzy matching
FUZZY_THRESHOLD = float(os.getenv("FUZZY_THRESHOLD", "0.25"))
# exact-mode misses are retried through the fuzzy tiers
FUZZY_FALLBACK = os.getenv("FUZZY_FALLBACK", "1").strip().lower() in {"1", "true", "yes", "on"}

# BFS work bound per family; 0 disables
MAX_FAMILY_SIZE = int(os.getenv("MAX_FAMILY_SIZE", "10000"))

# Snapshot refresh; 0 disables the background schedule
REFRESH_INTERVAL_SECONDS = float(os.getenv("REFRESH_INTERVAL_SECONDS", "900"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def setup_logging(level: Optional[str] = None, sink=None) -> None:
    """
    Reset loguru to a single sink at ``level`` (defaults to LOG_LEVEL).
    Safe to call more than once.
    """
    logger.remove()
    logger.add(sink if sink is not None else sys.stderr, level=(level or LOG_LEVEL).upper())


# Pydantic schemas
class PartRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    reference_number: Optional[str] = Field(default=None, alias="referenceNumber")
    make: Optional[str] = None
    part_number: Optional[str] = Field(default=None, alias="partNumber")
    company: Optional[str] = None
    description: Optional[str] = None


class SearchResponse(BaseModel):
    count: int = Field(ge=0)
    results: List[PartRecord]


class HealthResponse(BaseModel):
    status: str
    snapshot_loaded: bool
    records: int = 0
    identifiers: int = 0


class RefreshResponse(BaseModel):
    status: str
    records: int
    identifiers: int
    edges: int


class ErrorResponse(BaseModel):
    error: str
