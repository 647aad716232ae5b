# partsxref/cli.py
"""
Command-line runner for the parts cross-reference resolver.

Subcommands:
- build-snapshot: normalise a raw parts export into the snapshot file
- search: resolve one identifier and print the JSON response
- batch: resolve a CSV of queries (column ``Query``) without starting FastAPI;
  identical queries run once and fan out
- serve: run the HTTP API with uvicorn
"""

from __future__ import annotations
import argparse
import sys
from pathlib import Path
from typing import Dict, List, Tuple

import pandas as pd
from loguru import logger

from partsxref.config import PARTS_SNAPSHOT_PATH, RECORD_SOURCE, PartRecord, setup_logging
from partsxref.exceptions import CrossRefError
from partsxref.parts_catalog import build_parts_snapshot, read_table
from partsxref.record_store import make_record_store
from partsxref.search import CrossReferenceEngine


def load_queries(path: Path) -> List[str]:
    df = read_table(path)
    cols = {str(c).lower(): c for c in df.columns}
    qcol = cols.get("query")
    if not qcol:
        raise ValueError(f"Expected column 'Query' in {path}. Found: {list(df.columns)}")
    return df[qcol].fillna("").astype(str).str.strip().tolist()


def _dedup_preserve_order(seq: List[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for s in seq:
        if s not in seen:
            seen.add(s)
            out.append(s)
    return out


def write_batch_csv(preds: Dict[str, List[PartRecord]], queries: List[str], out_path: Path) -> int:
    """
    One row per (query, record) with columns Query, referenceNumber,
    partNumber, in original query order.  Returns the row count.
    """
    rows: List[Tuple[str, str, str]] = []
    for q in queries:
        for rec in preds.get(q, []):
            rows.append((q, rec.reference_number or "", rec.part_number or ""))
    df = pd.DataFrame(rows, columns=["Query", "referenceNumber", "partNumber"])
    out_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out_path, index=False)
    return len(rows)


def _engine_from_args(args) -> CrossReferenceEngine:
    store = make_record_store(
        args.source,
        path=Path(args.snapshot) if args.snapshot else None,
        db_path=Path(args.db) if args.db else None,
    )
    return CrossReferenceEngine(store)


def cmd_build_snapshot(args) -> int:
    raw = Path(args.raw) if args.raw else None
    out = build_parts_snapshot(raw, Path(args.out) if args.out else PARTS_SNAPSHOT_PATH)
    print(f"Wrote snapshot to {out}")
    return 0


def cmd_search(args) -> int:
    engine = _engine_from_args(args)
    response = engine.search(args.query, fuzzy=args.fuzzy)
    print(response.model_dump_json(by_alias=True, indent=2))
    return 0


def cmd_batch(args) -> int:
    engine = _engine_from_args(args)
    queries = load_queries(Path(args.inp))
    print(f"Loaded {len(queries)} queries from {args.inp}")

    unique_queries = _dedup_preserve_order(queries)
    print(f"Unique queries to resolve: {len(unique_queries)}")

    preds: Dict[str, List[PartRecord]] = {}
    for i, uq in enumerate(unique_queries, 1):
        preds[uq] = engine.search(uq, fuzzy=args.fuzzy).results
        if i % 100 == 0 or i == len(unique_queries):
            print(f"Processed {i}/{len(unique_queries)} unique queries")

    total_rows = write_batch_csv(preds, queries, Path(args.out))
    print(f"Wrote {total_rows} rows to {args.out}")
    return 0


def cmd_serve(args) -> int:
    import uvicorn

    uvicorn.run("partsxref.api:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="partsxref")
    ap.add_argument("--log-level", default=None, help="loguru level (default from LOG_LEVEL)")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("build-snapshot", help="normalise a raw export into the snapshot file")
    p.add_argument("--raw", type=str, default=None, help="raw CSV/Excel export")
    p.add_argument("--out", type=str, default=None, help="snapshot output path")
    p.set_defaults(func=cmd_build_snapshot)

    for name, func, help_ in (
        ("search", cmd_search, "resolve one identifier"),
        ("batch", cmd_batch, "resolve a CSV of queries"),
    ):
        p = sub.add_parser(name, help=help_)
        p.add_argument("--source", default=RECORD_SOURCE, choices=["file", "sqlite"])
        p.add_argument("--snapshot", type=str, default=None, help="snapshot file (file source)")
        p.add_argument("--db", type=str, default=None, help="SQLite database (sqlite source)")
        p.add_argument("--fuzzy", action="store_true", help="rank fuzzy matches instead of families")
        p.set_defaults(func=func)
        if name == "search":
            p.add_argument("query", type=str)
        else:
            p.add_argument("--in", dest="inp", type=str, required=True, help="CSV with a Query column")
            p.add_argument("--out", dest="out", type=str, default="artifacts/batch_results.csv")

    p = sub.add_parser("serve", help="run the HTTP API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.set_defaults(func=cmd_serve)
    return ap


def main(argv: List[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    try:
        return args.func(args)
    except CrossRefError as e:
        logger.error("{}", e)
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
