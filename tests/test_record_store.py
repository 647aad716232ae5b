"""
Tests for record stores and raw export normalisation.
"""

import sqlite3

import pandas as pd
import pytest

from partsxref.config import PartRecord
from partsxref.exceptions import StoreUnavailable
from partsxref.parts_catalog import build_parts_snapshot, normalise_parts_df, records_from_df
from partsxref.record_store import (
    FileRecordStore,
    InMemoryRecordStore,
    SqlRecordStore,
    make_record_store,
)
from partsxref.search import CrossReferenceEngine


@pytest.fixture
def raw_export(tmp_path):
    """Raw CSV export with vendor column names"""
    path = tmp_path / "export.csv"
    pd.DataFrame(
        {
            "Reference No": ["A1", "B2", ""],
            "Part Number": ["B2", "C3", "ALPHA100"],
            "Manufacturer": ["Acme", "Bolt", None],
            "Supplier": ["Acme Corp", None, None],
            "Description": [" filter ", "element", "standalone"],
        }
    ).to_csv(path, index=False)
    return path


@pytest.fixture
def parts_db(tmp_path):
    """SQLite database with an access_parts table"""
    path = tmp_path / "parts.db"
    conn = sqlite3.connect(path)
    conn.execute(
        "CREATE TABLE access_parts (id INTEGER PRIMARY KEY, reference_number TEXT, "
        "make TEXT, part_number TEXT, company TEXT, description TEXT)"
    )
    conn.executemany(
        "INSERT INTO access_parts (reference_number, make, part_number, company, description) "
        "VALUES (?, ?, ?, ?, ?)",
        [
            ("A-1", "Acme", "b2", "Acme Corp", "filter"),
            ("B2", "Bolt", "C/3", None, None),
            (None, None, "ALPHA 100", None, "standalone"),
        ],
    )
    conn.commit()
    conn.close()
    return path


class TestPartsCatalog:
    """Test export normalisation"""

    def test_columns_standardised(self, raw_export):
        """Test vendor headers map onto the canonical schema"""
        df = normalise_parts_df(pd.read_csv(raw_export, dtype=str))
        assert list(df.columns) == [
            "reference_number", "make", "part_number", "company", "description",
        ]
        assert df.loc[0, "description"] == "filter"
        assert df.loc[2, "reference_number"] is None

    def test_missing_columns_added(self):
        """Test absent canonical columns become null"""
        df = normalise_parts_df(pd.DataFrame({"MPN": ["X1"]}))
        recs = records_from_df(df)
        assert recs == [PartRecord(part_number="X1")]

    def test_build_snapshot_file(self, raw_export, tmp_path):
        """Test build → load round trip through the file store"""
        out = build_parts_snapshot(raw_export, tmp_path / "snap.parquet")
        recs = FileRecordStore(out).all_records()
        assert [r.part_number for r in recs] == ["B2", "C3", "ALPHA100"]
        assert recs[1].company is None


class TestFileRecordStore:
    """Test FileRecordStore"""

    def test_reads_raw_csv(self, raw_export):
        """Test a raw CSV can be served directly"""
        recs = FileRecordStore(raw_export).all_records()
        assert len(recs) == 3
        assert recs[0].reference_number == "A1"
        assert recs[0].make == "Acme"

    def test_missing_file(self, tmp_path):
        """Test a missing snapshot is a store outage"""
        with pytest.raises(StoreUnavailable):
            FileRecordStore(tmp_path / "nope.parquet").all_records()

    def test_unreadable_file(self, tmp_path):
        """Test a corrupt snapshot is a store outage"""
        bad = tmp_path / "bad.parquet"
        bad.write_bytes(b"not parquet")
        with pytest.raises(StoreUnavailable):
            FileRecordStore(bad).all_records()

    def test_by_identifier_scans(self, raw_export):
        """Test the default lookup normalizes both fields"""
        recs = FileRecordStore(raw_export).by_identifier("B2")
        assert len(recs) == 2


class TestSqlRecordStore:
    """Test SqlRecordStore"""

    def test_all_records(self, parts_db):
        """Test every row is returned in table order"""
        recs = SqlRecordStore(parts_db).all_records()
        assert [r.part_number for r in recs] == ["b2", "C/3", "ALPHA 100"]
        assert recs[2].reference_number is None

    def test_by_identifier_normalizes_in_query(self, parts_db):
        """Test the query applies the same normalization"""
        store = SqlRecordStore(parts_db)
        assert [r.reference_number for r in store.by_identifier("B2")] == ["A-1", "B2"]
        assert [r.description for r in store.by_identifier("ALPHA100")] == ["standalone"]
        assert store.by_identifier("") == []

    def test_by_identifier_strips_tabs_and_line_breaks(self, tmp_path):
        """Test control whitespace inside stored values is ignored"""
        path = tmp_path / "ws.db"
        conn = sqlite3.connect(path)
        conn.execute("CREATE TABLE access_parts (reference_number TEXT, make TEXT, "
                     "part_number TEXT, company TEXT, description TEXT)")
        conn.execute("INSERT INTO access_parts VALUES (?, NULL, ?, NULL, NULL)", ("R\t1", "P\r\n2"))
        conn.commit()
        conn.close()
        store = SqlRecordStore(path)
        assert [r.part_number for r in store.by_identifier("R1")] == ["P\r\n2"]
        assert [r.reference_number for r in store.by_identifier("P2")] == ["R\t1"]

    def test_integer_columns_read_as_text(self, tmp_path):
        """Test numeric identifier columns with NULLs keep their digits"""
        path = tmp_path / "numeric.db"
        conn = sqlite3.connect(path)
        conn.execute("CREATE TABLE access_parts (reference_number INTEGER, make TEXT, "
                     "part_number INTEGER, company TEXT, description TEXT)")
        conn.executemany(
            "INSERT INTO access_parts VALUES (?, NULL, ?, NULL, NULL)",
            [(12345, 67890), (None, 555)],
        )
        conn.commit()
        conn.close()
        store = SqlRecordStore(path)

        recs = store.all_records()
        assert [(r.reference_number, r.part_number) for r in recs] == [
            ("12345", "67890"),
            (None, "555"),
        ]
        assert [r.part_number for r in store.by_identifier("12345")] == ["67890"]

        engine = CrossReferenceEngine(store, fuzzy_fallback=False)
        result = engine.search("12345")
        assert result.count == 1
        assert result.results[0].reference_number == "12345"

    def test_missing_database(self, tmp_path):
        """Test a missing database is a store outage and is not created"""
        path = tmp_path / "missing.db"
        with pytest.raises(StoreUnavailable):
            SqlRecordStore(path).all_records()
        assert not path.exists()

    def test_missing_table(self, parts_db):
        """Test a missing table is a store outage"""
        with pytest.raises(StoreUnavailable):
            SqlRecordStore(parts_db, table="other_parts").all_records()

    def test_rejects_bad_table_name(self, parts_db):
        """Test table names are validated"""
        with pytest.raises(ValueError):
            SqlRecordStore(parts_db, table="parts; DROP TABLE x")


class TestMakeRecordStore:
    """Test the store factory"""

    def test_sources(self, tmp_path):
        """Test each source name builds its store"""
        assert isinstance(make_record_store("file", path=tmp_path / "s.parquet"), FileRecordStore)
        assert isinstance(make_record_store("sqlite", db_path=tmp_path / "p.db"), SqlRecordStore)

    def test_unknown_source(self):
        """Test unknown sources are rejected"""
        with pytest.raises(ValueError):
            make_record_store("mongo")

    def test_in_memory_replace(self):
        """Test InMemoryRecordStore serves a copy of its records"""
        store = InMemoryRecordStore([PartRecord(part_number="A")])
        store.all_records().clear()
        assert len(store.all_records()) == 1
