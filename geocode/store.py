"""
geocode/store.py -- Bulk-imported district and upazila reference data.

Records arrive as arbitrary JSON objects (the public Bangladesh geocode data
set: id, name, bn_name, parent id, url) and are returned exactly as uploaded,
in upload order. Only name is lifted into its own column for lookups; the
full object is kept as a JSON payload, the same way listings keep nothing
they do not need to query.

Usage:
    store = GeocodeStore(engine)
    store.insert_many("districts", [{"id": "1", "name": "Comilla"}])
    store.list("districts")
"""

import json
from typing import Any

from sqlalchemy import Column, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Engine

from core.errors import ValidationFailed

LEVELS = ("districts", "upazilas")

metadata = MetaData()

_tables: dict[str, Table] = {
    level: Table(
        level,
        metadata,
        Column("pk", Integer, primary_key=True, autoincrement=True),
        Column("name", String(255), nullable=False, server_default="", index=True),
        Column("payload", Text, nullable=False),  # JSON object as uploaded
    )
    for level in LEVELS
}


class GeocodeStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine)

    def insert_many(self, level: str, records: Any) -> int:
        """Insert a non-empty list of JSON objects and return how many were stored."""
        table = _table_for(level)
        if not isinstance(records, list) or not records:
            raise ValidationFailed("Invalid or empty data.", code="invalid_data")
        if not all(isinstance(r, dict) for r in records):
            raise ValidationFailed("Every record must be a JSON object.", code="invalid_data")
        rows = [{"name": str(r.get("name") or ""), "payload": json.dumps(r, ensure_ascii=False)} for r in records]
        with self.engine.connect() as conn:
            conn.execute(table.insert(), rows)
            conn.commit()
        return len(rows)

    def list(self, level: str) -> list[dict]:
        table = _table_for(level)
        with self.engine.connect() as conn:
            rows = conn.execute(table.select().order_by(table.c.pk)).fetchall()
        return [json.loads(r.payload) for r in rows]


def _table_for(level: str) -> Table:
    try:
        return _tables[level]
    except KeyError:
        raise ValidationFailed(f"Unknown geocode level: {level}") from None
