"""In-memory property catalog loaded from static JSON listings.

Usage:
    # Summarise the bundled sample catalog
    python -m listings.catalog

    # Validate a different listings file
    python -m listings.catalog --data path/to/properties.json
"""

from __future__ import annotations

import argparse
import json
import logging
import threading
from pathlib import Path
from typing import Iterable, Iterator

from pydantic import ValidationError

from listings.schema import PropertyRecord

log = logging.getLogger("listings.catalog")

DEFAULT_CATALOG_PATH = Path(__file__).parent / "sample_data" / "properties.json"


class CatalogError(Exception):
    """Raised when listing data cannot be loaded into a catalog."""


class PropertyCatalog:
    """Ordered, read-mostly collection of PropertyRecords keyed by id.

    Records are immutable; ``replace`` swaps a whole record and keeps its
    original insertion position. Readers always see a complete snapshot.
    """

    def __init__(self, records: Iterable[PropertyRecord] = ()) -> None:
        self._lock = threading.Lock()
        self._records: tuple[PropertyRecord, ...] = ()
        self._by_id: dict[str, PropertyRecord] = {}
        self._install(list(records))

    @classmethod
    def from_json(cls, data_path: str | Path | None = None) -> "PropertyCatalog":
        """Load listings from a JSON array file."""
        data_path = Path(data_path) if data_path else DEFAULT_CATALOG_PATH
        try:
            raw = json.loads(data_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CatalogError(f"Cannot read listings from {data_path}: {exc}") from exc

        if not isinstance(raw, list):
            raise CatalogError(f"Expected a JSON array of listings in {data_path}")

        try:
            records = [PropertyRecord(**item) for item in raw]
        except (TypeError, ValidationError) as exc:
            raise CatalogError(f"Invalid listing in {data_path}: {exc}") from exc

        catalog = cls(records)
        log.info("Loaded %d listings from %s", len(catalog), data_path)
        return catalog

    def _install(self, records: list[PropertyRecord]) -> None:
        by_id: dict[str, PropertyRecord] = {}
        for record in records:
            if record.id in by_id:
                raise CatalogError(f"Duplicate listing id: {record.id}")
            by_id[record.id] = record
        with self._lock:
            self._records = tuple(records)
            self._by_id = by_id

    # ── Read API ──────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PropertyRecord]:
        return iter(self._records)

    def __contains__(self, property_id: object) -> bool:
        return property_id in self._by_id

    @property
    def records(self) -> tuple[PropertyRecord, ...]:
        return self._records

    def get(self, property_id: str) -> PropertyRecord | None:
        return self._by_id.get(property_id)

    def ids(self) -> list[str]:
        return [record.id for record in self._records]

    # ── Updates ───────────────────────────────────────────────

    def replace(self, record: PropertyRecord) -> None:
        """Replace the record with the same id, or append a new one."""
        records = list(self._records)
        for idx, existing in enumerate(records):
            if existing.id == record.id:
                records[idx] = record
                break
        else:
            records.append(record)
        self._install(records)
        log.info("Catalog record replaced: %s", record.id)


def main():
    parser = argparse.ArgumentParser(
        description="Validate and summarise a property listings file",
        prog="python -m listings.catalog",
    )
    parser.add_argument(
        "--data",
        help="Path to listings JSON file (default: sample_data/properties.json)",
    )
    args = parser.parse_args()

    catalog = PropertyCatalog.from_json(args.data)
    print(f"{len(catalog)} listings")
    for record in catalog:
        verified = "verified" if record.verification.is_verified else "unverified"
        print(
            f"  {record.id}: {record.bedrooms} bed {record.property_type} "
            f"in {record.location}, {record.currency} {record.price:,} ({verified})"
        )


if __name__ == "__main__":
    main()
