"""
Typed access to metadata query results.

Wraps a DB-API 2.0 cursor so retrievers can read rows by column label, with
typed getters that fall back to defaults instead of failing on odd vendor
values.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Type

from schema_crawl.models import MetadataEnum

logger = logging.getLogger(__name__)

TRUE_VALUES = frozenset({"YES", "Y", "TRUE", "T", "1", "ON"})


class MetadataRow:
    """
    One row of a metadata query.

    Column labels are matched case-insensitively. When two columns share a
    label, the first one wins.
    """

    def __init__(self, labels: List[str], values: Any):
        self._values: Dict[str, Any] = {}
        self._labels: Dict[str, str] = {}
        for label, value in zip(labels, values):
            if label.upper() in self._labels:
                logger.debug(f"Ignoring duplicate column label: {label}")
                continue
            self._labels[label.upper()] = label
            self._values[label] = value

    def has_column(self, name: str) -> bool:
        return name.upper() in self._labels

    def get(self, name: str, default: Any = None) -> Any:
        label = self._labels.get(name.upper())
        if label is None:
            return default
        return self._values[label]

    def get_string(self, name: str) -> Optional[str]:
        """Return the value as stripped text, or None."""
        value = self.get(name)
        if value is None:
            return None
        return str(value).strip()

    def get_text(self, name: str) -> Optional[str]:
        """Return the value as text exactly as delivered, for definition fragments."""
        value = self.get(name)
        if value is None:
            return None
        return value if isinstance(value, str) else str(value)

    def get_int(self, name: str, default: int = 0) -> int:
        value = self.get(name)
        if value is None:
            return default
        try:
            if isinstance(value, (int, float, Decimal)):
                return int(value)
            text = str(value).strip()
            try:
                return int(text)
            except ValueError:
                return int(float(text))
        except (ValueError, OverflowError):
            return default

    def get_boolean(self, name: str) -> bool:
        """Interpret YES/NO style flags, numbers and booleans."""
        value = self.get(name)
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        return str(value).strip().upper() in TRUE_VALUES

    def get_enum(self, name: str, enum_type: Type[MetadataEnum]) -> MetadataEnum:
        """Map the value onto an enumeration, or its UNKNOWN member."""
        return enum_type.from_value(self.get(name))

    def get_attributes(self) -> Dict[str, Any]:
        """Return the full row as a name/value mapping."""
        return dict(self._values)

    def __repr__(self) -> str:
        return f"MetadataRow({self._values!r})"


class MetadataResultSet:
    """
    Forward-only iteration over a cursor that has executed a query.

    Rows are fetched in batches with ``fetchmany`` so large metadata result
    sets are streamed, in the order the source delivers them.
    """

    def __init__(self, cursor: Any, batch_size: int = 500):
        self._cursor = cursor
        self._batch_size = batch_size
        self.labels: List[str] = [d[0] for d in (cursor.description or [])]

    def __iter__(self) -> Iterator[MetadataRow]:
        if not self.labels:
            return
        while True:
            batch = self._cursor.fetchmany(self._batch_size)
            if not batch:
                break
            for values in batch:
                yield MetadataRow(self.labels, values)
