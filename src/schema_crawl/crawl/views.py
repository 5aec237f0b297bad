"""
Query template registry.

Holds the vendor-specific SQL used to read each extended metadata facet,
in the INFORMATION_SCHEMA style. A facet whose query is missing or blank is
simply not available for that data source.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

logger = logging.getLogger(__name__)


class QueryType(str, Enum):
    """Names of the metadata queries a data source may provide."""
    ADDITIONAL_TABLE_ATTRIBUTES = "ADDITIONAL_TABLE_ATTRIBUTES"
    ADDITIONAL_COLUMN_ATTRIBUTES = "ADDITIONAL_COLUMN_ATTRIBUTES"
    EXT_TABLES = "EXT_TABLES"
    EXT_INDEXES = "EXT_INDEXES"
    VIEWS = "VIEWS"
    TRIGGERS = "TRIGGERS"
    TABLE_CONSTRAINTS = "TABLE_CONSTRAINTS"
    CONSTRAINT_COLUMN_USAGE = "CONSTRAINT_COLUMN_USAGE"
    EXT_TABLE_CONSTRAINTS = "EXT_TABLE_CONSTRAINTS"
    TABLE_PRIVILEGES = "TABLE_PRIVILEGES"
    COLUMN_PRIVILEGES = "COLUMN_PRIVILEGES"

    @classmethod
    def parse(cls, name: Union[str, QueryType]) -> QueryType:
        """Parse a query name such as "views", "VIEWS" or "VIEWS.sql"."""
        if isinstance(name, QueryType):
            return name
        normalized = str(name).strip()
        if normalized.lower().endswith(".sql"):
            normalized = normalized[:-4]
        normalized = normalized.upper().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown metadata query: {name}") from None


class InformationSchemaViews:
    """
    Registry of metadata query templates, keyed by QueryType.

    Args:
        queries: Mapping of query name (or QueryType) to SQL text
    """

    def __init__(self, queries: Optional[Mapping[Union[str, QueryType], str]] = None):
        self._queries: Dict[QueryType, str] = {}
        for name, sql in (queries or {}).items():
            self.set_sql(name, sql)

    def set_sql(self, name: Union[str, QueryType], sql: Optional[str]) -> None:
        query_type = QueryType.parse(name)
        if sql is None or not str(sql).strip():
            self._queries.pop(query_type, None)
            return
        self._queries[query_type] = str(sql).strip()

    def has(self, query_type: Union[str, QueryType]) -> bool:
        """Check whether a query is configured for this facet."""
        return QueryType.parse(query_type) in self._queries

    def get_sql(self, query_type: Union[str, QueryType]) -> str:
        """Return the SQL for a facet; raises KeyError when absent."""
        return self._queries[QueryType.parse(query_type)]

    def __contains__(self, query_type: Union[str, QueryType]) -> bool:
        return self.has(query_type)

    def __len__(self) -> int:
        return len(self._queries)

    def to_dict(self) -> Dict[str, str]:
        return {qt.value: sql for qt, sql in self._queries.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InformationSchemaViews:
        """Create from a mapping, accepting an optional "queries" wrapper."""
        if "queries" in data and isinstance(data["queries"], Mapping):
            data = data["queries"]
        return cls(data)

    @classmethod
    def from_yaml(cls, path: Path) -> InformationSchemaViews:
        """Load queries from a YAML file; a missing file yields an empty registry."""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Metadata queries file not found: {path}")
            return cls()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        views = cls.from_dict(data)
        logger.info(f"Loaded {len(views)} metadata queries from {path}")
        return views

    @classmethod
    def from_directory(cls, path: Path) -> InformationSchemaViews:
        """
        Load queries from ``<QUERY_NAME>.sql`` files in a directory.

        Files whose names are not known query names are ignored.
        """
        path = Path(path)
        views = cls()
        if not path.is_dir():
            logger.warning(f"Metadata queries directory not found: {path}")
            return views

        for sql_file in sorted(path.glob("*.sql")):
            try:
                query_type = QueryType.parse(sql_file.name)
            except ValueError:
                logger.debug(f"Ignoring unrecognized query file: {sql_file.name}")
                continue
            views.set_sql(query_type, sql_file.read_text())

        logger.info(f"Loaded {len(views)} metadata queries from {path}")
        return views

    @classmethod
    def load(cls, path: Path) -> InformationSchemaViews:
        """Load from a directory of .sql files or from a YAML file."""
        path = Path(path)
        if path.is_dir():
            return cls.from_directory(path)
        return cls.from_yaml(path)
