"""
Shared plumbing for the enrichment retrievers.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from schema_crawl.crawl.diagnostics import DiagnosticsSink
from schema_crawl.crawl.results import MetadataResultSet, MetadataRow
from schema_crawl.crawl.views import InformationSchemaViews, QueryType
from schema_crawl.identifiers import DEFAULT_IDENTIFIERS, Identifiers
from schema_crawl.models import Catalog, Table

logger = logging.getLogger(__name__)


class Retriever:
    """
    Base class for retrievers that enrich a catalog from metadata queries.

    All retrievers in a session share one connection and one catalog, and
    run one at a time.

    Args:
        connection: DB-API 2.0 connection to the data source
        catalog: Catalog graph to enrich
        information_schema_views: Registry of metadata queries
        sink: Diagnostics sink for skip and failure events
        identifiers: Quoting rules for names read from the source
    """

    def __init__(
        self,
        connection: Any,
        catalog: Catalog,
        information_schema_views: InformationSchemaViews,
        sink: Optional[DiagnosticsSink] = None,
        identifiers: Optional[Identifiers] = None,
    ):
        self.connection = connection
        self.catalog = catalog
        self.information_schema_views = information_schema_views
        self.sink = sink if sink is not None else DiagnosticsSink()
        self.identifiers = identifiers or DEFAULT_IDENTIFIERS

    @property
    def source(self) -> str:
        return type(self).__name__

    @contextmanager
    def execute(self, sql: str) -> Iterator[MetadataResultSet]:
        """
        Run a query and yield its rows; the cursor is closed on every exit.
        """
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql)
            yield MetadataResultSet(cursor)
        finally:
            cursor.close()

    def query_for(self, query_type: QueryType, description: str) -> Optional[str]:
        """
        Return the SQL for a facet, or None after reporting that it is absent.
        """
        if not self.information_schema_views.has(query_type):
            self.sink.capability_absent(
                self.source,
                f"{description} SQL statement was not provided",
                query=query_type.value,
            )
            return None
        return self.information_schema_views.get_sql(query_type)

    def quoted_name(self, row: MetadataRow, *columns: str) -> Optional[str]:
        """Read and normalize a name from the first of the columns present in the row."""
        for column in columns:
            if row.has_column(column):
                return self.identifiers.quoted_name(row.get_string(column))
        return None

    def lookup_table(
        self,
        catalog_name: Optional[str],
        schema_name: Optional[str],
        table_name: Optional[str],
    ) -> Optional[Table]:
        """Find a table, reporting a not-found event when it is missing."""
        table = self.catalog.lookup_table(catalog_name, schema_name, table_name)
        if table is None:
            self.sink.not_found(
                self.source,
                f"Cannot find table, {catalog_name}.{schema_name}.{table_name}",
                catalog=catalog_name,
                schema=schema_name,
                table=table_name,
            )
        return table
