"""
Table row counts.

Counts the rows of every base table in the catalog and stores the count in
the table's attribute bag. Views are not counted.
"""

from __future__ import annotations

import logging

from schema_crawl.crawl.retriever import Retriever
from schema_crawl.models import Table

logger = logging.getLogger(__name__)

ROW_COUNT_ATTRIBUTE = "row_count"


def row_count(table: Table) -> int:
    """Return the stored row count of a table, or -1 if it was not counted."""
    return table.get_attribute(ROW_COUNT_ATTRIBUTE, -1)


class TableRowCountRetriever(Retriever):
    """Runs SELECT COUNT(*) against each table."""

    def retrieve(self) -> None:
        for table in self.catalog.tables:
            if table.is_view:
                continue

            sql = f"SELECT COUNT(*) FROM {table.full_name}"
            try:
                with self.execute(sql) as results:
                    for row in results:
                        count = row.get(results.labels[0])
                        table.add_attribute(ROW_COUNT_ATTRIBUTE, int(count))
                        logger.debug(f"Row count for {table.full_name}: {count}")
            except Exception as e:
                self.sink.query_failed(
                    self.source,
                    f"Could not count rows of {table.full_name}",
                    e,
                    table=table.full_name,
                )
