"""
Catalog enrichment engine.

Runs metadata queries against a live database and merges the results into
a catalog created by the base pass:

    session = CrawlSession(connection, catalog, InformationSchemaViews.load(path))
    catalog = session.enrich()
"""

from schema_crawl.crawl.constraints import ConstraintLookup, TableConstraintRetriever
from schema_crawl.crawl.counts import TableRowCountRetriever, row_count
from schema_crawl.crawl.diagnostics import DiagnosticEvent, DiagnosticsSink, EventKind
from schema_crawl.crawl.privileges import PrivilegeOwner, PrivilegeRetriever, merge_privilege
from schema_crawl.crawl.results import MetadataResultSet, MetadataRow
from schema_crawl.crawl.retriever import Retriever
from schema_crawl.crawl.session import CrawlOptions, CrawlSession
from schema_crawl.crawl.table_ext import TableExtRetriever
from schema_crawl.crawl.views import InformationSchemaViews, QueryType

__all__ = [
    "ConstraintLookup",
    "TableConstraintRetriever",
    "TableRowCountRetriever",
    "row_count",
    "DiagnosticEvent",
    "DiagnosticsSink",
    "EventKind",
    "PrivilegeOwner",
    "PrivilegeRetriever",
    "merge_privilege",
    "MetadataResultSet",
    "MetadataRow",
    "Retriever",
    "CrawlOptions",
    "CrawlSession",
    "TableExtRetriever",
    "InformationSchemaViews",
    "QueryType",
]
