"""
Schema Crawl - Catalog enrichment from live database metadata

Builds a cross-referenced, in-memory catalog of a relational database by
merging extended metadata into a base-pass skeleton.

Features:
- Capability-gated metadata queries, configured per data source
- Views, triggers, indexes and vendor attributes merged into the catalog
- Table constraints assembled from separate constraint, column and definition queries
- Table and column privileges with their grants
- Fault isolation per retriever, with structured diagnostics
"""

__version__ = "0.1.0"
__author__ = "Schema Crawl Team"

from schema_crawl.models import (
    Catalog,
    Column,
    Index,
    Privilege,
    SchemaReference,
    Table,
    TableConstraint,
    TableConstraintColumn,
    Trigger,
    View,
)
from schema_crawl.identifiers import Identifiers

from schema_crawl.crawl import (
    CrawlOptions,
    CrawlSession,
    DiagnosticsSink,
    InformationSchemaViews,
    QueryType,
)

__all__ = [
    # Catalog graph
    "Catalog",
    "Column",
    "Index",
    "Privilege",
    "SchemaReference",
    "Table",
    "TableConstraint",
    "TableConstraintColumn",
    "Trigger",
    "View",
    "Identifiers",
    # Enrichment
    "CrawlOptions",
    "CrawlSession",
    "DiagnosticsSink",
    "InformationSchemaViews",
    "QueryType",
]
