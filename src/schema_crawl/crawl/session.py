"""
Crawl session: runs the enrichment retrievers over one catalog.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml

from schema_crawl.crawl.constraints import TableConstraintRetriever
from schema_crawl.crawl.counts import TableRowCountRetriever
from schema_crawl.crawl.diagnostics import DiagnosticsSink, EventKind
from schema_crawl.crawl.privileges import PrivilegeRetriever
from schema_crawl.crawl.table_ext import TableExtRetriever
from schema_crawl.crawl.views import InformationSchemaViews
from schema_crawl.identifiers import DEFAULT_IDENTIFIERS, Identifiers
from schema_crawl.models import Catalog

logger = logging.getLogger(__name__)


@dataclass
class CrawlOptions:
    """Which enrichment steps a session runs."""
    retrieve_additional_table_attributes: bool = True
    retrieve_table_definitions: bool = True
    retrieve_view_information: bool = True
    retrieve_index_information: bool = True
    retrieve_trigger_information: bool = True
    retrieve_table_constraints: bool = True
    retrieve_table_privileges: bool = True
    retrieve_table_column_privileges: bool = True
    retrieve_additional_column_attributes: bool = True
    load_row_counts: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CrawlOptions:
        """Create from a mapping, accepting an optional "crawl" wrapper."""
        if "crawl" in data and isinstance(data["crawl"], dict):
            data = data["crawl"]
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown crawl options: {', '.join(sorted(unknown))}")
        not_bool = sorted(k for k, v in data.items() if not isinstance(v, bool))
        if not_bool:
            raise ValueError(f"Crawl options must be true or false: {', '.join(not_bool)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Path) -> CrawlOptions:
        path = Path(path)
        if not path.exists():
            logger.warning(f"Crawl options file not found: {path}")
            return cls()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)


class CrawlSession:
    """
    Enriches a base-pass catalog with extended metadata.

    The session owns the catalog while it runs, and runs each retriever in
    a fixed order against the one shared connection. A session enriches
    its catalog once; definition text accumulates, so a second run would
    duplicate it.

    Args:
        connection: DB-API 2.0 connection to the data source
        catalog: Catalog created by the base pass
        information_schema_views: Registry of metadata queries
        options: Steps to run (all extended facets by default)
        sink: Diagnostics sink shared by all retrievers
        identifiers: Quoting rules for names read from the source
    """

    def __init__(
        self,
        connection: Any,
        catalog: Catalog,
        information_schema_views: InformationSchemaViews,
        options: Optional[CrawlOptions] = None,
        sink: Optional[DiagnosticsSink] = None,
        identifiers: Optional[Identifiers] = None,
    ):
        self.connection = connection
        self.catalog = catalog
        self.information_schema_views = information_schema_views
        self.options = options or CrawlOptions()
        self.sink = sink if sink is not None else DiagnosticsSink()
        self.identifiers = identifiers or DEFAULT_IDENTIFIERS
        self._enriched = False

    def _retriever_args(self) -> Tuple[Any, ...]:
        return (
            self.connection,
            self.catalog,
            self.information_schema_views,
            self.sink,
            self.identifiers,
        )

    def steps(self) -> List[Tuple[str, Callable[[], Any]]]:
        """Return the (option name, step) pairs in the order they run."""
        table_ext = TableExtRetriever(*self._retriever_args())
        constraints = TableConstraintRetriever(*self._retriever_args())
        privileges = PrivilegeRetriever(*self._retriever_args())
        counts = TableRowCountRetriever(*self._retriever_args())

        return [
            ("retrieve_additional_table_attributes", table_ext.retrieve_additional_table_attributes),
            ("retrieve_table_definitions", table_ext.retrieve_table_definitions),
            ("retrieve_view_information", table_ext.retrieve_view_information),
            ("retrieve_index_information", table_ext.retrieve_index_information),
            ("retrieve_trigger_information", table_ext.retrieve_trigger_information),
            ("retrieve_table_constraints", constraints.retrieve),
            ("retrieve_table_privileges", privileges.retrieve_table_privileges),
            ("retrieve_table_column_privileges", privileges.retrieve_table_column_privileges),
            ("retrieve_additional_column_attributes", table_ext.retrieve_additional_column_attributes),
            ("load_row_counts", counts.retrieve),
        ]

    def enrich(self) -> Catalog:
        """
        Run every enabled step, then return the enriched catalog.

        Step failures are contained by the retrievers and reported on the
        sink; they never abort the crawl.
        """
        if self._enriched:
            self.sink.emit(
                EventKind.SKIPPED,
                logging.WARNING,
                type(self).__name__,
                "Catalog was already enriched in this session",
            )
            return self.catalog

        logger.info(f"Enriching catalog with {len(self.catalog.tables)} tables")
        for option_name, step in self.steps():
            if not getattr(self.options, option_name):
                logger.debug(f"Skipping {option_name}")
                continue
            logger.debug(f"Running {option_name}")
            step()

        self._enriched = True
        failures = self.sink.of_kind(EventKind.QUERY_FAILED)
        logger.info(f"Enrichment complete with {len(failures)} failed queries")
        return self.catalog
