"""
Extended table metadata retriever.

Enriches tables, columns, indexes and views already in the catalog with
details read from INFORMATION_SCHEMA style queries, and creates the
triggers found for those tables. Each facet runs only when its query is
configured, skips rows that do not match the catalog, and stops quietly on
query failure, keeping whatever it had already applied.
"""

from __future__ import annotations

import logging

from schema_crawl.crawl.retriever import Retriever
from schema_crawl.crawl.views import QueryType
from schema_crawl.models import (
    ActionOrientationType,
    CheckOptionType,
    ConditionTimingType,
    EventManipulationType,
)

logger = logging.getLogger(__name__)


class TableExtRetriever(Retriever):
    """Retrieves extended details about the database tables."""

    def retrieve_additional_table_attributes(self) -> None:
        """Merge vendor-specific table attributes into each table."""
        sql = self.query_for(QueryType.ADDITIONAL_TABLE_ATTRIBUTES, "Additional table attributes")
        if sql is None:
            return

        try:
            with self.execute(sql) as results:
                for row in results:
                    catalog_name = self.quoted_name(row, "TABLE_CATALOG")
                    schema_name = self.quoted_name(row, "TABLE_SCHEMA")
                    table_name = self.quoted_name(row, "TABLE_NAME")
                    logger.debug(f"Retrieving additional table attributes: {table_name}")

                    table = self.lookup_table(catalog_name, schema_name, table_name)
                    if table is None:
                        continue

                    table.add_attributes(row.get_attributes())
        except Exception as e:
            self.sink.query_failed(self.source, "Could not retrieve additional table attributes", e)

    def retrieve_additional_column_attributes(self) -> None:
        """Merge vendor-specific column attributes into each column."""
        sql = self.query_for(QueryType.ADDITIONAL_COLUMN_ATTRIBUTES, "Additional column attributes")
        if sql is None:
            return

        try:
            with self.execute(sql) as results:
                for row in results:
                    catalog_name = self.quoted_name(row, "TABLE_CATALOG")
                    schema_name = self.quoted_name(row, "TABLE_SCHEMA")
                    table_name = self.quoted_name(row, "TABLE_NAME")
                    column_name = self.quoted_name(row, "COLUMN_NAME")
                    logger.debug(f"Retrieving additional column attributes: {column_name}")

                    table = self.lookup_table(catalog_name, schema_name, table_name)
                    if table is None:
                        continue

                    column = self.catalog.find_column(table, column_name)
                    if column is None:
                        self.sink.not_found(
                            self.source,
                            f"Cannot find column, {catalog_name}.{schema_name}.{table_name}.{column_name}",
                            table=table.full_name,
                            column=column_name,
                        )
                        continue

                    column.add_attributes(row.get_attributes())
        except Exception as e:
            self.sink.query_failed(self.source, "Could not retrieve additional column attributes", e)

    def retrieve_table_definitions(self) -> None:
        """Accumulate table definition text, which may span several rows."""
        sql = self.query_for(QueryType.EXT_TABLES, "Table definitions")
        if sql is None:
            return

        try:
            with self.execute(sql) as results:
                for row in results:
                    catalog_name = self.quoted_name(row, "TABLE_CATALOG")
                    schema_name = self.quoted_name(row, "TABLE_SCHEMA")
                    table_name = self.quoted_name(row, "TABLE_NAME")

                    table = self.lookup_table(catalog_name, schema_name, table_name)
                    if table is None:
                        continue

                    logger.debug(f"Retrieving table information: {table_name}")
                    table.append_definition(row.get_text("TABLE_DEFINITION"))
                    table.add_attributes(row.get_attributes())
        except Exception as e:
            self.sink.query_failed(self.source, "Could not retrieve table definitions", e)

    def retrieve_index_information(self) -> None:
        """Accumulate index definitions and attributes for known indexes."""
        sql = self.query_for(QueryType.EXT_INDEXES, "Indexes information")
        if sql is None:
            return

        try:
            with self.execute(sql) as results:
                for row in results:
                    catalog_name = self.quoted_name(row, "INDEX_CATALOG")
                    schema_name = self.quoted_name(row, "INDEX_SCHEMA")
                    table_name = self.quoted_name(row, "TABLE_NAME")
                    index_name = self.quoted_name(row, "INDEX_NAME")

                    table = self.lookup_table(catalog_name, schema_name, table_name)
                    if table is None:
                        continue

                    logger.debug(f"Retrieving index information: {index_name}")
                    index = self.catalog.find_index(table, index_name)
                    if index is None:
                        self.sink.not_found(
                            self.source,
                            f"Cannot find index, {catalog_name}.{schema_name}.{table_name}.{index_name}",
                            table=table.full_name,
                            index=index_name,
                        )
                        continue

                    index.append_definition(row.get_text("INDEX_DEFINITION"))
                    index.add_attributes(row.get_attributes())
        except Exception as e:
            self.sink.query_failed(self.source, "Could not retrieve index information", e)

    def retrieve_view_information(self) -> None:
        """Set view definitions, check options and updatability."""
        sql = self.query_for(QueryType.VIEWS, "Views")
        if sql is None:
            return

        try:
            with self.execute(sql) as results:
                for row in results:
                    catalog_name = self.quoted_name(row, "TABLE_CATALOG")
                    schema_name = self.quoted_name(row, "TABLE_SCHEMA")
                    view_name = self.quoted_name(row, "TABLE_NAME")

                    view = self.lookup_table(catalog_name, schema_name, view_name)
                    if view is None:
                        continue
                    if not view.is_view:
                        self.sink.skipped(
                            self.source,
                            f"Not a view, {view.full_name}",
                            table=view.full_name,
                        )
                        continue

                    logger.debug(f"Retrieving view information: {view_name}")
                    view.append_definition(row.get_text("VIEW_DEFINITION"))
                    view.check_option = row.get_enum("CHECK_OPTION", CheckOptionType)
                    view.updatable = row.get_boolean("IS_UPDATABLE")
                    view.add_attributes(row.get_attributes())
        except Exception as e:
            self.sink.query_failed(self.source, "Could not retrieve views", e)

    def retrieve_trigger_information(self) -> None:
        """
        Create or update triggers on known tables.

        A trigger may be reported over several rows: scalar fields take the
        latest value, while condition and statement text accumulate.
        """
        sql = self.query_for(QueryType.TRIGGERS, "Trigger definition")
        if sql is None:
            return

        try:
            with self.execute(sql) as results:
                for row in results:
                    catalog_name = self.quoted_name(row, "TRIGGER_CATALOG")
                    schema_name = self.quoted_name(row, "TRIGGER_SCHEMA")
                    trigger_name = self.quoted_name(row, "TRIGGER_NAME")
                    table_name = self.quoted_name(row, "EVENT_OBJECT_TABLE")
                    logger.debug(f"Retrieving trigger: {trigger_name}")

                    table = self.lookup_table(catalog_name, schema_name, table_name)
                    if table is None:
                        continue
                    if not trigger_name:
                        self.sink.skipped(self.source, f"Unnamed trigger on {table.full_name}")
                        continue

                    # Vendors disagree on the name of the timing column
                    condition_timing = row.get_string("ACTION_TIMING")
                    if condition_timing is None:
                        condition_timing = row.get_string("CONDITION_TIMING")

                    trigger = self.catalog.find_or_create_trigger(table, trigger_name)
                    # Scalar fields are overwritten only by rows that carry them
                    if row.get("EVENT_MANIPULATION") is not None:
                        trigger.event_manipulation_type = row.get_enum(
                            "EVENT_MANIPULATION", EventManipulationType
                        )
                    if row.get("ACTION_ORDER") is not None:
                        trigger.action_order = row.get_int("ACTION_ORDER", trigger.action_order)
                    if row.get("ACTION_ORIENTATION") is not None:
                        trigger.action_orientation = row.get_enum(
                            "ACTION_ORIENTATION", ActionOrientationType
                        )
                    if condition_timing is not None:
                        trigger.condition_timing = ConditionTimingType.from_value(condition_timing)
                    trigger.append_action_condition(row.get_text("ACTION_CONDITION"))
                    trigger.append_action_statement(row.get_text("ACTION_STATEMENT"))
                    trigger.add_attributes(row.get_attributes())

                    self.catalog.add_trigger(table, trigger)
        except Exception as e:
            self.sink.query_failed(self.source, "Could not retrieve triggers", e)
