"""
Table constraint retrieval.

Constraints are assembled in three stages, because the constraint list, the
constraint columns and the constraint definitions come from separate,
optional queries that cannot be joined on the server in a vendor-neutral
way:

1. create the constraints and attach them to their tables
2. attach the constraint columns
3. append the long-form definitions (such as check clauses)

Stage 1 returns a ``ConstraintLookup`` that stages 2 and 3 resolve rows
against. When stage 1 produces nothing, stages 2 and 3 are not run.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Union

from schema_crawl.crawl.retriever import Retriever
from schema_crawl.crawl.views import QueryType
from schema_crawl.identifiers import lookup_key
from schema_crawl.models import (
    SchemaReference,
    TableConstraint,
    TableConstraintColumn,
    TableConstraintType,
)

logger = logging.getLogger(__name__)


class ConstraintLookup(Dict[str, TableConstraint]):
    """Constraints created in stage 1, keyed by schema full name and constraint name."""

    @staticmethod
    def key_for(schema: Union[SchemaReference, str], constraint_name: Optional[str]) -> str:
        """Key a constraint by its schema full name and name, in lookup-key form."""
        if isinstance(schema, SchemaReference):
            schema_name = ".".join(k for k in schema.key if k)
        else:
            schema_name = ".".join(lookup_key(p) or "" for p in schema.split("."))
        return f"{schema_name}.{lookup_key(constraint_name)}"

    def register(self, constraint: TableConstraint) -> str:
        key = self.key_for(constraint.parent.schema, constraint.name)
        self[key] = constraint
        return key

    def find(
        self,
        catalog_name: Optional[str],
        schema_name: Optional[str],
        constraint_name: Optional[str],
    ) -> Optional[TableConstraint]:
        schema = SchemaReference(catalog_name=catalog_name, schema_name=schema_name)
        return self.get(self.key_for(schema, constraint_name))


class TableConstraintRetriever(Retriever):
    """Retrieves table constraints, their columns and their definitions."""

    def retrieve(self) -> ConstraintLookup:
        """
        Run all three stages.

        Returns:
            The constraints created in stage 1
        """
        constraints = self.create_constraints()
        if constraints:
            self.add_constraint_columns(constraints)
            self.add_constraint_definitions(constraints)
        else:
            logger.debug("No table constraints found, skipping columns and definitions")
        return constraints

    def create_constraints(self) -> ConstraintLookup:
        """Stage 1: create constraints on known tables."""
        constraints = ConstraintLookup()
        sql = self.query_for(QueryType.TABLE_CONSTRAINTS, "Table constraints")
        if sql is None:
            return constraints

        try:
            with self.execute(sql) as results:
                for row in results:
                    catalog_name = self.quoted_name(row, "CONSTRAINT_CATALOG")
                    schema_name = self.quoted_name(row, "CONSTRAINT_SCHEMA")
                    constraint_name = self.quoted_name(row, "CONSTRAINT_NAME")
                    table_name = self.quoted_name(row, "TABLE_NAME")
                    logger.debug(f"Retrieving constraint: {constraint_name}")

                    table = self.lookup_table(catalog_name, schema_name, table_name)
                    if table is None:
                        continue

                    if not constraint_name:
                        self.sink.skipped(self.source, f"Unnamed constraint on {table.full_name}")
                        continue

                    constraint = TableConstraint(
                        name=constraint_name,
                        constraint_type=TableConstraintType.from_value(
                            row.get_string("CONSTRAINT_TYPE")
                        ),
                        deferrable=row.get_boolean("IS_DEFERRABLE"),
                        initially_deferred=row.get_boolean("INITIALLY_DEFERRED"),
                    )
                    constraint.add_attributes(row.get_attributes())

                    self.catalog.add_constraint(table, constraint)
                    constraints.register(constraint)
        except Exception as e:
            self.sink.query_failed(self.source, "Could not retrieve table constraint information", e)

        return constraints

    def add_constraint_columns(self, constraints: ConstraintLookup) -> None:
        """Stage 2: attach columns to constraints created in stage 1."""
        sql = self.query_for(QueryType.CONSTRAINT_COLUMN_USAGE, "Table constraints columns")
        if sql is None:
            return

        try:
            with self.execute(sql) as results:
                for row in results:
                    catalog_name = self.quoted_name(row, "CONSTRAINT_CATALOG")
                    schema_name = self.quoted_name(row, "CONSTRAINT_SCHEMA")
                    constraint_name = self.quoted_name(row, "CONSTRAINT_NAME")
                    logger.debug(f"Retrieving constraint columns: {constraint_name}")

                    constraint = constraints.find(catalog_name, schema_name, constraint_name)
                    if constraint is None:
                        self.sink.not_found(
                            self.source,
                            f"Could not add column for constraint to table: {constraint_name}",
                            constraint=constraint_name,
                        )
                        continue

                    table_name = self.quoted_name(row, "TABLE_NAME")
                    table = self.lookup_table(catalog_name, schema_name, table_name)
                    if table is None:
                        continue

                    column_name = self.quoted_name(row, "COLUMN_NAME")
                    column = self.catalog.find_column(table, column_name)
                    if column is None:
                        self.sink.not_found(
                            self.source,
                            f"Cannot find column, {catalog_name}.{schema_name}.{table_name}.{column_name}",
                            table=table.full_name,
                            column=column_name,
                        )
                        continue

                    constraint.add_column(TableConstraintColumn(
                        constraint=constraint,
                        column=column,
                        ordinal_position=row.get_int("ORDINAL_POSITION", 0),
                    ))
        except Exception as e:
            self.sink.query_failed(self.source, "Could not retrieve table constraint columns", e)

    def add_constraint_definitions(self, constraints: ConstraintLookup) -> None:
        """Stage 3: append definitions to constraints created in stage 1."""
        sql = self.query_for(QueryType.EXT_TABLE_CONSTRAINTS, "Extended table constraints")
        if sql is None:
            return

        try:
            with self.execute(sql) as results:
                for row in results:
                    catalog_name = self.quoted_name(row, "CONSTRAINT_CATALOG")
                    schema_name = self.quoted_name(row, "CONSTRAINT_SCHEMA")
                    constraint_name = self.quoted_name(row, "CONSTRAINT_NAME")
                    logger.debug(f"Retrieving constraint definition: {constraint_name}")

                    constraint = constraints.find(catalog_name, schema_name, constraint_name)
                    if constraint is None:
                        self.sink.not_found(
                            self.source,
                            f"Could not add constraint definition to table: {constraint_name}",
                            constraint=constraint_name,
                        )
                        continue

                    constraint.append_definition(row.get_text("CHECK_CLAUSE"))
                    constraint.add_attributes(row.get_attributes())
        except Exception as e:
            self.sink.query_failed(self.source, "Could not retrieve check constraints", e)
