"""
Table and column privilege retrieval.

Table privileges and column privileges share one code path, parametrized
over how a row resolves to the object that owns the privilege.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from schema_crawl.crawl.results import MetadataRow
from schema_crawl.crawl.retriever import Retriever
from schema_crawl.crawl.views import QueryType
from schema_crawl.models import Privilege

logger = logging.getLogger(__name__)


class PrivilegeOwner(Protocol):
    """Anything that can hold privileges: tables and columns."""

    name: str

    def lookup_privilege(self, name: Optional[str]) -> Optional[Privilege]:
        ...

    def add_privilege(self, privilege: Privilege) -> None:
        ...


def merge_privilege(
    owner: PrivilegeOwner,
    privilege_name: str,
    grantor: Optional[str],
    grantee: Optional[str],
    is_grantable: bool,
) -> Privilege:
    """
    Find or create a privilege on the owner and record one grant on it.

    Args:
        owner: Table or column that holds the privilege
        privilege_name: Privilege name, such as SELECT
        grantor: Who granted it
        grantee: Who received it
        is_grantable: Whether the grantee may grant it on

    Returns:
        The privilege, attached to the owner
    """
    privilege = owner.lookup_privilege(privilege_name)
    if privilege is None:
        privilege = Privilege(name=privilege_name, parent=owner)
    privilege.add_grant(grantor, grantee, is_grantable)
    owner.add_privilege(privilege)
    return privilege


class PrivilegeRetriever(Retriever):
    """Retrieves table and column privileges."""

    def retrieve_table_privileges(self) -> None:
        self._retrieve_privileges(QueryType.TABLE_PRIVILEGES, "Table privileges", self._table_owner)

    def retrieve_table_column_privileges(self) -> None:
        self._retrieve_privileges(
            QueryType.COLUMN_PRIVILEGES, "Table column privileges", self._column_owner
        )

    def _retrieve_privileges(
        self,
        query_type: QueryType,
        description: str,
        resolve_owner: Callable[[MetadataRow], Optional[PrivilegeOwner]],
    ) -> None:
        sql = self.query_for(query_type, description)
        if sql is None:
            return

        try:
            with self.execute(sql) as results:
                for row in results:
                    owner = resolve_owner(row)
                    if owner is None:
                        continue

                    privilege_name = row.get_string("PRIVILEGE")
                    if not privilege_name:
                        self.sink.skipped(self.source, f"Unnamed privilege on {owner.name}")
                        continue

                    logger.debug(f"Retrieving privilege {privilege_name} on {owner.name}")
                    merge_privilege(
                        owner,
                        privilege_name,
                        grantor=row.get_string("GRANTOR"),
                        grantee=row.get_string("GRANTEE"),
                        is_grantable=row.get_boolean("IS_GRANTABLE"),
                    )
        except Exception as e:
            self.sink.query_failed(self.source, f"Could not retrieve {description.lower()}", e)

    def _table_owner(self, row: MetadataRow) -> Optional[PrivilegeOwner]:
        return self.lookup_table(
            self.quoted_name(row, "TABLE_CAT", "TABLE_CATALOG"),
            self.quoted_name(row, "TABLE_SCHEM", "TABLE_SCHEMA"),
            self.quoted_name(row, "TABLE_NAME"),
        )

    def _column_owner(self, row: MetadataRow) -> Optional[PrivilegeOwner]:
        table = self._table_owner(row)
        if table is None:
            return None

        column_name = self.quoted_name(row, "COLUMN_NAME")
        column = self.catalog.find_column(table, column_name)
        if column is None:
            self.sink.not_found(
                self.source,
                f"Cannot find column, {table.full_name}.{column_name}",
                table=table.full_name,
                column=column_name,
            )
        return column
