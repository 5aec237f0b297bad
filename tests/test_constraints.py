"""Tests for three-stage table constraint assembly."""

import sqlite3

import pytest
from conftest import CountingConnection

from schema_crawl.crawl import (
    ConstraintLookup,
    EventKind,
    InformationSchemaViews,
    TableConstraintRetriever,
)
from schema_crawl.models import (
    Catalog,
    Column,
    SchemaReference,
    Table,
    TableConstraint,
    TableConstraintType,
)


@pytest.fixture
def retriever(connection, catalog, views, sink):
    return TableConstraintRetriever(connection, catalog, views, sink)


class TestConstraintLookup:
    """Tests for constraint keys."""

    def test_key_is_schema_full_name_and_constraint_name(self):
        key = ConstraintLookup.key_for(SchemaReference("CAT", "SALES"), "PK_X")
        assert key == "CAT.SALES.PK_X"

    def test_key_ignores_case_of_unquoted_names(self):
        assert ConstraintLookup.key_for(SchemaReference(None, "sales"), "pk_x") == \
            ConstraintLookup.key_for("SALES", "PK_X")

    def test_register_and_find(self):
        table = Table(name="T", schema=SchemaReference("CAT", "SALES"))
        constraint = TableConstraint(name="PK_X")
        table.add_table_constraint(constraint)

        lookup = ConstraintLookup()
        lookup.register(constraint)

        assert lookup.find("cat", "sales", "pk_x") is constraint
        assert lookup.find("CAT", "OTHER", "PK_X") is None


class TestTableConstraintRetriever:
    """Tests for TableConstraintRetriever."""

    def test_constraints_created_on_tables(self, retriever, catalog):
        lookup = retriever.retrieve()

        assert len(lookup) == 3
        customers = catalog.lookup_table(None, "main", "CUSTOMERS")
        assert sorted(c.name for c in customers.table_constraints) == ["CK_STATUS", "PK_CUSTOMERS"]
        pk = customers.lookup_table_constraint("PK_CUSTOMERS")
        assert pk.parent is customers
        assert pk.constraint_type == TableConstraintType.PRIMARY_KEY

    def test_deferrable_flags(self, retriever, catalog):
        retriever.retrieve()

        fk = catalog.lookup_table(None, "main", "ORDERS").lookup_table_constraint("FK_ORDERS_CUSTOMER")
        assert fk.constraint_type == TableConstraintType.FOREIGN_KEY
        assert fk.deferrable is True
        assert fk.initially_deferred is False

    def test_constraint_columns_attached(self, retriever, catalog, sink):
        retriever.retrieve()

        customers = catalog.lookup_table(None, "main", "CUSTOMERS")
        pk = customers.lookup_table_constraint("PK_CUSTOMERS")
        assert [c.name for c in pk.columns] == ["ID"]
        assert pk.columns[0].column is customers.get_column("ID")
        assert pk.columns[0].ordinal_position == 1
        assert pk.columns[0].constraint is pk

        # PK_UNKNOWN was never created in stage 1
        not_found = sink.of_kind(EventKind.NOT_FOUND)
        assert [e.context["constraint"] for e in not_found] == ["PK_UNKNOWN"]

    def test_check_clause_appended(self, retriever, catalog):
        retriever.retrieve()

        check = catalog.lookup_table(None, "main", "CUSTOMERS").lookup_table_constraint("CK_STATUS")
        assert check.constraint_type == TableConstraintType.CHECK
        assert check.definition == "STATUS IN ('A', 'I')"
        assert check.get_attribute("CHECK_CLAUSE") == "STATUS IN ('A', 'I')"

    def test_no_constraints_skips_later_stages(self, connection, catalog, sink):
        views = InformationSchemaViews({
            "TABLE_CONSTRAINTS": "SELECT * FROM MD_TABLE_CONSTRAINTS WHERE 1 = 0",
            "CONSTRAINT_COLUMN_USAGE": "SELECT * FROM MD_CONSTRAINT_COLUMNS",
            "EXT_TABLE_CONSTRAINTS": "SELECT * FROM MD_CHECK_CONSTRAINTS",
        })
        retriever = TableConstraintRetriever(connection, catalog, views, sink)

        lookup = retriever.retrieve()

        assert len(lookup) == 0
        assert connection.executed == ["SELECT * FROM MD_TABLE_CONSTRAINTS WHERE 1 = 0"]

    def test_missing_column_stage_still_runs_definitions(self, connection, catalog, sink):
        views = InformationSchemaViews({
            "TABLE_CONSTRAINTS": "SELECT * FROM MD_TABLE_CONSTRAINTS",
            "EXT_TABLE_CONSTRAINTS": "SELECT * FROM MD_CHECK_CONSTRAINTS",
        })
        retriever = TableConstraintRetriever(connection, catalog, views, sink)

        retriever.retrieve()

        check = catalog.lookup_table(None, "main", "CUSTOMERS").lookup_table_constraint("CK_STATUS")
        assert check.columns == []
        assert check.definition == "STATUS IN ('A', 'I')"
        absent = sink.of_kind(EventKind.CAPABILITY_ABSENT)
        assert [e.context["query"] for e in absent] == ["CONSTRAINT_COLUMN_USAGE"]

    def test_failing_stage_does_not_stop_others(self, connection, catalog, sink):
        views = InformationSchemaViews({
            "TABLE_CONSTRAINTS": "SELECT * FROM MD_TABLE_CONSTRAINTS",
            "CONSTRAINT_COLUMN_USAGE": "SELECT * FROM NO_SUCH_TABLE",
            "EXT_TABLE_CONSTRAINTS": "SELECT * FROM MD_CHECK_CONSTRAINTS",
        })
        retriever = TableConstraintRetriever(connection, catalog, views, sink)

        retriever.retrieve()

        check = catalog.lookup_table(None, "main", "CUSTOMERS").lookup_table_constraint("CK_STATUS")
        assert check.definition == "STATUS IN ('A', 'I')"
        assert len(sink.of_kind(EventKind.QUERY_FAILED)) == 1


class TestEndToEnd:
    """A primary key assembled from separate constraint and column sources."""

    @pytest.fixture
    def source(self):
        conn = sqlite3.connect(":memory:")
        conn.executescript("""
            CREATE TABLE CONS (CONSTRAINT_CATALOG, CONSTRAINT_SCHEMA, CONSTRAINT_NAME,
                               TABLE_NAME, CONSTRAINT_TYPE);
            INSERT INTO CONS VALUES ('C', 'S', 'PK_X', 'T', 'PRIMARY KEY');
            CREATE TABLE CONS_COLS (CONSTRAINT_CATALOG, CONSTRAINT_SCHEMA, CONSTRAINT_NAME,
                                    TABLE_NAME, COLUMN_NAME, ORDINAL_POSITION);
            INSERT INTO CONS_COLS VALUES ('C', 'S', 'PK_X', 'T', 'ID', 1);
            CREATE TABLE CONS_DEFS (CONSTRAINT_CATALOG, CONSTRAINT_SCHEMA, CONSTRAINT_NAME,
                                    CHECK_CLAUSE);
        """)
        yield CountingConnection(conn)
        conn.close()

    def test_primary_key(self, source, sink):
        catalog = Catalog()
        table = catalog.add_table(Table(name="T", schema=SchemaReference("C", "S")))
        table.add_column(Column(name="ID"))
        table.add_column(Column(name="NAME"))
        views = InformationSchemaViews({
            "TABLE_CONSTRAINTS": "SELECT * FROM CONS",
            "CONSTRAINT_COLUMN_USAGE": "SELECT * FROM CONS_COLS",
            "EXT_TABLE_CONSTRAINTS": "SELECT * FROM CONS_DEFS",
        })

        TableConstraintRetriever(source, catalog, views, sink).retrieve()

        assert len(table.table_constraints) == 1
        pk = table.lookup_table_constraint("PK_X")
        assert pk.name == "PK_X"
        assert pk.constraint_type == TableConstraintType.PRIMARY_KEY
        assert len(pk.columns) == 1
        assert pk.columns[0].column is table.get_column("ID")
        assert pk.columns[0].ordinal_position == 1
        assert not pk.has_definition
        assert len(source.executed) == 3

    def test_absent_queries_leave_graph_unchanged(self, source, catalog, sink):
        before = catalog.to_dict()

        TableConstraintRetriever(source, catalog, InformationSchemaViews(), sink).retrieve()

        assert catalog.to_dict() == before
        assert source.executed == []
