"""Shared fixtures: an in-memory SQLite metadata source and a matching skeleton."""

import sqlite3

import pytest

from schema_crawl.crawl import DiagnosticsSink, InformationSchemaViews
from schema_crawl.models import Catalog

# Application tables, plus MD_* tables shaped like INFORMATION_SCHEMA views
METADATA_SCRIPT = """
CREATE TABLE CUSTOMERS (
    ID INTEGER PRIMARY KEY,
    NAME TEXT NOT NULL,
    STATUS TEXT CHECK (STATUS IN ('A', 'I'))
);
CREATE TABLE ORDERS (
    ID INTEGER PRIMARY KEY,
    CUSTOMER_ID INTEGER REFERENCES CUSTOMERS (ID),
    AMOUNT REAL
);
CREATE INDEX IDX_ORDERS_CUSTOMER ON ORDERS (CUSTOMER_ID);
CREATE VIEW ACTIVE_CUSTOMERS AS SELECT ID, NAME FROM CUSTOMERS WHERE STATUS = 'A';

INSERT INTO CUSTOMERS VALUES (1, 'Ada', 'A'), (2, 'Grace', 'A'), (3, 'Linus', 'I');
INSERT INTO ORDERS VALUES (1, 1, 10.0), (2, 1, 20.5);

CREATE TABLE MD_TABLE_ATTRIBUTES (
    TABLE_CATALOG TEXT, TABLE_SCHEMA TEXT, TABLE_NAME TEXT, TABLESPACE TEXT, OWNER TEXT
);
INSERT INTO MD_TABLE_ATTRIBUTES VALUES
    (NULL, 'main', 'CUSTOMERS', 'USERS', 'dba'),
    (NULL, 'main', 'orders', 'DATA', 'dba'),
    (NULL, 'main', 'GHOST', 'USERS', 'dba');

CREATE TABLE MD_COLUMN_ATTRIBUTES (
    TABLE_CATALOG TEXT, TABLE_SCHEMA TEXT, TABLE_NAME TEXT, COLUMN_NAME TEXT, COLLATION_NAME TEXT
);
INSERT INTO MD_COLUMN_ATTRIBUTES VALUES
    (NULL, 'main', 'CUSTOMERS', 'NAME', 'NOCASE'),
    (NULL, 'main', 'CUSTOMERS', 'MISSING', 'BINARY');

CREATE TABLE MD_TABLES (
    SEQ INTEGER, TABLE_CATALOG TEXT, TABLE_SCHEMA TEXT, TABLE_NAME TEXT, TABLE_DEFINITION TEXT
);
INSERT INTO MD_TABLES VALUES
    (1, NULL, 'main', 'CUSTOMERS', 'CREATE TABLE CUSTOMERS ('),
    (2, NULL, 'main', 'CUSTOMERS', 'ID INTEGER PRIMARY KEY)');

CREATE TABLE MD_INDEXES (
    INDEX_CATALOG TEXT, INDEX_SCHEMA TEXT, TABLE_NAME TEXT, INDEX_NAME TEXT,
    INDEX_DEFINITION TEXT
);
INSERT INTO MD_INDEXES VALUES
    (NULL, 'main', 'ORDERS', 'IDX_ORDERS_CUSTOMER', 'CREATE INDEX IDX_ORDERS_CUSTOMER ON ORDERS (CUSTOMER_ID)'),
    (NULL, 'main', 'ORDERS', 'IDX_NOT_IN_SKELETON', 'CREATE INDEX IDX_NOT_IN_SKELETON ON ORDERS (AMOUNT)');

CREATE TABLE MD_VIEWS (
    TABLE_CATALOG TEXT, TABLE_SCHEMA TEXT, TABLE_NAME TEXT, VIEW_DEFINITION TEXT,
    CHECK_OPTION TEXT, IS_UPDATABLE TEXT
);
INSERT INTO MD_VIEWS VALUES
    (NULL, 'main', 'ACTIVE_CUSTOMERS', 'SELECT ID, NAME FROM CUSTOMERS WHERE STATUS = ''A''', 'CASCADED', 'NO'),
    (NULL, 'main', 'CUSTOMERS', 'SELECT 1', 'NONE', 'YES');

CREATE TABLE MD_TRIGGERS (
    SEQ INTEGER, TRIGGER_CATALOG TEXT, TRIGGER_SCHEMA TEXT, TRIGGER_NAME TEXT,
    EVENT_OBJECT_TABLE TEXT, EVENT_MANIPULATION TEXT, ACTION_ORDER INTEGER,
    ACTION_CONDITION TEXT, ACTION_STATEMENT TEXT, ACTION_ORIENTATION TEXT, ACTION_TIMING TEXT
);
INSERT INTO MD_TRIGGERS VALUES
    (1, NULL, 'main', 'TRG_AUDIT', 'ORDERS', 'INSERT', 1, NULL, 'BEGIN ', 'ROW', 'AFTER'),
    (2, NULL, 'main', 'TRG_AUDIT', 'ORDERS', NULL, NULL, NULL, 'INSERT INTO AUDIT; END', NULL, NULL);

CREATE TABLE MD_TABLE_CONSTRAINTS (
    CONSTRAINT_CATALOG TEXT, CONSTRAINT_SCHEMA TEXT, CONSTRAINT_NAME TEXT, TABLE_NAME TEXT,
    CONSTRAINT_TYPE TEXT, IS_DEFERRABLE TEXT, INITIALLY_DEFERRED TEXT
);
INSERT INTO MD_TABLE_CONSTRAINTS VALUES
    (NULL, 'main', 'PK_CUSTOMERS', 'CUSTOMERS', 'PRIMARY KEY', 'NO', 'NO'),
    (NULL, 'main', 'CK_STATUS', 'CUSTOMERS', 'CHECK', 'NO', 'NO'),
    (NULL, 'main', 'FK_ORDERS_CUSTOMER', 'ORDERS', 'FOREIGN KEY', 'YES', 'NO');

CREATE TABLE MD_CONSTRAINT_COLUMNS (
    CONSTRAINT_CATALOG TEXT, CONSTRAINT_SCHEMA TEXT, CONSTRAINT_NAME TEXT, TABLE_NAME TEXT,
    COLUMN_NAME TEXT, ORDINAL_POSITION INTEGER
);
INSERT INTO MD_CONSTRAINT_COLUMNS VALUES
    (NULL, 'main', 'PK_CUSTOMERS', 'CUSTOMERS', 'ID', 1),
    (NULL, 'main', 'CK_STATUS', 'CUSTOMERS', 'STATUS', 1),
    (NULL, 'main', 'FK_ORDERS_CUSTOMER', 'ORDERS', 'CUSTOMER_ID', 1),
    (NULL, 'main', 'PK_UNKNOWN', 'CUSTOMERS', 'ID', 1);

CREATE TABLE MD_CHECK_CONSTRAINTS (
    CONSTRAINT_CATALOG TEXT, CONSTRAINT_SCHEMA TEXT, CONSTRAINT_NAME TEXT, CHECK_CLAUSE TEXT
);
INSERT INTO MD_CHECK_CONSTRAINTS VALUES
    (NULL, 'main', 'CK_STATUS', 'STATUS IN (''A'', ''I'')');

CREATE TABLE MD_TABLE_PRIVILEGES (
    TABLE_CAT TEXT, TABLE_SCHEM TEXT, TABLE_NAME TEXT, GRANTOR TEXT, GRANTEE TEXT,
    PRIVILEGE TEXT, IS_GRANTABLE TEXT
);
INSERT INTO MD_TABLE_PRIVILEGES VALUES
    (NULL, 'main', 'CUSTOMERS', 'dba', 'alice', 'SELECT', 'YES'),
    (NULL, 'main', 'CUSTOMERS', 'dba', 'bob', 'SELECT', 'NO'),
    (NULL, 'main', 'CUSTOMERS', 'dba', 'alice', 'INSERT', 'NO');

CREATE TABLE MD_COLUMN_PRIVILEGES (
    TABLE_CAT TEXT, TABLE_SCHEM TEXT, TABLE_NAME TEXT, COLUMN_NAME TEXT, GRANTOR TEXT,
    GRANTEE TEXT, PRIVILEGE TEXT, IS_GRANTABLE TEXT
);
INSERT INTO MD_COLUMN_PRIVILEGES VALUES
    (NULL, 'main', 'CUSTOMERS', 'NAME', 'dba', 'alice', 'UPDATE', 'NO'),
    (NULL, 'main', 'CUSTOMERS', 'NOPE', 'dba', 'alice', 'UPDATE', 'NO');
"""

QUERIES = {
    "ADDITIONAL_TABLE_ATTRIBUTES": "SELECT * FROM MD_TABLE_ATTRIBUTES",
    "ADDITIONAL_COLUMN_ATTRIBUTES": "SELECT * FROM MD_COLUMN_ATTRIBUTES",
    "EXT_TABLES": "SELECT TABLE_CATALOG, TABLE_SCHEMA, TABLE_NAME, TABLE_DEFINITION FROM MD_TABLES ORDER BY SEQ",
    "EXT_INDEXES": "SELECT * FROM MD_INDEXES",
    "VIEWS": "SELECT * FROM MD_VIEWS",
    "TRIGGERS": "SELECT * FROM MD_TRIGGERS ORDER BY SEQ",
    "TABLE_CONSTRAINTS": "SELECT * FROM MD_TABLE_CONSTRAINTS",
    "CONSTRAINT_COLUMN_USAGE": "SELECT * FROM MD_CONSTRAINT_COLUMNS",
    "EXT_TABLE_CONSTRAINTS": "SELECT * FROM MD_CHECK_CONSTRAINTS",
    "TABLE_PRIVILEGES": "SELECT * FROM MD_TABLE_PRIVILEGES",
    "COLUMN_PRIVILEGES": "SELECT * FROM MD_COLUMN_PRIVILEGES",
}

SKELETON = {
    "name": "TESTDB",
    "schemas": [
        {
            "schema": "main",
            "tables": [
                {"name": "CUSTOMERS", "type": "TABLE", "columns": ["ID", "NAME", "STATUS"]},
                {
                    "name": "ORDERS",
                    "type": "TABLE",
                    "columns": ["ID", "CUSTOMER_ID", "AMOUNT"],
                    "indexes": [{"name": "IDX_ORDERS_CUSTOMER", "columns": ["CUSTOMER_ID"]}],
                },
                {"name": "ACTIVE_CUSTOMERS", "type": "VIEW", "columns": ["ID", "NAME"]},
            ],
        }
    ],
}


class CountingCursor:
    """Cursor proxy that records every statement it executes."""

    def __init__(self, cursor, executed):
        self._cursor = cursor
        self._executed = executed

    def execute(self, sql, *args):
        self._executed.append(sql)
        return self._cursor.execute(sql, *args)

    def __getattr__(self, name):
        return getattr(self._cursor, name)


class CountingConnection:
    """Connection proxy that records executed SQL and open cursors."""

    def __init__(self, connection):
        self._connection = connection
        self.executed = []
        self.cursors_opened = 0

    def cursor(self):
        self.cursors_opened += 1
        return CountingCursor(self._connection.cursor(), self.executed)

    def close(self):
        self._connection.close()


class ScriptedCursor:
    """
    Cursor returning canned rows one at a time, failing once ``fail_after``
    rows have been delivered.
    """

    def __init__(self, labels, rows, fail_after=None):
        self._labels = labels
        self._rows = list(rows)
        self._fail_after = fail_after
        self._position = 0
        self.description = None
        self.closed = False

    def execute(self, sql):
        self.description = [(label, None, None, None, None, None, None) for label in self._labels]

    def fetchmany(self, size):
        if self._fail_after is not None and self._position >= self._fail_after:
            raise RuntimeError("connection reset by peer")
        if self._position >= len(self._rows):
            return []
        row = self._rows[self._position]
        self._position += 1
        return [row]

    def close(self):
        self.closed = True


class ScriptedConnection:
    """Connection whose every cursor replays the same canned result."""

    def __init__(self, labels, rows, fail_after=None):
        self._labels = labels
        self._rows = rows
        self._fail_after = fail_after
        self.cursors = []

    def cursor(self):
        cursor = ScriptedCursor(self._labels, self._rows, self._fail_after)
        self.cursors.append(cursor)
        return cursor


def create_metadata_database(connection):
    connection.executescript(METADATA_SCRIPT)
    connection.commit()


@pytest.fixture
def sqlite_connection():
    conn = sqlite3.connect(":memory:")
    create_metadata_database(conn)
    yield conn
    conn.close()


@pytest.fixture
def connection(sqlite_connection):
    return CountingConnection(sqlite_connection)


@pytest.fixture
def catalog():
    return Catalog.from_dict(SKELETON)


@pytest.fixture
def views():
    return InformationSchemaViews(QUERIES)


@pytest.fixture
def sink():
    return DiagnosticsSink()
