"""
Catalog graph for the schema_crawl package.

Defines the mutable object model that the base pass creates and the
enrichment retrievers extend: schemas, tables and views, columns, indexes,
triggers, table constraints and privileges. Every child collection is an
index keyed by the normalized lookup key of the member name, so repeated
lookups during enrichment never scan.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type, TypeVar, Union

import yaml

from schema_crawl.identifiers import DEFAULT_IDENTIFIERS, Identifiers, lookup_key

E = TypeVar("E", bound="MetadataEnum")


class MetadataEnum(str, Enum):
    """Base for enumerations read from metadata, with an UNKNOWN fallback."""

    @classmethod
    def from_value(cls: Type[E], value: Any) -> E:
        """
        Map a raw metadata value onto a member.

        Matching ignores case and treats underscores as spaces, so both
        "INSTEAD OF" and "instead_of" resolve. Anything else is UNKNOWN.
        """
        if value is None:
            return cls["UNKNOWN"]
        wanted = str(value).strip().upper().replace("_", " ")
        for member in cls:
            if wanted in (member.value.upper(), member.name.replace("_", " ")):
                return member
        return cls["UNKNOWN"]


class TableConstraintType(MetadataEnum):
    """Kinds of table constraint."""
    UNKNOWN = "unknown"
    PRIMARY_KEY = "PRIMARY KEY"
    UNIQUE = "UNIQUE"
    FOREIGN_KEY = "FOREIGN KEY"
    CHECK = "CHECK"


class CheckOptionType(MetadataEnum):
    """View check options."""
    UNKNOWN = "unknown"
    NONE = "NONE"
    CASCADED = "CASCADED"
    LOCAL = "LOCAL"


class EventManipulationType(MetadataEnum):
    """Statement kinds that fire a trigger."""
    UNKNOWN = "unknown"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ActionOrientationType(MetadataEnum):
    """Whether a trigger fires per row or per statement."""
    UNKNOWN = "unknown"
    ROW = "ROW"
    STATEMENT = "STATEMENT"


class ConditionTimingType(MetadataEnum):
    """When a trigger fires relative to its event."""
    UNKNOWN = "unknown"
    BEFORE = "BEFORE"
    AFTER = "AFTER"
    INSTEAD_OF = "INSTEAD OF"


@dataclass(frozen=True)
class SchemaReference:
    """Catalog and schema pair that qualifies every table."""
    catalog_name: Optional[str] = None
    schema_name: Optional[str] = None

    @property
    def full_name(self) -> str:
        """Return the dotted catalog.schema name, omitting blank parts."""
        return ".".join(p for p in (self.catalog_name, self.schema_name) if p)

    @property
    def key(self) -> Tuple[Optional[str], Optional[str]]:
        return lookup_key(self.catalog_name), lookup_key(self.schema_name)

    def __str__(self) -> str:
        return self.full_name

    def to_dict(self) -> Dict[str, Any]:
        return {"catalog": self.catalog_name, "schema": self.schema_name}


@dataclass(eq=False)
class NamedObject:
    """A named catalog object carrying an attribute bag."""
    name: str
    attributes: Dict[str, Any] = field(default_factory=dict)

    def add_attribute(self, name: str, value: Any) -> None:
        self.attributes[name] = value

    def add_attributes(self, attributes: Optional[Dict[str, Any]]) -> None:
        """Merge attributes into the bag, overwriting existing keys."""
        if attributes:
            self.attributes.update(attributes)

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    @property
    def key(self) -> Optional[str]:
        return lookup_key(self.name)


@dataclass(eq=False)
class DefinedObject(NamedObject):
    """A named object whose definition text may arrive over several rows."""
    definition: str = ""

    def append_definition(self, fragment: Optional[str]) -> None:
        """Append a definition fragment; None is ignored."""
        if fragment is not None:
            self.definition += fragment

    @property
    def has_definition(self) -> bool:
        return bool(self.definition.strip())


@dataclass(frozen=True)
class Grant:
    """A single grant of a privilege."""
    grantor: Optional[str]
    grantee: Optional[str]
    is_grantable: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "grantor": self.grantor,
            "grantee": self.grantee,
            "is_grantable": self.is_grantable,
        }


@dataclass(eq=False)
class Privilege(NamedObject):
    """A named privilege held on a table or column, with its grants."""
    parent: Any = field(default=None, repr=False)
    grants: List[Grant] = field(default_factory=list)

    def add_grant(
        self,
        grantor: Optional[str],
        grantee: Optional[str],
        is_grantable: bool = False,
    ) -> Grant:
        """Record a grant; an identical grant is only kept once."""
        grant = Grant(grantor=grantor, grantee=grantee, is_grantable=is_grantable)
        if grant not in self.grants:
            self.grants.append(grant)
        return grant

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "grants": [g.to_dict() for g in self.grants],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], parent: Any = None) -> Privilege:
        privilege = cls(name=data["name"], parent=parent)
        for grant in data.get("grants", []):
            privilege.add_grant(
                grant.get("grantor"), grant.get("grantee"), grant.get("is_grantable", False)
            )
        return privilege


class PrivilegeHolder:
    """Mixin for objects that hold privileges, keyed by privilege name."""

    privileges_by_key: Dict[str, Privilege]

    @property
    def privileges(self) -> List[Privilege]:
        return list(self.privileges_by_key.values())

    def lookup_privilege(self, name: Optional[str]) -> Optional[Privilege]:
        return self.privileges_by_key.get(lookup_key(name))

    def add_privilege(self, privilege: Privilege) -> None:
        """Attach a privilege; re-adding the same privilege is a no-op."""
        self.privileges_by_key[privilege.key] = privilege


@dataclass(eq=False)
class Column(NamedObject, PrivilegeHolder):
    """A table column."""
    parent: Optional[Table] = field(default=None, repr=False)
    ordinal_position: int = 0
    data_type: Optional[str] = None
    nullable: bool = True
    privileges_by_key: Dict[str, Privilege] = field(default_factory=dict, repr=False)

    @property
    def full_name(self) -> str:
        return f"{self.parent.full_name}.{self.name}" if self.parent else self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "ordinal_position": self.ordinal_position,
            "data_type": self.data_type,
            "nullable": self.nullable,
            "attributes": dict(self.attributes),
            "privileges": [p.to_dict() for p in self.privileges],
        }

    @classmethod
    def from_dict(
        cls,
        data: Union[str, Dict[str, Any]],
        identifiers: Identifiers = DEFAULT_IDENTIFIERS,
    ) -> Column:
        """Create from a column name or a dictionary."""
        if isinstance(data, str):
            data = {"name": data}
        column = cls(
            name=identifiers.quoted_name(data["name"]),
            ordinal_position=data.get("ordinal_position", 0),
            data_type=data.get("data_type"),
            nullable=data.get("nullable", True),
            attributes=dict(data.get("attributes", {})),
        )
        for priv_data in data.get("privileges", []):
            column.add_privilege(Privilege.from_dict(priv_data, column))
        return column


@dataclass(eq=False)
class Index(DefinedObject):
    """A table index."""
    parent: Optional[Table] = field(default=None, repr=False)
    unique: bool = False
    column_names: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "unique": self.unique,
            "columns": list(self.column_names),
            "definition": self.definition,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        identifiers: Identifiers = DEFAULT_IDENTIFIERS,
    ) -> Index:
        return cls(
            name=identifiers.quoted_name(data["name"]),
            unique=data.get("unique", False),
            column_names=[identifiers.quoted_name(c) for c in data.get("columns", [])],
            definition=data.get("definition", ""),
            attributes=dict(data.get("attributes", {})),
        )


@dataclass(eq=False)
class Trigger(NamedObject):
    """A table trigger. Action text may arrive over several rows."""
    parent: Optional[Table] = field(default=None, repr=False)
    event_manipulation_type: EventManipulationType = EventManipulationType.UNKNOWN
    action_order: int = 0
    action_condition: str = ""
    action_statement: str = ""
    action_orientation: ActionOrientationType = ActionOrientationType.UNKNOWN
    condition_timing: ConditionTimingType = ConditionTimingType.UNKNOWN

    def append_action_condition(self, fragment: Optional[str]) -> None:
        if fragment is not None:
            self.action_condition += fragment

    def append_action_statement(self, fragment: Optional[str]) -> None:
        if fragment is not None:
            self.action_statement += fragment

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "event_manipulation_type": self.event_manipulation_type.value,
            "action_order": self.action_order,
            "action_condition": self.action_condition,
            "action_statement": self.action_statement,
            "action_orientation": self.action_orientation.value,
            "condition_timing": self.condition_timing.value,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        identifiers: Identifiers = DEFAULT_IDENTIFIERS,
    ) -> Trigger:
        return cls(
            name=identifiers.quoted_name(data["name"]),
            event_manipulation_type=EventManipulationType.from_value(
                data.get("event_manipulation_type")
            ),
            action_order=data.get("action_order", 0),
            action_condition=data.get("action_condition", ""),
            action_statement=data.get("action_statement", ""),
            action_orientation=ActionOrientationType.from_value(data.get("action_orientation")),
            condition_timing=ConditionTimingType.from_value(data.get("condition_timing")),
            attributes=dict(data.get("attributes", {})),
        )


@dataclass(eq=False)
class TableConstraintColumn:
    """A column taking part in a table constraint."""
    constraint: TableConstraint = field(repr=False)
    column: Column
    ordinal_position: int = 0

    @property
    def name(self) -> str:
        return self.column.name

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "ordinal_position": self.ordinal_position}


@dataclass(eq=False)
class TableConstraint(DefinedObject):
    """A named table constraint and its ordered columns."""
    parent: Optional[Table] = field(default=None, repr=False)
    constraint_type: TableConstraintType = TableConstraintType.UNKNOWN
    deferrable: bool = False
    initially_deferred: bool = False
    columns: List[TableConstraintColumn] = field(default_factory=list)

    def add_column(self, constraint_column: TableConstraintColumn) -> None:
        self.columns.append(constraint_column)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "constraint_type": self.constraint_type.value,
            "deferrable": self.deferrable,
            "initially_deferred": self.initially_deferred,
            "columns": [c.to_dict() for c in self.columns],
            "definition": self.definition,
            "attributes": dict(self.attributes),
        }


@dataclass(eq=False)
class Table(DefinedObject, PrivilegeHolder):
    """A base table, owning its columns and every enriched child object."""
    schema: SchemaReference = field(default_factory=SchemaReference)
    table_type: str = "TABLE"
    columns_by_key: Dict[str, Column] = field(default_factory=dict, repr=False)
    indexes_by_key: Dict[str, Index] = field(default_factory=dict, repr=False)
    triggers_by_key: Dict[str, Trigger] = field(default_factory=dict, repr=False)
    constraints_by_key: Dict[str, TableConstraint] = field(default_factory=dict, repr=False)
    privileges_by_key: Dict[str, Privilege] = field(default_factory=dict, repr=False)

    @property
    def full_name(self) -> str:
        """Return the schema-qualified table name."""
        prefix = self.schema.full_name
        return f"{prefix}.{self.name}" if prefix else self.name

    @property
    def is_view(self) -> bool:
        return False

    @property
    def columns(self) -> List[Column]:
        """Columns in ordinal order."""
        return sorted(self.columns_by_key.values(), key=lambda c: c.ordinal_position)

    @property
    def indexes(self) -> List[Index]:
        return list(self.indexes_by_key.values())

    @property
    def triggers(self) -> List[Trigger]:
        return list(self.triggers_by_key.values())

    @property
    def table_constraints(self) -> List[TableConstraint]:
        return list(self.constraints_by_key.values())

    def add_column(self, column: Column) -> Column:
        column.parent = self
        if not column.ordinal_position:
            column.ordinal_position = len(self.columns_by_key) + 1
        self.columns_by_key[column.key] = column
        return column

    def get_column(self, name: Optional[str]) -> Optional[Column]:
        return self.columns_by_key.get(lookup_key(name))

    def add_index(self, index: Index) -> Index:
        index.parent = self
        self.indexes_by_key[index.key] = index
        return index

    def get_index(self, name: Optional[str]) -> Optional[Index]:
        return self.indexes_by_key.get(lookup_key(name))

    def lookup_trigger(self, name: Optional[str]) -> Optional[Trigger]:
        return self.triggers_by_key.get(lookup_key(name))

    def add_trigger(self, trigger: Trigger) -> None:
        """Attach a trigger; re-adding the same trigger is a no-op."""
        trigger.parent = self
        self.triggers_by_key[trigger.key] = trigger

    def lookup_table_constraint(self, name: Optional[str]) -> Optional[TableConstraint]:
        return self.constraints_by_key.get(lookup_key(name))

    def add_table_constraint(self, constraint: TableConstraint) -> None:
        constraint.parent = self
        self.constraints_by_key[constraint.key] = constraint

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "type": self.table_type,
            "definition": self.definition,
            "attributes": dict(self.attributes),
            "columns": [c.to_dict() for c in self.columns],
            "indexes": [i.to_dict() for i in self.indexes],
            "triggers": [t.to_dict() for t in self.triggers],
            "table_constraints": [c.to_dict() for c in self.table_constraints],
            "privileges": [p.to_dict() for p in self.privileges],
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        schema: SchemaReference,
        identifiers: Identifiers = DEFAULT_IDENTIFIERS,
    ) -> Table:
        """Create a base-pass skeleton table (or view) from a dictionary."""
        table_type = str(data.get("type", "TABLE")).upper()
        table_cls: Type[Table] = View if table_type == "VIEW" else Table
        table = table_cls(
            name=identifiers.quoted_name(data["name"]),
            schema=schema,
            table_type=table_type,
            definition=data.get("definition", ""),
            attributes=dict(data.get("attributes", {})),
        )
        for col_data in data.get("columns", []):
            table.add_column(Column.from_dict(col_data, identifiers))
        for idx_data in data.get("indexes", []):
            table.add_index(Index.from_dict(idx_data, identifiers))
        for trg_data in data.get("triggers", []):
            table.add_trigger(Trigger.from_dict(trg_data, identifiers))
        for con_data in data.get("table_constraints", []):
            table.add_table_constraint(table._constraint_from_dict(con_data, identifiers))
        for priv_data in data.get("privileges", []):
            table.add_privilege(Privilege.from_dict(priv_data, table))
        if isinstance(table, View):
            table.check_option = CheckOptionType.from_value(data.get("check_option"))
            table.updatable = data.get("updatable", False)
        return table

    def _constraint_from_dict(
        self,
        data: Dict[str, Any],
        identifiers: Identifiers,
    ) -> TableConstraint:
        """Rebuild a saved constraint, resolving its columns on this table."""
        constraint = TableConstraint(
            name=identifiers.quoted_name(data["name"]),
            constraint_type=TableConstraintType.from_value(data.get("constraint_type")),
            deferrable=data.get("deferrable", False),
            initially_deferred=data.get("initially_deferred", False),
            definition=data.get("definition", ""),
            attributes=dict(data.get("attributes", {})),
        )
        for col_data in data.get("columns", []):
            column = self.get_column(col_data["name"])
            if column is not None:
                constraint.add_column(TableConstraintColumn(
                    constraint=constraint,
                    column=column,
                    ordinal_position=col_data.get("ordinal_position", 0),
                ))
        return constraint


@dataclass(eq=False)
class View(Table):
    """A view: a table variant with a check option and updatability."""
    table_type: str = "VIEW"
    check_option: CheckOptionType = CheckOptionType.UNKNOWN
    updatable: bool = False

    @property
    def is_view(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["check_option"] = self.check_option.value
        data["updatable"] = self.updatable
        return data


@dataclass(eq=False)
class Catalog:
    """
    The crawled database: schemas and their tables.

    Tables are indexed by (schema key, table key); each table indexes its
    own children. The graph is owned by one crawl session at a time.
    """
    name: Optional[str] = None
    schemas_by_key: Dict[Tuple[Optional[str], Optional[str]], SchemaReference] = field(
        default_factory=dict
    )
    tables_by_key: Dict[Tuple[Tuple[Optional[str], Optional[str]], Optional[str]], Table] = field(
        default_factory=dict
    )

    @property
    def schemas(self) -> List[SchemaReference]:
        return list(self.schemas_by_key.values())

    @property
    def tables(self) -> List[Table]:
        return list(self.tables_by_key.values())

    def add_schema(self, schema: SchemaReference) -> SchemaReference:
        return self.schemas_by_key.setdefault(schema.key, schema)

    def lookup_schema(
        self,
        catalog_name: Optional[str],
        schema_name: Optional[str],
    ) -> Optional[SchemaReference]:
        return self.schemas_by_key.get((lookup_key(catalog_name), lookup_key(schema_name)))

    def add_table(self, table: Table) -> Table:
        table.schema = self.add_schema(table.schema)
        self.tables_by_key[(table.schema.key, table.key)] = table
        return table

    def lookup_table(
        self,
        catalog_name: Optional[str],
        schema_name: Optional[str],
        table_name: Optional[str],
    ) -> Optional[Table]:
        """Find a table by its normalized composite key, or return None."""
        schema_key = (lookup_key(catalog_name), lookup_key(schema_name))
        return self.tables_by_key.get((schema_key, lookup_key(table_name)))

    def get_tables(self, schema: Optional[SchemaReference] = None) -> List[Table]:
        """Get all tables, or only those in one schema."""
        if schema is None:
            return self.tables
        return [t for t in self.tables if t.schema.key == schema.key]

    def iter_columns(self) -> Iterator[Column]:
        for table in self.tables:
            yield from table.columns

    # Accessors used by the enrichment retrievers

    def find_table(
        self,
        catalog_name: Optional[str],
        schema_name: Optional[str],
        table_name: Optional[str],
    ) -> Optional[Table]:
        return self.lookup_table(catalog_name, schema_name, table_name)

    def find_column(self, table: Table, column_name: Optional[str]) -> Optional[Column]:
        return table.get_column(column_name)

    def find_index(self, table: Table, index_name: Optional[str]) -> Optional[Index]:
        return table.get_index(index_name)

    def find_or_create_trigger(self, table: Table, trigger_name: str) -> Trigger:
        """Return the table's trigger with this name, creating it on first sight."""
        trigger = table.lookup_trigger(trigger_name)
        if trigger is None:
            trigger = Trigger(name=trigger_name, parent=table)
        return trigger

    def add_trigger(self, table: Table, trigger: Trigger) -> None:
        table.add_trigger(trigger)

    def add_constraint(self, table: Table, constraint: TableConstraint) -> None:
        table.add_table_constraint(constraint)

    def add_privilege(self, owner: PrivilegeHolder, privilege: Privilege) -> None:
        owner.add_privilege(privilege)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        schemas = []
        for schema in self.schemas:
            entry = schema.to_dict()
            entry["tables"] = [t.to_dict() for t in self.get_tables(schema)]
            schemas.append(entry)
        return {"name": self.name, "schemas": schemas}

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        identifiers: Identifiers = DEFAULT_IDENTIFIERS,
    ) -> Catalog:
        """
        Build the base-pass skeleton from a dictionary.

        Expected shape::

            name: TESTDB
            schemas:
              - catalog: C
                schema: S
                tables:
                  - name: T
                    type: TABLE
                    columns: [ID, NAME]
                    indexes: [{name: PK_T, unique: true, columns: [ID]}]
        """
        catalog = cls(name=data.get("name"))
        for schema_data in data.get("schemas", []):
            schema = catalog.add_schema(SchemaReference(
                catalog_name=identifiers.quoted_name(schema_data.get("catalog")) or None,
                schema_name=identifiers.quoted_name(schema_data.get("schema")) or None,
            ))
            for table_data in schema_data.get("tables", []):
                catalog.add_table(Table.from_dict(table_data, schema, identifiers))
        return catalog

    def save(self, path: Path) -> None:
        """Save to JSON, or to YAML for .yaml/.yml paths."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                yaml.safe_dump(json.loads(json.dumps(self.to_dict(), default=str)), f,
                               default_flow_style=False, sort_keys=False)
            else:
                json.dump(self.to_dict(), f, indent=2, default=str)

    @classmethod
    def load(cls, path: Path, identifiers: Identifiers = DEFAULT_IDENTIFIERS) -> Catalog:
        """Load a skeleton from a JSON or YAML file."""
        path = Path(path)
        with open(path, "r") as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}
        return cls.from_dict(data, identifiers)
