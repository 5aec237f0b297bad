"""
Identifier normalization for catalog lookups.

Every name read from a metadata source passes through ``quoted_name`` before
it is stored in, or looked up against, the catalog graph. Lookups then use
``lookup_key``, which folds unquoted names to upper case so that metadata
sources that disagree on case still resolve to the same object.
"""

from __future__ import annotations

import re
from typing import FrozenSet, Iterable, Optional

# SQL:2003 reserved words most likely to show up as object names
RESERVED_WORDS: FrozenSet[str] = frozenset({
    "ALL", "ALTER", "AND", "ANY", "AS", "ASC", "BETWEEN", "BY", "CASE",
    "CAST", "CHECK", "COLUMN", "CONSTRAINT", "CREATE", "CROSS", "CURRENT",
    "DATE", "DEFAULT", "DELETE", "DESC", "DISTINCT", "DROP", "ELSE", "END",
    "EXISTS", "FALSE", "FOR", "FOREIGN", "FROM", "FULL", "GRANT", "GROUP",
    "HAVING", "IN", "INNER", "INSERT", "INTERSECT", "INTO", "IS", "JOIN",
    "KEY", "LEFT", "LIKE", "NATURAL", "NOT", "NULL", "ON", "OR", "ORDER",
    "OUTER", "PRIMARY", "REFERENCES", "RIGHT", "ROW", "SELECT", "SET",
    "TABLE", "THEN", "TIME", "TIMESTAMP", "TO", "TRIGGER", "TRUE", "UNION",
    "UNIQUE", "UPDATE", "USER", "USING", "VALUES", "VIEW", "WHEN", "WHERE",
    "WITH",
})

# Opening quote -> closing quote, for the quoting styles vendors use
QUOTE_PAIRS = {'"': '"', "`": "`", "[": "]"}

_PLAIN_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_$#]*$")


def is_quoted(name: str) -> bool:
    """Return True if the name is already wrapped in identifier quotes."""
    if len(name) < 2:
        return False
    closing = QUOTE_PAIRS.get(name[0])
    return closing is not None and name.endswith(closing)


def lookup_key(name: Optional[str]) -> Optional[str]:
    """
    Return the key used to index a normalized name in the catalog.

    Quoted names are case-sensitive and are kept verbatim; unquoted names
    are folded to upper case. A quoted reserved word keys like the bare
    word, since ``quoted_name`` quotes reserved words whatever their case.
    Blank names have no key.
    """
    if name is None:
        return None
    name = name.strip()
    if not name:
        return None
    if is_quoted(name):
        inner = name[1:-1]
        if inner.upper() in RESERVED_WORDS:
            return inner.upper()
        return name
    return name.upper()


class Identifiers:
    """
    Quoting rules for one data source.

    Args:
        quote_string: Identifier quote string reported by the driver
        reserved_words: Additional vendor reserved words
    """

    def __init__(
        self,
        quote_string: str = '"',
        reserved_words: Optional[Iterable[str]] = None,
    ):
        self.quote_string = quote_string or ""
        self.reserved_words = RESERVED_WORDS | frozenset(
            w.upper() for w in (reserved_words or ())
        )

    def is_reserved_word(self, name: str) -> bool:
        return name.upper() in self.reserved_words

    def needs_quoting(self, name: str) -> bool:
        """Check whether a bare name must be quoted to be used in SQL."""
        if not name or is_quoted(name):
            return False
        return not _PLAIN_IDENTIFIER.match(name) or self.is_reserved_word(name)

    def quoted_name(self, name: Optional[str]) -> Optional[str]:
        """
        Normalize a name into its canonical stored form.

        Idempotent: a name that is already quoted is returned as is.
        """
        if name is None:
            return None
        name = name.strip()
        if not name or not self.quote_string:
            return name
        if self.needs_quoting(name):
            return f"{self.quote_string}{name}{self.quote_string}"
        return name


DEFAULT_IDENTIFIERS = Identifiers()
