"""
Table Rule module.
Represents a mapping from a database table of user names to the directory
those users are served from.
"""
import re
from dataclasses import dataclass

# Plain SQL identifier, optionally schema-qualified. Table names cannot be
# bound as query parameters, so anything else is refused.
TABLE_NAME_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_$]*(\.[A-Za-z_][A-Za-z0-9_$]*)?$')


def is_valid_table_name(table: str) -> bool:
    """Return whether the table name is a plain (optionally qualified) identifier."""
    return bool(TABLE_NAME_PATTERN.match(table))


@dataclass(frozen=True)
class TableRule:
    """A (table, destination) pair. Rule order defines priority."""

    table: str
    destination: str

    def __str__(self):
        return f'{self.table} -> {self.destination}'
