"""
Configuration module for the redirect service.
Handles environment variable parsing and configuration management.
"""
import os
from typing import Mapping, Optional, Tuple

from errors import ConfigurationError
from membership_store import DataSource, parse_data_source
from table_rule import TableRule, is_valid_table_name


def parse_table_rules(table2uri: str) -> Tuple[TableRule, ...]:
    """
    Parse the ordered table -> destination list.
    Format: whitespace-delimited pairs, '<table> <destination> <table> <destination> ...'

    Args:
        table2uri: The raw list

    Returns:
        Tuple of TableRule in configuration order

    Raises:
        ConfigurationError: If the token count is odd, a table name is not an
            SQL identifier, or a destination does not start with '/'
    """
    tokens = table2uri.split()
    if len(tokens) % 2:
        raise ConfigurationError(
            f"Invalid table list '{table2uri}': expected '<table> <destination>' pairs, "
            f"got {len(tokens)} tokens"
        )

    rules = []
    for table, destination in zip(tokens[::2], tokens[1::2]):
        if not is_valid_table_name(table):
            raise ConfigurationError(f"Invalid table name '{table}'")
        if not destination.startswith('/'):
            raise ConfigurationError(
                f"Destination '{destination}' for table '{table}' must start with '/'"
            )
        rules.append(TableRule(table, destination))

    return tuple(rules)


class Config:
    """
    Redirect configuration read from environment variables.
    Loaded once per activation and read-only afterwards.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        env = os.environ if environ is None else environ

        self.data_source = parse_data_source(env.get('REDIRECT_DBI_DATA_SOURCE', ''))
        self.username = env.get('REDIRECT_DBI_USERNAME', '')
        self.password = env.get('REDIRECT_DBI_PASSWORD', '')

        self.location = self._parse_location(env.get('REDIRECT_DBI_LOCATION', ''))
        self.default = env.get('REDIRECT_DBI_DEFAULT', '').strip()
        if self.default and not self.default.startswith('/'):
            raise ConfigurationError(
                f"Invalid REDIRECT_DBI_DEFAULT '{self.default}': must start with '/'"
            )

        self.table_rules = parse_table_rules(env.get('REDIRECT_DBI_TABLE2URI', ''))

        self.document_root = os.path.abspath(env.get('DOCUMENT_ROOT') or os.getcwd())
        self.directory_index = env.get('DIRECTORY_INDEX', 'index.html')
        self.query_timeout = self._parse_int(env, 'QUERY_TIMEOUT', '5000') / 1000.0  # Convert ms to seconds
        self.listener_port = self._parse_int(env, 'LISTENER_PORT', '8080')
        self.log_level = env.get('LOG_LEVEL', 'INFO').upper()

    def get_data_source(self) -> DataSource:
        """Get the parsed data source."""
        return self.data_source

    def get_username(self) -> str:
        return self.username

    def get_password(self) -> str:
        return self.password

    def get_location(self) -> str:
        """Get the virtual location prefix clients see."""
        return self.location

    def get_default(self) -> str:
        """Get the destination used when the user is in no table."""
        return self.default

    def get_table_rules(self) -> Tuple[TableRule, ...]:
        """Get the ordered table rules."""
        return self.table_rules

    def get_document_root(self) -> str:
        return self.document_root

    def get_directory_index(self) -> str:
        return self.directory_index

    def get_query_timeout(self) -> float:
        """Get the store session timeout in seconds."""
        return self.query_timeout

    def get_listener_port(self) -> int:
        return self.listener_port

    def get_log_level(self) -> str:
        return self.log_level

    def is_under_location(self, path: str) -> bool:
        """
        Whether the path is the location itself or a path below it.
        '/dirx' is not under '/dir'.
        """
        return path == self.location or path.startswith(self.location + '/')

    @staticmethod
    def _parse_location(location: str) -> str:
        location = location.strip()
        if not location:
            raise ConfigurationError("REDIRECT_DBI_LOCATION is not set")
        if not location.startswith('/'):
            raise ConfigurationError(f"Invalid REDIRECT_DBI_LOCATION '{location}': must start with '/'")
        if location.endswith('/'):
            raise ConfigurationError(f"Invalid REDIRECT_DBI_LOCATION '{location}': must not end with '/'")
        return location

    @staticmethod
    def _parse_int(env: Mapping[str, str], key: str, default: str) -> int:
        value = env.get(key, default)
        try:
            return int(value)
        except ValueError as e:
            raise ConfigurationError(f"Invalid {key} '{value}': expected an integer") from e

    def __repr__(self):
        return (f'Config(location={self.location!r}, default={self.default!r}, '
                f'rules={len(self.table_rules)}, data_source={str(self.data_source)!r})')
