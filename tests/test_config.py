"""
Test configuration parsing.

Tests cover:
- Ordered table -> destination pairs
- Malformed pair lists (odd token count, bad identifiers, bad destinations)
- Location, default and data source validation
- Numeric settings
"""
import pytest

from config import Config, parse_table_rules
from errors import ConfigurationError
from membership_store import POSTGRESQL, SQLITE, parse_data_source
from table_rule import TableRule


class TestTableRules:
    """Test parsing of the whitespace-delimited table list."""

    def test_pairs_keep_configuration_order(self):
        rules = parse_table_rules('t2 /dir.3 t1 /dir.2')
        assert rules == (TableRule('t2', '/dir.3'), TableRule('t1', '/dir.2'))

    def test_any_whitespace_separates_tokens(self):
        rules = parse_table_rules('  t1\t/dir.2\n t2   /dir.3 ')
        assert [r.table for r in rules] == ['t1', 't2']

    def test_empty_list_is_allowed(self):
        assert parse_table_rules('') == ()

    def test_duplicate_tables_are_kept(self):
        rules = parse_table_rules('t1 /a t1 /b')
        assert len(rules) == 2
        assert rules[0].destination == '/a'

    def test_schema_qualified_table(self):
        assert parse_table_rules('auth.staff /staff')[0].table == 'auth.staff'

    def test_odd_token_count(self):
        with pytest.raises(ConfigurationError, match='3 tokens'):
            parse_table_rules('t1 /dir.2 t2')

    @pytest.mark.parametrize('table', ['t1;drop', "t1'", '1t', 'a.b.c', 'users--'])
    def test_table_must_be_identifier(self, table):
        with pytest.raises(ConfigurationError, match='Invalid table name'):
            parse_table_rules(f'{table} /dir.2')

    def test_destination_must_be_absolute(self):
        with pytest.raises(ConfigurationError, match="must start with '/'"):
            parse_table_rules('t1 dir.2')


class TestConfig:
    """Test Config loading from an environment mapping."""

    def test_loads_example_configuration(self, environ, docroot, user_db):
        config = Config(environ)

        assert config.get_location() == '/dir'
        assert config.get_default() == '/dir.1'
        assert config.get_table_rules() == (TableRule('t1', '/dir.2'), TableRule('t2', '/dir.3'))
        assert config.get_document_root() == docroot
        assert config.get_data_source().driver == SQLITE
        assert config.get_data_source().database == user_db

    def test_defaults(self, environ):
        config = Config(environ)

        assert config.get_query_timeout() == 5.0
        assert config.get_listener_port() == 8080
        assert config.get_directory_index() == 'index.html'
        assert config.get_log_level() == 'INFO'
        assert config.get_username() == ''

    def test_timeout_in_milliseconds(self, environ):
        environ['QUERY_TIMEOUT'] = '250'
        assert Config(environ).get_query_timeout() == 0.25

    def test_non_integer_setting(self, environ):
        environ['LISTENER_PORT'] = 'eighty'
        with pytest.raises(ConfigurationError, match='LISTENER_PORT'):
            Config(environ)

    def test_missing_location(self, environ):
        del environ['REDIRECT_DBI_LOCATION']
        with pytest.raises(ConfigurationError, match='REDIRECT_DBI_LOCATION'):
            Config(environ)

    @pytest.mark.parametrize('location', ['dir', '/dir/', '/'])
    def test_invalid_location(self, environ, location):
        environ['REDIRECT_DBI_LOCATION'] = location
        with pytest.raises(ConfigurationError):
            Config(environ)

    def test_empty_default_means_document_root(self, environ):
        environ['REDIRECT_DBI_DEFAULT'] = ''
        assert Config(environ).get_default() == ''

    def test_relative_default(self, environ):
        environ['REDIRECT_DBI_DEFAULT'] = 'dir.1'
        with pytest.raises(ConfigurationError, match='REDIRECT_DBI_DEFAULT'):
            Config(environ)

    def test_empty_data_source(self, environ):
        environ['REDIRECT_DBI_DATA_SOURCE'] = ''
        with pytest.raises(ConfigurationError, match='empty'):
            Config(environ)

    def test_malformed_table_list(self, environ):
        environ['REDIRECT_DBI_TABLE2URI'] = 't1 /dir.2 t2'
        with pytest.raises(ConfigurationError):
            Config(environ)

    def test_is_under_location(self, environ):
        config = Config(environ)

        assert config.is_under_location('/dir')
        assert config.is_under_location('/dir/')
        assert config.is_under_location('/dir/sub/page.html')
        assert not config.is_under_location('/dirx/page.html')
        assert not config.is_under_location('/other')


class TestDataSource:
    """Test data source strings."""

    def test_sqlite_absolute(self):
        assert parse_data_source('sqlite:///var/lib/users.db') == (SQLITE, '/var/lib/users.db', None, None)

    def test_sqlite_relative(self):
        assert parse_data_source('sqlite:users.db').database == 'users.db'

    def test_postgresql(self):
        source = parse_data_source('postgresql://db.example.com:5433/auth')
        assert source == (POSTGRESQL, 'auth', 'db.example.com', 5433)

    def test_postgres_alias_without_port(self):
        source = parse_data_source('postgres://db.example.com/auth')
        assert source.driver == POSTGRESQL
        assert source.port is None

    def test_postgresql_needs_database(self):
        with pytest.raises(ConfigurationError):
            parse_data_source('postgresql://db.example.com')

    def test_unknown_scheme(self):
        with pytest.raises(ConfigurationError, match='Unsupported'):
            parse_data_source('dbi:Oracle:CERT')

    def test_no_scheme(self):
        with pytest.raises(ConfigurationError, match='no scheme'):
            parse_data_source('users.db')
