"""
Shared fixtures: a throwaway SQLite user database and document root.
"""
import os
import sqlite3
import sys

import pytest

# Add parent directory to path to import modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


@pytest.fixture
def user_db(tmp_path):
    """
    users.db with three tables:
        t1: alice
        t2: alice, bob
        t3: alice, dave
    """
    db_path = tmp_path / 'users.db'
    conn = sqlite3.connect(db_path)
    for table, names in (('t1', ['alice']), ('t2', ['alice', 'bob']), ('t3', ['alice', 'dave'])):
        conn.execute(f"CREATE TABLE {table} (id INTEGER PRIMARY KEY, name TEXT)")
        conn.executemany(f"INSERT INTO {table} (name) VALUES (?)", [(n,) for n in names])
    conn.commit()
    conn.close()
    return str(db_path)


@pytest.fixture
def docroot(tmp_path):
    """Document root with dir.1, dir.2, dir.3 each holding page.html and sub/index.html."""
    root = tmp_path / 'htdocs'
    for suffix in ('.1', '.2', '.3'):
        sub = root / f'dir{suffix}' / 'sub'
        sub.mkdir(parents=True)
        (root / f'dir{suffix}' / 'page.html').write_text(f'page in dir{suffix}')
        (sub / 'index.html').write_text(f'index in dir{suffix}/sub')
    return str(root)


@pytest.fixture
def environ(user_db, docroot):
    """Environment for the /dir example: default dir.1, t1 -> dir.2, t2 -> dir.3."""
    return {
        'REDIRECT_DBI_DATA_SOURCE': f'sqlite://{user_db}',
        'REDIRECT_DBI_LOCATION': '/dir',
        'REDIRECT_DBI_DEFAULT': '/dir.1',
        'REDIRECT_DBI_TABLE2URI': 't1 /dir.2 t2 /dir.3',
        'DOCUMENT_ROOT': docroot,
    }
