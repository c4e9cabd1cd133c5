"""
Test sqlite log database wrapper
"""

import pytest
import os

from asql.sqlite import LogDatabase, QueryError, SQLiteError, StoreConnectionError, create_table_sql, insert_sql

ROW = ('127.0.0.1', '/index.html', 200, 2326, 'GET', '', 'Mozilla/5.0', '1.1', '2020-10-10T13:55:36', '', 'test')


def test_sqlite_create_database_with_path(tmpdir):
    """Create database

    Parent directories are created for database path
    """
    filename = os.path.join(str(tmpdir), 'subdir', 'logs.sqlite')
    db = LogDatabase(filename)
    assert os.path.isfile(filename)
    db.close()


def test_sqlite_path_none():
    with pytest.raises(SQLiteError):
        LogDatabase(None)


def test_table_sql():
    assert create_table_sql('logs').startswith('CREATE TABLE logs (id INTEGER PRIMARY KEY AUTOINCREMENT, source TEXT')
    assert insert_sql('logs').count('?') == 11


def test_sqlite_operations(tmpdir):
    """Basic database operations

    Create logs table, insert records and query them
    """
    db = LogDatabase(os.path.join(str(tmpdir), 'logs.sqlite'))
    db.drop_table('logs')
    db.create_table('logs')
    assert db.table_exists('logs')

    db.begin()
    assert db.insert_records('logs', [ROW, ROW]) == 2
    db.commit()

    assert db.count('logs') == 2
    columns, rows = db.query('SELECT id, source, status FROM logs ORDER BY id')
    assert columns == ['id', 'source', 'status']
    assert rows == [(1, '127.0.0.1', 200), (2, '127.0.0.1', 200)]

    assert [name for name, sqltype in db.describe('logs')][:3] == ['id', 'source', 'request']

    assert db.execute('DELETE FROM logs WHERE id = 1') == 1
    assert db.count('logs') == 1

    db.drop_table('logs')
    assert not db.table_exists('logs')
    with pytest.raises(QueryError):
        db.query('SELECT * FROM logs')


def test_sqlite_rollback(tmpdir):
    db = LogDatabase(os.path.join(str(tmpdir), 'logs.sqlite'))
    db.create_table('logs')
    db.begin()
    db.insert_records('logs', [ROW])
    db.rollback()
    assert db.count('logs') == 0


def test_sqlite_invalid_query(tmpdir):
    db = LogDatabase(os.path.join(str(tmpdir), 'logs.sqlite'))
    with pytest.raises(QueryError):
        db.query('SELECT FROM WHERE')


def test_sqlite_reconnect(tmpdir):
    """Reconnect closed database

    Queries on closed connection are retried after reconnecting
    """
    db = LogDatabase(os.path.join(str(tmpdir), 'logs.sqlite'))
    db.create_table('logs')
    db.close()
    assert not db.is_open

    assert db.count('logs') == 0
    assert db.is_open


def test_sqlite_reconnect_failure(tmpdir):
    db = LogDatabase(os.path.join(str(tmpdir), 'logs.sqlite'))
    db.close()
    db.db_path = str(tmpdir)
    with pytest.raises(StoreConnectionError):
        db.query('SELECT 1')


def test_sqlite_save_restore(tmpdir):
    db = LogDatabase(os.path.join(str(tmpdir), 'logs.sqlite'))
    db.create_table('logs')
    db.begin()
    db.insert_records('logs', [ROW])
    db.commit()

    saved = os.path.join(str(tmpdir), 'saved.sqlite')
    db.copy_to(saved)
    assert os.path.isfile(saved)

    db.drop_table('logs')
    db.restore_from(saved)
    assert db.count('logs') == 1

    with pytest.raises(SQLiteError):
        db.restore_from(os.path.join(str(tmpdir), 'missing.sqlite'))


def test_sqlite_file_has_table(tmpdir):
    db = LogDatabase(os.path.join(str(tmpdir), 'logs.sqlite'))
    db.create_table('logs')

    other = os.path.join(str(tmpdir), 'other.sqlite')
    LogDatabase(other).close()
    assert db.file_has_table(db.db_path, 'logs')
    assert not db.file_has_table(other, 'logs')

    with pytest.raises(SQLiteError):
        db.file_has_table(os.path.join(str(tmpdir), 'missing.sqlite'))

    garbage = tmpdir.join('garbage.sqlite')
    garbage.write('this is not a database file, but it is long enough to have a header' * 4)
    with pytest.raises(SQLiteError):
        db.file_has_table(str(garbage))
    db.close()
