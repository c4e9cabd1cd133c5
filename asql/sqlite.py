"""
Sqlite database for loaded access log records
"""

import os
import shutil
import sqlite3

from asql.log import Logger

DEFAULT_TABLE = 'logs'

LOG_TABLE_COLUMNS = (
    ('id', 'INTEGER PRIMARY KEY AUTOINCREMENT'),
    ('source', 'TEXT'),
    ('request', 'TEXT'),
    ('status', 'INTEGER'),
    ('size', 'INTEGER'),
    ('method', 'TEXT'),
    ('referer', 'TEXT'),
    ('agent', 'TEXT'),
    ('version', 'NUMERIC'),
    ('date', 'TEXT'),
    ('user', 'TEXT'),
    ('label', 'TEXT'),
)

# Messages from sqlite3 errors which mean the database file is not usable
CONNECTION_ERROR_MESSAGES = (
    'closed database',
    'unable to open database',
    'disk i/o error',
    'file is not a database',
)


class SQLiteError(Exception):
    pass


class QueryError(SQLiteError):
    """
    Errors from invalid SQL statements
    """
    pass


class StoreConnectionError(SQLiteError):
    """
    Errors from database connection, raised when reconnecting failed
    """
    pass


def is_connection_error(error):
    """
    Check if sqlite3 exception was caused by the connection, not the SQL
    """
    if isinstance(error, (sqlite3.ProgrammingError, sqlite3.InterfaceError)):
        return 'closed' in str(error).lower()
    message = str(error).lower()
    for value in CONNECTION_ERROR_MESSAGES:
        if value in message:
            return True
    return False


def create_table_sql(table=DEFAULT_TABLE):
    return 'CREATE TABLE {0} ({1})'.format(
        table,
        ', '.join('{0} {1}'.format(name, sqltype) for name, sqltype in LOG_TABLE_COLUMNS)
    )


def insert_sql(table=DEFAULT_TABLE):
    columns = [name for name, sqltype in LOG_TABLE_COLUMNS if name != 'id']
    return 'INSERT INTO {0} ({1}) VALUES ({2})'.format(
        table,
        ', '.join(columns),
        ', '.join('?' for column in columns),
    )


class LogDatabase(object):
    """
    Sqlite3 database wrapper for access log tables
    """

    def __init__(self, db_path):
        """
        Opens given database path, creating parent directory if required
        """
        self.log = Logger('sqlite').default_stream
        self.db_path = db_path
        self.conn = None

        if db_path is None:
            raise SQLiteError('Database path is None')

        self.connect()

    def __repr__(self):
        return self.db_path

    def __del__(self):
        """
        Closes the database reference
        """
        if hasattr(self, 'conn') and self.conn is not None:
            self.conn.close()
            self.conn = None

    @property
    def is_open(self):
        return self.conn is not None

    def connect(self):
        db_dir = os.path.dirname(self.db_path)
        if db_dir and not os.path.isdir(db_dir):
            try:
                os.makedirs(db_dir)
            except OSError as e:
                raise SQLiteError('Error creating directory {0}: {1}'.format(db_dir, e))

        try:
            # Transactions are handled explicitly with begin() and commit()
            self.conn = sqlite3.connect(self.db_path, isolation_level=None)
        except sqlite3.Error as e:
            self.conn = None
            raise StoreConnectionError('Error opening database {0}: {1}'.format(self.db_path, e))

    def reconnect(self, db_path=None):
        """
        Close the connection and open given database path or the old one
        """
        self.close()
        if db_path is not None:
            self.db_path = db_path
        self.log.debug('Reconnecting to {0}'.format(self.db_path))
        self.connect()

    def close(self):
        if self.conn is not None:
            try:
                self.conn.close()
            except sqlite3.Error as e:
                self.log.debug('Error closing {0}: {1}'.format(self.db_path, e))
            self.conn = None

    @property
    def cursor(self):
        if self.conn is None:
            raise StoreConnectionError('Database {0} is not open'.format(self.db_path))
        c = self.conn.cursor()
        if c is None:
            raise SQLiteError('Could not get cursor to database')
        return c

    def __execute__(self, sql, retry=True):
        """Execute SQL

        Returns the cursor for executed statement. Connection errors are
        retried once after reconnecting.
        """
        try:
            c = self.cursor
            c.execute(sql)
            return c
        except (sqlite3.Error, StoreConnectionError) as e:
            if isinstance(e, StoreConnectionError) or is_connection_error(e):
                if not retry:
                    raise StoreConnectionError('Database connection failed: {0}'.format(e))
                self.log.debug('Database connection error: {0}'.format(e))
                try:
                    self.reconnect()
                except StoreConnectionError as e:
                    raise StoreConnectionError('Reconnecting failed: {0}'.format(e))
                return self.__execute__(sql, retry=False)
            raise QueryError(str(e))

    def begin(self):
        """
        Start transaction
        """
        self.__execute__('BEGIN')

    def rollback(self):
        """
        Rollback transaction
        """
        if self.conn is not None and self.conn.in_transaction:
            self.conn.rollback()

    def commit(self):
        """
        Commit transaction
        """
        if self.conn is not None and self.conn.in_transaction:
            self.conn.commit()

    def drop_table(self, table=DEFAULT_TABLE):
        """
        Drop table if it exists
        """
        self.__execute__('DROP TABLE IF EXISTS {0}'.format(table))

    def create_table(self, table=DEFAULT_TABLE):
        self.__execute__(create_table_sql(table))

    def insert_records(self, table, rows):
        """Insert rows to table

        Rows are value tuples in logs table column order without the id
        column. Returns number of inserted rows.
        Connection errors are not retried: the open transaction is lost
        with the connection, so StoreConnectionError is raised directly.
        """
        try:
            c = self.cursor
            c.executemany(insert_sql(table), rows)
        except sqlite3.Error as e:
            if is_connection_error(e):
                raise StoreConnectionError('Database connection failed: {0}'.format(e))
            raise QueryError(str(e))
        return c.rowcount

    def query(self, sql):
        """Run query

        Returns column names and list of row tuples.
        """
        c = self.__execute__(sql)
        columns = [e[0] for e in c.description or []]
        return columns, c.fetchall()

    def execute(self, sql):
        """Execute statement

        Statement is committed immediately. Returns number of changed rows.
        """
        c = self.__execute__(sql)
        self.commit()
        return c.rowcount

    def table_exists(self, table=DEFAULT_TABLE):
        c = self.cursor
        c.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,))
        return c.fetchone() is not None

    def describe(self, table=DEFAULT_TABLE):
        """
        Returns list of (column, type) tuples for table
        """
        c = self.__execute__('PRAGMA table_info({0})'.format(table))
        return [(row[1], row[2]) for row in c.fetchall()]

    def count(self, table=DEFAULT_TABLE):
        columns, rows = self.query('SELECT COUNT(*) FROM {0}'.format(table))
        return rows[0][0]

    def copy_to(self, path):
        """
        Save database to given path
        """
        self.commit()
        try:
            shutil.copyfile(self.db_path, path)
        except (IOError, OSError) as e:
            raise SQLiteError('Error saving database to {0}: {1}'.format(path, e))

    def file_has_table(self, path, table=DEFAULT_TABLE):
        """
        Check if database file in given path contains table
        """
        if not os.path.isfile(path):
            raise SQLiteError('No such file: {0}'.format(path))

        try:
            conn = sqlite3.connect(path)
            try:
                c = conn.cursor()
                c.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,))
                return c.fetchone() is not None
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise SQLiteError('Error reading database {0}: {1}'.format(path, e))

    def restore_from(self, path):
        """
        Replace database with copy of given database file and reconnect
        """
        if not os.path.isfile(path):
            raise SQLiteError('No such file: {0}'.format(path))

        self.close()
        try:
            shutil.copyfile(path, self.db_path)
        except (IOError, OSError) as e:
            raise SQLiteError('Error restoring database from {0}: {1}'.format(path, e))
        finally:
            self.connect()

