"""
Loading of access log files to the logs database table
"""

import bz2
import glob
import gzip
import io
import os
import zlib

from asql.dates import DateCache
from asql.log import Logger
from asql.parser import LineParser, ParseError
from asql.sqlite import DEFAULT_TABLE, SQLiteError

LABEL_PREFIX = '--label='

# Records are inserted to the database in batches of this size
INSERT_BATCH_SIZE = 1000


class LoadError(Exception):
    """
    Exceptions raised when loading log files
    """
    pass


class LoadResult(object):
    """
    Counters for one load operation
    """
    def __init__(self):
        self.inserted = 0
        self.skipped = 0
        self.files = []
        self.failed = []

    def __repr__(self):
        return '{0:d} records from {1:d} files, {2:d} lines skipped'.format(
            self.inserted, len(self.files), self.skipped
        )

    def __iter__(self):
        return iter((self.inserted, self.skipped))

    def update(self, other):
        self.inserted += other.inserted
        self.skipped += other.skipped
        self.files.extend(other.files)
        self.failed.extend(other.failed)


def open_logfile(path):
    """Open log file

    Opens .gz and .bz2 files with matching decompressor, other files as
    plain text. Returns a text stream.
    """
    if not os.path.isfile(path):
        raise LoadError('No such file: {0}'.format(path))

    try:
        if path.endswith('.gz'):
            fd = gzip.GzipFile(path, 'rb')
        elif path.endswith('.bz2'):
            fd = bz2.BZ2File(path, 'rb')
        else:
            fd = open(path, 'rb')
    except (IOError, OSError) as e:
        raise LoadError('Error opening log file {0}: {1}'.format(path, e))

    return io.TextIOWrapper(fd, encoding='utf-8', errors='replace')


def parse_load_arguments(args):
    """Parse load command arguments

    Returns list of file names or patterns and label given with a
    --label=NAME argument (None if no label was given).
    """
    patterns = []
    label = None
    for arg in args.split():
        if arg.startswith(LABEL_PREFIX):
            label = arg[len(LABEL_PREFIX):] or None
        else:
            patterns.append(arg)
    return patterns, label


def resolve_paths(pattern):
    """
    Return files matching given path or glob pattern
    """
    path = os.path.expanduser(os.path.expandvars(pattern))
    if os.path.isfile(path):
        return [path]
    return sorted(match for match in glob.glob(path) if os.path.isfile(match))


class Loader(object):
    """Access log loader

    Parses access log files and inserts the records to the logs table of
    given LogDatabase. Each file is loaded in one transaction.
    """
    def __init__(self, database, table=DEFAULT_TABLE, parser=None):
        self.log = Logger('loader').default_stream
        self.database = database
        self.table = table
        self.parser = parser is not None and parser or LineParser()
        self.initialized = False

    def ensure_table(self):
        """
        Create the logs table once per session, dropping any old table
        """
        if self.initialized:
            return

        try:
            self.database.drop_table(self.table)
        except SQLiteError as e:
            self.log.debug('Error dropping table {0}: {1}'.format(self.table, e))

        self.database.create_table(self.table)
        self.initialized = True

    def load(self, pattern, label=None):
        """Load files

        Load file or files matching glob pattern. Returns LoadResult.
        Missing and unreadable files are logged and skipped.
        """
        result = LoadResult()

        paths = resolve_paths(pattern)
        if not paths:
            self.log.warning('No files matching {0}'.format(pattern))
            return result

        self.ensure_table()
        for path in paths:
            try:
                result.update(self.load_file(path, label))
            except LoadError as e:
                self.log.error(str(e))
                result.failed.append(path)

        return result

    def load_file(self, path, label=None):
        """Load one file

        All records from the file are committed in one transaction. If no
        lines could be parsed, nothing is inserted.
        The logs table is created first when load_file is called directly.
        """
        result = LoadResult()
        cache = DateCache()
        if label is None:
            label = path

        self.ensure_table()
        self.log.debug('Loading {0} with label {1}'.format(path, label))

        fd = open_logfile(path)
        try:
            self.database.begin()
            batch = []
            for line in fd:
                try:
                    record = self.parser.parse_record(line, cache, label)
                except ParseError as e:
                    self.log.debug(str(e))
                    result.skipped += 1
                    continue

                batch.append(record.as_row())
                if len(batch) >= INSERT_BATCH_SIZE:
                    result.inserted += self.database.insert_records(self.table, batch)
                    batch = []

            if batch:
                result.inserted += self.database.insert_records(self.table, batch)

            if result.inserted:
                self.database.commit()
            else:
                self.database.rollback()

        except (IOError, OSError, EOFError, zlib.error) as e:
            self.database.rollback()
            raise LoadError('Error reading {0}: {1}'.format(path, e))
        except SQLiteError as e:
            self.database.rollback()
            raise LoadError('Error loading {0}: {1}'.format(path, e))
        finally:
            fd.close()

        self.log.debug('Loaded {0}: {1:d} records, {2:d} skipped, dates {3}'.format(
            path, result.inserted, result.skipped, cache
        ))
        result.files.append(path)
        return result
