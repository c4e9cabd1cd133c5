"""
Session configuration and state for the asql shell
"""

import os
import sys
import tempfile

from configobj import ConfigObj, ConfigObjError

from asql.aliases import AliasError, AliasStore
from asql.loader import Loader
from asql.log import Logger
from asql.parser import HAS_IPV6, LineParser
from asql.sqlite import DEFAULT_TABLE, LogDatabase

if sys.platform == 'darwin':
    CONFIG_PATH = os.path.expanduser('~/Library/Application Support/asql')
else:
    CONFIG_PATH = os.path.expanduser('~/.config/asql')

DEFAULT_CONFIG_FILE = os.path.join(CONFIG_PATH, 'asql.conf')

DEFAULTS = {
    'history_file': '~/.asql_history',
    'alias_file': os.path.join(CONFIG_PATH, 'aliases'),
    'save_file': '~/.asql.db',
    'startup_file': os.path.join(CONFIG_PATH, 'startup'),
    'table': DEFAULT_TABLE,
    'quiet': False,
    'verbose': False,
    'debug': False,
    'ipv6': HAS_IPV6,
}

PATH_KEYS = ('history_file', 'alias_file', 'save_file', 'startup_file')
BOOLEAN_KEYS = ('quiet', 'verbose', 'debug', 'ipv6')

ENVIRONMENT_KEYS = {
    'ASQL_HISTORY': 'history_file',
    'ASQL_ALIASES': 'alias_file',
    'ASQL_SAVEFILE': 'save_file',
}

TRUE_VALUES = ('1', 'yes', 'true', 'on')
FALSE_VALUES = ('0', 'no', 'false', 'off')


class ConfigError(Exception):
    pass


def as_boolean(value):
    if isinstance(value, bool):
        return value
    if str(value).lower() in TRUE_VALUES:
        return True
    if str(value).lower() in FALSE_VALUES:
        return False
    raise ConfigError('Invalid boolean value: {0}'.format(value))


class SessionConfig(dict):
    """Session configuration

    Values are resolved from defaults, configuration file, environment
    variables and command line arguments, in this order.
    """
    def __init__(self, path=None, environment=None, **kwargs):
        dict.__init__(self)
        self.log = Logger('session').default_stream
        for key, value in DEFAULTS.items():
            self[key] = value

        if environment is None:
            environment = os.environ

        if path is None:
            path = environment.get('ASQL_CONFIG', DEFAULT_CONFIG_FILE)
        self.path = os.path.expanduser(path)

        if os.path.isfile(self.path):
            self.load(self.path)

        for variable, key in ENVIRONMENT_KEYS.items():
            if environment.get(variable):
                self[key] = environment[variable]

        for key, value in kwargs.items():
            if value is not None:
                self[key] = value

    def __getattr__(self, attr):
        try:
            return self[attr]
        except KeyError:
            raise AttributeError('No such configuration value: {0}'.format(attr))

    def __setitem__(self, key, value):
        if key in BOOLEAN_KEYS:
            value = as_boolean(value)
        elif key in PATH_KEYS and value is not None:
            value = os.path.expanduser(os.path.expandvars(value))
        dict.__setitem__(self, key, value)

    def load(self, path):
        """
        Load configuration file values
        """
        try:
            config = ConfigObj(path, interpolation=False, list_values=False)
        except (ConfigObjError, IOError, OSError) as e:
            raise ConfigError('Error parsing {0}: {1}'.format(path, e))

        for key, value in config.items():
            if key not in DEFAULTS:
                self.log.debug('{0}: unknown configuration key {1}'.format(path, key))
                continue
            self[key] = value


class Session(object):
    """asql session

    Owns the temporary log database, aliases and history. Call teardown()
    when the session ends.
    """
    def __init__(self, config=None, history=None):
        self.log = Logger('session').default_stream
        self.config = config is not None and config or SessionConfig()
        self.history = history
        self.loaded = 0
        self.__torn_down = False

        fd, self.db_path = tempfile.mkstemp(prefix='asql', suffix='.sqlite')
        os.close(fd)
        self.database = LogDatabase(self.db_path)
        self.loader = Loader(
            self.database,
            table=self.config.table,
            parser=LineParser(ipv6=self.config.ipv6),
        )

        self.aliases = AliasStore(self.config.alias_file)
        try:
            self.aliases.load()
        except AliasError as e:
            self.log.error(str(e))

    @property
    def table(self):
        return self.config.table

    @property
    def torn_down(self):
        return self.__torn_down

    def mark_loaded(self):
        self.loaded += 1

    def restored(self):
        """
        Mark restored database as loaded
        """
        self.loader.initialized = True
        self.mark_loaded()

    def teardown(self):
        """Close session

        Writes history, closes and removes the temporary database and saves
        aliases. Calling this more than once does nothing.
        """
        if self.__torn_down:
            return
        self.__torn_down = True

        if self.history is not None:
            self.history.save()

        if self.database is not None:
            self.database.close()

        if self.db_path is not None and os.path.isfile(self.db_path):
            try:
                os.unlink(self.db_path)
            except OSError as e:
                self.log.error('Error removing {0}: {1}'.format(self.db_path, e))

        try:
            self.aliases.save()
        except AliasError as e:
            self.log.error(str(e))
