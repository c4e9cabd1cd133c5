"""
Command interpreter for the asql shell

Input lines are split to a command verb and the rest of the line. The rest
of the line is passed to the command as one string, so SQL text is given
to the database as it was typed.
"""

import os
import re
import sys

from asql.aliases import AliasError
from asql.loader import LoadError, parse_load_arguments
from asql.log import Logger
from asql.sqlite import LOG_TABLE_COLUMNS, SQLiteError

SQL_COMMANDS = ('select', 'insert', 'update', 'delete', 'create', 'drop', 'alter')

# Maximum depth of aliases expanding to other aliases
MAX_ALIAS_DEPTH = 16

RE_LINE_END = re.compile(r'[\s;]+$')

NO_FILES_LOADED = 'No files loaded yet'


class CommandError(Exception):
    """
    Errors from running a command
    """
    pass


class AliasRecursionError(CommandError):
    pass


class ShellExit(Exception):
    """
    Raised by exit and quit commands
    """
    pass


COMMAND_ERRORS = (CommandError, AliasError, LoadError, SQLiteError)


def split_command(line):
    """Split command line

    Returns command verb and the rest of the line. Trailing whitespace and
    semicolons are removed.
    """
    line = RE_LINE_END.sub('', line).lstrip()
    if not line:
        return '', ''
    parts = line.split(None, 1)
    return parts[0], len(parts) > 1 and parts[1] or ''


class Command(object):
    """Interpreter command

    Implement run(args) in child classes. Args is the rest of the command
    line after the command name.
    """
    name = None
    usage = None
    short_description = ''
    description = ''

    def __init__(self, name=None):
        if name is not None:
            self.name = name
        self.interpreter = None

    def __repr__(self):
        return self.name

    @property
    def session(self):
        return self.interpreter.session

    @property
    def log(self):
        return self.interpreter.log

    def message(self, message):
        return self.interpreter.message(message)

    def require_loaded(self):
        if not self.session.loaded:
            raise CommandError(NO_FILES_LOADED)

    def run(self, args):
        raise NotImplementedError('Implement run() in child class')


class SQLCommand(Command):
    """
    Pass SQL statement starting with command name to the database
    """
    def __init__(self, name):
        super(SQLCommand, self).__init__(name)
        self.usage = '{0} ...'.format(name)
        self.short_description = 'Run SQL {0} statement'.format(name.upper())
        self.description = (
            'Run a SQL {0} statement against the loaded logs. The statement\n'
            'is passed to the database as given.'
        ).format(name.upper())

    def run(self, args):
        self.require_loaded()
        sql = '{0} {1}'.format(self.name, args).strip()

        if self.name == 'select':
            columns, rows = self.session.database.query(sql)
            if self.session.config.verbose:
                self.message(' '.join(columns))
            for row in rows:
                self.message(' '.join(value is not None and '{0}'.format(value) or '' for value in row))
            if self.session.config.verbose:
                self.message('{0:d} rows'.format(len(rows)))
        else:
            count = self.session.database.execute(sql)
            if count >= 0 and not self.session.config.quiet:
                self.message('{0:d} rows changed'.format(count))


class LoadCommand(Command):
    name = 'load'
    usage = 'load <file|glob> ... [--label=NAME]'
    short_description = 'Load apache access log files'
    description = (
        'Load apache log files to the logs table. Arguments are file names or\n'
        'glob patterns. Files ending with .gz and .bz2 are decompressed.\n\n'
        'Records are labeled with the file name, or with NAME given as\n'
        '--label=NAME, for example\n\n'
        '  load /var/log/apache2/access.log* --label=www'
    )

    def run(self, args):
        patterns, label = parse_load_arguments(args)
        if not patterns:
            raise CommandError('Usage: {0}'.format(self.usage))

        loader = self.session.loader
        inserted = skipped = files = 0
        for pattern in patterns:
            result = loader.load(pattern, label)
            inserted += result.inserted
            skipped += result.skipped
            files += len(result.files)

        if loader.initialized:
            self.session.mark_loaded()

        if not files:
            raise CommandError('No files loaded from {0}'.format(' '.join(patterns)))

        if not self.session.config.quiet:
            self.message('Loaded {0:d} records from {1:d} files ({2:d} lines skipped)'.format(
                inserted, files, skipped
            ))


class SaveCommand(Command):
    name = 'save'
    usage = 'save [file]'
    short_description = 'Save loaded logs database'
    description = (
        'Save the database with loaded logs to given file, or to the default\n'
        'save file. Saved database can be loaded with restore.'
    )

    def run(self, args):
        self.require_loaded()
        path = os.path.expanduser(args.strip() or self.session.config.save_file)
        self.session.database.copy_to(path)
        if not self.session.config.quiet:
            self.message('Saved database to {0}'.format(path))


class RestoreCommand(Command):
    name = 'restore'
    usage = 'restore [file]'
    short_description = 'Restore saved logs database'
    description = (
        'Replace current database with a database saved with save command.\n'
        'Without arguments the default save file is restored.'
    )

    def run(self, args):
        path = os.path.expanduser(args.strip() or self.session.config.save_file)
        database = self.session.database
        if not database.file_has_table(path, self.session.table):
            raise CommandError('No {0} table in {1}'.format(self.session.table, path))

        database.restore_from(path)

        self.session.restored()
        if not self.session.config.quiet:
            self.message('Restored database from {0}'.format(path))


class AliasCommand(Command):
    name = 'alias'
    usage = 'alias [name [expansion ...]]'
    short_description = 'Define, remove or list command aliases'
    description = (
        'Without arguments, list defined aliases. With a name only, remove\n'
        'the alias. Otherwise define alias name to run the expansion.\n'
        '$1 to $9 in the expansion are replaced with arguments, for example\n\n'
        "  alias agent select * from logs where agent like '%$1%'\n"
        '  agent mozilla'
    )

    def run(self, args):
        aliases = self.session.aliases
        if not args.strip():
            for name, template in aliases.list():
                self.message('ALIAS {0} {1}'.format(name, template))
            return

        parts = args.strip().split(None, 1)
        name = parts[0]
        template = len(parts) > 1 and parts[1] or None

        if name.lower() in self.interpreter.commands:
            self.log.warning('Alias {0} is hidden by built-in command {0}'.format(name))

        aliases.define(name, template)


class ShowCommand(Command):
    name = 'show'
    usage = 'show'
    short_description = 'Show the logs table structure'
    description = 'Show columns of the logs table and number of loaded records.'

    def run(self, args):
        database = self.session.database
        table = self.session.table

        if self.session.loaded and database.table_exists(table):
            columns = database.describe(table)
        else:
            columns = LOG_TABLE_COLUMNS

        self.message('The table {0} has the following columns:'.format(table))
        for name, sqltype in columns:
            self.message('  {0:10} {1}'.format(name, sqltype.split()[0]))

        if self.session.loaded:
            self.message('{0:d} records loaded'.format(database.count(table)))
        else:
            self.message(NO_FILES_LOADED)


class HelpCommand(Command):
    name = 'help'
    usage = 'help [command ...]'
    short_description = 'Show help for commands'
    description = 'Without arguments, list commands. Otherwise show help for given commands.'

    def run(self, args):
        commands = self.interpreter.commands
        names = args.split()
        if not names:
            for name in sorted(commands.keys()):
                self.message('{0:8} {1}'.format(name, commands[name].short_description))
            return

        for name in names:
            command = commands.get(name.lower(), None)
            if command is not None:
                self.message('{0}\n\n{1}\n'.format(command.usage, command.description))
                continue

            template = self.session.aliases.resolve(name)
            if template is not None:
                self.message('{0} is an alias for: {1}\n'.format(name, template))
                continue

            raise CommandError('No help for {0}'.format(name))


class ExitCommand(Command):
    usage = 'exit'
    short_description = 'Exit the shell'
    description = 'Exit the shell. History and aliases are saved.'

    def run(self, args):
        raise ShellExit()


class CommandInterpreter(object):
    """Command interpreter

    Runs built-in commands and expands aliases for one session.
    """
    def __init__(self, session):
        self.log = Logger('interpreter').default_stream
        self.session = session
        self.commands = {}

        for name in SQL_COMMANDS:
            self.register(SQLCommand(name))

        for command in (LoadCommand(), SaveCommand(), RestoreCommand(),
                        AliasCommand(), ShowCommand(), HelpCommand(),
                        ExitCommand('exit'), ExitCommand('quit')):
            self.register(command)

    def register(self, command):
        """
        Register Command instance with its name
        """
        if not isinstance(command, Command):
            raise CommandError('Command must be a Command instance')
        command.interpreter = self
        self.commands[command.name.lower()] = command

    def message(self, message):
        sys.stdout.write('{0}\n'.format(message))

    def error(self, message):
        sys.stderr.write('{0}\n'.format(message))

    def resolve(self, line, depth=0):
        """Resolve command line

        Returns the Command and argument string for line, expanding aliases.
        Command is None for empty lines.
        """
        verb, args = split_command(line)
        if not verb:
            return None, ''

        command = self.commands.get(verb.lower(), None)
        if command is not None:
            return command, args

        template = self.session.aliases.resolve(verb)
        if template is None:
            raise CommandError('Unknown command: {0}'.format(verb))

        if depth >= MAX_ALIAS_DEPTH:
            raise AliasRecursionError('Alias {0} expands recursively too deep'.format(verb))

        expanded = self.session.aliases.expand(verb, args.split())
        self.log.debug('Alias {0} expanded to {1}'.format(verb, expanded))
        return self.resolve(expanded, depth + 1)

    def process(self, line):
        """Process command line

        Returns True if command was run successfully. Errors are written to
        stderr. Raises ShellExit for exit commands.
        """
        try:
            command, args = self.resolve(line)
            if command is None:
                return True
            command.run(args)
        except COMMAND_ERRORS as e:
            self.error('{0}'.format(e))
            return False

        if self.session.history is not None:
            self.session.history.add(RE_LINE_END.sub('', line).strip())
        return True

    def completions(self, text):
        """
        Return command names, alias names and column names starting with text
        """
        words = list(self.commands.keys())
        words.extend(self.session.aliases.keys())
        words.extend(name for name, sqltype in LOG_TABLE_COLUMNS)
        return sorted(set(word for word in words if word.startswith(text)))
