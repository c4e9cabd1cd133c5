"""
Interactive shell and script runner for asql
"""

import sys
import os
import time
import signal
import argparse

from asql import __version__
from asql.history import History, ReadlineHistory
from asql.interpreter import CommandInterpreter, ShellExit
from asql.log import Logger
from asql.session import ConfigError, Session, SessionConfig

try:
    import readline
    has_readline = True
except ImportError:
    has_readline = False

PROMPT = 'asql> '

BANNER = """asql v{0} - query apache logs with SQL

Use "load <file|glob>" to load log files, "help" for other commands.
"""

DESCRIPTION = """Query apache access logs with SQL

Loaded logs are stored to table logs with columns:
  id source request status size method referer agent version date user label
"""

# Seconds to wait before exiting when readline is not available
MISSING_READLINE_DELAY = 1


class ScriptError(Exception):
    pass


class AsqlScript(object):
    """
    asql command line tool
    """
    def __init__(self, name=None, interactive=None):
        self.name = name is not None and name or os.path.basename(sys.argv[0])
        self.interactive = interactive
        self.session = None
        self.interpreter = None

        # Set to True to avoid any messages from self.message to be output
        self.silent = False

        self.logger = Logger(self.name)
        self.log = self.logger.default_stream

        self.parser = argparse.ArgumentParser(
            prog=self.name,
            description=DESCRIPTION,
            formatter_class=argparse.RawTextHelpFormatter,
            add_help=True,
            conflict_handler='resolve',
        )
        self.parser.add_argument('--version', action='version', version='%(prog)s {0}'.format(__version__))
        self.parser.add_argument('--debug', action='store_true', help='Show debug messages')
        self.parser.add_argument('--verbose', action='store_true', help='Show verbose messages')
        self.parser.add_argument('-q', '--quiet', action='store_true', help='Show no informational messages')
        self.parser.add_argument('-c', '--config', help='Configuration file')
        self.parser.add_argument('-l', '--load', action='append', default=[], help='Load files matching pattern')
        self.parser.add_argument('--label', help='Label for files loaded with --load')
        self.parser.add_argument('-e', '--execute', action='append', default=[], help='Run command and exit')
        self.parser.add_argument('-f', '--file', help='Run commands from file and exit')
        self.parser.add_argument('--no-ipv6', action='store_true', help='Do not match IPv6 source addresses')

    def SIGINT(self, signum, frame):
        """
        Parse SIGINT signal by quitting the program cleanly with exit code 1
        """
        self.exit(1)

    def exit(self, value=0, message=None):
        """
        Exit the script with given exit value, closing the session.
        If message is not None, it is output to stdout
        """
        if message is not None:
            self.message(message)

        if self.session is not None:
            self.session.teardown()

        sys.exit(value)

    def message(self, message):
        if self.silent:
            return
        sys.stdout.write('{0}\n'.format(message))

    def error(self, message):
        sys.stderr.write('{0}\n'.format(message))

    def parse_args(self, argv=None):
        """
        Call parse_args for parser and check for default logging flags
        """
        args = self.parser.parse_args(argv)

        if args.debug:
            Logger.set_all_levels('DEBUG')

        elif args.quiet:
            self.silent = True

        elif args.verbose:
            Logger.set_all_levels('INFO')

        return args

    def configure(self, args):
        """
        Create session configuration from arguments
        """
        ipv6 = None
        if args.no_ipv6:
            ipv6 = False

        try:
            return SessionConfig(
                path=args.config,
                quiet=args.quiet or None,
                verbose=args.verbose or None,
                debug=args.debug or None,
                ipv6=ipv6,
            )
        except ConfigError as e:
            self.error(e)
            sys.exit(1)

    def create_history(self, config):
        if self.interactive and has_readline:
            history = ReadlineHistory(readline, config.history_file)
        else:
            history = History(config.history_file)
        history.load()
        return history

    def setup_completion(self):
        def complete(text, state):
            matches = self.interpreter.completions(text)
            try:
                return matches[state]
            except IndexError:
                return None

        readline.set_completer(complete)
        readline.set_completer_delims(' \t\n;,()=')
        readline.parse_and_bind('tab: complete')

    def run_lines(self, lines):
        """
        Run commands from iterable of lines, skipping comments
        """
        for line in lines:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            self.interpreter.process(line)

    def run_file(self, path):
        try:
            with open(path, 'r') as fd:
                self.run_lines(fd.readlines())
        except (IOError, OSError) as e:
            raise ScriptError('Error reading {0}: {1}'.format(path, e))

    def loop(self):
        """
        Read commands from terminal until end of input
        """
        while True:
            try:
                line = input(PROMPT)
            except EOFError:
                self.message('')
                break
            self.interpreter.process(line)

    def run(self, argv=None):
        args = self.parse_args(argv)

        if self.interactive is None:
            self.interactive = not args.execute and not args.file and sys.stdin.isatty()

        if self.interactive and not has_readline:
            self.error('WARNING: the readline module is required for interactive use')
            time.sleep(MISSING_READLINE_DELAY)
            sys.exit(1)

        config = self.configure(args)
        self.session = Session(config, history=self.create_history(config))
        self.interpreter = CommandInterpreter(self.session)
        signal.signal(signal.SIGINT, self.SIGINT)

        try:
            for pattern in args.load:
                label = args.label is not None and ' --label={0}'.format(args.label) or ''
                self.interpreter.process('load {0}{1}'.format(pattern, label))

            if os.path.isfile(config.startup_file):
                self.run_file(config.startup_file)

            if args.execute or args.file:
                self.run_lines(args.execute)
                if args.file:
                    self.run_file(args.file)

            elif self.interactive:
                self.setup_completion()
                if not config.quiet:
                    self.message(BANNER.format(__version__))
                self.loop()

            else:
                self.run_lines(sys.stdin)

        except ShellExit:
            pass
        except ScriptError as e:
            self.error(e)
            self.exit(1)

        self.exit(0)


def main():
    AsqlScript('asql').run()
