"""
Command history for the asql shell
"""

import os

from asql.log import Logger

DEFAULT_HISTORY_LENGTH = 1000


class History(list):
    """
    Command history kept in memory and optionally written to a file
    """
    def __init__(self, path=None, length=DEFAULT_HISTORY_LENGTH):
        self.log = Logger('history').default_stream
        self.path = path
        self.length = length

    def add(self, line):
        self.append(line)
        if len(self) > self.length:
            del self[0:len(self) - self.length]

    def load(self):
        if self.path is None or not os.path.isfile(self.path):
            return
        try:
            with open(self.path, 'r') as fd:
                for line in fd:
                    line = line.rstrip('\n')
                    if line:
                        self.add(line)
        except (IOError, OSError) as e:
            self.log.error('Error reading history {0}: {1}'.format(self.path, e))

    def save(self):
        if self.path is None:
            return
        try:
            with open(self.path, 'w') as fd:
                for line in self[-self.length:]:
                    fd.write('{0}\n'.format(line))
        except (IOError, OSError) as e:
            self.log.error('Error writing history {0}: {1}'.format(self.path, e))


class ReadlineHistory(History):
    """
    History shared with the readline line editor
    """
    def __init__(self, readline, path=None, length=DEFAULT_HISTORY_LENGTH):
        super(ReadlineHistory, self).__init__(path, length)
        self.readline = readline
        # Only successfully processed commands are added to history
        self.readline.set_auto_history(False)
        self.readline.set_history_length(length)

    def add(self, line):
        super(ReadlineHistory, self).add(line)
        self.readline.add_history(line)

    def load(self):
        if self.path is None or not os.path.isfile(self.path):
            return
        try:
            self.readline.read_history_file(self.path)
        except (IOError, OSError) as e:
            self.log.error('Error reading history {0}: {1}'.format(self.path, e))
            return
        for i in range(1, self.readline.get_current_history_length() + 1):
            History.add(self, self.readline.get_history_item(i))

    def save(self):
        if self.path is None:
            return
        try:
            self.readline.write_history_file(self.path)
        except (IOError, OSError) as e:
            self.log.error('Error writing history {0}: {1}'.format(self.path, e))
