"""
Named command aliases with positional $1 - $9 arguments

Aliases are stored to a configobj file like

    [aliases]
    hits = select count(id) from logs
    agent = "select * from logs where agent like '%$1%'"

The file is read when the shell starts and written when it exits.
"""

import os
import re

from configobj import ConfigObj, ConfigObjError

from asql.log import Logger

ALIAS_SECTION = 'aliases'

RE_PLACEHOLDER = re.compile(r'\$([1-9])')

# Maximum number of rescans when replacing placeholders in template
MAX_SUBSTITUTION_ROUNDS = 16


class AliasError(Exception):
    pass


def expand_template(template, arguments):
    """Replace positional placeholders

    Each $1 to $9 in template is replaced with the matching argument.
    Template is scanned again as long as the value changes, so arguments
    may contain placeholders too. Placeholders without matching argument
    are left as they are.
    """
    def replace(m):
        index = int(m.group(1)) - 1
        if index < len(arguments):
            return arguments[index]
        return m.group(0)

    value = template
    for i in range(MAX_SUBSTITUTION_ROUNDS):
        expanded = RE_PLACEHOLDER.sub(replace, value)
        if expanded == value:
            break
        value = expanded
    return value


class AliasStore(dict):
    """
    Dictionary of alias names to command templates
    """
    def __init__(self, path=None):
        self.log = Logger('aliases').default_stream
        self.path = path is not None and os.path.expanduser(os.path.expandvars(path)) or None

    def __repr__(self):
        return '{0} aliases'.format(len(self))

    def define(self, name, template=None):
        """Define alias

        Empty template removes existing alias with given name.
        """
        if not name:
            raise AliasError('Alias name is empty')

        if template is None or template.strip() == '':
            if name in self:
                del self[name]
            return

        self[name] = template.strip()

    def resolve(self, name):
        """
        Return template for alias or None
        """
        return self.get(name, None)

    def list(self):
        """
        Return aliases sorted by name as (name, template) tuples
        """
        return [(name, self[name]) for name in sorted(self.keys())]

    def expand(self, name, arguments=()):
        """
        Return template for alias with positional arguments replaced
        """
        template = self.resolve(name)
        if template is None:
            raise AliasError('No such alias: {0}'.format(name))
        return expand_template(template, list(arguments))

    def load(self, path=None):
        """Load aliases from file

        Missing file is not an error. Existing aliases are replaced.
        """
        if path is not None:
            self.path = path
        self.clear()

        if self.path is None or not os.path.isfile(self.path):
            return

        try:
            config = ConfigObj(self.path, interpolation=False, encoding='utf-8')
        except (ConfigObjError, IOError, OSError) as e:
            raise AliasError('Error parsing {0}: {1}'.format(self.path, e))

        section = config.get(ALIAS_SECTION, {})
        for name, template in section.items():
            if isinstance(template, dict):
                continue
            if isinstance(template, list):
                template = ', '.join(template)
            self.define(name, template)

        self.log.debug('Loaded {0:d} aliases from {1}'.format(len(self), self.path))

    def save(self, path=None):
        """Save aliases to file

        Overwrites the whole file.
        """
        if path is not None:
            self.path = path
        if self.path is None:
            raise AliasError('Alias file path is not defined')

        directory = os.path.dirname(self.path)
        if directory and not os.path.isdir(directory):
            try:
                os.makedirs(directory)
            except OSError as e:
                raise AliasError('Error creating directory {0}: {1}'.format(directory, e))

        config = ConfigObj(interpolation=False, encoding='utf-8')
        config[ALIAS_SECTION] = dict(self.list())

        self.log.debug('Saving {0:d} aliases to {1}'.format(len(self), self.path))
        try:
            with open(self.path, 'wb') as fd:
                config.write(outfile=fd)
        except (IOError, OSError) as e:
            raise AliasError('Error writing {0}: {1}'.format(self.path, e))
