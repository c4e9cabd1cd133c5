"""
Parser for apache access logs

Parses lines in apache common and combined log format, for example

127.0.0.1 - frank [10/Oct/2000:13:55:36 -0700] "GET /apache_pb.gif HTTP/1.0" 200 2326 "http://www.example.com/start.html" "Mozilla/4.08"

Fields after the user agent (vhost, server address etc.) are ignored.
"""

import re
import socket

from asql.dates import DateError, normalize_date

# socket.has_ipv6 tells if this python was built with IPv6 support
HAS_IPV6 = socket.has_ipv6

IPV4_PATTERN = r'(?:\d{1,3}\.){3}\d{1,3}'

HEX = '[0-9A-Fa-f]{1,4}'
IPV6_PATTERN = '(?:{0})'.format('|'.join([
    r'(?:{h}:){{7}}{h}',
    r'(?:{h}:){{1,4}}:{ipv4}',
    r'::(?:[fF]{{4}}(?::0{{1,4}})?:)?{ipv4}',
    r'(?:{h}:){{1,7}}:',
    r'(?:{h}:){{1,6}}:{h}',
    r'(?:{h}:){{1,5}}(?::{h}){{1,2}}',
    r'(?:{h}:){{1,4}}(?::{h}){{1,3}}',
    r'(?:{h}:){{1,3}}(?::{h}){{1,4}}',
    r'(?:{h}:){{1,2}}(?::{h}){{1,5}}',
    r'{h}:(?::{h}){{1,6}}',
    r':(?:(?::{h}){{1,7}}|:)',
    r'[fF][eE]80:(?::{h}){{0,4}}%[0-9A-Za-z]+',
]).format(h=HEX, ipv4=IPV4_PATTERN))

HOSTNAME_PATTERN = r'[A-Za-z0-9_](?:[A-Za-z0-9_-]*[A-Za-z0-9_])?(?:\.[A-Za-z0-9_](?:[A-Za-z0-9_-]*[A-Za-z0-9_])?)*\.?'

# Double quoted field, allowing backslash escaped characters like \" and \x22
QUOTED_PATTERN = r'"((?:\\.|[^"\\])*)"'

LINE_FIELDS = (
    r'(?P<source>{host})',
    r'(?P<ident>[^\s]+)',
    r'(?P<user>[^\s]+)',
    r'\[(?P<date>[^\]]+)\]',
    QUOTED_PATTERN.replace('(', '(?P<request>', 1),
    r'(?P<status>\d+)',
    r'(?P<size>\d+|-)',
)
OPTIONAL_FIELDS = (
    QUOTED_PATTERN.replace('(', '(?P<referer>', 1),
    QUOTED_PATTERN.replace('(', '(?P<agent>', 1),
)


def build_matcher(host_pattern):
    """Build access log line regexp

    Returns compiled regexp for access log lines with given host
    address pattern.
    """
    return re.compile(r'^\s*{0}(?:\s+{1}(?:\s+.*)?)?\s*$'.format(
        r'\s+'.join(LINE_FIELDS).format(host=host_pattern),
        r'\s+'.join(OPTIONAL_FIELDS),
    ))


IPV4_MATCHER = build_matcher('{0}|{1}'.format(IPV4_PATTERN, HOSTNAME_PATTERN))
IPV6_MATCHER = build_matcher('{0}|{1}|{2}'.format(IPV4_PATTERN, IPV6_PATTERN, HOSTNAME_PATTERN))

RE_DATE = re.compile(r'^(?P<day>\d{1,2})/(?P<month>[A-Za-z]{3})/(?P<year>\d{4})$')
RE_TIME = re.compile(r'^\d{1,2}:\d{2}:\d{2}$')
RE_REQUEST = re.compile(r'^(?P<method>[^\s]+)\s+(?P<path>.*?)\s+HTTP/(?P<version>\d+(?:\.\d+)?)$')

UNKNOWN_METHOD = 'UNKNOWN'
UNKNOWN_VERSION = '0.0'

RECORD_FIELDS = (
    'source',
    'ident',
    'user',
    'method',
    'path',
    'version',
    'status',
    'size',
    'referer',
    'agent',
    'timestamp',
    'label',
)


class ParseError(Exception):
    """
    Exception raised for lines not in access log format
    """
    pass


class LogRecord(object):
    """
    One request parsed from an access log line
    """
    def __init__(self, source, ident='', user='', method=UNKNOWN_METHOD, path='',
                 version=UNKNOWN_VERSION, status=0, size=0, referer='', agent='',
                 timestamp='', label=''):
        self.source = source
        self.ident = ident
        self.user = user
        self.method = method
        self.path = path
        self.version = version
        self.status = status
        self.size = size
        self.referer = referer
        self.agent = agent
        self.timestamp = timestamp
        self.label = label

    def __repr__(self):
        return '{0} {1} {2} {3} {4}'.format(
            self.timestamp, self.source, self.method, self.path, self.status
        )

    def __eq__(self, other):
        if not isinstance(other, LogRecord):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def as_dict(self):
        return dict((field, getattr(self, field)) for field in RECORD_FIELDS)

    def as_row(self):
        """
        Return values in logs table column order, without id
        """
        return (
            self.source,
            self.path,
            self.status,
            self.size,
            self.method,
            self.referer,
            self.agent,
            self.version,
            self.timestamp,
            self.user,
            self.label,
        )


def split_request(request):
    """Split request line

    Returns method, path and HTTP version from request line. Lines which
    are not in format 'METHOD PATH HTTP/VERSION' return whole request as
    path with method UNKNOWN and version 0.0
    """
    m = RE_REQUEST.match(request)
    if m:
        return m.group('method'), m.group('path'), m.group('version')
    return UNKNOWN_METHOD, request, UNKNOWN_VERSION


def split_date(value):
    """Split log timestamp

    Splits bracketed log date like '10/Oct/2000:13:55:36 -0700' to
    (date, time, offset) strings. Offset is None when missing.
    """
    parts = value.strip().split(None, 1)
    if not parts:
        raise ParseError('Empty date field')
    offset = len(parts) > 1 and parts[1] or None

    try:
        date, time = parts[0].split(':', 1)
    except ValueError:
        raise ParseError('Error parsing date: {0}'.format(value))

    return date, time, offset


def empty_dash(value):
    if value is None or value == '-':
        return ''
    return value


class LineParser(object):
    """Access log line parser

    Matches lines with IPv4 and IPv6 source addresses if the runtime
    supports IPv6, otherwise only IPv4 addresses and hostnames.
    """
    def __init__(self, ipv6=None):
        if ipv6 is None:
            ipv6 = HAS_IPV6
        self.ipv6 = ipv6
        self.matcher = ipv6 and IPV6_MATCHER or IPV4_MATCHER

    def parse_record(self, line, cache=None, label=''):
        """Parse line to LogRecord

        Raises ParseError if line can't be parsed. Dates are converted
        with given DateCache.
        """
        line = line.rstrip('\r\n')
        m = self.matcher.match(line)
        if not m:
            raise ParseError('Could not parse access log line {0}'.format(line))

        date, time, offset = split_date(m.group('date'))
        if not RE_TIME.match(time):
            raise ParseError('Error parsing time: {0}'.format(time))

        d = RE_DATE.match(date)
        if not d:
            raise ParseError('Error parsing date: {0}'.format(date))

        try:
            day = normalize_date(d.group('day'), d.group('month'), d.group('year'), cache)
        except DateError as e:
            raise ParseError(str(e))

        method, path, version = split_request(m.group('request'))
        size = m.group('size')

        return LogRecord(
            source=m.group('source'),
            ident=empty_dash(m.group('ident')),
            user=empty_dash(m.group('user')),
            method=method,
            path=path,
            version=version,
            status=int(m.group('status')),
            size=size != '-' and int(size) or 0,
            referer=empty_dash(m.group('referer')),
            agent=empty_dash(m.group('agent')),
            timestamp='{0}T{1}'.format(day, time),
            label=label,
        )

    def parse(self, line, cache=None, label=''):
        """Parse line

        Returns LogRecord or None for lines not in access log format
        """
        try:
            return self.parse_record(line, cache, label)
        except ParseError:
            return None
