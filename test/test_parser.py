"""
Unit tests for access log line parser
"""

import pytest

from asql.dates import DateCache
from asql.parser import LineParser, LogRecord, ParseError, split_date, split_request

SAMPLE_LINE = '127.0.0.1 - - [10/Oct/2020:13:55:36 -0700] "GET /index.html HTTP/1.1" 200 2326 "-" "Mozilla/5.0"'

MALFORMED_LINES = (
    '',
    'not a log line',
    '127.0.0.1 - - 10/Oct/2020:13:55:36 -0700 "GET / HTTP/1.1" 200 10',
    '127.0.0.1 - - [10/Oct/2020:13:55:36 -0700] GET / HTTP/1.1 200 10',
    '127.0.0.1 - - [10/Oct/2020:13:55:36 -0700] "GET / HTTP/1.1 200 10',
    '127.0.0.1 - - [10/Oct/2020:13:55:36 -0700] "GET / HTTP/1.1" OK 10',
    '127.0.0.1 - - [10/Oct/2020:13:55:36 -0700] "GET / HTTP/1.1" 200 lots',
    '127.0.0.1 - - [10/Foo/2020:13:55:36 -0700] "GET / HTTP/1.1" 200 10',
    '127.0.0.1 - - [10/Oct/2020 -0700] "GET / HTTP/1.1" 200 10',
    '127.0.0.1 - - [10/Oct/2020:13:55:36 -0700] "GET / HTTP/1.1" 200 10 "-" "Mozilla/5.0',
    '127.0.0.1 - - [10/Oct/2020:13:55:36 -0700] "GET / HTTP/1.1" 200 10 "http://x/ "Mozilla/5.0"',
    '127.0.0.1 - - [10/Oct/2020:13:55:36 -0700] "GET / HTTP/1.1" 200 10 "-"',
)


def test_parse_sample_line():
    """Parse combined log line

    """
    record = LineParser().parse(SAMPLE_LINE)
    assert isinstance(record, LogRecord)
    assert record.source == '127.0.0.1'
    assert record.ident == ''
    assert record.user == ''
    assert record.method == 'GET'
    assert record.path == '/index.html'
    assert record.version == '1.1'
    assert record.status == 200
    assert record.size == 2326
    assert record.referer == ''
    assert record.agent == 'Mozilla/5.0'
    assert record.timestamp == '2020-10-10T13:55:36'


def test_parse_deterministic():
    parser = LineParser()
    assert parser.parse(SAMPLE_LINE) == parser.parse(SAMPLE_LINE)
    assert parser.parse(SAMPLE_LINE, DateCache()) == parser.parse(SAMPLE_LINE)


@pytest.mark.parametrize('line', MALFORMED_LINES)
def test_parse_malformed_lines(line):
    """Malformed lines

    Lines not in access log format return None and raise ParseError
    """
    parser = LineParser()
    assert parser.parse(line) is None
    with pytest.raises(ParseError):
        parser.parse_record(line)


def test_parse_common_format():
    """Common log format

    Lines without referer and user agent are accepted
    """
    record = LineParser().parse('10.1.1.1 - bob [01/Jan/2021:00:00:01 +0200] "HEAD / HTTP/1.0" 304 -')
    assert record.user == 'bob'
    assert record.method == 'HEAD'
    assert record.version == '1.0'
    assert record.status == 304
    assert record.size == 0
    assert record.referer == ''
    assert record.agent == ''
    assert record.timestamp == '2021-01-01T00:00:01'


def test_parse_trailing_fields():
    line = '{0} www.example.com 10.0.0.1:443'.format(SAMPLE_LINE)
    record = LineParser().parse(line)
    assert record.agent == 'Mozilla/5.0'
    assert record.path == '/index.html'


def test_parse_escaped_quotes():
    line = '10.0.0.5 - - [11/Oct/2020:01:02:04 +0000] "GET /q=\\"x\\" HTTP/1.1" 200 5 "-" "agent \\"quoted\\""'
    record = LineParser().parse(line)
    assert record.path == '/q=\\"x\\"'
    assert record.agent == 'agent \\"quoted\\"'


def test_parse_hex_escaped_request():
    line = '10.0.0.6 - - [11/Oct/2020:01:02:05 +0000] "\\x16\\x03\\x01" 400 0 "-" "-"'
    record = LineParser().parse(line)
    assert record.method == 'UNKNOWN'
    assert record.version == '0.0'
    assert record.path == '\\x16\\x03\\x01'
    assert record.status == 400


@pytest.mark.parametrize('source', ('2001:db8::1', '::1', 'fe80::1', '::ffff:10.0.0.1',
                                    '2001:0db8:0000:0000:0000:ff00:0042:8329'))
def test_parse_ipv6_source(source):
    line = SAMPLE_LINE.replace('127.0.0.1', source)
    record = LineParser(ipv6=True).parse(line)
    assert record is not None
    assert record.source == source

    assert LineParser(ipv6=False).parse(line) is None


def test_parse_hostname_source():
    line = SAMPLE_LINE.replace('127.0.0.1', 'crawler.example.com')
    assert LineParser(ipv6=False).parse(line).source == 'crawler.example.com'
    assert LineParser(ipv6=True).parse(line).source == 'crawler.example.com'


def test_parse_label():
    record = LineParser().parse(SAMPLE_LINE, label='www')
    assert record.label == 'www'
    assert record.as_row()[-1] == 'www'


def test_record_as_row():
    record = LineParser().parse(SAMPLE_LINE)
    assert record.as_row() == (
        '127.0.0.1', '/index.html', 200, 2326, 'GET', '', 'Mozilla/5.0',
        '1.1', '2020-10-10T13:55:36', '', '',
    )


def test_split_request():
    assert split_request('GET /a b HTTP/1.1') == ('GET', '/a b', '1.1')
    assert split_request('GET /') == ('UNKNOWN', 'GET /', '0.0')
    assert split_request('') == ('UNKNOWN', '', '0.0')


def test_split_date():
    assert split_date('10/Oct/2020:13:55:36 -0700') == ('10/Oct/2020', '13:55:36', '-0700')
    assert split_date('10/Oct/2020:13:55:36') == ('10/Oct/2020', '13:55:36', None)
    with pytest.raises(ParseError):
        split_date('10/Oct/2020')
