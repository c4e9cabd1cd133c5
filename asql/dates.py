"""
Date conversion for apache access log timestamps.

Access logs repeat the same day over and over, so converted dates are
memoized in a DateCache which lives for one load operation.
"""

DATE_FORMAT = '{year:04d}-{month:02d}-{day:02d}'

MONTHS = {
    'jan': 1,
    'feb': 2,
    'mar': 3,
    'apr': 4,
    'may': 5,
    'jun': 6,
    'jul': 7,
    'aug': 8,
    'sep': 9,
    'oct': 10,
    'nov': 11,
    'dec': 12,
}


class DateError(Exception):
    """
    Exceptions raised when converting dates
    """
    pass


class DateCache(dict):
    """
    Cache of raw DD/Mon/YYYY strings to YYYY-MM-DD values
    """
    def __init__(self):
        dict.__init__(self)
        self.hits = 0
        self.misses = 0

    def __repr__(self):
        return '{0:d} dates, {1:d} hits, {2:d} misses'.format(len(self), self.hits, self.misses)


def month_number(name):
    """
    Return month number 1-12 for three letter english month name
    """
    try:
        return MONTHS[name.lower()]
    except (KeyError, AttributeError):
        raise DateError('Unknown month: {0}'.format(name))


def normalize_date(day, month, year, cache=None):
    """Convert apache log date

    Returns date given as day, month abbreviation and year (for example
    '25', 'Dec', '2010') as string '2010-12-25'.

    If cache is given, the result is stored with the original DD/Mon/YYYY
    value as key and later calls return the cached value.
    """
    key = '{0}/{1}/{2}'.format(day, month, year)

    if cache is not None:
        try:
            value = cache[key]
            if isinstance(cache, DateCache):
                cache.hits += 1
            return value
        except KeyError:
            pass

    try:
        value = DATE_FORMAT.format(
            year=int(year),
            month=month_number(month),
            day=int(day),
        )
    except ValueError:
        raise DateError('Error parsing date: {0}'.format(key))

    if cache is not None:
        if isinstance(cache, DateCache):
            cache.misses += 1
        cache[key] = value

    return value
