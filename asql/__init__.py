"""
Query apache access logs with SQL
"""

__version__ = '1.7.0'

__all__ = [
    'aliases', 'dates', 'history', 'interpreter', 'loader', 'log',
    'parser', 'session', 'shell', 'sqlite'
]
