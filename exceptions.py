"""
Exceptions raised by the news app services.
"""


class NewsAppError(Exception):
    """Base class for all app errors"""


class ConfigurationError(NewsAppError):
    """A required credential or store handle is missing"""


class StoreUnavailableError(NewsAppError):
    """The backing key-value store could not be read or written"""


class UpstreamError(NewsAppError):
    """The upstream news provider failed to return content"""
