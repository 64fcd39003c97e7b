"""
Exceptions raised by the GCVE sync scripts

Hard errors (ConfigurationError, NotFoundError, NoMatchingObjectsError) abort
the whole run. TransferError is per item: it is reported and the batch moves on.
"""


class GcveError(Exception):
    """Base class for errors surfaced to the command line"""


class ConfigurationError(GcveError):
    """Options or target setup cannot work together"""


class NotFoundError(GcveError):
    """A bucket, content library or DNS zone does not exist"""


class NoMatchingObjectsError(GcveError):
    """The bucket listing produced nothing to import"""


class TransferError(GcveError):
    """Importing a single object failed"""
