class IndexerError(Exception):
    """Base class for errors raised by the indexing and query services."""


class ValidationError(IndexerError):
    """
    Raised when a request is rejected before any work is done: malformed
    address, unparsable contract interface, empty event list, bad filters.
    """


class RangeTooLargeError(ValidationError):
    """Raised when the requested block span exceeds the hard ceiling"""


class ChunkFetchError(IndexerError):
    """
    Raised when an upstream ``eth_getLogs`` call fails.

    Per-chunk failures are recorded and skipped by the fetcher; the error only
    reaches the caller when every chunk of a run failed.
    """

    def __init__(self, message: str, failures=None):
        super().__init__(message)
        self.failures = list(failures or [])


class StorageError(IndexerError):
    """Raised on database failures other than the expected duplicate skip"""


class IndexingCancelled(IndexerError):
    """Raised when a run is cancelled between two chunk requests"""
