"""
BridgeWatch Exceptions
======================

Errors raised inside adapters and caught at component boundaries.

None of these escape the public operations: classifier errors become
``ViewCategory.USELESS``, detector errors become an unavailable reading,
persistence errors are logged.
"""


class BridgeWatchError(Exception):
    """Base class for BridgeWatch errors."""
    pass


class ClassifierError(BridgeWatchError):
    """Raised when a view classifier backend call fails."""
    pass


class DetectorError(BridgeWatchError):
    """Raised when a vehicle detector backend call fails."""
    pass


class PersistenceError(BridgeWatchError):
    """Raised when preserved frames cannot be written or read."""
    pass
