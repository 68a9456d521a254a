"""
Directory-specific exceptions.

Errors raised by the Opoppo directory adapters.
"""


class DirectoryError(Exception):
    """Base exception for Opoppo directory errors."""
    pass


class DirectoryConfigurationError(DirectoryError):
    """Raised when the directory connection settings are missing or invalid."""
    pass


class DirectoryConnectionError(DirectoryError):
    """Raised when the directory database cannot be reached or a query fails."""
    pass
