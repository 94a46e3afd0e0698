"""Exceptions raised by collaborator adapters (blob store, functions)."""


class ProviderError(Exception):
    """Base exception for provider errors."""

    pass


class BlobStoreError(ProviderError):
    """Base exception for blob store failures."""

    pass


class ListingError(BlobStoreError):
    """Raised when the container listing fails. Fatal to a fetch pass."""

    pass


class ResolutionError(BlobStoreError):
    """Raised when a download URL or metadata cannot be resolved for one blob."""

    pass


class BlobDownloadError(BlobStoreError):
    """Raised when downloading one blob fails."""

    pass


class FunctionsError(ProviderError):
    """Raised when a remote function call fails."""

    pass
