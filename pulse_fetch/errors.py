from __future__ import annotations


class ResourceNotFoundError(LookupError):
    """Raised when reading or deleting a resource URI that was never stored."""

    def __init__(self, uri: str):
        super().__init__(f"Resource not found: {uri}")
        self.uri = uri


class InvalidResourceUriError(ValueError):
    def __init__(self, uri: str, expected_scheme: str):
        super().__init__(f"Invalid {expected_scheme} resource URI: {uri}")
        self.uri = uri
