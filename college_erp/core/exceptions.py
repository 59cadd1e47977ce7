# college_erp/core/exceptions.py


class RequestError(Exception):
    """Base class for request-routing failures raised by the services."""


class PermissionDenied(RequestError, PermissionError):
    pass


class RequestNotFound(RequestError, LookupError):
    def __init__(self, request_id: str):
        super().__init__(f"Request '{request_id}' not found")
        self.request_id = request_id


class ConcurrentUpdateError(RequestError):
    """The stored request changed between read and write (version mismatch)."""

    def __init__(self, request_id: str, expected_version: int):
        super().__init__(
            f"Request '{request_id}' was modified concurrently (expected version {expected_version})"
        )
        self.request_id = request_id
        self.expected_version = expected_version


class InvalidTransition(RequestError, ValueError):
    pass
