"""Errors raised by domain services and surfaced to hub callers."""


class HubError(Exception):
    """Base class for rejections reported back to the caller."""

    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class PermissionDeniedError(HubError):
    """The caller may not act on the target resource."""

    status_code = 403


class NotFoundError(HubError):
    """The target resource does not exist."""

    status_code = 404


class ConflictError(HubError):
    """The action is not valid in the resource's current state."""

    status_code = 400
