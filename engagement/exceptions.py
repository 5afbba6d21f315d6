"""Domain-level exceptions for post engagement workflows.

Each error carries the HTTP status and the generic, client-safe message the
API boundary responds with. Internal detail only goes to the server log.
"""


class EngagementError(Exception):
    """Base class for engagement errors."""

    status_code: int = 500
    message: str = "Server error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.message)
        self.detail = detail


class PostNotFound(EngagementError):
    status_code = 404
    message = "Post not found"


class Forbidden(EngagementError):
    status_code = 403
    message = "You are not authorized to delete this post"


class ValidationFailed(EngagementError):
    status_code = 400
    message = "Content is required"


class Unauthorized(EngagementError):
    status_code = 401
    message = "Unauthorized"


class UpstreamUnavailable(EngagementError):
    """A best-effort dependency failed; callers degrade instead of raising."""


class UpstreamFatal(EngagementError):
    """A dependency the request explicitly relies on failed."""


class AssetUploadFailed(UpstreamFatal):
    pass
