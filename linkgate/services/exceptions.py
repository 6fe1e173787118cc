"""Exceptions for the link redirector service layer.

Resolution errors are the ways a request can stop short of a redirect.
The policy evaluator raises them from its checks and turns each one
into a response. Template and storage errors never reach the client;
they degrade to built-in fallback bodies.
"""

from enum import Enum


class BlockReason(str, Enum):
    """Reason code recorded on blocked visits."""
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    LIMIT = "limit"
    PASSWORD = "password"
    PASSWORD_WRONG = "password_wrong"
    INTERSTITIAL = "interstitial"
    LOOKUP_FAILED = "lookup_failed"


class ErrorCode:
    """Public error codes substituted into error templates."""
    SHORTURL_NOT_FOUND = -3
    LINK_EXPIRED = -4
    LINK_LIMIT_REACHED = -5


class ServiceError(Exception):
    """Base exception for all service-level errors."""
    pass


class ResolutionError(ServiceError):
    """Base exception for requests that end in a blocked disposition."""

    reason: BlockReason
    status_code: int
    message: str = ""

    def __init__(self, message: str = None):
        super().__init__(message or self.message)


class LinkNotFoundError(ResolutionError):
    """No live link matches the host and code."""
    reason = BlockReason.NOT_FOUND
    status_code = 404
    error_code = ErrorCode.SHORTURL_NOT_FOUND
    message = "Short link not found"


class LinkExpiredError(ResolutionError):
    """The link has passed its expiry time."""
    reason = BlockReason.EXPIRED
    status_code = 410
    error_code = ErrorCode.LINK_EXPIRED
    message = "Link expired"


class VisitLimitReachedError(ResolutionError):
    """The link has used up its visit quota."""
    reason = BlockReason.LIMIT
    status_code = 410
    error_code = ErrorCode.LINK_LIMIT_REACHED
    message = "Link visit limit reached"


class PasswordRequiredError(ResolutionError):
    """The link is password protected and no password was supplied."""
    reason = BlockReason.PASSWORD
    status_code = 200
    message = "Password required"


class PasswordIncorrectError(ResolutionError):
    """The supplied password does not match."""
    reason = BlockReason.PASSWORD_WRONG
    status_code = 401
    message = "Incorrect password"


class InterstitialRequiredError(ResolutionError):
    """The visitor has no acceptable ticket and must see the interstitial page."""
    reason = BlockReason.INTERSTITIAL
    status_code = 200
    message = "Interstitial confirmation required"

    def __init__(self, template, message: str = None):
        super().__init__(message)
        self.template = template


class LinkLookupFailedError(ResolutionError):
    """The link store could not be queried."""
    reason = BlockReason.LOOKUP_FAILED
    status_code = 500
    message = "Internal server error"


class TemplateUnavailableError(ServiceError):
    """A template or its content could not be loaded."""
    pass


class StorageUnavailableError(TemplateUnavailableError):
    """The object store is not configured or failed to answer."""
    pass
