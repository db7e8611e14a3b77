"""
Order-specific exceptions.

Expected business failures (invalid transitions, expired windows) are
returned as ServiceResult failures. These exceptions cover external
collaborators that the order flows call best-effort.
"""

from core.exceptions import ExternalServiceError


class TrackingServiceError(ExternalServiceError):
    """Carrier tracking API call failed (network, auth, bad response)."""

    default_error_code = "TRACKING_SERVICE_ERROR"
