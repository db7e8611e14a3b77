"""
AfterShip carrier tracking client.

Used by orders.tasks.poll_carrier_tracking to find shipped orders the
carrier reports as delivered.

AfterShip quirks:
    POST /trackings is effectively idempotent: a new tracking answers 201,
    an existing one answers meta code 4012 (HTTP 400). Both carry the
    tracking object, so both are read the same way.
    When the POST body has a slug but no tag, GET /trackings/{slug}/{number}
    returns the current tag.

Usage:
    from orders.tracking import AfterShipClient

    tag = AfterShipClient.get_tracking_tag("LK123456789")
    if AfterShipClient.is_delivered(tag):
        ...
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import requests
from django.conf import settings

from orders.exceptions import TrackingServiceError

logger = logging.getLogger(__name__)


AFTERSHIP_API_URL = "https://api.aftership.com/v4"

# AfterShip tag values for the delivered state
DELIVERED_TAGS = frozenset({"Delivered"})

# meta.code for "tracking already exists"
TRACKING_EXISTS_CODE = 4012


class AfterShipClient:

    @staticmethod
    def is_enabled() -> bool:
        return bool(settings.AFTERSHIP_API_KEY)

    @staticmethod
    def is_delivered(tag: str | None) -> bool:
        return tag in DELIVERED_TAGS

    @classmethod
    def _make_request(cls, method: str, path: str, json: dict | None = None) -> dict:
        """
        Call the AfterShip API and return the decoded body.

        4xx answers are returned (the meta code says what happened); 5xx,
        timeouts and undecodable bodies raise.

        Raises:
            TrackingServiceError: On timeout, connection failure, 5xx or a
                body that is not JSON
        """
        headers = {
            "aftership-api-key": settings.AFTERSHIP_API_KEY,
            "Content-Type": "application/json",
        }
        try:
            response = requests.request(
                method,
                f"{AFTERSHIP_API_URL}{path}",
                headers=headers,
                json=json,
                timeout=settings.AFTERSHIP_API_TIMEOUT_SECONDS,
            )
        except requests.exceptions.Timeout as exc:
            raise TrackingServiceError("AfterShip request timed out", details={"path": path}) from exc
        except requests.exceptions.RequestException as exc:
            raise TrackingServiceError(f"AfterShip request failed: {exc}", details={"path": path}) from exc

        if response.status_code >= 500:
            raise TrackingServiceError(
                f"AfterShip API error ({response.status_code})",
                details={"path": path, "status_code": response.status_code},
            )
        try:
            return response.json()
        except ValueError as exc:
            raise TrackingServiceError(
                "AfterShip returned a non-JSON response",
                details={"path": path},
            ) from exc

    @classmethod
    def get_tracking_tag(cls, tracking_number: str, slug: str = "") -> str | None:
        """
        Current AfterShip tag for a tracking number, None when unknown.

        Registers the tracking on first use.

        Raises:
            TrackingServiceError: AfterShip unreachable or failing
        """
        tracking = {"tracking_number": tracking_number}
        if slug:
            tracking["slug"] = slug
        body = cls._make_request("POST", "/trackings", json={"tracking": tracking})

        data = (body.get("data") or {}).get("tracking") or {}
        if data.get("tag"):
            return data["tag"]

        found_slug = data.get("slug") or slug
        if not found_slug:
            meta = body.get("meta") or {}
            if meta.get("code") not in (200, 201, TRACKING_EXISTS_CODE):
                logger.warning(
                    "AfterShip rejected tracking",
                    extra={"tracking_number": tracking_number, "meta_code": meta.get("code")},
                )
            return None

        body = cls._make_request("GET", f"/trackings/{found_slug}/{quote(tracking_number, safe='')}")
        return ((body.get("data") or {}).get("tracking") or {}).get("tag")
