# =============================================================================
# Django Project Configuration Package
# =============================================================================
# Settings, URLs, ASGI/WSGI applications and the Celery app.
#
# The Celery app is imported here so the carrier-tracking beat task is
# registered whenever Django starts.
# =============================================================================

from config.celery import app as celery_app

__all__ = ("celery_app",)
