"""
Error types raised by the storage service and the request boundary.

Every error the API reports deliberately derives from ``PrayerTrackerError``
and carries the HTTP status it maps to. ``register_error_handlers`` installs
the Flask handlers that render them as JSON; anything else that escapes a
view is logged and reported as a generic 500 by ``handle_failures``.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, List, Optional

from flask import Flask, jsonify

logger = logging.getLogger(__name__)


class PrayerTrackerError(Exception):
    status_code = 500

    def __init__(self, message: str, errors: Optional[List[Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors

    def to_dict(self) -> dict:
        body: dict = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(PrayerTrackerError):
    """Malformed or missing input."""
    status_code = 400


class AuthenticationError(PrayerTrackerError):
    """No session, or the session points at a user that no longer exists."""
    status_code = 401


class NotFoundError(PrayerTrackerError):
    status_code = 404


class IncorrectCredential(PrayerTrackerError):
    """Password did not match the stored hash."""
    status_code = 400


class ServerError(PrayerTrackerError):
    status_code = 500


def handle_failures(message: str):
    """Decorator turning unexpected exceptions in a view into a ``ServerError``.

    Known ``PrayerTrackerError`` subclasses pass through untouched so their own
    status code reaches the client.
    """

    def decorator(view_func):  # type: ignore[misc]
        @wraps(view_func)
        def wrapped(*args, **kwargs):
            try:
                return view_func(*args, **kwargs)
            except PrayerTrackerError:
                raise
            except Exception as exc:
                logger.exception("%s: %s", message, exc)
                raise ServerError(message) from exc

        return wrapped

    return decorator


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(PrayerTrackerError)
    def handle_app_error(error: PrayerTrackerError):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def handle_missing_route(error):
        return jsonify({"message": "Not found"}), 404

    @app.errorhandler(405)
    def handle_bad_method(error):
        return jsonify({"message": "Method not allowed"}), 405

    @app.errorhandler(500)
    def handle_server_error(error):
        logger.error("Unhandled error: %s", getattr(error, "original_exception", error))
        return jsonify({"message": "Internal server error"}), 500
