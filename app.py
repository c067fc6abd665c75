"""
Main Flask application for the prayer tracker.

This module creates a Flask application, configures the database, and defines
the JSON API the single-page frontend talks to. Authentication is session
based: a successful register or login stores the user's id in Flask's signed
session cookie, and every other endpoint requires it.

Key routes:

* ``POST /api/register``, ``POST /api/login``, ``POST /api/logout`` and
  ``GET /api/user`` – account and session management.
* ``GET /api/prayers`` – the five daily prayers.
* ``POST /api/prayers/log`` – log (or re-log) a prayer for a date.
* ``GET /api/prayers/date/<date>`` and ``GET /api/prayers/month`` – the
  current user's logs for a day or a month.
* ``GET /api/user/stats`` – monthly points, streak and rank.
* ``GET /api/leaderboard`` – paginated, searchable monthly leaderboard.
* ``POST /api/rewards/suggest`` – suggest a reward for a month.
* ``PATCH /api/user/profile`` and ``PATCH /api/user/password`` – account
  updates.

To run the app locally execute ``python app.py``. For production use a WSGI
server such as Gunicorn pointed at ``wsgi:app``.
"""

from __future__ import annotations

import datetime
import logging
from functools import wraps
from typing import Any, Mapping, Optional

from flask import Flask, jsonify, request, session

from config import Config
from errors import (
    AuthenticationError,
    handle_failures,
    register_error_handlers,
)
from models import db
from schemas import (
    LeaderboardQuery,
    LoginRequest,
    LogPrayerRequest,
    MonthQuery,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    RewardSuggestionRequest,
    parse,
    parse_date,
)
from storage import PrayerStorage

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """Factory function for creating the Flask application.

    Parameters
    ----------
    overrides
        Optional config values applied on top of :class:`config.Config`.

    Returns
    -------
    Flask
        A configured Flask application.
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)
    _configure_logging(app.config["LOG_LEVEL"])

    db.init_app(app)
    register_error_handlers(app)

    storage = PrayerStorage(db.session, grace_minutes=app.config["ON_TIME_GRACE_MINUTES"])

    # Create tables and seed the prayer catalog if they don't exist
    with app.app_context():
        db.create_all()
        storage.initialize_prayers()

    def current_user_id() -> int:
        user_id = session.get("user_id")
        if user_id is None:
            raise AuthenticationError("Authentication required")
        return user_id

    def login_required(view_func):  # type: ignore[misc]
        """Decorator to require an authenticated user for a route."""
        @wraps(view_func)
        def wrapped(*args, **kwargs):
            user_id = current_user_id()
            if storage.get_user(user_id) is None:
                session.clear()
                raise AuthenticationError("Authentication required")
            return view_func(*args, **kwargs)

        return wrapped

    # -- account -----------------------------------------------------------

    @app.route("/api/register", methods=["POST"])
    @handle_failures("Failed to register")
    def register():
        """Create an account and log the new user in."""
        data = parse(RegisterRequest, request.get_json(silent=True))
        user = storage.create_user(**data.model_dump())
        session.clear()
        session["user_id"] = user.id
        return jsonify(user.to_dict()), 201

    @app.route("/api/login", methods=["POST"])
    @handle_failures("Failed to log in")
    def login():
        data = parse(LoginRequest, request.get_json(silent=True))
        user = storage.authenticate(data.email, data.password)
        session.clear()
        session["user_id"] = user.id
        return jsonify(user.to_dict())

    @app.route("/api/logout", methods=["POST"])
    @handle_failures("Failed to log out")
    def logout():
        session.clear()
        return jsonify({"message": "Logged out"})

    @app.route("/api/user")
    @handle_failures("Failed to fetch user")
    @login_required
    def get_current_user():
        return jsonify(storage.get_user(current_user_id()).to_dict())

    # -- prayers -----------------------------------------------------------

    @app.route("/api/prayers")
    @handle_failures("Failed to fetch prayers")
    @login_required
    def list_prayers():
        return jsonify([prayer.to_dict() for prayer in storage.get_prayers()])

    @app.route("/api/prayers/log", methods=["POST"])
    @handle_failures("Failed to log prayer")
    @login_required
    def log_prayer():
        """Log a prayer for the current user, replacing any earlier log for that slot."""
        data = parse(LogPrayerRequest, request.get_json(silent=True))
        log = storage.log_prayer(
            current_user_id(),
            data.prayer_id,
            data.prayer_date,
            prayed_at=data.prayed_at,
            is_on_time_flag=data.is_on_time,
            points=data.points_awarded,
        )
        return jsonify(log.to_dict())

    @app.route("/api/prayers/date/<string:date>")
    @handle_failures("Failed to fetch prayers for date")
    @login_required
    def prayers_for_date(date: str):
        logs = storage.get_user_prayers_for_date(current_user_id(), parse_date(date))
        return jsonify([log.to_dict() for log in logs])

    @app.route("/api/prayers/month")
    @handle_failures("Failed to fetch prayers for month")
    @login_required
    def prayers_for_month():
        today = datetime.date.today()
        args = {"year": today.year, "month": today.month}
        args.update(request.args.to_dict())
        query = parse(MonthQuery, args)
        logs = storage.get_user_prayers_for_month(current_user_id(), query.year, query.month)
        return jsonify([log.to_dict() for log in logs])

    # -- stats -------------------------------------------------------------

    @app.route("/api/user/stats")
    @handle_failures("Failed to fetch user stats")
    @login_required
    def user_stats():
        return jsonify(storage.get_user_stats(current_user_id()))

    @app.route("/api/leaderboard")
    @handle_failures("Failed to fetch leaderboard")
    @login_required
    def leaderboard():
        today = datetime.date.today()
        args = {
            "year": today.year,
            "month": today.month,
            "limit": app.config["LEADERBOARD_PAGE_SIZE"],
            "offset": 0,
        }
        args.update(request.args.to_dict())
        query = parse(LeaderboardQuery, args)
        limit = min(query.limit, app.config["LEADERBOARD_MAX_PAGE_SIZE"])
        return jsonify(
            storage.get_leaderboard(
                query.year, query.month, limit, query.offset, search=query.search or None
            )
        )

    # -- rewards & profile -------------------------------------------------

    @app.route("/api/rewards/suggest", methods=["POST"])
    @handle_failures("Failed to submit reward suggestion")
    @login_required
    def suggest_reward():
        data = parse(RewardSuggestionRequest, request.get_json(silent=True))
        storage.submit_reward_suggestion(current_user_id(), data.month, data.suggestion)
        return jsonify({"message": "Reward suggestion submitted successfully"})

    @app.route("/api/user/profile", methods=["PATCH"])
    @handle_failures("Failed to update profile")
    @login_required
    def update_profile():
        data = parse(ProfileUpdateRequest, request.get_json(silent=True))
        user = storage.update_user(current_user_id(), **data.model_dump())
        return jsonify(user.to_dict())

    @app.route("/api/user/password", methods=["PATCH"])
    @handle_failures("Failed to change password")
    @login_required
    def change_password():
        data = parse(PasswordChangeRequest, request.get_json(silent=True))
        storage.change_password(current_user_id(), data.current_password, data.new_password)
        return jsonify({"message": "Password updated successfully"})

    return app


if __name__ == "__main__":  # pragma: no cover
    # When running locally with `python app.py`, use Flask's dev server
    create_app().run(host="0.0.0.0", port=5000, debug=True)
