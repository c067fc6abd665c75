"""
Database models for the prayer tracker.

This module defines five SQLAlchemy models:

* ``User`` – a person who logs prayers. Each user has a unique email address
  and a salted password hash for authentication.
* ``Prayer`` – one of the five daily prayers. The catalog is fixed and is
  seeded from ``PRAYER_CATALOG`` the first time the app starts.
* ``UserPrayer`` – one log entry per user, prayer and calendar date, recording
  when the prayer was performed, whether it was on time and the points awarded.
* ``DailyStreak`` – one flag per user and date, set when all five prayers of
  that day were performed on time.
* ``MonthlyReward`` – a user's free-text reward suggestion for a month.

Deleting a user cascades to every row that references it.
"""

from __future__ import annotations

import datetime

from flask_sqlalchemy import SQLAlchemy

# create a SQLAlchemy object without an app – it is initialised in app.py
db = SQLAlchemy()


# (English name, local name, scheduled time)
PRAYER_CATALOG = (
    ("Fajr", "الفجر", datetime.time(5, 30)),
    ("Dhuhr", "الظهر", datetime.time(12, 45)),
    ("Asr", "العصر", datetime.time(16, 15)),
    ("Maghrib", "المغرب", datetime.time(18, 30)),
    ("Isha", "العشاء", datetime.time(20, 0)),
)


def _utc_now() -> datetime.datetime:
    """UTC now as naive datetime for DateTime(timezone=False) columns."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value is not None else None


class User(db.Model):
    """Represents a user of the prayer tracker."""
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    age = db.Column(db.Integer, nullable=False)
    email = db.Column(db.String(150), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    country = db.Column(db.String(100))
    timezone = db.Column(db.String(100))
    gender = db.Column(db.String(20))
    created_at = db.Column(db.DateTime, default=_utc_now)
    updated_at = db.Column(db.DateTime, default=_utc_now, onupdate=_utc_now)

    prayers = db.relationship(
        "UserPrayer", backref="user", cascade="all, delete-orphan", lazy=True
    )
    streaks = db.relationship(
        "DailyStreak", backref="user", cascade="all, delete-orphan", lazy=True
    )
    rewards = db.relationship(
        "MonthlyReward", backref="user", cascade="all, delete-orphan", lazy=True
    )

    def to_dict(self) -> dict:
        # never expose password_hash
        return {
            "id": self.id,
            "name": self.name,
            "age": self.age,
            "email": self.email,
            "country": self.country,
            "timezone": self.timezone,
            "gender": self.gender,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User {self.email}>"


class Prayer(db.Model):
    """A daily prayer slot from the fixed catalog."""
    __tablename__ = "prayers"

    id = db.Column(db.Integer, primary_key=True)
    name_en = db.Column(db.String(50), nullable=False)
    name_ar = db.Column(db.String(50), nullable=False)
    scheduled_time = db.Column(db.Time, nullable=False)

    logs = db.relationship(
        "UserPrayer", backref="prayer", cascade="all, delete-orphan", lazy=True
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nameEn": self.name_en,
            "nameAr": self.name_ar,
            "scheduledTime": self.scheduled_time.strftime("%H:%M"),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Prayer {self.name_en} at {self.scheduled_time}>"


class UserPrayer(db.Model):
    """Records one prayer for one user on one date.

    There is at most one row per (user, prayer, date); logging the same prayer
    again overwrites the timing fields instead of adding a row. Points are 5
    for on time, 1 for late and 0 when the prayer was explicitly not performed.
    """

    __tablename__ = "user_prayers"
    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "prayer_id", "prayer_date", name="uq_user_prayer_date"
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    prayer_id = db.Column(
        db.Integer, db.ForeignKey("prayers.id", ondelete="CASCADE"), nullable=False
    )
    prayer_date = db.Column(db.Date, nullable=False, index=True)
    prayed_at = db.Column(db.DateTime)
    is_on_time = db.Column(db.Boolean, default=False, nullable=False)
    points_awarded = db.Column(db.Integer, default=0, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "prayerId": self.prayer_id,
            "prayerDate": _iso(self.prayer_date),
            "prayedAt": _iso(self.prayed_at),
            "isOnTime": self.is_on_time,
            "pointsAwarded": self.points_awarded,
        }

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<UserPrayer user={self.user_id} prayer={self.prayer_id} "
            f"date={self.prayer_date} on_time={self.is_on_time} "
            f"points={self.points_awarded}>"
        )


class DailyStreak(db.Model):
    """Whether a user completed every prayer of a day on time."""
    __tablename__ = "daily_streaks"
    __table_args__ = (
        db.UniqueConstraint("user_id", "streak_date", name="uq_user_streak_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    streak_date = db.Column(db.Date, nullable=False)
    is_qualified = db.Column(db.Boolean, default=False, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<DailyStreak user={self.user_id} date={self.streak_date} "
            f"qualified={self.is_qualified}>"
        )


class MonthlyReward(db.Model):
    __tablename__ = "monthly_rewards"
    __table_args__ = (
        db.UniqueConstraint("user_id", "reward_month", name="uq_user_reward_month"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    # always the first day of the month
    reward_month = db.Column(db.Date, nullable=False)
    suggested_reward = db.Column(db.Text)
    is_winner = db.Column(db.Boolean, default=False, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "rewardMonth": _iso(self.reward_month),
            "suggestedReward": self.suggested_reward,
            "isWinner": self.is_winner,
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<MonthlyReward user={self.user_id} month={self.reward_month}>"
