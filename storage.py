"""
Storage service for the prayer tracker.

``PrayerStorage`` wraps the Flask-SQLAlchemy session and owns every read and
write the API performs: users and credentials, the prayer catalog, prayer
logs, daily streak flags, monthly reward suggestions, and the monthly
stats/leaderboard computation. One instance is built in ``create_app`` and
handed to the route functions.

Writes commit immediately. Logging a prayer and refreshing the day's streak
flag are two separate commits.
"""

from __future__ import annotations

import datetime
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from werkzeug.security import check_password_hash, generate_password_hash

from errors import IncorrectCredential, NotFoundError, ValidationError
from models import (
    PRAYER_CATALOG,
    DailyStreak,
    MonthlyReward,
    Prayer,
    User,
    UserPrayer,
    db,
)
from scoring import (
    UTC,
    is_complete_day,
    is_on_time,
    is_qualified_day,
    month_bounds,
    points_for,
    rank_page,
    summarize_month,
    to_local,
    user_zone,
)

logger = logging.getLogger(__name__)

# dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


class PrayerStorage:
    def __init__(self, session=None, grace_minutes: int = 30) -> None:
        self.session = session if session is not None else db.session
        self.grace_minutes = grace_minutes

    def _upsert(self, model, keys: dict, values: dict):
        """Insert a row or overwrite ``values`` on the row matching ``keys``, atomically.

        ``keys`` must be the columns of one of the model's unique constraints.
        """
        dialect = self.session.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise NotImplementedError(f"Upserts are not supported on {dialect}")
        statement = insert(model).values(**keys, **values).on_conflict_do_update(
            index_elements=list(keys), set_=values
        )
        self.session.execute(statement)
        self.session.commit()
        return self.session.query(model).filter_by(**keys).one()

    # -- users -------------------------------------------------------------

    def get_user(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return User.query.filter_by(email=email.lower()).first()

    def create_user(
        self,
        name: str,
        age: int,
        email: str,
        password: str,
        country: Optional[str] = None,
        timezone: Optional[str] = None,
        gender: Optional[str] = None,
    ) -> User:
        email = email.lower()
        if self.get_user_by_email(email) is not None:
            raise ValidationError(
                "Email is already registered",
                errors=[{"field": "email", "message": "already registered"}],
            )
        user = User(
            name=name,
            age=age,
            email=email,
            password_hash=generate_password_hash(password),
            country=country,
            timezone=timezone,
            gender=gender,
        )
        self.session.add(user)
        self.session.commit()
        logger.info("Registered user %s", user.id)
        return user

    def authenticate(self, email: str, password: str) -> User:
        """Return the user for ``email`` if ``password`` matches its stored hash."""
        user = self.get_user_by_email(email)
        if user is None or not check_password_hash(user.password_hash, password):
            raise IncorrectCredential("Invalid email or password")
        return user

    def update_user(
        self,
        user_id: int,
        name: Optional[str] = None,
        age: Optional[int] = None,
        gender: Optional[str] = None,
    ) -> User:
        """Apply the given profile fields; ``None`` leaves a field unchanged."""
        user = self._require_user(user_id)
        if name:
            user.name = name
        if age:
            user.age = age
        if gender is not None:
            user.gender = gender
        self.session.commit()
        return user

    def change_password(
        self, user_id: int, current_password: str, new_password: str
    ) -> None:
        """Replace the password hash after verifying ``current_password``."""
        user = self._require_user(user_id)
        if not check_password_hash(user.password_hash, current_password):
            raise IncorrectCredential("Incorrect current password")
        user.password_hash = generate_password_hash(new_password)
        self.session.commit()
        logger.info("Password changed for user %s", user_id)

    def _require_user(self, user_id: int) -> User:
        user = self.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    # -- prayer catalog ----------------------------------------------------

    def initialize_prayers(self) -> None:
        """Seed the five daily prayers if the catalog is empty."""
        if Prayer.query.first() is not None:
            return
        for name_en, name_ar, scheduled_time in PRAYER_CATALOG:
            self.session.add(
                Prayer(name_en=name_en, name_ar=name_ar, scheduled_time=scheduled_time)
            )
        self.session.commit()
        logger.info("Seeded %d prayers", len(PRAYER_CATALOG))

    def get_prayers(self) -> List[Prayer]:
        return Prayer.query.order_by(Prayer.id).all()

    def get_prayer(self, prayer_id: int) -> Prayer:
        prayer = self.session.get(Prayer, prayer_id)
        if prayer is None:
            raise NotFoundError(f"Prayer {prayer_id} not found")
        return prayer

    # -- prayer log --------------------------------------------------------

    def log_prayer(
        self,
        user_id: int,
        prayer_id: int,
        prayer_date: datetime.date,
        prayed_at: Optional[datetime.datetime] = None,
        is_on_time_flag: Optional[bool] = None,
        points: Optional[int] = None,
    ) -> UserPrayer:
        """Insert or overwrite the log row for (user, prayer, date).

        When ``is_on_time_flag`` and ``points`` are omitted they are derived
        from ``prayed_at`` (default: now) and the prayer's scheduled time.
        Once five prayers are logged for the date, the day's streak flag is
        refreshed.
        """
        prayer = self.get_prayer(prayer_id)
        zone = user_zone(self._require_user(user_id).timezone)
        if prayed_at is not None:
            prayed_at = to_local(prayed_at, zone)
        if is_on_time_flag is None or points is None:
            if prayed_at is None:
                prayed_at = to_local(datetime.datetime.now(UTC), zone)
            is_on_time_flag = is_on_time(
                prayer_date, prayer.scheduled_time, prayed_at, self.grace_minutes
            )
            points = points_for(is_on_time_flag)

        log = self._upsert(
            UserPrayer,
            {"user_id": user_id, "prayer_id": prayer_id, "prayer_date": prayer_date},
            {"prayed_at": prayed_at, "is_on_time": is_on_time_flag, "points_awarded": points},
        )
        logger.info(
            "User %s logged prayer %s for %s (on_time=%s, points=%s)",
            user_id, prayer_id, prayer_date, is_on_time_flag, points,
        )

        day_logs = self.get_user_prayers_for_date(user_id, prayer_date)
        if is_complete_day(day_logs):
            self.update_daily_streak(user_id, prayer_date, is_qualified_day(day_logs))
        return log

    def get_user_prayers_for_date(
        self, user_id: int, prayer_date: datetime.date
    ) -> List[UserPrayer]:
        return (
            UserPrayer.query.filter_by(user_id=user_id, prayer_date=prayer_date)
            .order_by(UserPrayer.prayer_id)
            .all()
        )

    def get_user_prayers_for_month(
        self, user_id: int, year: int, month: int
    ) -> List[UserPrayer]:
        """Logs dated from the first to the last calendar day of the month."""
        start, end = month_bounds(year, month)
        return (
            UserPrayer.query.filter(
                UserPrayer.user_id == user_id,
                UserPrayer.prayer_date >= start,
                UserPrayer.prayer_date <= end,
            )
            .order_by(UserPrayer.prayer_date, UserPrayer.prayer_id)
            .all()
        )

    # -- streaks -----------------------------------------------------------

    def update_daily_streak(
        self, user_id: int, streak_date: datetime.date, is_qualified: bool
    ) -> DailyStreak:
        """Record whether ``streak_date`` qualified, overwriting any earlier flag."""
        streak = self._upsert(
            DailyStreak,
            {"user_id": user_id, "streak_date": streak_date},
            {"is_qualified": is_qualified},
        )
        logger.info(
            "Daily streak for user %s on %s: qualified=%s",
            user_id, streak_date, is_qualified,
        )
        return streak

    def current_streak(self, user_id: int) -> int:
        # total qualified days, not a consecutive run
        return (
            self.session.query(func.count(DailyStreak.id))
            .filter(DailyStreak.user_id == user_id, DailyStreak.is_qualified.is_(True))
            .scalar()
            or 0
        )

    # -- rewards -----------------------------------------------------------

    def submit_reward_suggestion(
        self, user_id: int, month: datetime.date, suggestion: str
    ) -> MonthlyReward:
        """Store the user's suggestion for ``month``, replacing an earlier one."""
        return self._upsert(
            MonthlyReward,
            {"user_id": user_id, "reward_month": month.replace(day=1)},
            {"suggested_reward": suggestion},
        )

    # -- stats & leaderboard -----------------------------------------------

    def get_user_stats(
        self, user_id: int, today: Optional[datetime.date] = None
    ) -> dict:
        """Monthly points, qualified-day count and monthly rank for one user."""
        today = today or datetime.date.today()
        monthly_logs = self.get_user_prayers_for_month(user_id, today.year, today.month)
        monthly_points = sum(log.points_awarded or 0 for log in monthly_logs)

        total_users = User.query.count()
        leaderboard = self.get_leaderboard(
            today.year, today.month, limit=max(total_users, 1), offset=0
        )
        rank = next(
            (entry["rank"] for entry in leaderboard["users"] if entry["id"] == user_id),
            leaderboard["total"],
        )
        return {
            "monthlyPoints": monthly_points,
            "currentStreak": self.current_streak(user_id),
            "monthlyRank": rank,
            "totalUsers": leaderboard["total"],
        }

    def get_leaderboard(
        self,
        year: int,
        month: int,
        limit: int,
        offset: int,
        search: Optional[str] = None,
    ) -> dict:
        """Rank users by points earned in the given month.

        Every request recomputes from the raw logs. ``total`` counts the users
        matching ``search`` (all users when no search is given), and ranks are
        absolute across pages.
        """
        query = User.query
        if search:
            query = query.filter(func.lower(User.name).contains(search.lower(), autoescape=True))
        users = query.order_by(User.id).all()

        entries = []
        for user in users:
            summary = summarize_month(self.get_user_prayers_for_month(user.id, year, month))
            entries.append({
                "id": user.id,
                "name": user.name,
                "age": user.age,
                "country": user.country,
                "totalPoints": summary.total_points,
                "dailyStreaks": summary.qualified_days,
                "prayersCompleted": summary.prayers_completed,
                "prayersMissed": summary.prayers_missed,
            })

        return {"users": rank_page(entries, limit, offset), "total": len(entries)}
