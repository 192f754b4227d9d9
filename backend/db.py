"""
Database abstraction for Postgres and an in-memory test implementation.

The operations mirror the stored procedures the hosted database exposes
(ensure_user_exists, increment_usage, grant_lifetime_access, ...), so the
service can run against any SQLAlchemy URL as well as in memory.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, Optional, Protocol

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared import json_utils
from shared.types import PREMIUM_PLANS, ParsedRecipe, Plan, SavedRecipe, SubscriptionStatus

SUBSCRIPTION_FIELDS = frozenset(
    {
        "stripe_customer_id",
        "stripe_subscription_id",
        "status",
        "plan",
        "current_period_start",
        "current_period_end",
        "cancel_at_period_end",
    }
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utcnow().date()


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo; every stored timestamp is UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _check_subscription_fields(fields: dict) -> dict:
    unknown = set(fields) - SUBSCRIPTION_FIELDS
    if unknown:
        raise ValueError(f"Unknown subscription fields: {sorted(unknown)}")
    # Plain strings only, so the DB driver never sees an Enum.
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in fields.items()
    }


@dataclass
class UserRecord:
    id: str
    email: str
    is_admin: bool = False
    created_at: datetime = field(default_factory=utcnow)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "is_admin": self.is_admin,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class SubscriptionRecord:
    user_id: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    status: str = SubscriptionStatus.INACTIVE
    plan: str = Plan.FREE
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_premium(self) -> bool:
        return self.plan in PREMIUM_PLANS

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "stripe_customer_id": self.stripe_customer_id,
            "stripe_subscription_id": self.stripe_subscription_id,
            "status": str(self.status),
            "plan": str(self.plan),
            "is_premium": self.is_premium,
            "current_period_start": _isoformat(self.current_period_start),
            "current_period_end": _isoformat(self.current_period_end),
            "cancel_at_period_end": self.cancel_at_period_end,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }


@dataclass
class UsageRecord:
    user_id: str
    date: date
    recipes_parsed: int = 0
    customizations_used: int = 0

    def as_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "recipes_parsed": self.recipes_parsed,
            "customizations_used": self.customizations_used,
        }


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class DbClient(Protocol):
    """Interface for database access."""

    def ensure_user_exists(self, user_id: str, email: str) -> UserRecord:
        ...

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    def is_user_admin(self, user_id: str) -> bool:
        ...

    def set_user_admin(self, target_user_id: str, is_admin: bool) -> bool:
        ...

    def list_admin_users(self) -> list[UserRecord]:
        ...

    def get_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        ...

    def get_subscription_by_stripe_id(
        self, stripe_subscription_id: str
    ) -> Optional[SubscriptionRecord]:
        ...

    def upsert_subscription(self, user_id: str, **fields) -> SubscriptionRecord:
        ...

    def update_subscription_by_stripe_id(
        self, stripe_subscription_id: str, **fields
    ) -> Optional[SubscriptionRecord]:
        ...

    def grant_lifetime_access(
        self, user_id: str, granted_by: str
    ) -> SubscriptionRecord:
        ...

    def get_daily_usage(
        self, user_id: str, usage_date: date | None = None
    ) -> UsageRecord:
        ...

    def increment_usage(
        self,
        user_id: str,
        usage_date: date | None = None,
        recipes_count: int = 0,
        customizations_count: int = 0,
    ) -> UsageRecord:
        ...

    def list_recent_usage(self, user_id: str, limit: int = 7) -> list[UsageRecord]:
        ...

    def save_recipe(self, user_id: str, recipe: ParsedRecipe) -> SavedRecipe:
        ...

    def list_recipes(self, user_id: str) -> list[SavedRecipe]:
        ...

    def get_recipe(self, recipe_id: str) -> Optional[SavedRecipe]:
        ...

    def delete_recipe(self, recipe_id: str, user_id: str) -> bool:
        ...


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.subscriptions: Dict[str, SubscriptionRecord] = {}
        self.usage: Dict[tuple[str, date], UsageRecord] = {}
        self.recipes: Dict[str, SavedRecipe] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.clear()
        self.subscriptions.clear()
        self.usage.clear()
        self.recipes.clear()

    def ensure_user_exists(self, user_id: str, email: str) -> UserRecord:
        user = self.users.get(user_id)
        if user is None:
            user = UserRecord(id=user_id, email=(email or "").lower())
            self.users[user_id] = user
        return user

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        email = (email or "").lower()
        for user in self.users.values():
            if user.email == email:
                return user
        return None

    def is_user_admin(self, user_id: str) -> bool:
        user = self.users.get(user_id)
        return bool(user and user.is_admin)

    def set_user_admin(self, target_user_id: str, is_admin: bool) -> bool:
        user = self.users.get(target_user_id)
        if not user:
            return False
        user.is_admin = is_admin
        return True

    def list_admin_users(self) -> list[UserRecord]:
        return [user for user in self.users.values() if user.is_admin]

    def get_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        return self.subscriptions.get(user_id)

    def get_subscription_by_stripe_id(
        self, stripe_subscription_id: str
    ) -> Optional[SubscriptionRecord]:
        for record in self.subscriptions.values():
            if record.stripe_subscription_id == stripe_subscription_id:
                return record
        return None

    def upsert_subscription(self, user_id: str, **fields) -> SubscriptionRecord:
        fields = _check_subscription_fields(fields)
        existing = self.subscriptions.get(user_id)
        if existing:
            record = replace(existing, **fields, updated_at=utcnow())
        else:
            record = SubscriptionRecord(user_id=user_id, **fields)
        self.subscriptions[user_id] = record
        return record

    def update_subscription_by_stripe_id(
        self, stripe_subscription_id: str, **fields
    ) -> Optional[SubscriptionRecord]:
        fields = _check_subscription_fields(fields)
        existing = self.get_subscription_by_stripe_id(stripe_subscription_id)
        if not existing:
            return None
        record = replace(existing, **fields, updated_at=utcnow())
        self.subscriptions[existing.user_id] = record
        return record

    def grant_lifetime_access(
        self, user_id: str, granted_by: str
    ) -> SubscriptionRecord:
        return self.upsert_subscription(
            user_id,
            plan=Plan.LIFETIME,
            status=SubscriptionStatus.ACTIVE,
            current_period_start=utcnow(),
            current_period_end=None,
            cancel_at_period_end=False,
        )

    def get_daily_usage(
        self, user_id: str, usage_date: date | None = None
    ) -> UsageRecord:
        usage_date = usage_date or utc_today()
        record = self.usage.get((user_id, usage_date))
        if record is None:
            return UsageRecord(user_id=user_id, date=usage_date)
        return replace(record)

    def increment_usage(
        self,
        user_id: str,
        usage_date: date | None = None,
        recipes_count: int = 0,
        customizations_count: int = 0,
    ) -> UsageRecord:
        usage_date = usage_date or utc_today()
        record = self.usage.setdefault(
            (user_id, usage_date), UsageRecord(user_id=user_id, date=usage_date)
        )
        record.recipes_parsed += recipes_count
        record.customizations_used += customizations_count
        return replace(record)

    def list_recent_usage(self, user_id: str, limit: int = 7) -> list[UsageRecord]:
        records = [
            record for (owner, _), record in self.usage.items() if owner == user_id
        ]
        records.sort(key=lambda record: record.date, reverse=True)
        return records[:limit]

    def save_recipe(self, user_id: str, recipe: ParsedRecipe) -> SavedRecipe:
        data = json_utils.recipe_to_dict(recipe)
        data.update(id=uuid.uuid4().hex, user_id=user_id, created_at=utcnow())
        saved = json_utils.recipe_from_dict(data, SavedRecipe)
        self.recipes[saved.id] = saved
        return saved

    def list_recipes(self, user_id: str) -> list[SavedRecipe]:
        owned = [recipe for recipe in self.recipes.values() if recipe.user_id == user_id]
        return list(reversed(owned))

    def get_recipe(self, recipe_id: str) -> Optional[SavedRecipe]:
        return self.recipes.get(recipe_id)

    def delete_recipe(self, recipe_id: str, user_id: str) -> bool:
        recipe = self.recipes.get(recipe_id)
        if not recipe or recipe.user_id != user_id:
            return False
        del self.recipes[recipe_id]
        return True


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            id=row.id,
            email=row.email,
            is_admin=row.is_admin,
            created_at=_aware(row.created_at),
        )

    def _to_subscription_record(self, row: "SubscriptionRow") -> SubscriptionRecord:
        return SubscriptionRecord(
            id=row.id,
            user_id=row.user_id,
            stripe_customer_id=row.stripe_customer_id,
            stripe_subscription_id=row.stripe_subscription_id,
            status=row.status,
            plan=row.plan,
            current_period_start=_aware(row.current_period_start),
            current_period_end=_aware(row.current_period_end),
            cancel_at_period_end=row.cancel_at_period_end,
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
        )

    def _to_usage_record(self, row: "UsageRow") -> UsageRecord:
        return UsageRecord(
            user_id=row.user_id,
            date=row.date,
            recipes_parsed=row.recipes_parsed,
            customizations_used=row.customizations_used,
        )

    def _to_saved_recipe(self, row: "RecipeRow") -> SavedRecipe:
        return SavedRecipe(
            id=row.id,
            user_id=row.user_id,
            title=row.title,
            image=row.image,
            ingredients=json_utils.ingredients_from_json(row.ingredients),
            steps=json_utils.steps_from_json(row.steps),
            servings=row.servings,
            prep_time=row.prep_time,
            cook_time=row.cook_time,
            total_time=row.total_time,
            created_at=_aware(row.created_at),
        )

    def ensure_user_exists(self, user_id: str, email: str) -> UserRecord:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if row is None:
                row = UserRow(
                    id=user_id,
                    email=(email or "").lower(),
                    is_admin=False,
                    created_at=utcnow(),
                )
                session.add(row)
                try:
                    session.commit()
                except IntegrityError:
                    # Another request created the user first.
                    session.rollback()
                    row = session.get(UserRow, user_id)
            return self._to_user_record(row)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user_record(row) if row else None

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.email == (email or "").lower())
            row = session.execute(stmt).scalars().first()
            return self._to_user_record(row) if row else None

    def is_user_admin(self, user_id: str) -> bool:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return bool(row and row.is_admin)

    def set_user_admin(self, target_user_id: str, is_admin: bool) -> bool:
        with self.Session() as session:
            row = session.get(UserRow, target_user_id)
            if not row:
                return False
            row.is_admin = is_admin
            session.commit()
            return True

    def list_admin_users(self) -> list[UserRecord]:
        with self.Session() as session:
            stmt = (
                select(UserRow)
                .where(UserRow.is_admin.is_(True))
                .order_by(UserRow.created_at.asc())
            )
            return [self._to_user_record(row) for row in session.execute(stmt).scalars()]

    def get_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        with self.Session() as session:
            stmt = select(SubscriptionRow).where(SubscriptionRow.user_id == user_id)
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_subscription_record(row) if row else None

    def get_subscription_by_stripe_id(
        self, stripe_subscription_id: str
    ) -> Optional[SubscriptionRecord]:
        with self.Session() as session:
            stmt = select(SubscriptionRow).where(
                SubscriptionRow.stripe_subscription_id == stripe_subscription_id
            )
            row = session.execute(stmt).scalars().first()
            return self._to_subscription_record(row) if row else None

    def upsert_subscription(self, user_id: str, **fields) -> SubscriptionRecord:
        fields = _check_subscription_fields(fields)
        now = utcnow()
        with self.Session() as session:
            stmt = select(SubscriptionRow).where(SubscriptionRow.user_id == user_id)
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                defaults = SubscriptionRecord(user_id=user_id, **fields)
                row = SubscriptionRow(
                    id=defaults.id,
                    user_id=user_id,
                    stripe_customer_id=defaults.stripe_customer_id,
                    stripe_subscription_id=defaults.stripe_subscription_id,
                    status=str(defaults.status),
                    plan=str(defaults.plan),
                    current_period_start=defaults.current_period_start,
                    current_period_end=defaults.current_period_end,
                    cancel_at_period_end=defaults.cancel_at_period_end,
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
            else:
                for key, value in fields.items():
                    setattr(row, key, value)
                row.updated_at = now
            session.commit()
            session.refresh(row)
            return self._to_subscription_record(row)

    def update_subscription_by_stripe_id(
        self, stripe_subscription_id: str, **fields
    ) -> Optional[SubscriptionRecord]:
        fields = _check_subscription_fields(fields)
        with self.Session() as session:
            stmt = select(SubscriptionRow).where(
                SubscriptionRow.stripe_subscription_id == stripe_subscription_id
            )
            row = session.execute(stmt).scalars().first()
            if not row:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.commit()
            session.refresh(row)
            return self._to_subscription_record(row)

    def grant_lifetime_access(
        self, user_id: str, granted_by: str
    ) -> SubscriptionRecord:
        return self.upsert_subscription(
            user_id,
            plan=Plan.LIFETIME.value,
            status=SubscriptionStatus.ACTIVE.value,
            current_period_start=utcnow(),
            current_period_end=None,
            cancel_at_period_end=False,
        )

    def get_daily_usage(
        self, user_id: str, usage_date: date | None = None
    ) -> UsageRecord:
        usage_date = usage_date or utc_today()
        with self.Session() as session:
            stmt = select(UsageRow).where(
                UsageRow.user_id == user_id, UsageRow.date == usage_date
            )
            row = session.execute(stmt).scalar_one_or_none()
            if not row:
                return UsageRecord(user_id=user_id, date=usage_date)
            return self._to_usage_record(row)

    def _add_usage(
        self,
        session: Session,
        user_id: str,
        usage_date: date,
        recipes_count: int,
        customizations_count: int,
    ) -> int:
        result = session.execute(
            update(UsageRow)
            .where(UsageRow.user_id == user_id, UsageRow.date == usage_date)
            .values(
                recipes_parsed=UsageRow.recipes_parsed + recipes_count,
                customizations_used=UsageRow.customizations_used
                + customizations_count,
                updated_at=utcnow(),
            )
        )
        return result.rowcount or 0

    def increment_usage(
        self,
        user_id: str,
        usage_date: date | None = None,
        recipes_count: int = 0,
        customizations_count: int = 0,
    ) -> UsageRecord:
        usage_date = usage_date or utc_today()
        with self.Session() as session:
            updated = self._add_usage(
                session, user_id, usage_date, recipes_count, customizations_count
            )
            if not updated:
                now = utcnow()
                session.add(
                    UsageRow(
                        id=uuid.uuid4().hex,
                        user_id=user_id,
                        date=usage_date,
                        recipes_parsed=recipes_count,
                        customizations_used=customizations_count,
                        created_at=now,
                        updated_at=now,
                    )
                )
                try:
                    session.commit()
                except IntegrityError:
                    # Lost the race to create today's row; add to the winner's.
                    session.rollback()
                    self._add_usage(
                        session,
                        user_id,
                        usage_date,
                        recipes_count,
                        customizations_count,
                    )
                    session.commit()
            else:
                session.commit()
        return self.get_daily_usage(user_id, usage_date)

    def list_recent_usage(self, user_id: str, limit: int = 7) -> list[UsageRecord]:
        with self.Session() as session:
            stmt = (
                select(UsageRow)
                .where(UsageRow.user_id == user_id)
                .order_by(UsageRow.date.desc())
                .limit(limit)
            )
            return [self._to_usage_record(row) for row in session.execute(stmt).scalars()]

    def save_recipe(self, user_id: str, recipe: ParsedRecipe) -> SavedRecipe:
        with self.Session() as session:
            row = RecipeRow(
                id=uuid.uuid4().hex,
                user_id=user_id,
                title=recipe.title,
                image=recipe.image,
                ingredients=json_utils.ingredients_to_json(recipe),
                steps=json_utils.steps_to_json(recipe),
                servings=recipe.servings,
                prep_time=recipe.prep_time,
                cook_time=recipe.cook_time,
                total_time=recipe.total_time,
                created_at=utcnow(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_saved_recipe(row)

    def list_recipes(self, user_id: str) -> list[SavedRecipe]:
        with self.Session() as session:
            stmt = (
                select(RecipeRow)
                .where(RecipeRow.user_id == user_id)
                .order_by(RecipeRow.created_at.desc())
            )
            return [self._to_saved_recipe(row) for row in session.execute(stmt).scalars()]

    def get_recipe(self, recipe_id: str) -> Optional[SavedRecipe]:
        with self.Session() as session:
            row = session.get(RecipeRow, recipe_id)
            return self._to_saved_recipe(row) if row else None

    def delete_recipe(self, recipe_id: str, user_id: str) -> bool:
        with self.Session() as session:
            row = session.get(RecipeRow, recipe_id)
            if not row or row.user_id != user_id:
                return False
            session.delete(row)
            session.commit()
            return True


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, index=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class RecipeRow(Base):
    __tablename__ = "recipes"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    image = Column(String, nullable=True)
    ingredients = Column(JSON, nullable=False)
    steps = Column(JSON, nullable=False)
    servings = Column(Integer, nullable=True)
    prep_time = Column(String, nullable=True)
    cook_time = Column(String, nullable=True)
    total_time = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class SubscriptionRow(Base):
    __tablename__ = "subscriptions"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, unique=True)
    stripe_customer_id = Column(String, nullable=True)
    stripe_subscription_id = Column(String, nullable=True, index=True)
    status = Column(String, nullable=False)
    plan = Column(String, nullable=False)
    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    cancel_at_period_end = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class UsageRow(Base):
    __tablename__ = "usage_tracking"
    __table_args__ = (UniqueConstraint("user_id", "date"),)

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    recipes_parsed = Column(Integer, nullable=False, default=0)
    customizations_used = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
