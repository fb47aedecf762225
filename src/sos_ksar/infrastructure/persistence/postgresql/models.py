"""SQLAlchemy async models for the SOS Ksar PostgreSQL database.

Defines the identity tables (users, session, account) and the domain
tables (reports, inventory). All timestamps use UTC. Users, reports and
inventory use serial integer keys; sessions use ULID strings and accounts
use UUID strings.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

from sos_ksar.constants import (
    InventoryItem,
    ReportStatus,
    ReportType,
    UserRole,
)

BaseModel = declarative_base()


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


def _pg_enum(enum_cls, name: str) -> Enum:
    # Plain string values so rows carry "admin", not UserRole.ADMIN.
    return Enum(*[member.value for member in enum_cls], name=name)


user_role_enum = _pg_enum(UserRole, "user_role")
report_status_enum = _pg_enum(ReportStatus, "report_status")
report_type_enum = _pg_enum(ReportType, "report_type")
inventory_item_enum = _pg_enum(InventoryItem, "inventory_item")


class User(BaseModel):
    """Platform user. Role defaults to the least-privileged value."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    role = Column(user_role_enum, nullable=False, default=UserRole.CITIZEN.value)
    email_verified = Column(Boolean, nullable=False, default=False)
    image = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    sessions = relationship(
        "AuthSession", back_populates="user", cascade="all, delete-orphan"
    )
    accounts = relationship(
        "Account", back_populates="user", cascade="all, delete-orphan"
    )
    reports = relationship(
        "Report", back_populates="user", cascade="all, delete-orphan"
    )


class AuthSession(BaseModel):
    """Server-tracked login session.

    The id is the ULID carried as ``jti`` in the session token.
    """

    __tablename__ = "session"

    id = Column(String(26), primary_key=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token = Column(Text, nullable=False, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    user = relationship("User", back_populates="sessions")

    __table_args__ = (Index("idx_session_user_id", "user_id"),)


class Account(BaseModel):
    """Credential or OAuth link for a user.

    provider_id is "credential" for email/password accounts (password holds
    the argon2 hash) or the OAuth provider name, e.g. "google".
    """

    __tablename__ = "account"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    account_id = Column(String(255), nullable=False)
    provider_id = Column(String(50), nullable=False)
    password = Column(Text, nullable=True)
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    id_token = Column(Text, nullable=True)
    scope = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    user = relationship("User", back_populates="accounts")

    __table_args__ = (
        Index("uq_account_provider_account", "provider_id", "account_id", unique=True),
        Index("idx_account_user_id", "user_id"),
    )


class Report(BaseModel):
    """Citizen-submitted SOS report."""

    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type = Column(report_type_enum, nullable=False)
    status = Column(
        report_status_enum, nullable=False, default=ReportStatus.PENDING.value
    )
    location = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    user = relationship("User", back_populates="reports")

    __table_args__ = (
        Index("idx_reports_user_id", "user_id"),
        Index("idx_reports_created_at", "created_at"),
    )


class Inventory(BaseModel):
    """Relief supply stock at a distribution center."""

    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_name = Column(inventory_item_enum, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    center_location = Column(Text, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )
