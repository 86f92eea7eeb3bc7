# launchkit/models.py
from sqlalchemy import (
    JSON, Boolean, DateTime, Enum, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from datetime import datetime
from typing import Any, Dict, List, Optional
import enum
import uuid


class Base(DeclarativeBase):
    pass


def _new_id() -> str:
    return uuid.uuid4().hex

# =======================================
# ENUMS
# =======================================
class ProjectStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    FUNDING = "FUNDING"
    READY = "READY"
    LAUNCHED = "LAUNCHED"


class EventType(str, enum.Enum):
    DISPERSE_SOL = "DISPERSE_SOL"
    TOKEN_BUY = "TOKEN_BUY"
    TOKEN_LAUNCH = "TOKEN_LAUNCH"


# ──────────────────────────────────────────────────────────────
# 1. Wallets (secret material stays encrypted at rest)
# ──────────────────────────────────────────────────────────────
class Wallet(Base):
    __tablename__ = "wallets"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, index=True)
    address: Mapped[str] = mapped_column(String, unique=True, index=True)
    label: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    encrypted_secret: Mapped[str] = mapped_column(Text)
    is_creator: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    assignments: Mapped[List["ProjectWallet"]] = relationship("ProjectWallet", back_populates="wallet")


# ──────────────────────────────────────────────────────────────
# 2. Projects (one launch attempt each)
# ──────────────────────────────────────────────────────────────
class Project(Base):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, index=True)

    # Token information
    name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    symbol: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    metadata_uri: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    # Bundle configuration
    buy_amount_per_wallet: Mapped[float] = mapped_column(Float, default=0.0)
    bundle_count: Mapped[int] = mapped_column(Integer, default=0)

    # Lifecycle
    status: Mapped[ProjectStatus] = mapped_column(Enum(ProjectStatus), default=ProjectStatus.DRAFT)
    mint_address: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)
    pending_mint_address: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    assignments: Mapped[List["ProjectWallet"]] = relationship(
        "ProjectWallet", back_populates="project", cascade="all, delete-orphan", order_by="ProjectWallet.id"
    )

    __table_args__ = (
        Index('ix_projects_user_status', "user_id", "status"),
    )


class ProjectWallet(Base):
    """Funding assignment: which wallet buys for which project, and whether it holds the SOL yet"""
    __tablename__ = "project_wallets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[str] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), index=True)
    wallet_id: Mapped[str] = mapped_column(ForeignKey("wallets.id", ondelete="CASCADE"), index=True)
    buy_amount: Mapped[float] = mapped_column(Float, default=0.0)
    is_funded: Mapped[bool] = mapped_column(Boolean, default=False)

    project: Mapped["Project"] = relationship("Project", back_populates="assignments")
    wallet: Mapped["Wallet"] = relationship("Wallet", back_populates="assignments")

    __table_args__ = (
        UniqueConstraint("project_id", "wallet_id", name="uq_project_wallet"),
    )


# ──────────────────────────────────────────────────────────────
# 3. Audit trail
# ──────────────────────────────────────────────────────────────
class EventLog(Base):
    __tablename__ = "event_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[EventType] = mapped_column(Enum(EventType), index=True)
    mint: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
