"""Conversation and membership rows. Managed elsewhere; read here for access checks."""
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, ForeignKey
from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class Member(Base):
    __tablename__ = "members"

    conversation_id = Column(String(64), ForeignKey("conversations.id"), primary_key=True)
    username = Column(String(100), primary_key=True)
    joined_at = Column(DateTime, nullable=False, default=_utcnow)
