"""Membership lookups backing every video read/write. Create helpers are for seeding."""
from sqlalchemy.orm import Session

from app.models.conversation import Conversation, Member


def conversation_exists(db: Session, conversation_id: str) -> bool:
    return db.get(Conversation, conversation_id) is not None


def is_member(db: Session, conversation_id: str, username: str) -> bool:
    return (
        db.query(Member)
        .filter(Member.conversation_id == conversation_id, Member.username == username)
        .limit(1)
        .first()
        is not None
    )


def create_conversation(db: Session, conversation_id: str, name: str = "") -> Conversation:
    conv = Conversation(id=conversation_id, name=name)
    db.add(conv)
    db.commit()
    db.refresh(conv)
    return conv


def add_member(db: Session, conversation_id: str, username: str) -> Member:
    member = Member(conversation_id=conversation_id, username=username)
    db.add(member)
    db.commit()
    return member
