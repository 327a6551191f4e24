"""SQLAlchemy models for DatabaseSessionService."""

from sqlalchemy import JSON, Column, Float, ForeignKeyConstraint, Integer, String
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class StorageAppState(Base):
    """App scoped state, shared by every session of an app."""

    __tablename__ = "app_states"

    app_name = Column(String(128), primary_key=True)

    state = Column(JSON, nullable=False, default=dict)
    update_time = Column(Float, nullable=False)


class StorageUserState(Base):
    """User scoped state, shared by every session of a user within an app."""

    __tablename__ = "user_states"

    # Composite primary key
    app_name = Column(String(128), primary_key=True)
    user_id = Column(String(128), primary_key=True)

    state = Column(JSON, nullable=False, default=dict)
    update_time = Column(Float, nullable=False)


class StorageSession(Base):
    """Session table.

    Holds the session scoped state only. `update_time` is the optimistic-concurrency token checked on append.
    """

    __tablename__ = "sessions"

    # Composite primary key
    app_name = Column(String(128), primary_key=True)
    user_id = Column(String(128), primary_key=True)
    id = Column(String(128), primary_key=True)

    state = Column(JSON, nullable=False, default=dict)
    create_time = Column(Float, nullable=False)
    update_time = Column(Float, nullable=False)

    # Relationships
    storage_events = relationship(
        "StorageEvent",
        back_populates="storage_session",
        cascade="all, delete-orphan",
    )


class StorageEvent(Base):
    """Append-only event table.

    The full event is serialized into `event_data`; the remaining columns are kept for filtering and ordering.
    `sequence` is the position of the event in its session, in append order.
    """

    __tablename__ = "events"

    # Composite primary key
    id = Column(String(128), primary_key=True)
    app_name = Column(String(128), primary_key=True)
    user_id = Column(String(128), primary_key=True)
    session_id = Column(String(128), primary_key=True)

    invocation_id = Column(String(256), nullable=False)
    sequence = Column(Integer, nullable=False)
    timestamp = Column(Float, nullable=False)
    event_data = Column(JSON, nullable=False)

    # Foreign key to session
    __table_args__ = (
        ForeignKeyConstraint(
            ["app_name", "user_id", "session_id"],
            ["sessions.app_name", "sessions.user_id", "sessions.id"],
            ondelete="CASCADE",
        ),
    )

    # Relationships
    storage_session = relationship("StorageSession", back_populates="storage_events")
