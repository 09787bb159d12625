"""Base classes for domain layer.

Provides foundational abstractions for entities, value objects,
aggregates, and domain events following DDD patterns.
"""

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, TypeVar
from uuid import UUID, uuid4


# Process-wide ordering of recorded events. Events raised on different
# aggregates inside one unit of work are published in this order.
_event_sequence = itertools.count(1)


def utcnow() -> datetime:
    """Return the current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


# ============================================================================
# Value Object Base
# ============================================================================


@dataclass(frozen=True)
class ValueObject(ABC):
    """Base class for value objects.

    Value objects are immutable and compared by their attributes,
    not by identity. They have no lifecycle and are interchangeable
    when their values are equal.

    Example:
        @dataclass(frozen=True)
        class Money(ValueObject):
            amount: Decimal
            currency: str
    """

    pass


# ============================================================================
# Entity Base
# ============================================================================


T = TypeVar("T")


@dataclass(eq=False)
class Entity(ABC, Generic[T]):
    """Base class for entities.

    Entities have identity that persists across state changes.
    Two entities are equal if they have the same identity,
    regardless of their other attributes.

    Attributes:
        id: Unique identifier for this entity.
    """

    id: T

    def __eq__(self, other: object) -> bool:
        """Compare entities by identity.

        Args:
            other: Object to compare with.

        Returns:
            True if other is same type with same id.
        """
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        """Hash entity by identity.

        Returns:
            Hash of the entity id.
        """
        return hash(self.id)


# ============================================================================
# Aggregate Root Base
# ============================================================================


@dataclass(kw_only=True, eq=False)
class AggregateRoot(Entity[T], Generic[T]):
    """Base class for aggregate roots.

    Aggregate roots are the entry point to a cluster of domain objects.
    They ensure consistency of the aggregate and record domain events
    into an aggregate-scoped buffer. The buffer is drained exactly once
    by the unit of work after a successful commit, or discarded on
    rollback.

    Attributes:
        version: Persisted version, maintained by the store for
            optimistic concurrency control. Zero means never persisted.
        created_at: Timestamp when the aggregate was created.
        updated_at: Timestamp of last modification.
        created_by: Actor that created the aggregate.
        updated_by: Actor of the last modification.
    """

    aggregate_type: ClassVar[str] = ""

    version: int = field(default=0, compare=False)
    created_at: datetime = field(default_factory=utcnow, compare=False)
    updated_at: datetime | None = field(default=None, compare=False)
    created_by: str = field(default="system", compare=False)
    updated_by: str | None = field(default=None, compare=False)
    _events: list["DomainEvent"] = field(
        default_factory=list,
        init=False,
        repr=False,
        compare=False,
    )

    def _record_event(self, event: "DomainEvent") -> None:
        """Record a domain event.

        Events are collected and published after the unit of work commits.

        Args:
            event: Domain event to record.
        """
        self._events.append(event)

    @property
    def pending_events(self) -> list["DomainEvent"]:
        """Events recorded since the last drain (read-only copy)."""
        return list(self._events)

    def collect_events(self) -> list["DomainEvent"]:
        """Collect and clear recorded events.

        Returns:
            List of domain events that were recorded.
        """
        events = self._events.copy()
        self._events.clear()
        return events

    def clear_events(self) -> None:
        """Discard recorded events without publishing them."""
        self._events.clear()

    def touch(self, actor: str | None = None) -> None:
        """Stamp the modification time and, optionally, the actor.

        Args:
            actor: Who performed the modification.
        """
        self.updated_at = utcnow()
        if actor:
            self.updated_by = actor


# ============================================================================
# Domain Event Base
# ============================================================================


@dataclass(frozen=True)
class DomainEvent(ABC):
    """Base class for domain events.

    Domain events represent something significant that happened
    in the domain. They are immutable and carry enough denormalized
    data for a consumer to act without re-querying the store.

    Attributes:
        event_id: Unique identifier for this event instance.
        event_type: String identifier for the event type (set by subclass).
        occurred_at: Timestamp when the event occurred.
        aggregate_id: ID of the aggregate that emitted this event.
        aggregate_type: Type name of the aggregate.
        actor: Who triggered the change.
        sequence: Monotonic raise order within the process.
    """

    event_type: ClassVar[str]

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=utcnow)
    aggregate_id: str = field(default="")
    aggregate_type: str = field(default="")
    actor: str = field(default="system")
    sequence: int = field(default_factory=lambda: next(_event_sequence), compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for serialization.

        Returns:
            Dictionary representation of the event.
        """
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type,
            "occurred_at": self.occurred_at.isoformat(),
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "actor": self.actor,
            "payload": self._payload(),
        }

    @abstractmethod
    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload data.

        Returns:
            Dictionary with event-specific data.
        """
        pass
