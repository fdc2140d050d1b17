from .memory import (
    InMemoryStore,
    TicketRepository,
    SlaRepository,
    ActivityRepository,
    UserRepository,
    GroupRepository,
)

__all__ = [
    "InMemoryStore",
    "TicketRepository", "SlaRepository", "ActivityRepository",
    "UserRepository", "GroupRepository",
]
