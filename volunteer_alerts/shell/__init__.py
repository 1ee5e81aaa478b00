"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- Firestore request store and user directory (database)
- In-memory store and directory (local runs, tests)
- SMS (Twilio) and push webhook delivery (HTTP)
- Configuration loading (environment/files/Secret Manager)

Keep this layer thin and simple. All business logic should be in core.
"""

from volunteer_alerts.shell.firestore_client import FirestoreRequestStore, FirestoreVolunteerDirectory
from volunteer_alerts.shell.memory_store import InMemoryRequestStore, InMemoryVolunteerDirectory
from volunteer_alerts.shell.delivery import LogDelivery, build_delivery
from volunteer_alerts.shell.config_loader import load_config, Config

__all__ = [
    "FirestoreRequestStore",
    "FirestoreVolunteerDirectory",
    "InMemoryRequestStore",
    "InMemoryVolunteerDirectory",
    "LogDelivery",
    "build_delivery",
    "load_config",
    "Config",
]
