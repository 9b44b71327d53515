"""
micasa

Local-first storage core for tracking a home: projects, quotes, vendors,
appliances, maintenance, incidents and documents.
"""

__version__ = "0.1.0"

# Store exports
from micasa.core import Store, open_store

# Type exports
from micasa.core.types import EntityKind, ProjectStatus, IncidentStatus, IncidentSeverity

# Config exports
from micasa.config import Settings, configure_logging

# Exception exports
from micasa import exceptions

# Undo/redo
from micasa.journal import MutationJournal

__all__ = [
    # Store
    "Store",
    "open_store",
    # Types
    "EntityKind",
    "ProjectStatus",
    "IncidentStatus",
    "IncidentSeverity",
    # Config
    "Settings",
    "configure_logging",
    # Exceptions module (access as micasa.exceptions.ValidationError, etc.)
    "exceptions",
    # Journal
    "MutationJournal",
]
