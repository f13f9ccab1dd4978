"""
Docflow Kernel - document lifecycle core

Versioned, lockable business documents with:
- Append-only version history
- Irreversible-until-unlocked payload locks
- Role-gated, topology-checked approval workflow
- Injected persistence (in-memory or SQLAlchemy)
"""

__version__ = "0.1.0"
