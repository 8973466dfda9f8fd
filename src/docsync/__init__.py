"""docsync: folder sync and hybrid retrieval for agent-attached documents."""

__version__ = "0.1.0"
