"""
Core data layer for the review engine.

- schema: Survey / Response / Answer records and the approval status enum
- protocols: contract for the external data source
- storage: the in-memory snapshot store and a file-backed data source
- events: append-only audit log of approval activity
"""
