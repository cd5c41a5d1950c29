"""
Clinic Kernel

Shared foundation for the clinic reporting core:
- Immutable domain records supplied by the record store
- Date ranges and decimal coercion helpers
- Injectable clock
- Structured logging and typed exceptions
- SQL record store adapter (read-only snapshots)
- Bounded calculation audit log
"""

__version__ = "0.1.0"
