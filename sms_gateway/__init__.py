"""
SMS gateway service.

Exposes a read-only view of the host's SMS store through a named-operation
channel, guarded by the host permission subsystem.
"""

__version__ = "1.0.0"
