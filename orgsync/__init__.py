"""
Orgsync accounts service.

WebSocket backend for an organizational account hierarchy, with permission
checks, account lifecycle management and reconciliation against the legacy
membership API.
"""

__version__ = "0.1.0"
