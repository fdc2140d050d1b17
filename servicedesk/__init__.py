"""
Service Desk Engine

Ticket lifecycle core with:
- Policy-guarded status / priority / group / resolver changes
- Priority-driven SLA windows that pause and restart
- Append-only activity and comment feed
- Task plans for requests
"""

__version__ = "0.1.0"
