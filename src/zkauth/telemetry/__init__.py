"""Telemetry: authentication audit log and system events.

Structure:
    audit/          Security audit logging (audit/auth.jsonl)
                    - AuthLogger: typed methods for session lifecycle events
    models/         Pydantic models for log event types
    system/         System operational logs (stderr + system.jsonl)
"""

__all__: list[str] = []
