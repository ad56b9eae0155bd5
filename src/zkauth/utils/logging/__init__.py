"""JSONL logging building blocks.

- iso_formatter: line format (UTC timestamp first, credentials masked)
- logger_setup: owner-only log files and file-backed loggers
- logging_helpers: audit event serialization and identifier digests

Import from the submodules; the telemetry package imports these at load time.
"""

__all__: list[str] = []
