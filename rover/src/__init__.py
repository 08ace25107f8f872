"""
Edge client package for Renogy Rover solar charge controllers.

Polls the controller over an RS232/RS485 serial link using its
Modbus-RTU-like register protocol, corrects the device's daily statistics
to a local-midnight reset, and writes every snapshot to the configured
sinks (CSV, SQLite, PostgreSQL) plus a JSON state file.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-101)

TODO:
- None
"""
