"""Core runtime pieces: logging, settings, locking, command execution, orchestration."""
