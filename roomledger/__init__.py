"""Charge payment period reconciliation and frequency locking for student housing."""

__version__ = "0.1.0"
