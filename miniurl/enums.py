"""Shared enums for miniurl.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "InsertStatus"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class InsertStatus(StrEnum):
    """Outcome of a single short link insert attempt."""

    INSERTED = "inserted"
    COLLISION = "collision"
    FAILURE = "failure"
