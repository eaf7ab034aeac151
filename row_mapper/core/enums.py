"""Enumerations shared across the query and persistence layers."""

from __future__ import annotations

from enum import Enum


class SortDirection(Enum):
    """Sort direction for an ``order`` entry."""

    ASC = "ASC"
    DESC = "DESC"


class Aggregate(Enum):
    """Aggregate kinds a backend can compute."""

    COUNT = "count"


class LifecycleEvent(Enum):
    """Hook points fired around entity writes."""

    BEFORE_SAVE = "before_save"
    AFTER_SAVE = "after_save"
    BEFORE_DELETE = "before_delete"
    AFTER_DELETE = "after_delete"
