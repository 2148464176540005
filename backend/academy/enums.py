"""Closed value sets shared by models, schemas and use-cases."""
from __future__ import annotations

from enum import Enum


class AuditStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AuditType(str, Enum):
    FULL = "full"
    PARTIAL = "partial"  # by category / location
    SPOT = "spot"


class CountStatus(str, Enum):
    PENDING = "pending"
    COUNTED = "counted"
    VERIFIED = "verified"
    ADJUSTED = "adjusted"
    SKIPPED = "skipped"


class EquipmentCondition(str, Enum):
    NEW = "new"
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class EquipmentCategory(str, Enum):
    BALLS = "balls"
    CONES = "cones"
    GOALS = "goals"
    NETS = "nets"
    HURDLES = "hurdles"
    LADDERS = "ladders"
    MARKERS = "markers"
    BIBS = "bibs"
    POLES = "poles"
    MATS = "mats"
    WEIGHTS = "weights"
    BANDS = "bands"
    MEDICAL = "medical"
    ELECTRONICS = "electronics"
    STORAGE = "storage"
    OTHER = "other"


def values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]
