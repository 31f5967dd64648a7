from enum import Enum


class UserRoleEnum(str, Enum):
    admin = "admin"
    analyst = "analyst"
    viewer = "viewer"


class GenreSourceEnum(str, Enum):
    heuristic = "heuristic"
    search = "search"
    manual = "manual"
    unset = "unset"


class ConfidenceEnum(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


class ClassificationRunStatusEnum(str, Enum):
    pending = "pending"
    running = "running"
    success = "success"
    failed = "failed"


class RiskModeEnum(str, Enum):
    manual = "manual"
    hybrid = "hybrid"
    auto = "auto"


class SwipeActionEnum(str, Enum):
    left = "left"
    right = "right"
    maybe = "maybe"
