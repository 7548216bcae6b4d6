# cart_service/domain/policies.py
from enum import Enum


class MatchScope(str, Enum):
    """Which key update/remove match cart lines by."""

    SCOPED = "scoped"  # (userIdentity, productIdentity)
    GLOBAL = "global"  # productIdentity only


class MergeStrategy(str, Enum):
    """How add-to-cart keeps one line per (user, product)."""

    ATOMIC = "atomic"  # upsert + $inc against a unique index
    REDIS = "redis"  # find-then-write under a redis lock
    LOCAL = "local"  # find-then-write under an in-process lock


class SnapshotPolicy(str, Enum):
    """Whether the catalog is consulted when a line is first created."""

    OFF = "off"
    REJECT = "reject"
    LENIENT = "lenient"


def parse_policy(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValueError(f"Invalid {enum_cls.__name__} '{value}', expected one of: {allowed}")
