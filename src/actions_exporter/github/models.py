"""Response models for the GitHub REST endpoints the pollers read."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Resource(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ActionsBilling(_Resource):
    """GitHub Actions billing summary for an organization or user.

    Attributes:
        total_minutes_used: Minutes consumed in the current billing cycle.
        total_paid_minutes_used: Minutes billed beyond the included quota.
        included_minutes: Minutes included in the plan.
        minutes_used_breakdown: Minutes per host type, e.g. ``UBUNTU``.
    """

    total_minutes_used: float = 0.0
    total_paid_minutes_used: float = 0.0
    included_minutes: float = 0.0
    minutes_used_breakdown: Dict[str, float] = Field(default_factory=dict)


class RunnerGroup(_Resource):
    """Self-hosted runner group of an organization."""

    id: int
    name: str
    visibility: Optional[str] = None
    default: Optional[bool] = None


class RunnerLabel(_Resource):
    id: Optional[int] = None
    name: str
    type: Optional[str] = None


class Runner(_Resource):
    """Self-hosted runner registration."""

    id: int
    name: str
    os: Optional[str] = None
    status: str = ""
    busy: bool = False
    labels: List[RunnerLabel] = Field(default_factory=list)
