"""
Camera Health Models
====================

Health state of the capture source itself (not of the traffic it shows).

States:
    OPERATIONAL:     Captures succeed and the camera keeps rotating
    STUCK_ON_ANGLE:  The same view has been reported for a long run
    DOWN:            Several consecutive capture failures

The state is derived from rolling counters every time it is read; it is
never stored on its own. See ``bridgewatch.health.monitor``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from bridgewatch.models.view import ViewCategory


class HealthStatus(str, Enum):
    """Discrete health states of the camera source."""

    OPERATIONAL = "OPERATIONAL"
    STUCK_ON_ANGLE = "STUCK_ON_ANGLE"
    DOWN = "DOWN"


@dataclass(frozen=True, slots=True)
class CameraHealthState:
    """
    Evaluated health state.

    Attributes:
        status: Discrete health state
        stuck_category: The view the camera is stuck on (STUCK_ON_ANGLE only)
    """

    status: HealthStatus
    stuck_category: Optional[ViewCategory] = None

    @classmethod
    def operational(cls) -> "CameraHealthState":
        return cls(HealthStatus.OPERATIONAL)

    @classmethod
    def down(cls) -> "CameraHealthState":
        return cls(HealthStatus.DOWN)

    @classmethod
    def stuck_on(cls, category: ViewCategory) -> "CameraHealthState":
        return cls(HealthStatus.STUCK_ON_ANGLE, category)

    def __str__(self) -> str:
        if self.stuck_category is not None:
            return f"{self.status.value}({self.stuck_category.value})"
        return self.status.value


class HealthReport(BaseModel):
    """
    User-facing health report.

    Attributes:
        state: Discrete health state
        stuck_category: View the camera is stuck on, if any
        advisory: Human-readable advisory computed at read time
        last_success_timestamp: UNIX time of the last successful classification
        consecutive_failures: Current run of capture failures
    """

    state: HealthStatus = Field(..., description="Camera health state")
    stuck_category: Optional[ViewCategory] = Field(
        default=None,
        description="View the camera keeps reporting (STUCK_ON_ANGLE only)",
    )
    advisory: str = Field(..., description="Advisory text for end users")
    last_success_timestamp: Optional[float] = Field(
        default=None,
        description="UNIX timestamp of the last successful capture",
    )
    consecutive_failures: int = Field(default=0, ge=0)
