"""
Boundary Payload Models
=======================

Pydantic models used when core objects cross the process boundary
(FastAPI responses, persistence sidecars).

Frames are raw bytes internally; at the boundary the image travels as
base64-encoded JPEG.

Output Contract (frame):
    {
        "category": "bridge",
        "label": "Bridge",
        "timestamp": 1760870000.123,
        "size": 84211,
        "image": "/9j/4AAQSkZJRg..."
    }
"""

import base64
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, NonNegativeInt

from bridgewatch.capture.frame import Frame
from bridgewatch.models.view import ViewCategory


class FramePayload(BaseModel):
    """
    A frame as exposed to callers outside the core.

    Attributes:
        category: View category of the frame
        label: User-facing name of the view
        timestamp: UNIX capture time
        size: JPEG size in bytes
        image: Base64-encoded JPEG (omitted when include_image is False)
    """

    category: Optional[ViewCategory] = Field(default=None)
    label: Optional[str] = Field(default=None)
    timestamp: float = Field(..., description="UNIX capture time")
    size: int = Field(..., ge=0)
    image: Optional[str] = Field(default=None, description="Base64 JPEG")

    @classmethod
    def from_frame(cls, frame: Frame, include_image: bool = True) -> "FramePayload":
        return cls(
            category=frame.category,
            label=frame.category.label if frame.category else None,
            timestamp=frame.timestamp,
            size=frame.size,
            image=base64.b64encode(frame.image).decode("ascii") if include_image else None,
        )


class FrameSetPayload(BaseModel):
    """A list of frames plus whether any data was available."""

    frames: List[FramePayload] = Field(default_factory=list)
    has_data: bool = Field(default=False)
    total_in_buffer: int = Field(default=0, ge=0)


class PreservedFrameRecord(BaseModel):
    """
    JSON sidecar describing one persisted preserved frame.

    Attributes:
        category: View category of the stored frame
        timestamp: UNIX capture time
        image_file: File name of the JPEG next to the sidecar
    """

    category: ViewCategory
    timestamp: float = Field(..., gt=0)
    image_file: str = Field(..., min_length=1)


class DetectionReadingRequest(BaseModel):
    """
    Body of POST /trend/readings.

    Attributes:
        counts: Vehicles per direction (null when the detector was unavailable)
        timestamp: UNIX time of the reading (defaults to receipt time)
    """

    counts: Optional[Dict[str, NonNegativeInt]] = Field(default=None)
    timestamp: Optional[float] = Field(default=None, gt=0)
