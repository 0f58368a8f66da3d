# homewatch/schemas.py
from __future__ import annotations
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

SENTINEL_TITLE = ""


class DetectionEvent(BaseModel):
    """Payload on the detections stream, one per classified media file."""
    event: str = "detection.classified"
    label: str
    file_name: str
    file_create_date: datetime   # capture time, ISO8601 (UTC if naive)
    detection_result: str = ""
    name: str = ""


class ActivityPoint(BaseModel):
    h: str      # bucket key: "HH" or "DD-HH"
    a: int      # count


class ActivityChart(BaseModel):
    data: List[ActivityPoint] = Field(default_factory=list)
    xkey: str = "h"
    ykeys: List[str] = Field(default_factory=lambda: ["a"])
    labels: List[str] = Field(default_factory=lambda: ["Activity"])


class LabelCount(BaseModel):
    label: str
    value: int = Field(ge=0)


class EncodedMedia(BaseModel):
    title: str
    image: str  # data URI

    @classmethod
    def sentinel(cls, mime_type: str = "image/png") -> "EncodedMedia":
        return cls(title=SENTINEL_TITLE, image=f"data:{mime_type};base64,")

    @property
    def is_sentinel(self) -> bool:
        # a zero-byte file encodes to the same image but keeps its title
        return self.title == SENTINEL_TITLE and self.image.endswith(";base64,")


class LabelImagesRequest(BaseModel):
    label: str
    max_age_s: int = Field(0, ge=0)  # 0 = whole folder


class DailyIntelligence(BaseModel):
    activity: ActivityChart
    donut: List[LabelCount]


class WeeklyIntelligence(BaseModel):
    activityWeek: ActivityChart


class LatestImage(BaseModel):
    data: str


class LabelImages(BaseModel):
    images: List[EncodedMedia] = Field(default_factory=list)


class VoiceIntelligence(BaseModel):
    message: str = ""
