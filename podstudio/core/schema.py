from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from podstudio.domain import Tier


class Adjustments(BaseModel):
    brightness: int = Field(100, ge=0, le=200)
    contrast: int = Field(100, ge=0, le=200)
    rotation: Literal[0, 90, 180, 270] = 0

    def is_identity(self) -> bool:
        return self.brightness == 100 and self.contrast == 100 and self.rotation == 0


class SyncRequest(BaseModel):
    sheet_url: str


class GenerateRequest(BaseModel):
    tier: Tier = Tier.STANDARD
    outputs_per_batch: int = Field(1, ge=1, le=10)


class OpenEditRequest(BaseModel):
    batch_id: str
    tier: Tier
    index: int = Field(0, ge=0)


class RegenerateRequest(BaseModel):
    instruction: str = ""


class CommitRequest(BaseModel):
    apply_to_all: bool = False
    adjustments: Adjustments | None = None


class GrantAccessRequest(BaseModel):
    api_key: str = Field(..., min_length=1)
