from __future__ import annotations

from pydantic import BaseModel, StrictBool


class RandomModeUpdate(BaseModel):
    """
    Body for toggling random-price mode.

    enabled:
      must be a JSON boolean; strings like "true" are rejected
    """

    enabled: StrictBool


class RandomModeStatus(BaseModel):
    useRandomPrices: bool
