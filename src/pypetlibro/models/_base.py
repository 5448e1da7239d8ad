"""Base model for PetLibro API responses.

Every response model inherits from :class:`PetlibroBaseModel` which
provides:

* A ``model_validator(mode="before")`` that strips sentinel values
  (``None``, ``""``, NaN) so the field default is used.
* A ``raw`` dict that captures the original payload.

The vendor is inconsistent about field names across firmware and
endpoint generations, so models declare ``AliasChoices`` per field
rather than relying on a single alias generator.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

_SENTINELS = frozenset({"", "NaN", "nan", "null"})


class PetlibroBaseModel(BaseModel):
    """Base for PetLibro API response models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original API response dict."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Strip sentinel values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        cleaned = PetlibroBaseModel._clean_dict(values)
        # Keep an explicitly passed raw= (kwargs construction); otherwise
        # stash the API dict.
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
