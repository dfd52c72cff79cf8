"""Envelope: immutable business message carried in a delivery body."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Envelope(BaseModel):
    """Immutable wrapper for a unit of work on the wire.

    Wire keys are ``id``, ``type``, ``data`` and ``created``. Missing keys
    decode to empty values and are left for the handler to judge; only a
    key with the wrong JSON type makes the body unparseable.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default="", description="Logical message id")
    type: str = Field(default="", description="Business message type")
    data: Any = None
    created_at: datetime | None = Field(default=None, alias="created")
