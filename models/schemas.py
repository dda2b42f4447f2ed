"""Pydantic schemas for configuration input and round diagnostics."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class IssueKind(str, Enum):
    """Round-local problems surfaced as warnings."""

    device_failed = "device_failed"
    field_missing = "field_missing"
    field_unparseable = "field_unparseable"


class CollectorConfig(BaseModel):
    """Contents of the ``hs110.conf`` YAML file."""

    hosts: List[str] = Field(..., description="Device addresses, polled in this order.")

    @field_validator("hosts")
    @classmethod
    def _strip_hosts(cls, hosts: List[str]) -> List[str]:
        cleaned = [host.strip() for host in hosts]
        if any(not host for host in cleaned):
            raise ValueError("host entries must not be blank")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("host entries must be unique")
        return cleaned


class RoundIssue(BaseModel):
    """A device or field problem encountered while normalizing a round."""

    kind: IssueKind
    device: str
    field: Optional[str] = None
    reason: str
