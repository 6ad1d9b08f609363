"""
Backup Snapshot Model

A Snapshot is the full logical dump of the record store taken right
before encryption. Records are plain JSON objects and pass through
unchanged; the snapshot never interprets them.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SNAPSHOT_VERSION = "1.0"


class SnapshotData(BaseModel):
    model_config = ConfigDict(frozen=True)

    invoices: list[dict[str, Any]] = Field(default_factory=list)
    clients: list[dict[str, Any]] = Field(default_factory=list)
    logs: list[dict[str, Any]] = Field(default_factory=list)
    settings: list[dict[str, Any]] = Field(default_factory=list)


class Snapshot(BaseModel):
    """
    {timestamp, version, data: {invoices, clients, logs, settings}}

    Immutable once assembled. Field order is the serialized key order.
    """
    model_config = ConfigDict(frozen=True)

    timestamp: str = Field(..., description="ISO-8601 UTC, when assembled")
    version: str = SNAPSHOT_VERSION
    data: SnapshotData = Field(default_factory=SnapshotData)

    @property
    def record_counts(self) -> dict[str, int]:
        return {
            "invoices": len(self.data.invoices),
            "clients": len(self.data.clients),
            "logs": len(self.data.logs),
            "settings": len(self.data.settings),
        }
