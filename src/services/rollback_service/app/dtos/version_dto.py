# src/services/rollback_service/app/dtos/version_dto.py
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class PreferenceVersionRecord(BaseModel):
    version_number: int
    snapshot: Any
    change_description: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PreferenceVersionsResponse(BaseModel):
    owner_id: int
    entity_id: str
    versions: list[PreferenceVersionRecord]


class SaveVersionRequest(BaseModel):
    snapshot: dict[str, Any]
    change_description: Optional[str] = Field(default=None, max_length=255)


class FieldChange(BaseModel):
    old_value: Any = None
    new_value: Any = None
    items_added: list[Any] = Field(default_factory=list)
    items_removed: list[Any] = Field(default_factory=list)


class VersionDiff(BaseModel):
    from_version: int
    to_version: int
    added: dict[str, Any] = Field(default_factory=dict)
    removed: dict[str, Any] = Field(default_factory=dict)
    changed: dict[str, FieldChange] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)
