from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from state.models import MAX_RECOVERY_WINDOW_DAYS
from usecase.apply import ApplyOutput
from usecase.diff import DiffOutput
from usecase.entry import StageOutput
from usecase.reset import ResetOutput, UnstageOutput
from usecase.status import CheckOutput, StatusOutput
from usecase.tag import TagOutput
from usecase.transfer import FileStatusOutput, TransferOutput


# -------- Requests --------
class ServiceRequest(BaseModel):
    service: str = Field(description="Service tag: 'param' or 'secret'")


class StatusRequest(ServiceRequest):
    name: Optional[str] = None


class ItemRequest(ServiceRequest):
    name: str


class AddRequest(ItemRequest):
    value: str
    description: Optional[str] = None


class EditRequest(AddRequest):
    pass


class DeleteRequest(ItemRequest):
    force: bool = False
    recovery_window: int = MAX_RECOVERY_WINDOW_DAYS


class AddTagRequest(ItemRequest):
    tags: Dict[str, str]


class RemoveTagRequest(ItemRequest):
    keys: List[str]


class CancelTagRequest(ItemRequest):
    key: str


class DiffRequest(StatusRequest):
    pass


class ApplyRequest(StatusRequest):
    ignore_conflicts: bool = False


class ResetRequest(ServiceRequest):
    spec: Optional[str] = Field(default=None, description="Item name, 'name#version' or 'name:label'; all when omitted")


class FileStatusRequest(BaseModel):
    pass


class DrainRequest(BaseModel):
    service: Optional[str] = None
    passphrase: Optional[str] = None
    keep: bool = False
    force: bool = False
    merge: bool = False


class PersistRequest(BaseModel):
    service: Optional[str] = None
    passphrase: Optional[str] = None
    keep: bool = False
    merge: bool = False


# -------- Responses --------
class StatusEntryModel(BaseModel):
    name: str
    operation: str
    value: Optional[str] = None
    description: Optional[str] = None
    staged_at: datetime
    force_delete: bool = False
    recovery_window: Optional[int] = None


class TagChangeModel(BaseModel):
    name: str
    add: Dict[str, str] = Field(default_factory=dict)
    remove: List[str] = Field(default_factory=list)


class StatusTagModel(TagChangeModel):
    staged_at: datetime


class StatusResponse(BaseModel):
    service: str
    entries: List[StatusEntryModel]
    tags: List[StatusTagModel]

    @classmethod
    def of(cls, out: StatusOutput) -> "StatusResponse":
        return cls(
            service=out.service.value,
            entries=[StatusEntryModel(**vars(e)) for e in out.entries],
            tags=[StatusTagModel(**vars(t)) for t in out.tag_entries],
        )


class CheckStatusResponse(BaseModel):
    name: str
    has_entry: bool
    has_tags: bool

    @classmethod
    def of(cls, out: CheckOutput) -> "CheckStatusResponse":
        return cls(name=out.name, has_entry=out.has_entry, has_tags=out.has_tags)


class StageResponse(BaseModel):
    name: str
    action: str
    operation: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def of(cls, out: StageOutput) -> "StageResponse":
        return cls(
            name=out.name,
            action=out.action.value,
            operation=out.operation.value if out.operation is not None else None,
            message=out.message,
        )


class TagResponse(TagChangeModel):
    unstaged: bool = False

    @classmethod
    def of(cls, out: TagOutput) -> "TagResponse":
        return cls(name=out.name, add=out.add, remove=out.remove, unstaged=out.unstaged)


class UnstageResponse(BaseModel):
    name: str
    had_entry: bool
    had_tags: bool

    @classmethod
    def of(cls, out: UnstageOutput) -> "UnstageResponse":
        return cls(name=out.name, had_entry=out.had_entry, had_tags=out.had_tags)


class DiffEntryModel(BaseModel):
    name: str
    type: str
    operation: Optional[str] = None
    remote_value: Optional[str] = None
    remote_identifier: Optional[str] = None
    staged_value: Optional[str] = None
    description: Optional[str] = None
    warning: Optional[str] = None


class DiffResponse(BaseModel):
    service: str
    entries: List[DiffEntryModel]
    tags: List[TagChangeModel]

    @classmethod
    def of(cls, out: DiffOutput) -> "DiffResponse":
        return cls(
            service=out.service.value,
            entries=[
                DiffEntryModel(
                    name=e.name,
                    type=e.type.value,
                    operation=e.operation.value if e.operation is not None else None,
                    remote_value=e.remote_value,
                    remote_identifier=e.remote_identifier,
                    staged_value=e.staged_value,
                    description=e.description,
                    warning=e.warning,
                )
                for e in out.entries
            ],
            tags=[TagChangeModel(name=t.name, add=t.add, remove=t.remove) for t in out.tag_entries],
        )


class ApplyEntryModel(BaseModel):
    name: str
    status: str
    error: Optional[str] = None


class ApplyTagModel(TagChangeModel):
    error: Optional[str] = None


class ConflictModel(BaseModel):
    name: str
    reason: str


class ApplyResponse(BaseModel):
    service: str
    entry_results: List[ApplyEntryModel]
    tag_results: List[ApplyTagModel]
    conflicts: List[ConflictModel]
    entry_succeeded: int
    entry_failed: int
    tag_succeeded: int
    tag_failed: int
    cancelled: bool = False

    @classmethod
    def of(cls, out: ApplyOutput) -> "ApplyResponse":
        return cls(
            service=out.service.value,
            entry_results=[ApplyEntryModel(name=r.name, status=r.status.value, error=r.error) for r in out.entry_results],
            tag_results=[ApplyTagModel(name=r.name, add=r.add, remove=r.remove, error=r.error) for r in out.tag_results],
            conflicts=[ConflictModel(name=c.name, reason=c.reason) for c in out.conflicts],
            entry_succeeded=out.entry_succeeded,
            entry_failed=out.entry_failed,
            tag_succeeded=out.tag_succeeded,
            tag_failed=out.tag_failed,
            cancelled=out.cancelled,
        )


class ResetResponse(BaseModel):
    type: str
    service: str
    name: Optional[str] = None
    version_label: Optional[str] = None
    count: int = 0

    @classmethod
    def of(cls, out: ResetOutput) -> "ResetResponse":
        return cls(
            type=out.type.value,
            service=out.service.value,
            name=out.name,
            version_label=out.version_label,
            count=out.count,
        )


class FileStatusResponse(BaseModel):
    exists: bool
    encrypted: bool
    path: str

    @classmethod
    def of(cls, out: FileStatusOutput) -> "FileStatusResponse":
        return cls(exists=out.exists, encrypted=out.encrypted, path=out.path)


class TransferResponse(BaseModel):
    entry_count: int
    tag_count: int
    merged: bool = False

    @classmethod
    def of(cls, out: TransferOutput) -> "TransferResponse":
        return cls(entry_count=out.entry_count, tag_count=out.tag_count, merged=out.merged)
