from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from common.config import configure_logging, load_settings, resolve_scope
from state.errors import StagingError
from state.file_store import FileStore
from state.models import DeleteOptions, Scope, Service
from state.resident_store import get_resident_store
from state.store import Store
from strategy import strategy_for
from strategy.base import FullStrategy
from usecase.apply import ApplyUseCase
from usecase.diff import DiffUseCase
from usecase.entry import AddUseCase, DeleteUseCase, EditUseCase
from usecase.reset import ResetUseCase, UnstageUseCase
from usecase.status import StatusUseCase
from usecase.tag import CancelTagUseCase, TagUseCase
from usecase.transfer import DrainUseCase, PersistUseCase, file_status

from .schemas import (
    AddRequest,
    AddTagRequest,
    ApplyRequest,
    ApplyResponse,
    CancelTagRequest,
    CheckStatusResponse,
    DeleteRequest,
    DiffRequest,
    DiffResponse,
    DrainRequest,
    EditRequest,
    FileStatusRequest,
    FileStatusResponse,
    ItemRequest,
    PersistRequest,
    RemoveTagRequest,
    ResetRequest,
    ResetResponse,
    StageResponse,
    StatusRequest,
    StatusResponse,
    TagResponse,
    TransferResponse,
    UnstageResponse,
)


_LOGGER = logging.getLogger(__name__)


class StagingApp:
    """
    Front-end boundary for one identity scope.

    Every method takes a request model of primitives and returns a response
    model; all staging goes through the scope's resident store. Strategies
    are built on first use unless injected.
    """

    def __init__(
        self,
        scope: Scope,
        *,
        store: Optional[Store] = None,
        strategies: Optional[Dict[Service, FullStrategy]] = None,
        home: Optional[os.PathLike[str] | str] = None,
        passphrase: Optional[str] = None,
    ) -> None:
        self.scope = scope
        self._store = store or get_resident_store(scope)
        self._strategies: Dict[Service, FullStrategy] = dict(strategies or {})
        self._home = home
        self._passphrase = passphrase

    def _strategy(self, service: str) -> FullStrategy:
        svc = Service.parse(service)
        if svc not in self._strategies:
            self._strategies[svc] = strategy_for(svc, region_name=self.scope.region)
        return self._strategies[svc]

    def _file_store(self, passphrase: Optional[str]) -> FileStore:
        return FileStore(self.scope, passphrase=passphrase or self._passphrase, home=self._home)

    # -------- Status --------
    def staging_status(self, req: StatusRequest) -> StatusResponse:
        return StatusResponse.of(StatusUseCase(self._store).execute(Service.parse(req.service), req.name))

    def staging_check_status(self, req: ItemRequest) -> CheckStatusResponse:
        return CheckStatusResponse.of(StatusUseCase(self._store).check(Service.parse(req.service), req.name))

    # -------- Entries --------
    def staging_add(self, req: AddRequest) -> StageResponse:
        uc = AddUseCase(self._strategy(req.service), self._store)
        return StageResponse.of(uc.execute(req.name, req.value, description=req.description))

    def staging_edit(self, req: EditRequest) -> StageResponse:
        uc = EditUseCase(self._strategy(req.service), self._store)
        return StageResponse.of(uc.execute(req.name, req.value, description=req.description))

    def staging_delete(self, req: DeleteRequest) -> StageResponse:
        uc = DeleteUseCase(self._strategy(req.service), self._store)
        opts = DeleteOptions(force=req.force, recovery_window=req.recovery_window)
        return StageResponse.of(uc.execute(req.name, options=opts))

    def staging_unstage(self, req: ItemRequest) -> UnstageResponse:
        return UnstageResponse.of(UnstageUseCase(self._store).execute(Service.parse(req.service), req.name))

    # -------- Tags --------
    def staging_add_tag(self, req: AddTagRequest) -> TagResponse:
        return TagResponse.of(TagUseCase(self._strategy(req.service), self._store).tag(req.name, req.tags))

    def staging_remove_tag(self, req: RemoveTagRequest) -> TagResponse:
        return TagResponse.of(TagUseCase(self._strategy(req.service), self._store).untag(req.name, req.keys))

    def staging_cancel_add_tag(self, req: CancelTagRequest) -> TagResponse:
        return TagResponse.of(CancelTagUseCase(self._store, Service.parse(req.service)).cancel_add(req.name, req.key))

    def staging_cancel_remove_tag(self, req: CancelTagRequest) -> TagResponse:
        uc = CancelTagUseCase(self._store, Service.parse(req.service))
        return TagResponse.of(uc.cancel_remove(req.name, req.key))

    # -------- Remote --------
    def staging_diff(self, req: DiffRequest) -> DiffResponse:
        return DiffResponse.of(DiffUseCase(self._strategy(req.service), self._store).execute(req.name))

    def staging_apply(self, req: ApplyRequest) -> ApplyResponse:
        uc = ApplyUseCase(self._strategy(req.service), self._store)
        return ApplyResponse.of(uc.execute(req.name, ignore_conflicts=req.ignore_conflicts))

    def staging_reset(self, req: ResetRequest) -> ResetResponse:
        return ResetResponse.of(ResetUseCase(self._strategy(req.service), self._store).execute(req.spec))

    # -------- File transfer --------
    def staging_file_status(self, req: FileStatusRequest) -> FileStatusResponse:
        return FileStatusResponse.of(file_status(self._file_store(None)))

    def staging_drain(self, req: DrainRequest) -> TransferResponse:
        uc = DrainUseCase(self._file_store(req.passphrase), self._store)
        svc = Service.parse(req.service) if req.service else None
        return TransferResponse.of(uc.execute(svc, keep=req.keep, force=req.force, merge=req.merge))

    def staging_persist(self, req: PersistRequest) -> TransferResponse:
        uc = PersistUseCase(self._store, self._file_store(req.passphrase))
        svc = Service.parse(req.service) if req.service else None
        return TransferResponse.of(uc.execute(svc, keep=req.keep, merge=req.merge))


ACTIONS: Dict[str, Tuple[Callable[..., BaseModel], Type[BaseModel]]] = {
    "status": (StagingApp.staging_status, StatusRequest),
    "check_status": (StagingApp.staging_check_status, ItemRequest),
    "add": (StagingApp.staging_add, AddRequest),
    "edit": (StagingApp.staging_edit, EditRequest),
    "delete": (StagingApp.staging_delete, DeleteRequest),
    "unstage": (StagingApp.staging_unstage, ItemRequest),
    "add_tag": (StagingApp.staging_add_tag, AddTagRequest),
    "remove_tag": (StagingApp.staging_remove_tag, RemoveTagRequest),
    "cancel_add_tag": (StagingApp.staging_cancel_add_tag, CancelTagRequest),
    "cancel_remove_tag": (StagingApp.staging_cancel_remove_tag, CancelTagRequest),
    "diff": (StagingApp.staging_diff, DiffRequest),
    "apply": (StagingApp.staging_apply, ApplyRequest),
    "reset": (StagingApp.staging_reset, ResetRequest),
    "file_status": (StagingApp.staging_file_status, FileStatusRequest),
    "drain": (StagingApp.staging_drain, DrainRequest),
    "persist": (StagingApp.staging_persist, PersistRequest),
}


def _error(kind: str, message: str) -> Dict[str, Any]:
    return {"ok": False, "error": {"kind": kind, "message": message}}


def handle(app: StagingApp, event: Dict[str, Any]) -> Dict[str, Any]:
    """Dispatch `{"action": ..., **fields}` to the app.

    Returns `{"ok": True, "result": {...}}`, or `{"ok": False, "error":
    {"kind", "message"}}` for request validation errors and staging errors.
    Anything else propagates.
    """
    action = event.get("action")
    if action not in ACTIONS:
        return _error("InvalidRequest", f"unknown action: {action!r}")
    method, request_cls = ACTIONS[action]
    fields = {k: v for k, v in event.items() if k != "action"}
    try:
        req = request_cls.model_validate(fields)
        resp = method(app, req)
    except ValidationError as ex:
        return _error("InvalidRequest", str(ex))
    except StagingError as ex:
        _LOGGER.info("%s failed: %s: %s", action, ex.kind, ex)
        return _error(ex.kind, str(ex))
    return {"ok": True, "result": resp.model_dump(mode="json")}


def create_app(*, sts: Optional[object] = None) -> StagingApp:
    """Build an app from the environment (logging, region, account, passphrase)."""
    settings = load_settings()
    configure_logging(settings.log_level)
    scope = resolve_scope(sts=sts, region_name=settings.region)
    return StagingApp(scope, home=settings.home, passphrase=settings.passphrase)


__all__ = ["StagingApp", "ACTIONS", "handle", "create_app"]
