from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from common.cancel import raise_if_cancelled
from state.errors import ResourceNotFoundError
from state.models import DeleteOptions, Operation, State
from state.store import Store
from strategy.base import DeleteStrategy, EditStrategy

from .lookup import fetch_remote, staged_entry
from .transition import EntryAction, EntryDecision, decide_add, decide_delete, decide_edit


_LOGGER = logging.getLogger(__name__)


@dataclass
class StageOutput:
    name: str
    action: EntryAction
    operation: Optional[Operation] = None
    message: Optional[str] = None


def _carry_out(store: Store, strategy: EditStrategy | DeleteStrategy, name: str, decision: EntryDecision) -> StageOutput:
    svc = strategy.service
    if decision.action is EntryAction.STAGE:
        entry = decision.entry
        assert entry is not None

        def stage(state: State) -> None:
            state.entries[svc][name] = entry.model_copy(deep=True)
            if decision.drop_tags:
                state.tags[svc].pop(name, None)

        store.update(stage)
        return StageOutput(name=name, action=decision.action, operation=entry.operation, message=decision.reason)
    if decision.action is EntryAction.UNSTAGE:

        def unstage(state: State) -> None:
            state.entries[svc].pop(name, None)
            if decision.drop_tags:
                state.tags[svc].pop(name, None)

        store.update(unstage)
        _LOGGER.info("%s %s: %s", svc.value, name, decision.reason)
        return StageOutput(name=name, action=decision.action, message=decision.reason)
    if decision.action is EntryAction.SKIP:
        return StageOutput(name=name, action=decision.action, message=decision.reason)
    raise ValueError(f"unknown action: {decision.action!r}")


class AddUseCase:
    """Stage creation of a new item."""

    def __init__(self, strategy: EditStrategy, store: Store) -> None:
        self._strategy = strategy
        self._store = store

    def draft(self, name: str) -> Optional[str]:
        """Value of a staged create, if any (for re-opening an add form)."""
        name = self._strategy.parse_name(name)
        entry = staged_entry(self._store, self._strategy.service, name)
        if entry is not None and entry.operation is Operation.CREATE:
            return entry.value
        return None

    def execute(
        self,
        name: str,
        value: str,
        *,
        description: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> StageOutput:
        svc = self._strategy.service
        name = self._strategy.parse_name(name)
        staged = staged_entry(self._store, svc, name)
        remote_exists = False
        if staged is None:
            remote_exists = fetch_remote(self._strategy, name) is not None
        decision = decide_add(svc, name, staged, remote_exists=remote_exists, value=value, description=description)
        raise_if_cancelled(cancel, "add")
        return _carry_out(self._store, self._strategy, name, decision)


class EditUseCase:
    """Stage a new value for an existing (or staged-for-create) item."""

    def __init__(self, strategy: EditStrategy, store: Store) -> None:
        self._strategy = strategy
        self._store = store

    def baseline(self, name: str) -> str:
        """Value an editor should start from: the staged value or the remote one."""
        svc = self._strategy.service
        name = self._strategy.parse_name(name)
        staged = staged_entry(self._store, svc, name)
        if staged is not None and staged.value is not None:
            return staged.value
        return self._strategy.fetch_current_value(name).value

    def execute(
        self,
        name: str,
        value: str,
        *,
        description: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> StageOutput:
        svc = self._strategy.service
        name = self._strategy.parse_name(name)
        staged = staged_entry(self._store, svc, name)
        remote = None
        if staged is None or staged.operation is not Operation.CREATE:
            remote = fetch_remote(self._strategy, name)
        decision = decide_edit(svc, name, staged, remote=remote, value=value, description=description)
        raise_if_cancelled(cancel, "edit")
        return _carry_out(self._store, self._strategy, name, decision)


class DeleteUseCase:
    """Stage deletion of an item (or discard a staged create)."""

    def __init__(self, strategy: DeleteStrategy, store: Store) -> None:
        self._strategy = strategy
        self._store = store

    def execute(
        self,
        name: str,
        *,
        options: Optional[DeleteOptions] = None,
        cancel: Optional[threading.Event] = None,
    ) -> StageOutput:
        svc = self._strategy.service
        name = self._strategy.parse_name(name)
        opts = self._strategy.validate_delete_options(options)
        staged = staged_entry(self._store, svc, name)

        remote_exists = False
        last_modified = None
        if staged is None or staged.operation is not Operation.CREATE:
            try:
                last_modified = self._strategy.fetch_last_modified(name)
                remote_exists = True
            except ResourceNotFoundError:
                remote_exists = False

        decision = decide_delete(
            svc,
            name,
            staged,
            remote_exists=remote_exists,
            last_modified=last_modified,
            options=opts,
        )
        raise_if_cancelled(cancel, "delete")
        return _carry_out(self._store, self._strategy, name, decision)


__all__ = ["StageOutput", "AddUseCase", "EditUseCase", "DeleteUseCase"]
