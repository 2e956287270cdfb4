from __future__ import annotations

import pytest

from state.errors import NotStagedError
from state.models import Entry, Operation, Service, TagEntry
from usecase.reset import ResetResultType, ResetUseCase, UnstageUseCase


def test_unstage_removes_entry_and_tags(store):
    store.stage_entry(Service.PARAM, "/a", Entry.create("v"))
    store.stage_tag(Service.PARAM, "/a", TagEntry(add={"k": "v"}))
    out = UnstageUseCase(store).execute(Service.PARAM, "/a")
    assert out.had_entry and out.had_tags
    assert store.is_empty()


def test_unstage_twice_is_a_noop(store):
    uc = UnstageUseCase(store)
    first = uc.execute(Service.PARAM, "/nothing")
    second = uc.execute(Service.PARAM, "/nothing")
    assert first == second
    assert not first.had_entry and not first.had_tags


def test_reset_service_leaves_other_service_intact(param_strategy, store):
    store.stage_entry(Service.PARAM, "/p", Entry.create("1"))
    store.stage_entry(Service.SECRET, "s", Entry.create("2"))

    out = ResetUseCase(param_strategy, store).execute()
    assert out.type is ResetResultType.UNSTAGED_ALL
    assert out.count == 1
    assert store.list_entries(Service.PARAM) == {}
    assert store.get_entry(Service.SECRET, "s").value == "2"

    again = ResetUseCase(param_strategy, store).execute()
    assert again.type is ResetResultType.NOTHING_STAGED


def test_reset_single_item(param_strategy, store):
    store.stage_entry(Service.PARAM, "/p", Entry.create("1"))
    uc = ResetUseCase(param_strategy, store)
    assert uc.execute("/p").type is ResetResultType.UNSTAGED
    assert uc.execute("/p").type is ResetResultType.NOT_STAGED
    with pytest.raises(NotStagedError):
        store.get_entry(Service.PARAM, "/p")


def test_reset_with_version_restores_value(fake_ssm, param_strategy, store):
    fake_ssm.seed("/app", "v1")
    latest = fake_ssm.seed("/app", "v2")
    out = ResetUseCase(param_strategy, store).execute("/app#1")
    assert out.type is ResetResultType.RESTORED
    assert out.version_label == "#1"
    entry = store.get_entry(Service.PARAM, "/app")
    assert entry.operation is Operation.UPDATE
    assert entry.value == "v1"
    assert entry.base_modified_at == latest
