from __future__ import annotations

from datetime import timedelta

import pytest
from botocore.exceptions import EndpointConnectionError

from state.errors import NotStagedError
from state.models import Entry, Service, TagEntry
from usecase.diff import DiffEntryType, DiffUseCase


def test_normal_update_shows_both_sides(fake_ssm, param_strategy, store):
    modified = fake_ssm.seed("/app", "old")
    store.stage_entry(Service.PARAM, "/app", Entry.update("new", base_modified_at=modified))
    out = DiffUseCase(param_strategy, store).execute()
    [e] = out.entries
    assert e.type is DiffEntryType.NORMAL
    assert (e.remote_value, e.remote_identifier, e.staged_value) == ("old", "#1", "new")


def test_create_of_missing_item(param_strategy, store):
    store.stage_entry(Service.PARAM, "/new", Entry.create("v"))
    [e] = DiffUseCase(param_strategy, store).execute().entries
    assert e.type is DiffEntryType.CREATE


def test_create_colliding_with_remote_is_auto_unstaged(fake_ssm, param_strategy, store):
    fake_ssm.seed("/new", "already")
    store.stage_entry(Service.PARAM, "/new", Entry.create("v"))
    [e] = DiffUseCase(param_strategy, store).execute().entries
    assert e.type is DiffEntryType.AUTO_UNSTAGED
    with pytest.raises(NotStagedError):
        store.get_entry(Service.PARAM, "/new")


@pytest.mark.parametrize("entry", [Entry.update("v"), Entry.delete()])
def test_change_to_missing_item_is_auto_unstaged(param_strategy, store, entry):
    store.stage_entry(Service.PARAM, "/gone", entry)
    [e] = DiffUseCase(param_strategy, store).execute().entries
    assert e.type is DiffEntryType.AUTO_UNSTAGED
    assert store.list_entries(Service.PARAM) == {}


def test_identical_value_is_a_warning_and_stays_staged(fake_ssm, param_strategy, store):
    fake_ssm.seed("/app", "same")
    store.stage_entry(Service.PARAM, "/app", Entry.update("same"))
    [e] = DiffUseCase(param_strategy, store).execute().entries
    assert e.type is DiffEntryType.WARNING
    assert "identical" in e.warning
    assert store.get_entry(Service.PARAM, "/app").value == "same"


def test_remote_modified_after_staging_is_a_warning(fake_ssm, param_strategy, store):
    modified = fake_ssm.seed("/app", "v1")
    store.stage_entry(Service.PARAM, "/app", Entry.update("mine", base_modified_at=modified - timedelta(hours=1)))
    [e] = DiffUseCase(param_strategy, store).execute().entries
    assert e.type is DiffEntryType.WARNING
    assert "modified remotely" in e.warning


def test_fetch_error_is_a_warning(fake_ssm, param_strategy, store):
    fake_ssm.fail_on["get_parameter"] = "ThrottlingException"
    store.stage_entry(Service.PARAM, "/app", Entry.update("v"))
    [e] = DiffUseCase(param_strategy, store).execute().entries
    assert e.type is DiffEntryType.WARNING
    assert "ThrottlingException" in e.warning


def test_connection_error_is_a_warning(fake_ssm, param_strategy, store):
    def unreachable(**kwargs):
        raise EndpointConnectionError(endpoint_url="https://ssm.us-east-1.amazonaws.com")

    fake_ssm.get_parameter = unreachable
    store.stage_entry(Service.PARAM, "/app", Entry.update("v"))
    [e] = DiffUseCase(param_strategy, store).execute().entries
    assert e.type is DiffEntryType.WARNING
    assert "Could not connect" in e.warning
    assert store.get_entry(Service.PARAM, "/app").value == "v"


def test_tags_listed_without_remote_comparison(param_strategy, store):
    store.stage_tag(Service.PARAM, "/b", TagEntry(remove={"z", "y"}))
    store.stage_tag(Service.PARAM, "/a", TagEntry(add={"k": "v"}))
    out = DiffUseCase(param_strategy, store).execute()
    assert [t.name for t in out.tag_entries] == ["/a", "/b"]
    assert out.tag_entries[1].remove == ["y", "z"]


def test_single_name_not_staged(param_strategy, store):
    [e] = DiffUseCase(param_strategy, store).execute("/app").entries
    assert e.type is DiffEntryType.WARNING
    assert e.warning == "not staged"
