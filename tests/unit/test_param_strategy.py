from __future__ import annotations

import pytest
from botocore.exceptions import NoCredentialsError

from state.errors import InvalidNameError, RemoteOperationFailedError, ResourceNotFoundError
from state.models import Entry, TagEntry


def test_parse_name_rejects_version_specifiers(param_strategy):
    assert param_strategy.parse_name("/app/config") == "/app/config"
    with pytest.raises(InvalidNameError):
        param_strategy.parse_name("/app/config#3")
    with pytest.raises(InvalidNameError):
        param_strategy.parse_name("has space")
    with pytest.raises(InvalidNameError):
        param_strategy.parse_name("")


def test_parse_spec_versions(param_strategy):
    spec = param_strategy.parse_spec("/app/config#2")
    assert spec.name == "/app/config" and spec.version == "2"
    with pytest.raises(InvalidNameError):
        param_strategy.parse_spec("/app/config#abc")


def test_fetch_current(fake_ssm, param_strategy):
    fake_ssm.seed("/app/config", "v1")
    modified = fake_ssm.seed("/app/config", "v2")
    cur = param_strategy.fetch_current("/app/config")
    assert cur.value == "v2"
    assert cur.identifier == "#2"
    assert cur.last_modified == modified
    assert cur.arn.endswith("parameter/app/config")


def test_fetch_missing_raises_not_found(param_strategy):
    with pytest.raises(ResourceNotFoundError):
        param_strategy.fetch_current("/nope")


def test_fetch_other_error_is_remote_failure(fake_ssm, param_strategy):
    fake_ssm.fail_on["get_parameter"] = "AccessDeniedException"
    with pytest.raises(RemoteOperationFailedError):
        param_strategy.fetch_current("/app")


def test_transport_errors_are_remote_failures(fake_ssm, param_strategy):
    def no_credentials(**kwargs):
        raise NoCredentialsError()

    fake_ssm.get_parameter = no_credentials
    fake_ssm.put_parameter = no_credentials
    with pytest.raises(RemoteOperationFailedError):
        param_strategy.fetch_current("/app")
    with pytest.raises(RemoteOperationFailedError):
        param_strategy.apply("/app", Entry.create("v"))
    with pytest.raises(RemoteOperationFailedError):
        param_strategy.apply("/app", Entry.update("v"))


def test_apply_create_update_delete(fake_ssm, param_strategy):
    assert param_strategy.apply("/new", Entry.create("v", description="d")).operation == "created"
    assert fake_ssm.params["/new"][-1]["Type"] == "String"

    fake_ssm.seed("/secure", "old", type="SecureString")
    res = param_strategy.apply("/secure", Entry.update("new"))
    assert res.operation == "updated"
    latest = fake_ssm.params["/secure"][-1]
    assert latest["Value"] == "new"
    assert latest["Type"] == "SecureString"

    assert param_strategy.apply("/secure", Entry.delete()).operation == "deleted"
    assert "/secure" not in fake_ssm.params


def test_delete_of_missing_parameter_succeeds(param_strategy):
    assert param_strategy.apply("/gone", Entry.delete()).operation == "deleted"


def test_create_over_existing_is_remote_failure(fake_ssm, param_strategy):
    fake_ssm.seed("/exists", "v")
    with pytest.raises(RemoteOperationFailedError):
        param_strategy.apply("/exists", Entry.create("x"))


def test_apply_tags(fake_ssm, param_strategy):
    fake_ssm.seed("/app", "v")
    fake_ssm.tags["/app"] = {"old": "1"}
    param_strategy.apply_tags("/app", TagEntry(add={"env": "prod"}, remove={"old"}))
    assert fake_ssm.tags["/app"] == {"env": "prod"}


def test_fetch_version(fake_ssm, param_strategy):
    fake_ssm.seed("/app", "v1")
    fake_ssm.seed("/app", "v2")
    value, label = param_strategy.fetch_version(param_strategy.parse_spec("/app#1"))
    assert (value, label) == ("v1", "#1")
