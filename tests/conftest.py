from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, UTC
from typing import Any, Dict, List, Optional, Tuple

import pytest
from botocore.exceptions import ClientError


def pytest_configure():
    # Ensure `src/` is importable as top-level for `state.*` / `usecase.*` imports
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


def _client_error(code: str, op: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} ({op})"}}, op)


class _Clock:
    def __init__(self) -> None:
        self._now = datetime(2025, 1, 1, tzinfo=UTC)

    def tick(self) -> datetime:
        self._now += timedelta(minutes=1)
        return self._now


class FakeSSM:
    """In-memory stand-in for the boto3 `ssm` client (only the calls we use)."""

    def __init__(self, clock: Optional[_Clock] = None) -> None:
        self.clock = clock or _Clock()
        self.params: Dict[str, List[Dict[str, Any]]] = {}
        self.tags: Dict[str, Dict[str, str]] = {}
        self.fail_on: Dict[str, str] = {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def seed(self, name: str, value: str, *, type: str = "String") -> datetime:
        modified = self.clock.tick()
        history = self.params.setdefault(name, [])
        history.append({"Value": value, "Type": type, "Version": len(history) + 1, "LastModifiedDate": modified})
        return modified

    def _enter(self, op: str, **kwargs: Any) -> None:
        self.calls.append((op, kwargs))
        code = self.fail_on.get(op)
        if code:
            raise _client_error(code, op)

    def get_parameter(self, Name: str, WithDecryption: bool = False) -> Dict[str, Any]:
        self._enter("get_parameter", Name=Name, WithDecryption=WithDecryption)
        name, _, selector = Name.partition(":")
        history = self.params.get(name)
        if not history:
            raise _client_error("ParameterNotFound", "GetParameter")
        item = history[-1]
        if selector:
            matches = [h for h in history if str(h["Version"]) == selector]
            if not matches:
                raise _client_error("ParameterVersionNotFound", "GetParameter")
            item = matches[0]
        return {
            "Parameter": {
                "Name": name,
                "ARN": f"arn:aws:ssm:us-east-1:123456789012:parameter{name}",
                **item,
            }
        }

    def put_parameter(self, Name: str, Value: str, Type: str, Overwrite: bool = False, Description: Optional[str] = None) -> Dict[str, Any]:
        self._enter("put_parameter", Name=Name, Value=Value, Type=Type, Overwrite=Overwrite, Description=Description)
        if Name in self.params and not Overwrite:
            raise _client_error("ParameterAlreadyExists", "PutParameter")
        self.seed(Name, Value, type=Type)
        return {"Version": len(self.params[Name])}

    def delete_parameter(self, Name: str) -> Dict[str, Any]:
        self._enter("delete_parameter", Name=Name)
        if Name not in self.params:
            raise _client_error("ParameterNotFound", "DeleteParameter")
        del self.params[Name]
        return {}

    def add_tags_to_resource(self, ResourceType: str, ResourceId: str, Tags: List[Dict[str, str]]) -> Dict[str, Any]:
        self._enter("add_tags_to_resource", ResourceType=ResourceType, ResourceId=ResourceId, Tags=Tags)
        self.tags.setdefault(ResourceId, {}).update({t["Key"]: t["Value"] for t in Tags})
        return {}

    def remove_tags_from_resource(self, ResourceType: str, ResourceId: str, TagKeys: List[str]) -> Dict[str, Any]:
        self._enter("remove_tags_from_resource", ResourceType=ResourceType, ResourceId=ResourceId, TagKeys=TagKeys)
        for k in TagKeys:
            self.tags.get(ResourceId, {}).pop(k, None)
        return {}


class FakeSecretsManager:
    """In-memory stand-in for the boto3 `secretsmanager` client."""

    def __init__(self, clock: Optional[_Clock] = None) -> None:
        self.clock = clock or _Clock()
        self.secrets: Dict[str, Dict[str, Any]] = {}
        self.fail_on: Dict[str, str] = {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self._seq = 0

    def _enter(self, op: str, **kwargs: Any) -> None:
        self.calls.append((op, kwargs))
        code = self.fail_on.get(op)
        if code:
            raise _client_error(code, op)

    def _new_version(self, name: str, value: str) -> str:
        self._seq += 1
        version_id = f"{self._seq:08d}-aaaa-bbbb-cccc-dddddddddddd"
        self.secrets[name]["versions"].append({"VersionId": version_id, "SecretString": value, "CreatedDate": self.clock.tick()})
        return version_id

    def seed(self, name: str, value: str, *, description: Optional[str] = None) -> str:
        self.secrets.setdefault(name, {"versions": [], "description": description, "tags": {}})
        return self._new_version(name, value)

    def _get(self, name: str, op: str) -> Dict[str, Any]:
        secret = self.secrets.get(name)
        if secret is None:
            raise _client_error("ResourceNotFoundException", op)
        return secret

    def get_secret_value(self, SecretId: str, VersionId: Optional[str] = None, VersionStage: Optional[str] = None) -> Dict[str, Any]:
        self._enter("get_secret_value", SecretId=SecretId, VersionId=VersionId, VersionStage=VersionStage)
        secret = self._get(SecretId, "GetSecretValue")
        versions = secret["versions"]
        item = versions[-1]
        if VersionId is not None:
            matches = [v for v in versions if v["VersionId"] == VersionId]
            if not matches:
                raise _client_error("ResourceNotFoundException", "GetSecretValue")
            item = matches[0]
        elif VersionStage == "AWSPREVIOUS":
            if len(versions) < 2:
                raise _client_error("ResourceNotFoundException", "GetSecretValue")
            item = versions[-2]
        return {"ARN": f"arn:aws:secretsmanager:us-east-1:123456789012:secret:{SecretId}", "Name": SecretId, **item}

    def create_secret(self, Name: str, SecretString: str, Description: Optional[str] = None) -> Dict[str, Any]:
        self._enter("create_secret", Name=Name, SecretString=SecretString, Description=Description)
        if Name in self.secrets:
            raise _client_error("ResourceExistsException", "CreateSecret")
        version_id = self.seed(Name, SecretString, description=Description)
        return {"Name": Name, "VersionId": version_id}

    def put_secret_value(self, SecretId: str, SecretString: str) -> Dict[str, Any]:
        self._enter("put_secret_value", SecretId=SecretId, SecretString=SecretString)
        self._get(SecretId, "PutSecretValue")
        return {"Name": SecretId, "VersionId": self._new_version(SecretId, SecretString)}

    def update_secret(self, SecretId: str, Description: str) -> Dict[str, Any]:
        self._enter("update_secret", SecretId=SecretId, Description=Description)
        self._get(SecretId, "UpdateSecret")["description"] = Description
        return {"Name": SecretId}

    def delete_secret(self, SecretId: str, **kwargs: Any) -> Dict[str, Any]:
        self._enter("delete_secret", SecretId=SecretId, **kwargs)
        self._get(SecretId, "DeleteSecret")
        del self.secrets[SecretId]
        return {"Name": SecretId}

    def tag_resource(self, SecretId: str, Tags: List[Dict[str, str]]) -> Dict[str, Any]:
        self._enter("tag_resource", SecretId=SecretId, Tags=Tags)
        self._get(SecretId, "TagResource")["tags"].update({t["Key"]: t["Value"] for t in Tags})
        return {}

    def untag_resource(self, SecretId: str, TagKeys: List[str]) -> Dict[str, Any]:
        self._enter("untag_resource", SecretId=SecretId, TagKeys=TagKeys)
        tags = self._get(SecretId, "UntagResource")["tags"]
        for k in TagKeys:
            tags.pop(k, None)
        return {}


@pytest.fixture
def fake_ssm() -> FakeSSM:
    return FakeSSM()


@pytest.fixture
def fake_sm() -> FakeSecretsManager:
    return FakeSecretsManager()


@pytest.fixture
def param_strategy(fake_ssm):
    from strategy.param import ParamStrategy

    return ParamStrategy(ssm=fake_ssm)


@pytest.fixture
def secret_strategy(fake_sm):
    from strategy.secret import SecretStrategy

    return SecretStrategy(secretsmanager=fake_sm)


@pytest.fixture
def store():
    from state.resident_store import ResidentStore

    return ResidentStore()


@pytest.fixture(autouse=True)
def _fresh_resident_stores():
    from state.resident_store import reset_resident_stores

    reset_resident_stores()
    yield
    reset_resident_stores()


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CLOUDSTAGE_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("CLOUDSTAGE_PASSPHRASE", raising=False)
