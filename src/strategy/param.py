from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from state.errors import InvalidNameError, RemoteOperationFailedError, ResourceNotFoundError
from state.models import DeleteOptions, Entry, Operation, Service, TagEntry

from .base import (
    ApplyResult,
    EditFetchResult,
    FetchResult,
    NameSpec,
    check_plain_name,
    error_code,
    split_spec,
)


_LOGGER = logging.getLogger(__name__)

NOT_FOUND_CODES = ("ParameterNotFound", "ParameterVersionNotFound")
DEFAULT_PARAMETER_TYPE = "String"

_NAME_RE = re.compile(r"^[A-Za-z0-9_.\-/]+$")
_MAX_NAME_LEN = 2048


class ParamStrategy:
    """
    SSM Parameter Store strategy.

    - Versions are integers, shown as `#<version>`.
    - New parameters are created as `String`; updates keep the existing type
      (so `SecureString` stays encrypted).
    - Deleting a parameter that no longer exists counts as success.
    """

    service = Service.PARAM
    service_name = "SSM Parameter Store"
    item_name = "parameter"
    has_delete_options = False

    def __init__(self, *, ssm: Optional[Any] = None, region_name: Optional[str] = None) -> None:
        self._ssm = ssm or boto3.client("ssm", region_name=region_name)

    # -------- Parser --------
    def parse_name(self, raw: str) -> str:
        spec = self.parse_spec(raw)
        if spec.has_version:
            raise InvalidNameError(f"version specifier is not allowed here: {raw!r}")
        return spec.name

    def parse_spec(self, raw: str) -> NameSpec:
        spec = split_spec(raw, item_name=self.item_name)
        check_plain_name(spec.name, item_name=self.item_name, pattern=_NAME_RE, max_len=_MAX_NAME_LEN)
        if spec.version is not None and not (spec.version.isdigit() and int(spec.version) > 0):
            raise InvalidNameError(f"parameter version must be a positive integer: {raw!r}")
        return spec

    # -------- Fetch --------
    def _get(self, selector: str, name: str) -> Dict[str, Any]:
        try:
            resp = self._ssm.get_parameter(Name=selector, WithDecryption=True)
        except (ClientError, BotoCoreError) as e:
            if error_code(e) in NOT_FOUND_CODES:
                raise ResourceNotFoundError(self.service.value, name) from e
            raise RemoteOperationFailedError("get_parameter", name, e) from e
        return resp.get("Parameter", {})

    def fetch_current(self, name: str) -> FetchResult:
        p = self._get(name, name)
        return FetchResult(
            value=p.get("Value", ""),
            identifier=f"#{p.get('Version')}",
            last_modified=p.get("LastModifiedDate"),
            arn=p.get("ARN"),
        )

    def fetch_current_value(self, name: str) -> EditFetchResult:
        cur = self.fetch_current(name)
        return EditFetchResult(value=cur.value, last_modified=cur.last_modified)

    def fetch_last_modified(self, name: str) -> Optional[datetime]:
        return self.fetch_current(name).last_modified

    def fetch_version(self, spec: NameSpec) -> Tuple[str, str]:
        selector = f"{spec.name}:{spec.version if spec.version is not None else spec.label}"
        p = self._get(selector, spec.name)
        return p.get("Value", ""), f"#{p.get('Version')}"

    # -------- Delete --------
    def validate_delete_options(self, options: Optional[DeleteOptions]) -> Optional[DeleteOptions]:
        # Parameters are deleted immediately; there is nothing to configure
        return None

    # -------- Apply --------
    def _current_type(self, name: str) -> str:
        try:
            resp = self._ssm.get_parameter(Name=name, WithDecryption=False)
        except (ClientError, BotoCoreError) as e:
            if error_code(e) in NOT_FOUND_CODES:
                return DEFAULT_PARAMETER_TYPE
            raise RemoteOperationFailedError("get_parameter", name, e) from e
        return resp.get("Parameter", {}).get("Type") or DEFAULT_PARAMETER_TYPE

    def _put(self, name: str, entry: Entry, *, param_type: str, overwrite: bool) -> Optional[str]:
        kwargs: Dict[str, Any] = {
            "Name": name,
            "Value": entry.value,
            "Type": param_type,
            "Overwrite": overwrite,
        }
        if entry.description is not None:
            kwargs["Description"] = entry.description
        try:
            resp = self._ssm.put_parameter(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise RemoteOperationFailedError("put_parameter", name, e) from e
        version = resp.get("Version")
        return str(version) if version is not None else None

    def apply(self, name: str, entry: Entry) -> ApplyResult:
        op = entry.operation
        if op is Operation.CREATE:
            version = self._put(name, entry, param_type=DEFAULT_PARAMETER_TYPE, overwrite=False)
            return ApplyResult(operation="created", version=version)
        if op is Operation.UPDATE:
            version = self._put(name, entry, param_type=self._current_type(name), overwrite=True)
            return ApplyResult(operation="updated", version=version)
        if op is Operation.DELETE:
            try:
                self._ssm.delete_parameter(Name=name)
            except (ClientError, BotoCoreError) as e:
                if error_code(e) not in NOT_FOUND_CODES:
                    raise RemoteOperationFailedError("delete_parameter", name, e) from e
                _LOGGER.info("parameter %s already deleted", name)
            return ApplyResult(operation="deleted")
        raise ValueError(f"unknown operation: {op!r}")

    def apply_tags(self, name: str, tag: TagEntry) -> None:
        try:
            if tag.add:
                self._ssm.add_tags_to_resource(
                    ResourceType="Parameter",
                    ResourceId=name,
                    Tags=[{"Key": k, "Value": tag.add[k]} for k in sorted(tag.add)],
                )
            if tag.remove:
                self._ssm.remove_tags_from_resource(
                    ResourceType="Parameter",
                    ResourceId=name,
                    TagKeys=sorted(tag.remove),
                )
        except (ClientError, BotoCoreError) as e:
            raise RemoteOperationFailedError("tag_parameter", name, e) from e


__all__ = ["ParamStrategy"]
