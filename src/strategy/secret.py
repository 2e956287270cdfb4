from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from state.errors import InvalidArgumentError, InvalidNameError, RemoteOperationFailedError, ResourceNotFoundError
from state.models import (
    MAX_RECOVERY_WINDOW_DAYS,
    MIN_RECOVERY_WINDOW_DAYS,
    DeleteOptions,
    Entry,
    Operation,
    Service,
    TagEntry,
)

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

NOT_FOUND_CODES = ("ResourceNotFoundException",)

_NAME_RE = re.compile(r"^[A-Za-z0-9/_+=.@\-]+$")
_MAX_NAME_LEN = 512
_SHORT_VERSION_LEN = 8


def short_version(version_id: Optional[str]) -> str:
    return f"#{(version_id or '')[:_SHORT_VERSION_LEN]}"


class SecretStrategy:
    """
    Secrets Manager strategy.

    Secrets are versioned by opaque version ids (shown as `#` plus the first
    eight characters) and stage labels such as `AWSCURRENT`. The creation
    date of the current version is used as the item's last-modified time.
    Deletes honour `DeleteOptions` (force, or a 7-30 day recovery window).
    """

    service = Service.SECRET
    service_name = "Secrets Manager"
    item_name = "secret"
    has_delete_options = True

    def __init__(self, *, secretsmanager: Optional[Any] = None, region_name: Optional[str] = None) -> None:
        self._sm = secretsmanager or boto3.client("secretsmanager", region_name=region_name)

    # -------- Parser --------
    def parse_name(self, raw: str) -> str:
        spec = self.parse_spec(raw)
        if spec.has_version:
            raise InvalidNameError(f"version specifier is not allowed here: {raw!r}")
        return spec.name

    def parse_spec(self, raw: str) -> NameSpec:
        spec = split_spec(raw, item_name=self.item_name)
        check_plain_name(spec.name, item_name=self.item_name, pattern=_NAME_RE, max_len=_MAX_NAME_LEN)
        return spec

    # -------- Fetch --------
    def _get(self, name: str, **selector: str) -> Dict[str, Any]:
        try:
            resp = self._sm.get_secret_value(SecretId=name, **selector)
        except (ClientError, BotoCoreError) as e:
            if error_code(e) in NOT_FOUND_CODES:
                raise ResourceNotFoundError(self.service.value, name) from e
            raise RemoteOperationFailedError("get_secret_value", name, e) from e
        if resp.get("SecretString") is None:
            raise RemoteOperationFailedError(
                "get_secret_value", name, ValueError("binary secrets are not supported")
            )
        return resp

    def fetch_current(self, name: str) -> FetchResult:
        resp = self._get(name)
        return FetchResult(
            value=resp["SecretString"],
            identifier=short_version(resp.get("VersionId")),
            last_modified=resp.get("CreatedDate"),
            arn=resp.get("ARN"),
        )

    def fetch_current_value(self, name: str) -> EditFetchResult:
        cur = self.fetch_current(name)
        return EditFetchResult(value=cur.value, last_modified=cur.last_modified)

    def fetch_last_modified(self, name: str) -> Optional[datetime]:
        return self.fetch_current(name).last_modified

    def fetch_version(self, spec: NameSpec) -> Tuple[str, str]:
        if spec.version is not None:
            resp = self._get(spec.name, VersionId=spec.version)
        else:
            resp = self._get(spec.name, VersionStage=spec.label or "AWSCURRENT")
        return resp["SecretString"], short_version(resp.get("VersionId"))

    # -------- Delete --------
    def validate_delete_options(self, options: Optional[DeleteOptions]) -> Optional[DeleteOptions]:
        opts = options or DeleteOptions()
        if opts.force:
            return opts
        if not MIN_RECOVERY_WINDOW_DAYS <= opts.recovery_window <= MAX_RECOVERY_WINDOW_DAYS:
            raise InvalidArgumentError(
                f"recovery window must be between {MIN_RECOVERY_WINDOW_DAYS} and "
                f"{MAX_RECOVERY_WINDOW_DAYS} days, got {opts.recovery_window}"
            )
        return opts

    # -------- Apply --------
    def _call(self, operation: str, name: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            return getattr(self._sm, operation)(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise RemoteOperationFailedError(operation, name, e) from e

    def apply(self, name: str, entry: Entry) -> ApplyResult:
        op = entry.operation
        if op is Operation.CREATE:
            kwargs: Dict[str, Any] = {"Name": name, "SecretString": entry.value}
            if entry.description is not None:
                kwargs["Description"] = entry.description
            resp = self._call("create_secret", name, **kwargs)
            return ApplyResult(operation="created", version=resp.get("VersionId"))
        if op is Operation.UPDATE:
            # update_secret before put_secret_value: a failure leaves no new version
            if entry.description is not None:
                self._call("update_secret", name, SecretId=name, Description=entry.description)
            resp = self._call("put_secret_value", name, SecretId=name, SecretString=entry.value)
            return ApplyResult(operation="updated", version=resp.get("VersionId"))
        if op is Operation.DELETE:
            opts = self.validate_delete_options(entry.delete_options)
            kwargs = {"SecretId": name}
            if opts is not None and opts.force:
                kwargs["ForceDeleteWithoutRecovery"] = True
            elif opts is not None:
                kwargs["RecoveryWindowInDays"] = opts.recovery_window
            try:
                self._sm.delete_secret(**kwargs)
            except (ClientError, BotoCoreError) as e:
                if error_code(e) not in NOT_FOUND_CODES:
                    raise RemoteOperationFailedError("delete_secret", name, e) from e
                _LOGGER.info("secret %s already deleted", name)
            return ApplyResult(operation="deleted")
        raise ValueError(f"unknown operation: {op!r}")

    def apply_tags(self, name: str, tag: TagEntry) -> None:
        if tag.add:
            self._call(
                "tag_resource",
                name,
                SecretId=name,
                Tags=[{"Key": k, "Value": tag.add[k]} for k in sorted(tag.add)],
            )
        if tag.remove:
            self._call("untag_resource", name, SecretId=name, TagKeys=sorted(tag.remove))


__all__ = ["SecretStrategy", "short_version"]
