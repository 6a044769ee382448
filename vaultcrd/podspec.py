"""A pod specification snippet in which every field, containers included, is optional."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import Enum, auto
from typing import Any


class _Kind(Enum):
    STRING = auto()
    OPT_STRING = auto()
    BOOL = auto()
    OPT_BOOL = auto()
    OPT_INT32 = auto()
    OPT_INT64 = auto()
    STRING_MAP = auto()
    MAP = auto()
    OPT_OBJECT = auto()
    OBJECT_LIST = auto()


_INT_RANGES = {
    _Kind.OPT_INT32: (-(1 << 31), (1 << 31) - 1),
    _Kind.OPT_INT64: (-(1 << 63), (1 << 63) - 1),
}


def _spec_field(key: str, kind: _Kind) -> Any:
    metadata = {"json": key, "kind": kind}
    if kind in (_Kind.STRING_MAP, _Kind.MAP):
        return field(default_factory=dict, metadata=metadata)
    if kind is _Kind.OBJECT_LIST:
        return field(default_factory=list, metadata=metadata)
    if kind is _Kind.STRING:
        return field(default="", metadata=metadata)
    if kind is _Kind.BOOL:
        return field(default=False, metadata=metadata)
    return field(default=None, metadata=metadata)


def _type_error(key: str, expected: str, value: Any) -> TypeError:
    return TypeError(f"field {key!r} must be {expected}, not {type(value).__name__}")


def _decode(key: str, kind: _Kind, value: Any) -> Any:
    if kind in (_Kind.STRING, _Kind.OPT_STRING):
        if value is None:
            return "" if kind is _Kind.STRING else None
        if not isinstance(value, str):
            raise _type_error(key, "a string", value)
        return value
    if kind in (_Kind.BOOL, _Kind.OPT_BOOL):
        if value is None:
            return False if kind is _Kind.BOOL else None
        if not isinstance(value, bool):
            raise _type_error(key, "a boolean", value)
        return value
    if kind in _INT_RANGES:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise _type_error(key, "an integer", value)
        low, high = _INT_RANGES[kind]
        if not low <= value <= high:
            raise ValueError(f"field {key!r} is out of range: {value}")
        return value
    if kind is _Kind.STRING_MAP:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise _type_error(key, "a mapping", value)
        result: dict[str, str] = {}
        for name, item in value.items():
            if not isinstance(name, str) or not isinstance(item, str):
                raise TypeError(f"field {key!r} must map strings to strings")
            result[name] = item
        return result
    if kind is _Kind.MAP:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise _type_error(key, "a mapping", value)
        if not all(isinstance(name, str) for name in value):
            raise TypeError(f"field {key!r} must have string keys")
        return copy.deepcopy(dict(value))
    if kind is _Kind.OPT_OBJECT:
        if value is None:
            return None
        if not isinstance(value, Mapping):
            raise _type_error(key, "a mapping", value)
        return copy.deepcopy(dict(value))
    # OBJECT_LIST
    if value is None:
        return []
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, (list, tuple)):
        raise _type_error(key, "a list", value)
    items = []
    for item in value:
        if not isinstance(item, Mapping):
            raise TypeError(f"every item of field {key!r} must be a mapping")
        items.append(copy.deepcopy(dict(item)))
    return items


def _is_empty(kind: _Kind, value: Any) -> bool:
    if kind in (_Kind.STRING, _Kind.BOOL, _Kind.STRING_MAP, _Kind.MAP, _Kind.OBJECT_LIST):
        return not value
    return value is None


@dataclass
class EmbeddedPodSpec:
    """A pod specification that, unlike a full one, may leave out its containers.

    Nested objects such as containers, volumes and affinities are kept as
    plain documents.
    """

    volumes: list[dict[str, Any]] = _spec_field("volumes", _Kind.OBJECT_LIST)
    init_containers: list[dict[str, Any]] = _spec_field("initContainers", _Kind.OBJECT_LIST)
    containers: list[dict[str, Any]] = _spec_field("containers", _Kind.OBJECT_LIST)
    ephemeral_containers: list[dict[str, Any]] = _spec_field(
        "ephemeralContainers", _Kind.OBJECT_LIST
    )
    restart_policy: str = _spec_field("restartPolicy", _Kind.STRING)
    termination_grace_period_seconds: int | None = _spec_field(
        "terminationGracePeriodSeconds", _Kind.OPT_INT64
    )
    active_deadline_seconds: int | None = _spec_field("activeDeadlineSeconds", _Kind.OPT_INT64)
    dns_policy: str = _spec_field("dnsPolicy", _Kind.STRING)
    node_selector: dict[str, str] = _spec_field("nodeSelector", _Kind.STRING_MAP)
    service_account_name: str = _spec_field("serviceAccountName", _Kind.STRING)
    deprecated_service_account: str = _spec_field("serviceAccount", _Kind.STRING)
    automount_service_account_token: bool | None = _spec_field(
        "automountServiceAccountToken", _Kind.OPT_BOOL
    )
    node_name: str = _spec_field("nodeName", _Kind.STRING)
    host_network: bool = _spec_field("hostNetwork", _Kind.BOOL)
    host_pid: bool = _spec_field("hostPID", _Kind.BOOL)
    host_ipc: bool = _spec_field("hostIPC", _Kind.BOOL)
    share_process_namespace: bool | None = _spec_field("shareProcessNamespace", _Kind.OPT_BOOL)
    security_context: dict[str, Any] | None = _spec_field("securityContext", _Kind.OPT_OBJECT)
    image_pull_secrets: list[dict[str, Any]] = _spec_field(
        "imagePullSecrets", _Kind.OBJECT_LIST
    )
    hostname: str = _spec_field("hostname", _Kind.STRING)
    subdomain: str = _spec_field("subdomain", _Kind.STRING)
    affinity: dict[str, Any] | None = _spec_field("affinity", _Kind.OPT_OBJECT)
    scheduler_name: str = _spec_field("schedulerName", _Kind.STRING)
    tolerations: list[dict[str, Any]] = _spec_field("tolerations", _Kind.OBJECT_LIST)
    host_aliases: list[dict[str, Any]] = _spec_field("hostAliases", _Kind.OBJECT_LIST)
    priority_class_name: str = _spec_field("priorityClassName", _Kind.STRING)
    priority: int | None = _spec_field("priority", _Kind.OPT_INT32)
    dns_config: dict[str, Any] | None = _spec_field("dnsConfig", _Kind.OPT_OBJECT)
    readiness_gates: list[dict[str, Any]] = _spec_field("readinessGates", _Kind.OBJECT_LIST)
    runtime_class_name: str | None = _spec_field("runtimeClassName", _Kind.OPT_STRING)
    enable_service_links: bool | None = _spec_field("enableServiceLinks", _Kind.OPT_BOOL)
    preemption_policy: str | None = _spec_field("preemptionPolicy", _Kind.OPT_STRING)
    overhead: dict[str, Any] = _spec_field("overhead", _Kind.MAP)
    topology_spread_constraints: list[dict[str, Any]] = _spec_field(
        "topologySpreadConstraints", _Kind.OBJECT_LIST
    )
    set_hostname_as_fqdn: bool | None = _spec_field("setHostnameAsFQDN", _Kind.OPT_BOOL)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> EmbeddedPodSpec:
        """Build from a decoded pod spec document.

        Unknown keys are ignored. Raises TypeError on values of the wrong type
        and ValueError on integers out of range.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise TypeError(f"expected a mapping, not {type(data).__name__}")
        values = {
            spec.name: _decode(spec.metadata["json"], spec.metadata["kind"], data.get(spec.metadata["json"]))
            for spec in fields(cls)
        }
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Return the document form, leaving out empty and unset fields."""
        result: dict[str, Any] = {}
        for spec in fields(self):
            kind: _Kind = spec.metadata["kind"]
            value = getattr(self, spec.name)
            if _is_empty(kind, value):
                continue
            result[spec.metadata["json"]] = copy.deepcopy(value)
        return result