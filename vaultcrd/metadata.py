"""Embeddable object metadata and persistent volume claim templates."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


def _string(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"field {key!r} must be a string, not {type(value).__name__}")
    return value


def _string_map(data: Mapping[str, Any], key: str) -> dict[str, str]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TypeError(f"field {key!r} must be a mapping, not {type(value).__name__}")
    result: dict[str, str] = {}
    for name, item in value.items():
        if not isinstance(name, str) or not isinstance(item, str):
            raise TypeError(f"field {key!r} must map strings to strings")
        result[name] = item
    return result


def _mapping(data: Mapping[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TypeError(f"field {key!r} must be a mapping, not {type(value).__name__}")
    return copy.deepcopy(dict(value))


def _require_mapping(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"expected a mapping, not {type(data).__name__}")
    return data


@dataclass
class EmbeddedObjectMetadata:
    """The subset of object metadata relevant to embedded resources."""

    name: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> EmbeddedObjectMetadata:
        """Build from a decoded ``metadata`` document; raises TypeError on bad types."""
        if data is None:
            return cls()
        data = _require_mapping(data)
        return cls(
            name=_string(data, "name"),
            labels=_string_map(data, "labels"),
            annotations=_string_map(data, "annotations"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the document form, leaving out empty fields."""
        result: dict[str, Any] = {}
        if self.name:
            result["name"] = self.name
        if self.labels:
            result["labels"] = dict(self.labels)
        if self.annotations:
            result["annotations"] = dict(self.annotations)
        return result


@dataclass
class EmbeddedPersistentVolumeClaim:
    """A persistent volume claim template with type information and reduced metadata."""

    api_version: str = ""
    kind: str = ""
    metadata: EmbeddedObjectMetadata = field(default_factory=EmbeddedObjectMetadata)
    spec: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.labels

    @property
    def annotations(self) -> dict[str, str]:
        return self.metadata.annotations

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> EmbeddedPersistentVolumeClaim:
        """Build from a decoded claim document; raises TypeError on bad types."""
        if data is None:
            return cls()
        data = _require_mapping(data)
        return cls(
            api_version=_string(data, "apiVersion"),
            kind=_string(data, "kind"),
            metadata=EmbeddedObjectMetadata.from_dict(data.get("metadata")),
            spec=_mapping(data, "spec"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the document form, leaving out empty fields."""
        result: dict[str, Any] = {}
        if self.api_version:
            result["apiVersion"] = self.api_version
        if self.kind:
            result["kind"] = self.kind
        metadata = self.metadata.to_dict()
        if metadata:
            result["metadata"] = metadata
        if self.spec:
            result["spec"] = copy.deepcopy(self.spec)
        return result

    def to_persistent_volume_claim(self) -> dict[str, Any]:
        """Return a plain claim document carrying only metadata and spec."""
        return {
            "metadata": self.metadata.to_dict(),
            "spec": copy.deepcopy(self.spec),
        }