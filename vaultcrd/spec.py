"""The desired state of a Vault cluster and the settings derived from it."""

from __future__ import annotations

import copy
import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from .convert import Version, parse_duration, parse_version, to_bool, to_string_map
from .metadata import EmbeddedPersistentVolumeClaim
from .podspec import EmbeddedPodSpec
from .unseal import UnsealConfig

_log = logging.getLogger(__name__)

DEFAULT_BANK_VAULTS_IMAGE = (
    os.environ.get("BANK_VAULTS_IMAGE") or "ghcr.io/banzaicloud/bank-vaults:latest"
)
DEFAULT_TLS_EXPIRY_THRESHOLD = timedelta(hours=168)

HA_STORAGE_TYPES = frozenset(
    {
        "consul",
        "dynamodb",
        "etcd",
        "gcs",
        "mysql",
        "postgresql",
        "raft",
        "spanner",
        "zookeeper",
    }
)

_INT32_MIN = -(1 << 31)
_INT32_MAX = (1 << 31) - 1


def _type_error(key: str, expected: str, value: Any) -> TypeError:
    return TypeError(f"field {key!r} must be {expected}, not {type(value).__name__}")


def _require_mapping(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"expected a mapping, not {type(data).__name__}")
    return data


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _type_error(key, "a string", value)
    return value


def _bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise _type_error(key, "a boolean", value)
    return value


def _check_int32(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise _type_error(key, "an integer", value)
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise ValueError(f"field {key!r} is out of range: {value}")
    return value


def _int32(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    return _check_int32(key, value)


def _as_str_map(key: str, value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        raise _type_error(key, "a mapping", value)
    result: dict[str, str] = {}
    for name, item in value.items():
        if not isinstance(name, str) or not isinstance(item, str):
            raise TypeError(f"field {key!r} must map strings to strings")
        result[name] = item
    return result


def _str_map(data: Mapping[str, Any], key: str) -> dict[str, str]:
    value = data.get(key)
    if value is None:
        return {}
    return _as_str_map(key, value)


def _str_map_list(data: Mapping[str, Any], key: str) -> list[dict[str, str]]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise _type_error(key, "a list", value)
    return [_as_str_map(key, item) for item in value]


def _int32_map(data: Mapping[str, Any], key: str) -> dict[str, int]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise _type_error(key, "a mapping", value)
    result: dict[str, int] = {}
    for name, item in value.items():
        if not isinstance(name, str):
            raise TypeError(f"field {key!r} must have string keys")
        result[name] = _check_int32(key, item)
    return result


def _obj(data: Mapping[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise _type_error(key, "a mapping", value)
    return copy.deepcopy(dict(value))


def _opt_obj(data: Mapping[str, Any], key: str) -> dict[str, Any] | None:
    if data.get(key) is None:
        return None
    return _obj(data, key)


def _obj_list(data: Mapping[str, Any], key: str) -> list[dict[str, Any]]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise _type_error(key, "a list", value)
    items = []
    for item in value:
        if not isinstance(item, Mapping):
            raise TypeError(f"every item of field {key!r} must be a mapping")
        items.append(copy.deepcopy(dict(item)))
    return items


def _str_list(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise _type_error(key, "a list", value)
    for item in value:
        if not isinstance(item, str):
            raise TypeError(f"every item of field {key!r} must be a string")
    return list(value)


@dataclass
class CredentialsConfig:
    """A credentials file provided as a secret and where to mount it."""

    env: str = ""
    path: str = ""
    secret_name: str = ""


@dataclass
class Resources:
    """Resource requirements of the containers the operator creates."""

    vault: dict[str, Any] | None = None
    bank_vaults: dict[str, Any] | None = None
    hsm_daemon: dict[str, Any] | None = None
    prometheus_exporter: dict[str, Any] | None = None
    fluentd: dict[str, Any] | None = None


@dataclass
class Ingress:
    """Ingress settings for the Vault service."""

    annotations: dict[str, str] = field(default_factory=dict)
    spec: dict[str, Any] = field(default_factory=dict)


def _credentials(data: Any) -> CredentialsConfig:
    if data is None:
        return CredentialsConfig()
    data = _require_mapping(data)
    return CredentialsConfig(
        env=_str(data, "env"),
        path=_str(data, "path"),
        secret_name=_str(data, "secretName"),
    )


def _resources(data: Any) -> Resources | None:
    if data is None:
        return None
    data = _require_mapping(data)
    return Resources(
        vault=_opt_obj(data, "vault"),
        bank_vaults=_opt_obj(data, "bankVaults"),
        hsm_daemon=_opt_obj(data, "hsmDaemon"),
        prometheus_exporter=_opt_obj(data, "prometheusExporter"),
        fluentd=_opt_obj(data, "fluentd"),
    )


def _ingress(data: Any) -> Ingress | None:
    if data is None:
        return None
    data = _require_mapping(data)
    return Ingress(annotations=_str_map(data, "annotations"), spec=_obj(data, "spec"))


def _pod_spec(data: Any) -> EmbeddedPodSpec | None:
    return None if data is None else EmbeddedPodSpec.from_dict(data)


def _claims(data: Mapping[str, Any], key: str) -> list[EmbeddedPersistentVolumeClaim]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise _type_error(key, "a list", value)
    return [EmbeddedPersistentVolumeClaim.from_dict(item) for item in value]


@dataclass
class VaultSpec:
    """The desired state of a Vault cluster.

    ``config`` and ``external_config`` hold the decoded Vault server and
    configurer documents.
    """

    size: int = 0
    image: str = ""
    bank_vaults_image: str = ""
    bank_vaults_volume_mounts: list[dict[str, Any]] = field(default_factory=list)
    statsd_disabled: bool = False
    statsd_image: str = ""
    fluentd_enabled: bool = False
    fluentd_image: str = ""
    fluentd_conf_location: str = ""
    fluentd_conf_file: str = ""
    fluentd_config: str = ""
    watched_secrets_labels: list[dict[str, str]] = field(default_factory=list)
    watched_secrets_annotations: list[dict[str, str]] = field(default_factory=list)
    annotations: dict[str, str] = field(default_factory=dict)
    vault_annotations: dict[str, str] = field(default_factory=dict)
    vault_labels: dict[str, str] = field(default_factory=dict)
    vault_pod_spec: EmbeddedPodSpec | None = None
    vault_container_spec: dict[str, Any] = field(default_factory=dict)
    vault_configurer_annotations: dict[str, str] = field(default_factory=dict)
    vault_configurer_labels: dict[str, str] = field(default_factory=dict)
    vault_configurer_pod_spec: EmbeddedPodSpec | None = None
    config: Any = None
    external_config: Any = None
    unseal_config: UnsealConfig = field(default_factory=UnsealConfig)
    credentials_config: CredentialsConfig = field(default_factory=CredentialsConfig)
    envs_config: list[dict[str, Any]] = field(default_factory=list)
    security_context: dict[str, Any] = field(default_factory=dict)
    service_type: str = ""
    load_balancer_ip: str = ""
    service_registration_enabled: bool = False
    raft_leader_address: str = ""
    service_ports: dict[str, int] = field(default_factory=dict)
    affinity: dict[str, Any] | None = None
    pod_anti_affinity: str = ""
    node_affinity: dict[str, Any] = field(default_factory=dict)
    node_selector: dict[str, str] = field(default_factory=dict)
    tolerations: list[dict[str, Any]] = field(default_factory=list)
    service_account: str = ""
    volumes: list[dict[str, Any]] = field(default_factory=list)
    volume_mounts: list[dict[str, Any]] = field(default_factory=list)
    volume_claim_templates: list[EmbeddedPersistentVolumeClaim] = field(default_factory=list)
    vault_envs_config: list[dict[str, Any]] = field(default_factory=list)
    sidecar_envs_config: list[dict[str, Any]] = field(default_factory=list)
    resources: Resources | None = None
    ingress: Ingress | None = None
    service_monitor_enabled: bool = False
    existing_tls_secret_name: str = ""
    tls_expiry_threshold: str = ""
    tls_additional_hosts: list[str] = field(default_factory=list)
    ca_namespaces: list[str] = field(default_factory=list)
    istio_enabled: bool = False
    velero_enabled: bool = False
    velero_fsfreeze_image: str = ""
    vault_init_containers: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> VaultSpec:
        """Build from a decoded ``spec`` document.

        Unknown keys are ignored. Raises TypeError on values of the wrong type
        and ValueError on integers out of range.
        """
        if data is None:
            return cls()
        data = _require_mapping(data)
        return cls(
            size=_int32(data, "size"),
            image=_str(data, "image"),
            bank_vaults_image=_str(data, "bankVaultsImage"),
            bank_vaults_volume_mounts=_obj_list(data, "bankVaultsVolumeMounts"),
            statsd_disabled=_bool(data, "statsdDisabled"),
            statsd_image=_str(data, "statsdImage"),
            fluentd_enabled=_bool(data, "fluentdEnabled"),
            fluentd_image=_str(data, "fluentdImage"),
            fluentd_conf_location=_str(data, "fleuntdConfLocation"),
            fluentd_conf_file=_str(data, "fluentdConfFile"),
            fluentd_config=_str(data, "fluentdConfig"),
            watched_secrets_labels=_str_map_list(data, "watchedSecretsLabels"),
            watched_secrets_annotations=_str_map_list(data, "watchedSecretsAnnotations"),
            annotations=_str_map(data, "annotations"),
            vault_annotations=_str_map(data, "vaultAnnotations"),
            vault_labels=_str_map(data, "vaultLabels"),
            vault_pod_spec=_pod_spec(data.get("vaultPodSpec")),
            vault_container_spec=_obj(data, "vaultContainerSpec"),
            vault_configurer_annotations=_str_map(data, "vaultConfigurerAnnotations"),
            vault_configurer_labels=_str_map(data, "vaultConfigurerLabels"),
            vault_configurer_pod_spec=_pod_spec(data.get("vaultConfigurerPodSpec")),
            config=copy.deepcopy(data.get("config")),
            external_config=copy.deepcopy(data.get("externalConfig")),
            unseal_config=UnsealConfig.from_dict(data.get("unsealConfig")),
            credentials_config=_credentials(data.get("credentialsConfig")),
            envs_config=_obj_list(data, "envsConfig"),
            security_context=_obj(data, "securityContext"),
            service_type=_str(data, "serviceType"),
            load_balancer_ip=_str(data, "loadBalancerIP"),
            service_registration_enabled=_bool(data, "serviceRegistrationEnabled"),
            raft_leader_address=_str(data, "raftLeaderAddress"),
            service_ports=_int32_map(data, "servicePorts"),
            affinity=_opt_obj(data, "affinity"),
            pod_anti_affinity=_str(data, "podAntiAffinity"),
            node_affinity=_obj(data, "nodeAffinity"),
            node_selector=_str_map(data, "nodeSelector"),
            tolerations=_obj_list(data, "tolerations"),
            service_account=_str(data, "serviceAccount"),
            volumes=_obj_list(data, "volumes"),
            volume_mounts=_obj_list(data, "volumeMounts"),
            volume_claim_templates=_claims(data, "volumeClaimTemplates"),
            vault_envs_config=_obj_list(data, "vaultEnvsConfig"),
            sidecar_envs_config=_obj_list(data, "sidecarEnvsConfig"),
            resources=_resources(data.get("resources")),
            ingress=_ingress(data.get("ingress")),
            service_monitor_enabled=_bool(data, "serviceMonitorEnabled"),
            existing_tls_secret_name=_str(data, "existingTlsSecretName"),
            tls_expiry_threshold=_str(data, "tlsExpiryThreshold"),
            tls_additional_hosts=_str_list(data, "tlsAdditionalHosts"),
            ca_namespaces=_str_list(data, "caNamespaces"),
            istio_enabled=_bool(data, "istioEnabled"),
            velero_enabled=_bool(data, "veleroEnabled"),
            velero_fsfreeze_image=_str(data, "veleroFsfreezeImage"),
            vault_init_containers=_obj_list(data, "vaultInitContainers"),
        )

    # Vault server configuration

    def get_vault_config(self) -> dict[str, Any]:
        """Return a fresh copy of the Vault server configuration, or an empty dict."""
        config = self.config
        if isinstance(config, (bytes, bytearray, str)):
            try:
                config = json.loads(config)
            except ValueError:
                return {}
        if isinstance(config, Mapping):
            return copy.deepcopy(dict(config))
        return {}

    def _storage_stanza(self) -> dict[str, Any]:
        return to_string_map(self.get_vault_config().get("storage"))

    def _ha_storage_stanza(self) -> dict[str, Any]:
        return to_string_map(self.get_vault_config().get("ha_storage"))

    def _listener(self) -> dict[str, Any]:
        return to_string_map(self.get_vault_config().get("listener"))

    def get_storage_type(self) -> str:
        """Return the type of the storage stanza; raises ValueError if there is none."""
        storage = self._storage_stanza()
        if not storage:
            raise ValueError("no storage stanza in the Vault configuration")
        return next(iter(storage))

    def get_ha_storage_type(self) -> str:
        """Return the type of the ha_storage stanza, or an empty string."""
        ha_storage = self._ha_storage_stanza()
        if not ha_storage:
            return ""
        return next(iter(ha_storage))

    def get_storage(self) -> dict[str, Any]:
        """Return the settings of the configured storage backend."""
        return to_string_map(self._storage_stanza().get(self.get_storage_type()))

    def get_ha_storage(self) -> dict[str, Any]:
        """Return the settings of the configured ha_storage backend."""
        return to_string_map(self._ha_storage_stanza().get(self.get_ha_storage_type()))

    def has_storage_ha_enabled(self) -> bool:
        """Whether the storage backend runs in high-availability mode."""
        storage_type = self.get_storage_type()
        settings = to_string_map(self._storage_stanza().get(storage_type))
        return storage_type in ("consul", "raft") or to_bool(settings.get("ha_enabled"))

    def has_ha_storage(self) -> bool:
        """Whether the storage supports high availability or an ha_storage stanza exists."""
        if self.get_storage_type() in HA_STORAGE_TYPES and self.has_storage_ha_enabled():
            return True
        return bool(self._ha_storage_stanza())

    def is_tls_disabled(self) -> bool:
        """Whether TLS is disabled on the TCP listener."""
        tcp = to_string_map(self._listener().get("tcp"))
        return to_bool(tcp.get("tls_disable"))

    def is_telemetry_unauthenticated(self) -> bool:
        """Whether the telemetry endpoint may be read without authentication."""
        tcp = to_string_map(self._listener().get("tcp"))
        telemetry = to_string_map(tcp.get("telemetry"))
        return to_bool(telemetry.get("unauthenticated_metrics_access"))

    def get_api_scheme(self) -> str:
        return "http" if self.is_tls_disabled() else "https"

    def get_api_port_name(self) -> str:
        """Return the main port name, prefixed with the protocol when Istio is enabled."""
        port_name = "api-port"
        if self.istio_enabled:
            prefix = "http-" if self.is_tls_disabled() else "https-"
            return prefix + port_name
        return port_name

    def is_auto_unseal(self) -> bool:
        return "seal" in self.get_vault_config()

    def is_raft_storage(self) -> bool:
        return self.get_storage_type() == "raft"

    def is_raft_ha_storage(self) -> bool:
        return self.get_storage_type() != "raft" and self.get_ha_storage_type() == "raft"

    def is_raft_bootstrap_follower(self) -> bool:
        return self.raft_leader_address not in ("", "self")

    def external_config_json(self) -> bytes:
        """Return the configurer document as compact JSON, or empty bytes if unset."""
        value = self.external_config
        if value is None:
            return b""
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        return json.dumps(value, separators=(",", ":")).encode()

    # Images and defaults

    def get_version(self) -> Version:
        """Return the version from the image tag; raises ValueError if there is none."""
        parts = self.image.split(":")
        if len(parts) != 2:
            raise ValueError("failed to find Vault version")
        return parse_version(parts[1])

    def get_service_account(self) -> str:
        return self.service_account or "default"

    def get_tls_expiry_threshold(self) -> timedelta:
        """Return the certificate expiry threshold, 168 hours if unset or invalid."""
        if not self.tls_expiry_threshold:
            return DEFAULT_TLS_EXPIRY_THRESHOLD
        try:
            return parse_duration(self.tls_expiry_threshold)
        except ValueError as error:
            _log.error(
                "using default threshold due to parse error: %s (tlsExpiryThreshold=%r)",
                error,
                self.tls_expiry_threshold,
            )
            return DEFAULT_TLS_EXPIRY_THRESHOLD

    def get_vault_image(self) -> str:
        return self.image or "vault:latest"

    def get_bank_vaults_image(self) -> str:
        return self.bank_vaults_image or DEFAULT_BANK_VAULTS_IMAGE

    def get_statsd_image(self) -> str:
        return self.statsd_image or "prom/statsd-exporter:latest"

    def get_velero_fsfreeze_image(self) -> str:
        return self.velero_fsfreeze_image or "ubuntu:bionic"

    def get_fluentd_image(self) -> str:
        return self.fluentd_image or "fluent/fluentd:edge"

    def get_fluentd_conf_mount_path(self) -> str:
        return self.fluentd_conf_location or "/fluentd/etc"

    def get_volume_claim_templates(self) -> list[dict[str, Any]]:
        """Return the claim templates as plain claims carrying only metadata and spec."""
        return [claim.to_persistent_volume_claim() for claim in self.volume_claim_templates]