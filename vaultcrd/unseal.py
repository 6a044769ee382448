"""Unseal key storage settings and the command-line arguments they map to."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any, Protocol


class _VaultLike(Protocol):
    """What the argument builder needs to know about the owning Vault resource."""

    name: str
    namespace: str

    def labels_for_vault(self) -> dict[str, str]: ...


def _attr(key: str, kind: str, default: Any) -> Any:
    return field(default=default, metadata={"json": key, "kind": kind})


def _decode(key: str, kind: str, value: Any) -> Any:
    if kind == "str":
        if value is None:
            return ""
        if not isinstance(value, str):
            raise TypeError(f"field {key!r} must be a string, not {type(value).__name__}")
        return value
    if kind in ("bool", "opt_bool"):
        if value is None:
            return False if kind == "bool" else None
        if not isinstance(value, bool):
            raise TypeError(f"field {key!r} must be a boolean, not {type(value).__name__}")
        return value
    # unsigned integer
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"field {key!r} must be an integer, not {type(value).__name__}")
    if value < 0 or value >= 1 << 64:
        raise ValueError(f"field {key!r} is out of range: {value}")
    return value


def _require_mapping(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"expected a mapping, not {type(data).__name__}")
    return data


def _build(cls: type, data: Any) -> Any:
    if data is None:
        return cls()
    data = _require_mapping(data)
    values = {
        spec.name: _decode(spec.metadata["json"], spec.metadata["kind"], data.get(spec.metadata["json"]))
        for spec in fields(cls)
    }
    return cls(**values)


def _build_optional(cls: type, data: Any) -> Any:
    return None if data is None else _build(cls, data)


def _secret_labels(vault: _VaultLike) -> str:
    return ",".join(sorted(f"{key}={value}" for key, value in vault.labels_for_vault().items()))


@dataclass
class UnsealOptions:
    """Options shared by every unsealing backend."""

    pre_flight_checks: bool | None = _attr("preFlightChecks", "opt_bool", None)
    store_root_token: bool | None = _attr("storeRootToken", "opt_bool", None)

    def to_args(self) -> list[str]:
        """Return the flags these options translate to."""
        args: list[str] = []
        if self.pre_flight_checks is None or self.pre_flight_checks:
            args.append("--pre-flight-checks=true")
        if self.store_root_token is not None and not self.store_root_token:
            args.append("--store-root-token=false")
        return args


@dataclass
class KubernetesUnsealConfig:
    """Where in Kubernetes the unseal keys are kept."""

    secret_namespace: str = _attr("secretNamespace", "str", "")
    secret_name: str = _attr("secretName", "str", "")


@dataclass
class GoogleUnsealConfig:
    """Google Cloud KMS and storage settings."""

    kms_key_ring: str = _attr("kmsKeyRing", "str", "")
    kms_crypto_key: str = _attr("kmsCryptoKey", "str", "")
    kms_location: str = _attr("kmsLocation", "str", "")
    kms_project: str = _attr("kmsProject", "str", "")
    storage_bucket: str = _attr("storageBucket", "str", "")


@dataclass
class AlibabaUnsealConfig:
    """Alibaba Cloud KMS and OSS settings."""

    kms_region: str = _attr("kmsRegion", "str", "")
    kms_key_id: str = _attr("kmsKeyId", "str", "")
    oss_endpoint: str = _attr("ossEndpoint", "str", "")
    oss_bucket: str = _attr("ossBucket", "str", "")
    oss_prefix: str = _attr("ossPrefix", "str", "")


@dataclass
class AzureUnsealConfig:
    """Azure Key Vault settings."""

    key_vault_name: str = _attr("keyVaultName", "str", "")


@dataclass
class AWSUnsealConfig:
    """AWS KMS and S3 settings."""

    kms_key_id: str = _attr("kmsKeyId", "str", "")
    kms_region: str = _attr("kmsRegion", "str", "")
    s3_bucket: str = _attr("s3Bucket", "str", "")
    s3_prefix: str = _attr("s3Prefix", "str", "")
    s3_region: str = _attr("s3Region", "str", "")
    s3_sse: str = _attr("s3SSE", "str", "")


@dataclass
class VaultUnsealConfig:
    """Settings for keeping unseal keys in a remote Vault."""

    address: str = _attr("address", "str", "")
    unseal_keys_path: str = _attr("unsealKeysPath", "str", "")
    role: str = _attr("role", "str", "")
    auth_path: str = _attr("authPath", "str", "")
    token_path: str = _attr("tokenPath", "str", "")
    token: str = _attr("token", "str", "")


@dataclass
class HSMUnsealConfig:
    """Settings for a hardware security module."""

    daemon: bool = _attr("daemon", "bool", False)
    module_path: str = _attr("modulePath", "str", "")
    slot_id: int = _attr("slotId", "uint", 0)
    token_label: str = _attr("tokenLabel", "str", "")
    pin: str = _attr("pin", "str", "")
    key_label: str = _attr("keyLabel", "str", "")


@dataclass
class UnsealConfig:
    """Where a Vault cluster's unseal keys and root token are stored.

    At most one backend is expected; when several are set the first of
    Google, Azure, AWS, Alibaba, Vault and HSM wins, and Kubernetes secrets
    are used when none is.
    """

    options: UnsealOptions = field(default_factory=UnsealOptions)
    kubernetes: KubernetesUnsealConfig = field(default_factory=KubernetesUnsealConfig)
    google: GoogleUnsealConfig | None = None
    alibaba: AlibabaUnsealConfig | None = None
    azure: AzureUnsealConfig | None = None
    aws: AWSUnsealConfig | None = None
    vault: VaultUnsealConfig | None = None
    hsm: HSMUnsealConfig | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> UnsealConfig:
        """Build from a decoded ``unsealConfig`` document.

        Unknown keys are ignored. Raises TypeError on values of the wrong
        type and ValueError on an out-of-range slot id.
        """
        if data is None:
            return cls()
        data = _require_mapping(data)
        return cls(
            options=_build(UnsealOptions, data.get("options")),
            kubernetes=_build(KubernetesUnsealConfig, data.get("kubernetes")),
            google=_build_optional(GoogleUnsealConfig, data.get("google")),
            alibaba=_build_optional(AlibabaUnsealConfig, data.get("alibaba")),
            azure=_build_optional(AzureUnsealConfig, data.get("azure")),
            aws=_build_optional(AWSUnsealConfig, data.get("aws")),
            vault=_build_optional(VaultUnsealConfig, data.get("vault")),
            hsm=_build_optional(HSMUnsealConfig, data.get("hsm")),
        )

    def to_args(self, vault: _VaultLike) -> list[str]:
        """Return the unsealer's command-line arguments for the given Vault resource."""
        args = self.options.to_args()

        if self.google is not None:
            google = self.google
            args += [
                "--mode", "google-cloud-kms-gcs",
                "--google-cloud-kms-key-ring", google.kms_key_ring,
                "--google-cloud-kms-crypto-key", google.kms_crypto_key,
                "--google-cloud-kms-location", google.kms_location,
                "--google-cloud-kms-project", google.kms_project,
                "--google-cloud-storage-bucket", google.storage_bucket,
            ]
        elif self.azure is not None:
            args += ["--mode", "azure-key-vault", "--azure-key-vault-name", self.azure.key_vault_name]
        elif self.aws is not None:
            aws = self.aws
            args += [
                "--mode", "aws-kms-s3",
                "--aws-kms-key-id", aws.kms_key_id,
                "--aws-kms-region", aws.kms_region,
                "--aws-s3-bucket", aws.s3_bucket,
                "--aws-s3-prefix", aws.s3_prefix,
                "--aws-s3-region", aws.s3_region,
                "--aws-s3-sse-algo", aws.s3_sse,
            ]
        elif self.alibaba is not None:
            alibaba = self.alibaba
            args += [
                "--mode", "alibaba-kms-oss",
                "--alibaba-kms-region", alibaba.kms_region,
                "--alibaba-kms-key-id", alibaba.kms_key_id,
                "--alibaba-oss-endpoint", alibaba.oss_endpoint,
                "--alibaba-oss-bucket", alibaba.oss_bucket,
                "--alibaba-oss-prefix", alibaba.oss_prefix,
            ]
        elif self.vault is not None:
            remote = self.vault
            args += [
                "--mode", "vault",
                "--vault-addr", remote.address,
                "--vault-unseal-keys-path", remote.unseal_keys_path,
            ]
            if remote.token:
                args += ["--vault-token", remote.token]
            elif remote.token_path:
                args += ["--vault-token-path", remote.token_path]
            elif remote.role:
                args += ["--vault-role", remote.role, "--vault-auth-path", remote.auth_path]
        elif self.hsm is not None:
            hsm = self.hsm
            k8s = self.kubernetes
            mode = "hsm-k8s" if k8s.secret_namespace and k8s.secret_name else "hsm"
            args += [
                "--mode", mode,
                "--hsm-module-path", hsm.module_path,
                "--hsm-slot-id", str(hsm.slot_id),
                "--hsm-key-label", hsm.key_label,
                "--hsm-pin", hsm.pin,
            ]
            if hsm.token_label:
                args += ["--hsm-token-label", hsm.token_label]
            if mode == "hsm-k8s":
                args += [
                    "--k8s-secret-namespace", k8s.secret_namespace,
                    "--k8s-secret-name", k8s.secret_name,
                    "--k8s-secret-labels", _secret_labels(vault),
                ]
        else:
            k8s = self.kubernetes
            args += [
                "--mode", "k8s",
                "--k8s-secret-namespace", k8s.secret_namespace or vault.namespace,
                "--k8s-secret-name", k8s.secret_name or f"{vault.name}-unseal-keys",
                "--k8s-secret-labels", _secret_labels(vault),
            ]

        return args

    def hsm_daemon_needed(self) -> bool:
        """Whether unsealing needs an HSM daemon running alongside."""
        return self.hsm is not None and self.hsm.daemon