import pytest

from vaultcrd.unseal import (
    AlibabaUnsealConfig,
    AWSUnsealConfig,
    AzureUnsealConfig,
    GoogleUnsealConfig,
    HSMUnsealConfig,
    KubernetesUnsealConfig,
    UnsealConfig,
    UnsealOptions,
    VaultUnsealConfig,
)


class _StubVault:
    def __init__(self, name="vault", namespace="default"):
        self.name = name
        self.namespace = namespace

    def labels_for_vault(self):
        return {"vault_cr": self.name, "app.kubernetes.io/name": "vault"}


PIN = "placeholder"


def test_options_default_enable_pre_flight_checks():
    assert UnsealOptions().to_args() == ["--pre-flight-checks=true"]


def test_options_disable_both():
    options = UnsealOptions(pre_flight_checks=False, store_root_token=False)
    assert options.to_args() == ["--store-root-token=false"]


def test_options_store_root_token_true_adds_nothing():
    options = UnsealOptions(pre_flight_checks=True, store_root_token=True)
    assert options.to_args() == ["--pre-flight-checks=true"]


def test_default_kubernetes_mode():
    args = UnsealConfig().to_args(_StubVault("myvault", "vault-ns"))
    assert args == [
        "--pre-flight-checks=true",
        "--mode", "k8s",
        "--k8s-secret-namespace", "vault-ns",
        "--k8s-secret-name", "myvault-unseal-keys",
        "--k8s-secret-labels", "app.kubernetes.io/name=vault,vault_cr=myvault",
    ]


def test_kubernetes_overrides():
    config = UnsealConfig(
        kubernetes=KubernetesUnsealConfig(secret_namespace="other", secret_name="keys"),
        options=UnsealOptions(pre_flight_checks=False),
    )
    args = config.to_args(_StubVault("myvault", "vault-ns"))
    assert args[:5] == ["--mode", "k8s", "--k8s-secret-namespace", "other", "--k8s-secret-name"]
    assert args[5] == "keys"


def test_secret_labels_are_sorted():
    args = UnsealConfig().to_args(_StubVault("v"))
    labels = args[args.index("--k8s-secret-labels") + 1].split(",")
    assert labels == sorted(labels)


def test_google_mode():
    config = UnsealConfig(
        google=GoogleUnsealConfig("ring", "key", "global", "proj", "bucket"),
        options=UnsealOptions(pre_flight_checks=False),
    )
    assert config.to_args(_StubVault()) == [
        "--mode", "google-cloud-kms-gcs",
        "--google-cloud-kms-key-ring", "ring",
        "--google-cloud-kms-crypto-key", "key",
        "--google-cloud-kms-location", "global",
        "--google-cloud-kms-project", "proj",
        "--google-cloud-storage-bucket", "bucket",
    ]


def test_google_wins_over_azure():
    config = UnsealConfig(
        google=GoogleUnsealConfig(kms_key_ring="ring"),
        azure=AzureUnsealConfig("kv"),
    )
    args = config.to_args(_StubVault())
    assert args[1:3] == ["--mode", "google-cloud-kms-gcs"]
    assert "--azure-key-vault-name" not in args


def test_azure_mode():
    config = UnsealConfig(azure=AzureUnsealConfig("kv"))
    assert config.to_args(_StubVault()) == [
        "--pre-flight-checks=true",
        "--mode", "azure-key-vault",
        "--azure-key-vault-name", "kv",
    ]


def test_aws_mode():
    config = UnsealConfig(aws=AWSUnsealConfig("kid", "eu", "b", "p", "us", "AES256"))
    assert config.to_args(_StubVault())[1:] == [
        "--mode", "aws-kms-s3",
        "--aws-kms-key-id", "kid",
        "--aws-kms-region", "eu",
        "--aws-s3-bucket", "b",
        "--aws-s3-prefix", "p",
        "--aws-s3-region", "us",
        "--aws-s3-sse-algo", "AES256",
    ]


def test_alibaba_mode():
    config = UnsealConfig(alibaba=AlibabaUnsealConfig("r", "k", "e", "b", "p"))
    assert config.to_args(_StubVault())[1:] == [
        "--mode", "alibaba-kms-oss",
        "--alibaba-kms-region", "r",
        "--alibaba-kms-key-id", "k",
        "--alibaba-oss-endpoint", "e",
        "--alibaba-oss-bucket", "b",
        "--alibaba-oss-prefix", "p",
    ]


def test_vault_mode_token_takes_precedence():
    remote = VaultUnsealConfig(
        address="https://vault.example.com",
        unseal_keys_path="secret/keys",
        role="r",
        auth_path="auth",
        token_path="/tmp/t",
        token="token",
    )
    args = UnsealConfig(vault=remote).to_args(_StubVault())
    assert args[1:] == [
        "--mode", "vault",
        "--vault-addr", "https://vault.example.com",
        "--vault-unseal-keys-path", "secret/keys",
        "--vault-token", "token",
    ]


def test_vault_mode_token_path_before_role():
    remote = VaultUnsealConfig(address="a", unseal_keys_path="k", role="r", token_path="/tmp/t")
    args = UnsealConfig(vault=remote).to_args(_StubVault())
    assert args[-2:] == ["--vault-token-path", "/tmp/t"]
    assert "--vault-role" not in args


def test_vault_mode_role():
    remote = VaultUnsealConfig(address="a", unseal_keys_path="k", role="r", auth_path="kube")
    args = UnsealConfig(vault=remote).to_args(_StubVault())
    assert args[-4:] == ["--vault-role", "r", "--vault-auth-path", "kube"]


def test_vault_mode_without_auth():
    remote = VaultUnsealConfig(address="a", unseal_keys_path="k")
    args = UnsealConfig(vault=remote).to_args(_StubVault())
    assert args[-2:] == ["--vault-unseal-keys-path", "k"]


def test_hsm_mode():
    hsm = HSMUnsealConfig(module_path="/lib/mod.so", slot_id=3, key_label="bank-vaults", pin=PIN)
    args = UnsealConfig(hsm=hsm).to_args(_StubVault())
    assert args[1:] == [
        "--mode", "hsm",
        "--hsm-module-path", "/lib/mod.so",
        "--hsm-slot-id", "3",
        "--hsm-key-label", "bank-vaults",
        "--hsm-pin", PIN,
    ]


def test_hsm_token_label():
    hsm = HSMUnsealConfig(module_path="m", token_label="tl", pin=PIN, key_label="k")
    args = UnsealConfig(hsm=hsm).to_args(_StubVault())
    assert args[-2:] == ["--hsm-token-label", "tl"]


def test_hsm_k8s_mode_needs_namespace_and_name():
    hsm = HSMUnsealConfig(module_path="m", pin=PIN, key_label="k")
    both = UnsealConfig(
        hsm=hsm, kubernetes=KubernetesUnsealConfig(secret_namespace="ns", secret_name="keys")
    ).to_args(_StubVault("v"))
    assert both[both.index("--mode") + 1] == "hsm-k8s"
    assert both[-6:] == [
        "--k8s-secret-namespace", "ns",
        "--k8s-secret-name", "keys",
        "--k8s-secret-labels", "app.kubernetes.io/name=vault,vault_cr=v",
    ]
    only_name = UnsealConfig(
        hsm=hsm, kubernetes=KubernetesUnsealConfig(secret_name="keys")
    ).to_args(_StubVault("v"))
    assert only_name[only_name.index("--mode") + 1] == "hsm"
    assert "--k8s-secret-name" not in only_name


def test_hsm_daemon_needed():
    assert UnsealConfig().hsm_daemon_needed() is False
    assert UnsealConfig(hsm=HSMUnsealConfig()).hsm_daemon_needed() is False
    assert UnsealConfig(hsm=HSMUnsealConfig(daemon=True)).hsm_daemon_needed() is True


def test_from_dict_reads_documents():
    config = UnsealConfig.from_dict(
        {
            "options": {"preFlightChecks": False, "storeRootToken": False},
            "kubernetes": {"secretNamespace": "ns"},
            "hsm": {"daemon": True, "modulePath": "m", "slotId": 2, "pin": PIN, "keyLabel": "k"},
            "unknown": 1,
        }
    )
    assert config.options == UnsealOptions(pre_flight_checks=False, store_root_token=False)
    assert config.kubernetes == KubernetesUnsealConfig(secret_namespace="ns")
    assert config.hsm == HSMUnsealConfig(daemon=True, module_path="m", slot_id=2, pin=PIN, key_label="k")
    assert config.google is None
    assert config.hsm_daemon_needed() is True


def test_from_dict_none_and_empty_match_default():
    assert UnsealConfig.from_dict(None) == UnsealConfig()
    assert UnsealConfig.from_dict({}) == UnsealConfig()


def test_from_dict_aws_keys():
    config = UnsealConfig.from_dict({"aws": {"kmsKeyId": "kid", "s3Bucket": "b", "s3SSE": "aws:kms"}})
    assert config.aws == AWSUnsealConfig(kms_key_id="kid", s3_bucket="b", s3_sse="aws:kms")


def test_from_dict_rejects_wrong_types():
    with pytest.raises(TypeError):
        UnsealConfig.from_dict({"azure": {"keyVaultName": 5}})
    with pytest.raises(TypeError):
        UnsealConfig.from_dict({"options": {"preFlightChecks": "yes"}})
    with pytest.raises(TypeError):
        UnsealConfig.from_dict(["not", "a", "mapping"])


def test_from_dict_rejects_negative_slot():
    with pytest.raises(ValueError):
        UnsealConfig.from_dict({"hsm": {"slotId": -1}})