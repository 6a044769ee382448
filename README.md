# vaultcrd

A plain-Python model of the spec of a Vault cluster custom resource, with
the helpers an operator needs to reason about it. It has no dependencies
outside the standard library.

## Modules

- `vaultcrd.spec`: `VaultSpec` and its parts (`CredentialsConfig`,
  `Resources`, `Ingress`). `VaultSpec.from_dict` reads a decoded `spec`
  document. The spec reads the storage, `ha_storage`, `seal` and listener
  stanzas out of the embedded Vault server configuration
  (`get_storage_type`, `get_storage`, `has_ha_storage`, `is_tls_disabled`,
  `is_auto_unseal`, `is_raft_storage`, ...) and applies the defaults for
  images, the service account (`"default"`) and the TLS expiry threshold
  (168 hours).
- `vaultcrd.unseal`: `UnsealConfig` and the backend settings for Kubernetes,
  Google, Alibaba, Azure, AWS, a remote Vault and HSM.
  `UnsealConfig.to_args(vault)` builds the unsealer's command-line arguments;
  `hsm_daemon_needed()` says whether an HSM daemon is required.
- `vaultcrd.podspec`: `EmbeddedPodSpec`, a pod spec snippet in which every
  field, containers included, may be left out.
- `vaultcrd.metadata`: `EmbeddedObjectMetadata` and
  `EmbeddedPersistentVolumeClaim`, used for volume claim templates.
- `vaultcrd.convert`: lenient value conversion (`to_bool`, `to_string_map`),
  duration parsing in the `1h30m` style (`parse_duration`) and semantic
  versions (`parse_version`, `Version`).

Malformed documents raise `TypeError` (wrong value types) or `ValueError`
(integers out of range).

## Example

```python
from vaultcrd.spec import VaultSpec

spec = VaultSpec.from_dict({
    "image": "vault:1.9.0",
    "config": {
        "storage": {"file": {"path": "/vault/file"}},
        "listener": {"tcp": {"address": "0.0.0.0:8200", "tls_disable": True}},
    },
})

spec.get_storage_type()          # "file"
spec.get_api_scheme()            # "http"
str(spec.get_version())          # "1.9.0"
spec.get_tls_expiry_threshold()  # timedelta(days=7)


class Owner:
    name = "vault"
    namespace = "default"

    def labels_for_vault(self):
        return {"app.kubernetes.io/name": "vault", "vault_cr": self.name}


spec.unseal_config.to_args(Owner())
# ['--pre-flight-checks=true', '--mode', 'k8s',
#  '--k8s-secret-namespace', 'default', '--k8s-secret-name', 'vault-unseal-keys',
#  '--k8s-secret-labels', 'app.kubernetes.io/name=vault,vault_cr=vault']
```

If the spec leaves the unsealer image out, `get_bank_vaults_image` uses the
`BANK_VAULTS_IMAGE` environment variable, read at import time, and falls back
to `DEFAULT_BANK_VAULTS_IMAGE` in `vaultcrd.spec` otherwise.

## What it does not do

The package models the spec only. It has no type for the whole resource
(metadata, spec and status together), no list type and no registry of
group, version and kind names. `UnsealConfig.to_args` therefore takes any
object that has `name`, `namespace` and a `labels_for_vault()` method, as in
the example above. Nothing here talks to a cluster or runs a controller.

## Running the tests

```
pip install -e ".[test]"
pytest
```