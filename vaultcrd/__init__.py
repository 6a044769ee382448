"""Model and helpers for the spec of a Vault cluster custom resource."""

__version__ = "0.1.0"

__all__ = ["convert", "metadata", "podspec", "unseal", "spec"]