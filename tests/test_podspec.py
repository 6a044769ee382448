import pytest

from vaultcrd.podspec import EmbeddedPodSpec


def _full_document():
    return {
        "volumes": [{"name": "data", "emptyDir": {}}],
        "initContainers": [{"name": "init", "image": "busybox"}],
        "containers": [{"name": "vault", "image": "vault:latest"}],
        "ephemeralContainers": [{"name": "debug"}],
        "restartPolicy": "Always",
        "terminationGracePeriodSeconds": 30,
        "activeDeadlineSeconds": 600,
        "dnsPolicy": "ClusterFirst",
        "nodeSelector": {"disk": "ssd"},
        "serviceAccountName": "vault",
        "serviceAccount": "vault-old",
        "automountServiceAccountToken": False,
        "nodeName": "node-a",
        "hostNetwork": True,
        "hostPID": True,
        "hostIPC": True,
        "shareProcessNamespace": True,
        "securityContext": {"runAsUser": 100},
        "imagePullSecrets": [{"name": "registry"}],
        "hostname": "vault-0",
        "subdomain": "vault",
        "affinity": {"nodeAffinity": {}},
        "schedulerName": "custom",
        "tolerations": [{"key": "dedicated", "operator": "Exists"}],
        "hostAliases": [{"ip": "127.0.0.1", "hostnames": ["local"]}],
        "priorityClassName": "high",
        "priority": 1000,
        "dnsConfig": {"nameservers": ["10.0.0.10"]},
        "readinessGates": [{"conditionType": "Ready"}],
        "runtimeClassName": "gvisor",
        "enableServiceLinks": False,
        "preemptionPolicy": "Never",
        "overhead": {"cpu": "250m"},
        "topologySpreadConstraints": [{"topologyKey": "zone", "maxSkew": 1}],
        "setHostnameAsFQDN": True,
    }


def test_full_round_trip():
    document = _full_document()
    spec = EmbeddedPodSpec.from_dict(document)
    assert spec.to_dict() == document


def test_fields_read_from_json_names():
    spec = EmbeddedPodSpec.from_dict(_full_document())
    assert spec.host_pid is True
    assert spec.host_ipc is True
    assert spec.deprecated_service_account == "vault-old"
    assert spec.set_hostname_as_fqdn is True
    assert spec.dns_config == {"nameservers": ["10.0.0.10"]}
    assert spec.containers == [{"name": "vault", "image": "vault:latest"}]
    assert spec.priority == 1000


def test_empty_spec_has_no_fields():
    assert EmbeddedPodSpec().to_dict() == {}
    assert EmbeddedPodSpec.from_dict(None) == EmbeddedPodSpec()
    assert EmbeddedPodSpec.from_dict({}).to_dict() == {}


def test_containers_may_be_missing():
    spec = EmbeddedPodSpec.from_dict({"nodeSelector": {"disk": "ssd"}})
    assert spec.containers == []
    assert spec.to_dict() == {"nodeSelector": {"disk": "ssd"}}


def test_false_pointer_booleans_are_kept():
    spec = EmbeddedPodSpec.from_dict({"enableServiceLinks": False, "hostNetwork": False})
    assert spec.enable_service_links is False
    assert spec.to_dict() == {"enableServiceLinks": False}


def test_zero_pointer_integers_are_kept():
    spec = EmbeddedPodSpec.from_dict({"terminationGracePeriodSeconds": 0})
    assert spec.to_dict() == {"terminationGracePeriodSeconds": 0}


def test_empty_pointer_object_is_kept():
    spec = EmbeddedPodSpec.from_dict({"securityContext": {}})
    assert spec.security_context == {}
    assert spec.to_dict() == {"securityContext": {}}


def test_unknown_keys_ignored():
    spec = EmbeddedPodSpec.from_dict({"hostname": "vault-0", "bogus": 1})
    assert spec.to_dict() == {"hostname": "vault-0"}


def test_decoded_values_are_copies():
    document = {"containers": [{"name": "vault", "env": []}]}
    spec = EmbeddedPodSpec.from_dict(document)
    document["containers"][0]["name"] = "changed"
    assert spec.containers[0]["name"] == "vault"


def test_to_dict_returns_copies():
    spec = EmbeddedPodSpec(volumes=[{"name": "data"}])
    output = spec.to_dict()
    output["volumes"][0]["name"] = "changed"
    assert spec.volumes == [{"name": "data"}]


def test_to_dict_from_dict_identity_on_constructed_spec():
    spec = EmbeddedPodSpec(
        service_account_name="vault",
        priority=-5,
        tolerations=[{"key": "a"}],
        runtime_class_name="",
    )
    assert EmbeddedPodSpec.from_dict(spec.to_dict()) == spec


@pytest.mark.parametrize(
    "document",
    [
        {"hostname": 5},
        {"hostNetwork": "true"},
        {"priority": "1"},
        {"priority": True},
        {"nodeSelector": {"disk": 1}},
        {"nodeSelector": ["disk"]},
        {"containers": {"name": "vault"}},
        {"containers": ["vault"]},
        {"affinity": []},
        {"overhead": "cpu"},
    ],
)
def test_wrong_types_raise(document):
    with pytest.raises(TypeError):
        EmbeddedPodSpec.from_dict(document)


def test_non_mapping_document_raises():
    with pytest.raises(TypeError):
        EmbeddedPodSpec.from_dict(["containers"])


def test_priority_out_of_int32_range():
    with pytest.raises(ValueError):
        EmbeddedPodSpec.from_dict({"priority": 1 << 31})
    assert EmbeddedPodSpec.from_dict({"priority": (1 << 31) - 1}).priority == (1 << 31) - 1


def test_grace_period_out_of_int64_range():
    with pytest.raises(ValueError):
        EmbeddedPodSpec.from_dict({"terminationGracePeriodSeconds": 1 << 63})
    spec = EmbeddedPodSpec.from_dict({"terminationGracePeriodSeconds": 1 << 31})
    assert spec.termination_grace_period_seconds == 1 << 31


def test_null_values_become_defaults():
    spec = EmbeddedPodSpec.from_dict({"containers": None, "hostname": None, "priority": None})
    assert spec == EmbeddedPodSpec()