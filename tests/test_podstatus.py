import pytest

from opct.kube import InMemoryCluster, KubeError, Pod, PodCondition
from opct.podstatus import PodLookupError, get_plugin_pod, pod_status_string


def _plugin_pod(name, plugin, namespace="test-namespace"):
    return Pod(
        name=name,
        namespace=namespace,
        labels={"component": "sonobuoy", "sonobuoy-plugin": plugin},
    )


class _BrokenKube:
    def list_pods(self, namespace, label_selector=None):
        raise KubeError("connection refused")


def test_get_plugin_pod():
    kube = InMemoryCluster()
    kube.add_pod(_plugin_pod("test-pod", "test-plugin"))
    pod = get_plugin_pod(kube, "test-namespace", "test-plugin")
    assert pod.name == "test-pod"


def test_get_plugin_pod_ignores_other_plugins():
    kube = InMemoryCluster()
    kube.add_pod(_plugin_pod("other-pod", "other-plugin"))
    kube.add_pod(_plugin_pod("test-pod", "test-plugin"))
    assert get_plugin_pod(kube, "test-namespace", "test-plugin").name == "test-pod"


def test_get_plugin_pod_none_found():
    kube = InMemoryCluster()
    with pytest.raises(PodLookupError, match="no pods found"):
        get_plugin_pod(kube, "test-namespace", "test-plugin")


def test_get_plugin_pod_other_namespace_not_found():
    kube = InMemoryCluster()
    kube.add_pod(_plugin_pod("test-pod", "test-plugin", namespace="elsewhere"))
    with pytest.raises(PodLookupError):
        get_plugin_pod(kube, "test-namespace", "test-plugin")


def test_get_plugin_pod_multiple_returns_first():
    kube = InMemoryCluster()
    kube.add_pod(_plugin_pod("pod-a", "test-plugin"))
    kube.add_pod(_plugin_pod("pod-b", "test-plugin"))
    assert get_plugin_pod(kube, "test-namespace", "test-plugin").name == "pod-a"


def test_get_plugin_pod_list_failure():
    with pytest.raises(PodLookupError, match="unable to list pods"):
        get_plugin_pod(_BrokenKube(), "test-namespace", "test-plugin")


def test_get_pod_status_string():
    pod = Pod(
        name="p",
        phase="Running",
        conditions=[PodCondition(type="Ready", status="True")],
    )
    assert pod_status_string(pod) == "Running"


def test_pod_status_string_none():
    assert pod_status_string(None) == "TBD(pod)"


def test_pod_status_string_completed():
    pod = Pod(
        name="p",
        phase="Succeeded",
        conditions=[PodCondition(type="Ready", status="False", reason="PodCompleted")],
    )
    assert pod_status_string(pod) == "Completed"


def test_pod_status_string_not_ready():
    pod = Pod(
        name="p",
        phase="Running",
        conditions=[
            PodCondition(type="Ready", status="False", reason="ContainersNotReady")
        ],
    )
    assert pod_status_string(pod) == "NotReady"


def test_pod_status_string_falls_back_to_phase():
    pod = Pod(
        name="p",
        phase="Pending",
        conditions=[PodCondition(type="PodScheduled", status="False")],
    )
    assert pod_status_string(pod) == "Pending"