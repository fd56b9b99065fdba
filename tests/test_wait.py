import pytest

from opct.kube import EventType, InMemoryCluster, Pod, PodCondition, WatchEvent
from opct.types import CERTIFICATION_NAMESPACE
from opct.wait import WaitError, pod_is_ready, wait_for_ready_pod, wait_for_required_resources

AGG_LABELS = {"component": "sonobuoy", "sonobuoy-component": "aggregator"}


def _pod(phase="Running", ready="True", name="agg"):
    return Pod(
        name,
        CERTIFICATION_NAMESPACE,
        labels=dict(AGG_LABELS),
        phase=phase,
        conditions=[PodCondition("Ready", ready)],
    )


def test_pod_is_ready():
    assert pod_is_ready(_pod())
    assert not pod_is_ready(_pod(ready="False"))
    assert not pod_is_ready(Pod("bare"))


def test_wait_returns_first_ready_running_pod():
    events = [
        WatchEvent(EventType.ADDED, _pod(phase="Pending", ready="False")),
        WatchEvent(EventType.MODIFIED, _pod(name="ready")),
    ]
    assert wait_for_ready_pod(events).name == "ready"


def test_ready_but_not_running_is_not_enough():
    with pytest.raises(WaitError, match="timed out"):
        wait_for_ready_pod([WatchEvent(EventType.ADDED, _pod(phase="Pending"))])


def test_deleted_event_fails():
    with pytest.raises(WaitError, match="deleted while waiting"):
        wait_for_ready_pod([WatchEvent(EventType.DELETED, _pod())])


def test_error_event_fails():
    with pytest.raises(WaitError, match="error waiting for sonobuoy to start"):
        wait_for_ready_pod([WatchEvent(EventType.ERROR, RuntimeError("boom"))])


def test_non_pod_object_fails():
    with pytest.raises(WaitError, match="type error"):
        wait_for_ready_pod([WatchEvent(EventType.ADDED, "not a pod")])


def test_wait_for_required_resources_uses_aggregator_pod():
    cluster = InMemoryCluster()
    cluster.add_pod(_pod(phase="Pending", ready="False"))
    cluster.add_pod(Pod("worker", CERTIFICATION_NAMESPACE, labels={"component": "sonobuoy"},
                        phase="Running", conditions=[PodCondition("Ready", "True")]))
    cluster.add_pod(_pod())
    pod = wait_for_required_resources(cluster)
    assert pod.name == "agg"
    assert pod.phase == "Running"


def test_wait_for_required_resources_without_pod():
    with pytest.raises(WaitError):
        wait_for_required_resources(InMemoryCluster())


def test_wait_for_required_resources_expired_deadline():
    cluster = InMemoryCluster()
    cluster.add_pod(_pod())
    with pytest.raises(WaitError, match="timed out"):
        wait_for_required_resources(cluster, timeout=-1)