"""Wait for the Sonobuoy aggregator pod to become ready."""

from __future__ import annotations

import time
from collections.abc import Iterable, Iterator

from opct.kube import EventType, InMemoryCluster, Pod, WatchEvent
from opct.types import CERTIFICATION_NAMESPACE

AGGREGATOR_SELECTOR = "component=sonobuoy,sonobuoy-component=aggregator"
DEFAULT_TIMEOUT_SECONDS = 600.0


class WaitError(Exception):
    """The aggregator pod did not become ready."""


def pod_is_ready(pod: Pod) -> bool:
    """Whether the pod reports the Ready condition as True."""
    return any(c.type == "Ready" and c.status == "True" for c in pod.conditions)


def wait_for_ready_pod(events: Iterable[WatchEvent]) -> Pod:
    """Consume watch events until a pod is running and ready."""
    for event in events:
        if event.type is EventType.ERROR:
            raise WaitError(f"error waiting for sonobuoy to start: {event.object}")
        if event.type is EventType.DELETED:
            raise WaitError("sonobuoy pod deleted while waiting to become ready")
        pod = event.object
        if not isinstance(pod, Pod):
            raise WaitError("type error watching for sononbuoy to start")
        if pod.phase == "Running" and pod_is_ready(pod):
            return pod
    raise WaitError("timed out waiting for the condition")


def _until(events: Iterable[WatchEvent], deadline: float) -> Iterator[WatchEvent]:
    for event in events:
        if time.monotonic() > deadline:
            raise WaitError("timed out waiting for the condition")
        yield event


def wait_for_required_resources(
    kube: InMemoryCluster, timeout: float = DEFAULT_TIMEOUT_SECONDS
) -> Pod:
    """Block until the aggregator pod is running and ready, or fail."""
    deadline = time.monotonic() + timeout
    events = kube.watch_pods(CERTIFICATION_NAMESPACE, AGGREGATOR_SELECTOR)
    return wait_for_ready_pod(_until(events, deadline))