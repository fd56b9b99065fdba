"""Locate plugin pods and summarise their state."""

from __future__ import annotations

import logging
from typing import Any, Optional

from opct.kube import KubeError, Pod, format_label_selector

log = logging.getLogger(__name__)


class PodLookupError(Exception):
    """The plugin pod could not be found."""


def get_plugin_pod(kube: Any, namespace: str, plugin_name: str) -> Pod:
    """The pod running the named plugin; the first one when several match."""
    selector = format_label_selector(
        {"component": "sonobuoy", "sonobuoy-plugin": plugin_name}
    )
    log.debug("Getting pod with labels: %s", selector)
    try:
        pods = kube.list_pods(namespace, selector)
    except KubeError as exc:
        raise PodLookupError(f"unable to list pods with label {selector!r}") from exc

    if not pods:
        message = f"no pods found with label {selector!r} in namespace {namespace}"
        log.warning(message)
        raise PodLookupError(message)
    if len(pods) > 1:
        log.warning(
            "Found more than one pod with label %r. Using pod with name %r",
            selector,
            pods[0].name,
        )
    return pods[0]


def pod_status_string(pod: Optional[Pod]) -> str:
    """Short human-readable state of a pod."""
    if pod is None:
        return "TBD(pod)"
    for cond in pod.conditions:
        if cond.type != "Ready":
            continue
        if cond.status == "True" and pod.phase == "Running":
            return "Running"
        if cond.status == "False" and cond.reason == "PodCompleted":
            return "Completed"
        if cond.status == "False" and cond.reason == "ContainersNotReady":
            return "NotReady"
    return pod.phase