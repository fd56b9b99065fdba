"""Prepare a worker node to host the validation workloads."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from typing import Any, Optional

from opct.kube import KubeError, Node, Taint
from opct.types import DEDICATED_NODE_ROLE_LABEL

log = logging.getLogger(__name__)

MONITORING_NAMESPACE = "openshift-monitoring"
PROMETHEUS_SELECTOR = "prometheus=k8s"
WORKER_SELECTOR = "node-role.kubernetes.io/worker="


class SetupNodeError(Exception):
    """The node could not be prepared."""


def discover_node(kube: Any) -> str:
    """A worker node that does not run Prometheus, or the first worker otherwise."""
    try:
        pods = kube.list_pods(MONITORING_NAMESPACE, PROMETHEUS_SELECTOR)
    except KubeError as exc:
        raise SetupNodeError(
            f"Failed to list Prometheus pods on namespace {MONITORING_NAMESPACE}: {exc}"
        ) from exc
    if not pods:
        raise SetupNodeError(
            f"Expected at least 1 Prometheus pod, got {len(pods)}. "
            "Use --name to manually set the node."
        )
    busy = set()
    for pod in pods:
        log.info(
            "Prometheus pod %s is running on node %s, adding to skip list...",
            pod.name,
            pod.node_name,
        )
        busy.add(pod.node_name)

    try:
        nodes = kube.list_nodes(WORKER_SELECTOR)
    except KubeError as exc:
        raise SetupNodeError(f"Failed to list nodes: {exc}") from exc
    if not nodes:
        raise SetupNodeError("Failed to list nodes: no worker nodes found")
    for node in nodes:
        if node.name not in busy:
            return node.name
    forced = nodes[0].name
    log.warning("No node available to run the validation process, using %s", forced)
    return forced


def apply_dedicated_role(node: Node) -> Node:
    """A copy of the node carrying the tests role label and NoSchedule taint."""
    updated = copy.deepcopy(node)
    updated.labels[DEDICATED_NODE_ROLE_LABEL] = ""
    updated.taints.append(Taint(key=DEDICATED_NODE_ROLE_LABEL, value="", effect="NoSchedule"))
    return updated


def setup_node(
    kube: Any,
    node_name: str = "",
    confirm: Optional[Callable[[str], bool]] = None,
) -> Optional[Node]:
    """Label and taint the node; return it, or None when the user declines.

    When confirm is given it is asked before any change is made.
    """
    if not node_name:
        node_name = discover_node(kube)
    log.info("Setting up node %s...", node_name)

    try:
        node = kube.get_node(node_name)
    except KubeError as exc:
        raise SetupNodeError(f"Failed to get node {node_name}: {exc}") from exc

    if confirm is not None:
        prompt = f"Are you sure you want to apply changes to node {node_name}? (y/n): "
        if not confirm(prompt):
            print("Aborted.")
            return None

    try:
        return kube.update_node(apply_dedicated_role(node))
    except KubeError as exc:
        raise SetupNodeError(f"Failed to update node labels: {exc}") from exc