"""Checks run against the cluster before a validation environment is started."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from opct.kube import ClusterOperator, KubeError, MachineConfigPool, Node, NotFoundError
from opct.types import (
    CERTIFICATION_NAMESPACE,
    DEDICATED_NODE_ROLE_LABEL,
    DEDICATED_NODE_ROLE_LABEL_SELECTOR,
)

log = logging.getLogger(__name__)

UPGRADE_MODE = "upgrade"
MACHINE_CONFIG_POOL_NAME = "opct"
MACHINE_CONFIG_POOL_INSTRUCTIONS = """$ cat << EOF  | oc apply -f -
---
apiVersion: machineconfiguration.openshift.io/v1
kind: MachineConfigPool
metadata:
  name: opct
spec:
  machineConfigSelector:
    matchExpressions:
      - key: machineconfiguration.openshift.io/role,
        operator: In,
        values: [worker,opct]
  nodeSelector:
    matchLabels:
      node-role.kubernetes.io/tests: ""
  paused: true
EOF"""


class PreflightError(Exception):
    """The cluster is not ready for a validation run."""


def check_cluster_operators(operators: Iterable[ClusterOperator]) -> list[str]:
    """Problems found in the operators: each must be available, settled and healthy."""
    problems: list[str] = []
    for operator in operators:
        for cond in operator.conditions:
            if cond.type == "Available" and cond.status == "False":
                problems.append(f"{operator.name} is unavailable")
            elif cond.type == "Progressing" and cond.status == "True":
                problems.append(f"{operator.name} is still progressing")
            elif cond.type == "Degraded" and cond.status == "True":
                problems.append(f"{operator.name} is in degraded state")
    return problems


def check_registry(management_state: str) -> bool:
    """Whether the image registry is in the managed state."""
    return management_state == "Managed"


def check_dedicated_node(kube: Any) -> Node:
    """The node labelled and tainted for tests; raise when it is not set up."""
    try:
        nodes = kube.list_nodes(DEDICATED_NODE_ROLE_LABEL_SELECTOR)
    except KubeError as exc:
        raise PreflightError(f"error getting the Node list: {exc}") from exc
    if not nodes:
        raise PreflightError(
            f"missing dedicated node. Set the label {DEDICATED_NODE_ROLE_LABEL_SELECTOR!r} "
            "to a node and try again\n"
            "Check the documentation or run 'opct adm setup-node' to set the label and taints."
        )
    if len(nodes) > 2:
        raise PreflightError(
            f"too many nodes with label {DEDICATED_NODE_ROLE_LABEL_SELECTOR!r}. "
            "Set the label to only one node and try again"
        )
    node = nodes[0]
    if not any(taint.key == DEDICATED_NODE_ROLE_LABEL for taint in node.taints):
        raise PreflightError(
            f"missing taint \"{DEDICATED_NODE_ROLE_LABEL}='':NoSchedule\" in the dedicated "
            f"node {node.name!r}. Set the taint and try again"
        )
    return node


def check_machine_config_pool(pools: Iterable[MachineConfigPool]) -> MachineConfigPool:
    """The pool used for upgrades; raise when it is missing."""
    pools = list(pools)
    if not pools:
        print()
        raise PreflightError(
            f"MachineConfigPool {MACHINE_CONFIG_POOL_NAME!r} not found, create it and try again"
        )
    pool = next((p for p in pools if p.name == MACHINE_CONFIG_POOL_NAME), None)
    if pool is None:
        log.info("MachineConfigPool not found, create it with the following instructions:")
        print(MACHINE_CONFIG_POOL_INSTRUCTIONS)
        raise PreflightError(
            f"MachineConfigPool {MACHINE_CONFIG_POOL_NAME!r} not found, create it and try again"
        )
    if not pool.paused:
        log.error("MachineConfigPool %r is not paused", MACHINE_CONFIG_POOL_NAME)
    return pool


def pre_run_check(
    kube: Any, dedicated: bool = True, mode: str = "regular", skip_checks: bool = False
) -> list[str]:
    """Run every check before starting; return the checks skipped in devel mode."""
    skipped: list[str] = []

    try:
        problems = check_cluster_operators(kube.list_cluster_operators())
    except KubeError as exc:
        problems = [str(exc)]
    if problems:
        log.error(
            "Preflights checks failed: operators are not in ready state, check the "
            "status with 'oc get clusteroperator': %s",
            problems,
        )
        if not skip_checks:
            raise PreflightError(
                "All Cluster Operators must be available, not progressing, and not "
                "degraded before validation can run."
            )
        message = f"Skipping Cluster Operator checks: {problems}"
        log.warning("DEVEL MODE, THIS IS NOT SUPPORTED: %s", message)
        skipped.append(message)

    try:
        managed = check_registry(kube.image_registry_management_state())
    except KubeError as exc:
        if not skip_checks:
            raise PreflightError(str(exc)) from exc
        managed = False
        message = f"Skipping Image registry check: {exc}"
        log.warning("DEVEL MODE, THIS IS NOT SUPPORTED: %s", message)
        skipped.append(message)
    if not managed:
        if not skip_checks:
            raise PreflightError(
                "OpenShift Image Registry must deployed before validation can run"
            )
        message = "Skipping unmanaged image registry check"
        log.warning("DEVEL MODE, THIS IS NOT SUPPORTED: %s", message)
        skipped.append(message)

    if dedicated:
        log.info("Ensuring required node label and taints exists")
        check_dedicated_node(kube)

    try:
        kube.get_namespace(CERTIFICATION_NAMESPACE)
    except NotFoundError:
        pass
    else:
        raise PreflightError(
            f"{CERTIFICATION_NAMESPACE} namespace already exists. You must run 'destroy' "
            "to clean the environment and try again."
        )

    if mode == UPGRADE_MODE:
        try:
            pools = kube.list_machine_config_pools()
        except KubeError as exc:
            raise PreflightError(f"getting MachineConfigPools failed: {exc}") from exc
        check_machine_config_pool(pools)

    return skipped