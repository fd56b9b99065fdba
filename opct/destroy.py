"""Tear down the validation environment inside the cluster."""

from __future__ import annotations

import logging
import re
from datetime import timedelta
from typing import Any

from opct.kube import InMemoryCluster, KubeError
from opct.types import (
    CERTIFICATION_NAMESPACE,
    PRIVILEGED_CLUSTER_ROLE,
    PRIVILEGED_CLUSTER_ROLE_BINDING,
)

log = logging.getLogger(__name__)

DELETE_SONOBUOY_ENV_WAIT = timedelta(hours=1)
NON_OPENSHIFT_NAMESPACE = re.compile(r"e2e-.*")


class Destroyer:
    """Removes the resources created for a validation run."""

    def __init__(self, kube: InMemoryCluster, sonobuoy: Any) -> None:
        self.kube = kube
        self.sonobuoy = sonobuoy

    def delete_sonobuoy_env(self) -> None:
        """Delete the Sonobuoy environment and wait for it to go away."""
        self.sonobuoy.delete(namespace=CERTIFICATION_NAMESPACE, wait=DELETE_SONOBUOY_ENV_WAIT)

    def delete_test_namespaces(self) -> list[str]:
        """Delete namespaces left behind by e2e tests; return the names found."""
        stale = [
            ns.name
            for ns in self.kube.list_namespaces()
            if NON_OPENSHIFT_NAMESPACE.search(ns.name)
        ]
        for name in stale:
            log.info("stale namespace was found: %s, removing...", name)
        for name in stale:
            try:
                self.kube.delete_namespace(name)
            except KubeError as exc:
                log.warning("error deleting namespace %s: %s", name, exc)
        return stale

    def restore_scc(self) -> None:
        """Remove the privileged cluster role and its binding."""
        self.kube.delete_cluster_role(PRIVILEGED_CLUSTER_ROLE)
        log.info("Deleted %s ClusterRole", PRIVILEGED_CLUSTER_ROLE)
        self.kube.delete_cluster_role_binding(PRIVILEGED_CLUSTER_ROLE_BINDING)
        log.info("Deleted %s ClusterRoleBinding", PRIVILEGED_CLUSTER_ROLE_BINDING)

    def destroy(self) -> list[Exception]:
        """Run every teardown step; failures are logged and returned, not raised."""
        log.info("Starting the destroy flow...")
        errors: list[Exception] = []
        steps = (
            (None, self.delete_sonobuoy_env),
            ("removing non-openshift NS...", self.delete_test_namespaces),
            ("restoring privileged environment...", self.restore_scc),
        )
        for message, step in steps:
            if message:
                log.info(message)
            try:
                step()
            except Exception as exc:  # every step runs regardless of earlier failures
                log.warning("%s", exc)
                errors.append(exc)
        log.info("Destroy done!")
        return errors