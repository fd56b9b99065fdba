"""Set up the validation environment and start the Sonobuoy run."""

from __future__ import annotations

import dataclasses
import json
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from opct.kube import KubeError, Namespace, ConfigMap
from opct.types import (
    CERTIFICATION_NAMESPACE,
    COLLECTOR_IMAGE,
    DEDICATED_NODE_ROLE_LABEL,
    DEDICATED_NODE_ROLE_LABEL_SELECTOR,
    DEFAULT_TOOLS_REPOSITORY,
    MUST_GATHER_MONITORING_IMAGE,
    OPENSHIFT_TESTS_IMAGE,
    PLUGINS_IMAGE,
    PLUGINS_VARS_CONFIG_MAP_NAME,
    PRIVILEGED_CLUSTER_ROLE,
    PRIVILEGED_CLUSTER_ROLE_BINDING,
    SONOBUOY_DEFAULT_LABELS,
    SONOBUOY_IMAGE,
    SONOBUOY_SERVICE_ACCOUNT_NAME,
    SONOBUOY_VERSION,
    VERSION_INFO_CONFIG_MAP_NAME,
    collector_image,
    must_gather_monitoring_image,
    plugins_image,
    sonobuoy_image,
)
from opct.version import VERSION

log = logging.getLogger(__name__)

DEFAULT_RUN_TIMEOUT_SECONDS = 21600
DEFAULT_RUN_MODE = "regular"
DEFAULT_UPGRADE_IMAGE = ""
DEFAULT_DEDICATED_FLAG = True
DEFAULT_RUN_WATCH_FLAG = False

DEFAULT_AGGREGATION_TIMEOUT_SECONDS = 10800
DEFAULT_WORKER_IMAGE = f"sonobuoy/sonobuoy:{SONOBUOY_VERSION}"
DEFAULT_PULL_POLICY = "IfNotPresent"
RBAC_GROUP_NAME = "rbac.authorization.k8s.io"

_ACTION = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
_FIELD = re.compile(r"\.([A-Za-z_]\w*)")
_COMMENT = re.compile(r"/\*.*\*/", re.DOTALL)


class RunError(Exception):
    """The validation environment could not be started."""


@dataclass
class RunOptions:
    """Options of the run command."""

    plugins: list[str] = field(default_factory=list)
    sonobuoy_image: str = field(default_factory=sonobuoy_image)
    image_repository: str = ""
    plugins_image: str = field(default_factory=plugins_image)
    collector_image: str = field(default_factory=collector_image)
    must_gather_monitoring_image: str = field(default_factory=must_gather_monitoring_image)
    openshift_tests_image: str = OPENSHIFT_TESTS_IMAGE
    timeout: int = DEFAULT_RUN_TIMEOUT_SECONDS
    watch: bool = DEFAULT_RUN_WATCH_FLAG
    mode: str = DEFAULT_RUN_MODE
    upgrade_image: str = DEFAULT_UPGRADE_IMAGE
    dev_count: str = "0"
    dev_skip_checks: bool = False
    dedicated: bool = DEFAULT_DEDICATED_FLAG

    def template_fields(self) -> dict[str, str]:
        """Values visible to plugin manifest templates."""
        return {
            "PluginsImage": self.plugins_image,
            "CollectorImage": self.collector_image,
            "MustGatherMonitoringImage": self.must_gather_monitoring_image,
            "OpenshiftTestsImage": self.openshift_tests_image,
        }


@dataclass
class RunConfig:
    """Aggregator and worker configuration handed to Sonobuoy."""

    static_plugins: list[str]
    namespace: str = CERTIFICATION_NAMESPACE
    worker_image: str = DEFAULT_WORKER_IMAGE
    timeout_seconds: int = DEFAULT_AGGREGATION_TIMEOUT_SECONDS
    existing_service_account: bool = True
    service_account_name: str = SONOBUOY_SERVICE_ACCOUNT_NAME
    security_context_mode: str = "none"
    enable_rbac: bool = False
    image_pull_policy: str = DEFAULT_PULL_POLICY


def process_manifest_template(options: RunOptions, manifest: Union[str, bytes]) -> str:
    """Replace {{.Field}} actions in the manifest with values from the options."""
    text = manifest.decode() if isinstance(manifest, bytes) else manifest
    text = re.sub(r"\s*\{\{- ", "{{", text)
    text = re.sub(r" -\}\}\s*", "}}", text)
    values = options.template_fields()

    parts: list[str] = []
    position = 0
    for match in _ACTION.finditer(text):
        parts.append(text[position:match.start()])
        position = match.end()
        inner = match.group(1).strip()
        if _COMMENT.fullmatch(inner):
            continue
        ref = _FIELD.fullmatch(inner)
        if ref is None:
            raise RunError(f"unable to parse manifest: unsupported action {{{{{inner}}}}}")
        name = ref.group(1)
        if name not in values:
            raise RunError(f"unable to update manifest: can't evaluate field {name}")
        parts.append(values[name])
    rest = text[position:]
    if "{{" in rest:
        raise RunError("unable to parse manifest: unclosed action")
    parts.append(rest)
    return "".join(parts)


def namespace_annotations(dedicated: bool) -> dict[str, str]:
    """Annotations pinning the namespace's pods to the dedicated node."""
    if not dedicated:
        return {}
    tolerations = [
        {
            "key": DEDICATED_NODE_ROLE_LABEL,
            "operator": "Exists",
            "effect": "NoSchedule",
        }
    ]
    return {
        "openshift.io/node-selector": DEDICATED_NODE_ROLE_LABEL_SELECTOR,
        "scheduler.alpha.kubernetes.io/defaultTolerations": json.dumps(
            tolerations, separators=(",", ":")
        ),
    }


def _metadata(name: str, namespace: str = CERTIFICATION_NAMESPACE) -> dict[str, Any]:
    return {"name": name, "namespace": namespace, "labels": dict(SONOBUOY_DEFAULT_LABELS)}


def pre_run_setup(options: RunOptions, kube: Any) -> None:
    """Create the namespace, service account and privileged RBAC."""
    namespace = Namespace(
        name=CERTIFICATION_NAMESPACE,
        labels=dict(SONOBUOY_DEFAULT_LABELS),
        annotations=namespace_annotations(options.dedicated),
    )
    try:
        kube.create_namespace(namespace)
    except KubeError as exc:
        raise RunError(f"error creating Namespace: {exc}") from exc

    account = {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": _metadata(SONOBUOY_SERVICE_ACCOUNT_NAME),
    }
    try:
        kube.create_service_account(CERTIFICATION_NAMESPACE, account)
    except KubeError as exc:
        raise RunError(f"error creating ServiceAccount: {exc}") from exc

    log.info("Ensuring the tool will run in the privileged environment...")

    role = {
        "apiVersion": f"{RBAC_GROUP_NAME}/v1",
        "kind": "ClusterRole",
        "metadata": _metadata(PRIVILEGED_CLUSTER_ROLE),
        "rules": [
            {"apiGroups": ["*"], "resources": ["*"], "verbs": ["*"]},
            {"nonResourceURLs": ["/metrics", "/logs", "/logs/*"], "verbs": ["get"]},
        ],
    }
    try:
        kube.update_cluster_role(role)
    except KubeError as exc:
        raise RunError(f"error creating privileged ClusterRole: {exc}") from exc
    log.info("Created %s ClusterRole", PRIVILEGED_CLUSTER_ROLE)

    binding = {
        "apiVersion": f"{RBAC_GROUP_NAME}/v1",
        "kind": "ClusterRoleBinding",
        "metadata": _metadata(PRIVILEGED_CLUSTER_ROLE_BINDING),
        "subjects": [
            {
                "kind": "ServiceAccount",
                "name": SONOBUOY_SERVICE_ACCOUNT_NAME,
                "namespace": CERTIFICATION_NAMESPACE,
            }
        ],
        "roleRef": {
            "apiGroup": RBAC_GROUP_NAME,
            "kind": "ClusterRole",
            "name": PRIVILEGED_CLUSTER_ROLE,
        },
    }
    try:
        kube.update_cluster_role_binding(binding)
    except KubeError as exc:
        raise RunError(f"error creating privileged ClusterRoleBinding: {exc}") from exc
    log.info("Created %s ClusterRoleBinding", PRIVILEGED_CLUSTER_ROLE_BINDING)


def resolve_images(options: RunOptions) -> RunOptions:
    """Options with every image pointing at the mirror repository, when one is set."""
    repository = DEFAULT_TOOLS_REPOSITORY
    override_sonobuoy_image = options.sonobuoy_image != sonobuoy_image()
    if options.image_repository:
        # A custom Sonobuoy image is a development aid; mirrors must carry the stock one.
        if override_sonobuoy_image:
            raise RunError(
                "The image override --sonobuoy-image cannot be used with --image-repository"
            )
        repository = options.image_repository
        log.info("Mirror registry is configured %s ", options.image_repository)
    if repository == DEFAULT_TOOLS_REPOSITORY:
        return dataclasses.replace(options)
    log.info("Setting up images for custom image repository %s", repository)
    return dataclasses.replace(
        options,
        sonobuoy_image=f"{repository}/{SONOBUOY_IMAGE}",
        plugins_image=f"{repository}/{PLUGINS_IMAGE}",
        collector_image=f"{repository}/{COLLECTOR_IMAGE}",
        must_gather_monitoring_image=f"{repository}/{MUST_GATHER_MONITORING_IMAGE}",
    )


def plugins_config_data(options: RunOptions) -> dict[str, str]:
    """Variables shared with the plugins through a ConfigMap."""
    data = {
        "dev-count": options.dev_count,
        "run-mode": options.mode,
        "upgrade-target-images": options.upgrade_image,
    }
    if options.image_repository:
        data["mirror-registry"] = options.image_repository
    return data


def _load_manifests(options: RunOptions, default_manifests: Iterable[Union[str, bytes]]) -> list[str]:
    if not options.plugins:
        log.debug("Loading default plugins")
        return [process_manifest_template(options, m) for m in default_manifests]
    log.debug("Loading plugins specific at command line")
    manifests = []
    for path in options.plugins:
        try:
            manifests.append(Path(path).read_text())
        except OSError as exc:
            raise RunError(f"unable to load plugin {path}: {exc}") from exc
    return manifests


def run(
    options: RunOptions,
    kube: Any,
    sonobuoy: Any,
    default_manifests: Iterable[Union[str, bytes]] = (),
) -> RunConfig:
    """Provision the environment and start Sonobuoy; return the configuration used."""
    options = resolve_images(options)

    errors = sonobuoy.preflight_checks(
        {
            "namespace": CERTIFICATION_NAMESPACE,
            "dns_namespace": "openshift-dns",
            "dns_pod_labels": ["dns.operator.openshift.io/daemonset-dns=default"],
            # The namespace is created beforehand, so that check would always fail.
            "preflight_checks_skip": ["existingnamespace"],
        }
    )
    if errors:
        for error in errors:
            log.error("%s", error)
        if not options.dev_skip_checks:
            raise RunError("preflight checks failed")
        log.warning("DEVEL MODE, THIS IS NOT SUPPORTED: Skipping preflight checks")

    kube.create_config_map(
        CERTIFICATION_NAMESPACE,
        ConfigMap(
            name=VERSION_INFO_CONFIG_MAP_NAME,
            namespace=CERTIFICATION_NAMESPACE,
            data={
                "cli-version": VERSION.version,
                "cli-commit": VERSION.commit,
                "sonobuoy-version": SONOBUOY_VERSION,
                "sonobuoy-image": options.sonobuoy_image,
            },
        ),
    )
    kube.create_config_map(
        CERTIFICATION_NAMESPACE,
        ConfigMap(
            name=PLUGINS_VARS_CONFIG_MAP_NAME,
            namespace=CERTIFICATION_NAMESPACE,
            data=plugins_config_data(options),
        ),
    )

    manifests = _load_manifests(options, default_manifests)
    if not manifests:
        raise RunError("No validation plugins to run")

    config = RunConfig(static_plugins=manifests)
    if options.timeout > 0:
        config.timeout_seconds = options.timeout
    if options.sonobuoy_image:
        config.worker_image = options.sonobuoy_image

    sonobuoy.run(config)
    return config