"""Names, labels and container images shared by the validation environment."""

SONOBUOY_VERSION = "v0.57.3"

PRIVILEGED_CLUSTER_ROLE = "opct-scc-privileged"
PRIVILEGED_CLUSTER_ROLE_BINDING = "opct-scc-privileged"
CERTIFICATION_NAMESPACE = "opct"
VERSION_INFO_CONFIG_MAP_NAME = "opct-version"
PLUGINS_VARS_CONFIG_MAP_NAME = "plugins-config"
DEDICATED_NODE_ROLE_LABEL = "node-role.kubernetes.io/tests"
DEDICATED_NODE_ROLE_LABEL_SELECTOR = "node-role.kubernetes.io/tests="
SONOBUOY_SERVICE_ACCOUNT_NAME = "sonobuoy-serviceaccount"
SONOBUOY_LABEL_NAMESPACE_NAME = "namespace"
SONOBUOY_LABEL_COMPONENT_NAME = "component"
SONOBUOY_LABEL_COMPONENT_VALUE = "sonobuoy"
DEFAULT_TOOLS_REPOSITORY = "quay.io/opct"
PLUGINS_IMAGE = "plugin-openshift-tests:v0.5.1"
COLLECTOR_IMAGE = "plugin-artifacts-collector:v0.5.1"
MUST_GATHER_MONITORING_IMAGE = "must-gather-monitoring:v0.5.1"
OPENSHIFT_TESTS_IMAGE = "image-registry.openshift-image-registry.svc:5000/openshift/tests"

SONOBUOY_IMAGE = f"sonobuoy:{SONOBUOY_VERSION}"

# Privileged pod security is enforced for the validation environment.
SONOBUOY_DEFAULT_LABELS = {
    SONOBUOY_LABEL_COMPONENT_NAME: SONOBUOY_LABEL_COMPONENT_VALUE,
    SONOBUOY_LABEL_NAMESPACE_NAME: CERTIFICATION_NAMESPACE,
    "pod-security.kubernetes.io/enforce": "privileged",
    "pod-security.kubernetes.io/audit": "privileged",
    "pod-security.kubernetes.io/warn": "privileged",
}


def _in_default_repository(image: str) -> str:
    return f"{DEFAULT_TOOLS_REPOSITORY}/{image}"


def sonobuoy_image() -> str:
    """Full reference of the Sonobuoy aggregator/worker image."""
    return _in_default_repository(SONOBUOY_IMAGE)


def plugins_image() -> str:
    """Full reference of the image holding the test plugins."""
    return _in_default_repository(PLUGINS_IMAGE)


def collector_image() -> str:
    """Full reference of the artifacts collector image."""
    return _in_default_repository(COLLECTOR_IMAGE)


def must_gather_monitoring_image() -> str:
    """Full reference of the must-gather monitoring image."""
    return _in_default_repository(MUST_GATHER_MONITORING_IMAGE)