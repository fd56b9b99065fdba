"""Images the validation environment pulls, optionally paired with mirror targets."""

from opct.types import (
    COLLECTOR_IMAGE,
    DEFAULT_TOOLS_REPOSITORY,
    MUST_GATHER_MONITORING_IMAGE,
    PLUGINS_IMAGE,
    SONOBUOY_IMAGE,
)

ETCD_FIO_IMAGE = "quay.io/openshift-scale/etcd-perf:latest"
ETCD_FIO_MIRROR_NAME = "etcd-perf:latest"
E2E_PAUSE_IMAGE = "registry.k8s.io/pause:3.8"
E2E_PAUSE_MIRROR_NAME = "ocp-cert:e2e-28-registry-k8s-io-pause-3-8-aP7uYsw5XCmoDy5W"


def generate_image(repo: str, name: str, to_repository: str = "") -> str:
    """Image reference, or 'source target' when a mirror repository is given."""
    source = f"{repo}/{name}"
    if not to_repository:
        return source
    return f"{source} {to_repository}/{name}"


def _external(image: str, mirror_name: str, to_repository: str) -> str:
    if not to_repository:
        return image
    return f"{image} {to_repository}/{mirror_name}"


def list_images(to_repository: str = "") -> list[str]:
    """All images used by the tool, in the order they are printed."""
    images = [
        generate_image(DEFAULT_TOOLS_REPOSITORY, name, to_repository)
        for name in (
            SONOBUOY_IMAGE,
            PLUGINS_IMAGE,
            COLLECTOR_IMAGE,
            MUST_GATHER_MONITORING_IMAGE,
        )
    ]
    images.append(_external(ETCD_FIO_IMAGE, ETCD_FIO_MIRROR_NAME, to_repository))
    images.append(_external(E2E_PAUSE_IMAGE, E2E_PAUSE_MIRROR_NAME, to_repository))
    return images