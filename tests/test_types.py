import pytest

from opct import types


def test_plugins_image_reference():
    assert types.plugins_image() == "quay.io/opct/plugin-openshift-tests:v0.5.1"


def test_sonobuoy_image_carries_version():
    assert types.sonobuoy_image().endswith(":" + types.SONOBUOY_VERSION)


@pytest.mark.parametrize(
    "func, image",
    [
        (types.sonobuoy_image, types.SONOBUOY_IMAGE),
        (types.plugins_image, types.PLUGINS_IMAGE),
        (types.collector_image, types.COLLECTOR_IMAGE),
        (types.must_gather_monitoring_image, types.MUST_GATHER_MONITORING_IMAGE),
    ],
)
def test_images_live_in_default_repository(func, image):
    reference = func()
    repository, _, name = reference.rpartition("/")
    assert repository == types.DEFAULT_TOOLS_REPOSITORY
    assert name == image


@pytest.mark.parametrize(
    "func, expected",
    [
        (types.collector_image, "quay.io/opct/plugin-artifacts-collector:v0.5.1"),
        (types.must_gather_monitoring_image, "quay.io/opct/must-gather-monitoring:v0.5.1"),
    ],
)
def test_plugin_image_references(func, expected):
    assert func() == expected