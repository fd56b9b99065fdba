from opct import images
from opct.types import DEFAULT_TOOLS_REPOSITORY, PLUGINS_IMAGE, sonobuoy_image

MIRROR = "registry.example.io:5000"


def test_generate_image_without_mirror():
    assert images.generate_image("repo", "img:1", "") == "repo/img:1"


def test_generate_image_with_mirror():
    assert images.generate_image("repo", "img:1", "mirror") == "repo/img:1 mirror/img:1"


def test_list_images_without_mirror():
    result = images.list_images("")
    assert len(result) == 6
    assert result[0] == sonobuoy_image()
    assert f"{DEFAULT_TOOLS_REPOSITORY}/{PLUGINS_IMAGE}" in result
    assert result[-2] == "quay.io/openshift-scale/etcd-perf:latest"
    assert result[-1] == "registry.k8s.io/pause:3.8"


def test_list_images_with_mirror_pairs_every_image():
    result = images.list_images(MIRROR)
    plain = images.list_images()
    assert len(result) == len(plain)
    for line, source in zip(result, plain):
        src, dst = line.split(" ")
        assert src == source
        assert dst.startswith(MIRROR + "/")


def test_pause_image_mirror_name():
    last = images.list_images(MIRROR)[-1]
    assert last.split(" ")[1] == (
        MIRROR + "/ocp-cert:e2e-28-registry-k8s-io-pause-3-8-aP7uYsw5XCmoDy5W"
    )