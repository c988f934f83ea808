import logging

import numpy as np
import pytest
import yaml
from numpy.testing import assert_allclose

from rigpose.assets import (
    AssetLoader,
    AssetManager,
    AssetState,
    AuthoredAsset,
    MeshNode,
    YamlAssetLoader,
    correction_quaternion,
    corrected_bbox_size,
    detect_axis,
    initialize_segment_bindings,
)
from rigpose.core import AssetLoadError
from rigpose.core.math3d import quat_rotate_vector
from rigpose.motion import AssetSlot, SegmentTable
from conftest import manifest


def box(size):
    half = np.asarray(size, dtype=np.float64) / 2.0
    return {"bbox_min": -half, "bbox_max": half}


@pytest.mark.parametrize("size,axis", [
    ([3.0, 1.0, 1.0], [1.0, 0.0, 0.0]),
    ([1.0, 3.0, 1.0], [0.0, 1.0, 0.0]),
    ([1.0, 1.0, 3.0], [0.0, 0.0, 1.0]),
    ([2.0, 2.0, 2.0], [1.0, 0.0, 0.0]),
    ([1.0, 2.0, 2.0], [0.0, 0.0, 1.0]),
])
def test_detect_axis_prefers_x_then_z(size, axis):
    assert_allclose(detect_axis(np.array(size)), axis)


def test_default_correction_moves_authored_z_onto_y():
    q = correction_quaternion([("x", 90.0), ("y", 180.0)])
    assert_allclose(quat_rotate_vector(q, np.array([0.0, 0.0, 1.0])), [0.0, -1.0, 0.0], atol=1e-12)
    assert_allclose(quat_rotate_vector(q, np.array([1.0, 0.0, 0.0])), [-1.0, 0.0, 0.0], atol=1e-12)
    assert_allclose(corrected_bbox_size(np.array([0.1, 0.2, 0.8]), q), [0.1, 0.8, 0.2], atol=1e-12)


def test_unknown_correction_axis():
    with pytest.raises(ValueError):
        correction_quaternion([("w", 90.0)])


def test_binding_detects_axis_after_correction():
    asset = AuthoredAsset("a", {"object_11": MeshNode("object_11", scale=np.array([2.0, 2.0, 2.0]), **box([0.1, 0.1, 0.6]))})
    binding = initialize_segment_bindings(asset, SegmentTable(), AssetSlot.PRIMARY)

    rest = binding.segments["object_11"]
    assert_allclose(rest.axis, [0.0, 1.0, 0.0])
    assert rest.rest_length == pytest.approx(0.6)
    assert_allclose(rest.bbox_size, [0.1, 0.6, 0.1], atol=1e-12)
    assert_allclose(rest.scale, [2.0, 2.0, 2.0])


def test_per_mesh_correction_is_applied_after_asset_correction():
    node = MeshNode("object_8", correction=[("x", 90.0)], **box([0.1, 0.1, 0.6]))
    binding = initialize_segment_bindings(AuthoredAsset("a", {"object_8": node}), SegmentTable(), AssetSlot.PRIMARY)
    # Y-up after the asset correction, then a quarter turn about X puts it on Z
    assert_allclose(binding.segments["object_8"].axis, [0.0, 0.0, 1.0])


def test_rest_length_has_a_floor():
    node = MeshNode("object_1", **box([0.0, 0.0, 0.0]))
    binding = initialize_segment_bindings(AuthoredAsset("a", {"object_1": node}), SegmentTable(), AssetSlot.PRIMARY)
    assert binding.segments["object_1"].rest_length == pytest.approx(1e-3)


def test_missing_meshes_are_warned_and_left_unbound(caplog):
    asset = AuthoredAsset("partial", {"object_11": MeshNode("object_11")})
    with caplog.at_level(logging.WARNING, logger="rigpose"):
        binding = initialize_segment_bindings(asset, SegmentTable(), AssetSlot.ALTERNATE)

    assert list(binding.segments) == ["object_11"]
    assert len(binding.missing) == 19
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 19
    assert any("object_12" in r.getMessage() for r in warnings)


def test_yaml_loader_reads_manifest(asset_dir):
    asset = YamlAssetLoader(asset_dir).read("primary.yaml")

    assert asset.asset_id == "test-skeleton"
    assert len(asset.nodes) == 20
    assert_allclose(asset.find("object_1").bbox_max, [0.05, 0.05, 0.2])


@pytest.mark.parametrize("content", [
    "meshes: [1, 2]",
    "just a string",
    "meshes:\n  object_1: {position: [1, 2]}",
    "meshes: {object_1: {correction: [[x]]}}",
    "meshes: {",
    "meshes: {object_1: {correction: [[w, 90]]}}",
    "meshes: {object_1: {bbox: [1, 2, 3]}}",
    "meshes: {object_1: [0, 1, 0]}",
    "geometry_correction: [[q, 90]]\nmeshes: {object_1: {}}",
])
def test_yaml_loader_rejects_bad_manifests(tmp_path, content):
    (tmp_path / "bad.yaml").write_text(content)
    with pytest.raises(AssetLoadError) as info:
        YamlAssetLoader(tmp_path).read("bad.yaml")
    assert info.value.asset_id == "bad.yaml"


def test_yaml_loader_missing_file(tmp_path):
    with pytest.raises(AssetLoadError):
        YamlAssetLoader(tmp_path).read("nope.yaml")


def test_manager_publishes_on_poll(asset_dir):
    table = SegmentTable()
    manager = AssetManager(table, YamlAssetLoader(asset_dir))
    loaded = []

    manager.load("primary.yaml", AssetSlot.PRIMARY, on_loaded=loaded.append)
    manager.wait(timeout=5.0)

    assert not table.get("object_1").is_bound(AssetSlot.PRIMARY)
    assert manager.poll() == [AssetSlot.PRIMARY]
    assert manager.is_ready(AssetSlot.PRIMARY)
    assert len(table.bound_segments(AssetSlot.PRIMARY)) == 20
    assert loaded[0].asset_id == "test-skeleton"
    assert manager.poll() == []


def test_manager_failure_marks_slot_failed(tmp_path):
    table = SegmentTable()
    manager = AssetManager(table, YamlAssetLoader(tmp_path))
    failures = []

    manager.load("missing.yaml", AssetSlot.ALTERNATE, on_failed=failures.append)
    manager.wait(timeout=5.0)
    manager.poll()

    assert manager.state(AssetSlot.ALTERNATE) is AssetState.FAILED
    assert isinstance(failures[0], AssetLoadError)
    assert manager.error(AssetSlot.ALTERNATE) is failures[0]
    assert table.bound_segments(AssetSlot.ALTERNATE) == []


@pytest.mark.parametrize("mesh", [
    {"correction": [["w", 90]]},
    {"bbox": [1, 2, 3]},
])
def test_manager_reports_malformed_manifest_as_failure(tmp_path, mesh):
    with open(tmp_path / "bad.yaml", "w") as f:
        yaml.safe_dump({"meshes": {"object_1": mesh}}, f)
    manager = AssetManager(SegmentTable(), YamlAssetLoader(tmp_path))
    failures = []

    manager.load("bad.yaml", AssetSlot.PRIMARY, on_failed=failures.append)
    manager.wait(timeout=5.0)

    assert manager.poll() == [AssetSlot.PRIMARY]
    assert manager.state(AssetSlot.PRIMARY) is AssetState.FAILED
    assert len(failures) == 1 and failures[0].asset_id == "bad.yaml"


class InvalidCorrectionLoader(AssetLoader):
    def read(self, asset_id):
        node = MeshNode("object_1", correction=[("w", 90.0)])
        return AuthoredAsset(asset_id, {"object_1": node})


def test_manager_wraps_errors_raised_while_binding():
    manager = AssetManager(SegmentTable(), InvalidCorrectionLoader())
    failures = []

    manager.load("handmade", AssetSlot.ALTERNATE, on_failed=failures.append)
    manager.wait(timeout=5.0)
    manager.poll()

    assert manager.state(AssetSlot.ALTERNATE) is AssetState.FAILED
    assert isinstance(failures[0], AssetLoadError)
    assert "ValueError" in failures[0].reason


def test_slots_are_independent(asset_dir):
    table = SegmentTable()
    manager = AssetManager(table, YamlAssetLoader(asset_dir))
    manager.load("primary.yaml", AssetSlot.PRIMARY)
    manager.load("alternate.yaml", AssetSlot.ALTERNATE)
    manager.wait(timeout=5.0)
    manager.poll()

    assert len(table.bound_segments(AssetSlot.PRIMARY)) == 20
    assert [s.name for s in table.bound_segments(AssetSlot.ALTERNATE)] == ["object_11", "object_12"]


def test_manifest_written_by_helper_round_trips(tmp_path):
    path = tmp_path / "m.yaml"
    with open(path, "w") as f:
        yaml.safe_dump(manifest(names=["object_5"]), f)
    asset = YamlAssetLoader(tmp_path).read("m.yaml")
    assert list(asset.nodes) == ["object_5"]
