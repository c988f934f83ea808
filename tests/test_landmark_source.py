import json

import pytest

from rigpose.pose import LandmarkSample, ReplayLandmarkSource
from conftest import landmark_frame


def test_sample_from_list_and_mapping():
    assert LandmarkSample.from_value([0.1, 0.2]) == LandmarkSample(0.1, 0.2, 0.0, 1.0)
    assert LandmarkSample.from_value([0.1, 0.2, 0.3, 0.4]).visibility == 0.4
    assert LandmarkSample.from_value({"x": 1, "y": 2}) == LandmarkSample(1.0, 2.0, 0.0, 1.0)
    assert LandmarkSample.from_value(None) is None
    with pytest.raises(ValueError):
        LandmarkSample.from_value([0.1])


def test_replay_pads_frames_to_all_joints():
    source = ReplayLandmarkSource([landmark_frame({0: (0.5, 0.5, 0.0)})[:3]])
    samples = source.detect(None, 1)

    assert len(samples) == 33
    assert samples[0] == LandmarkSample(0.5, 0.5, 0.0)
    assert samples[1] is None and samples[32] is None


def test_duplicate_timestamps_are_not_new_frames():
    source = ReplayLandmarkSource([landmark_frame({0: (0.5, 0.5, 0.0)})] * 3)

    assert source.detect(None, 10) is not None
    assert source.detect(None, 10) is None
    assert source.detect(None, 9) is None
    assert source.detect(None, 11) is not None


def test_null_frame_means_no_pose():
    source = ReplayLandmarkSource([None])
    assert source.detect(None, 1) == []


def test_replay_ends_or_loops():
    once = ReplayLandmarkSource([landmark_frame({})])
    once.detect(None, 1)
    assert once.exhausted
    assert once.detect(None, 2) is None

    looping = ReplayLandmarkSource([landmark_frame({})], loop=True)
    looping.detect(None, 1)
    assert not looping.exhausted
    assert looping.detect(None, 2) is not None


def test_closed_source_returns_nothing():
    source = ReplayLandmarkSource([landmark_frame({})])
    source.close()
    source.close()
    assert not source.ready
    assert source.detect(None, 1) is None


def test_from_yaml_file(tmp_path):
    path = tmp_path / "rec.yaml"
    path.write_text("frames:\n  - [[0.5, 0.5, 0.0]]\n  - null\n")

    source = ReplayLandmarkSource.from_file(str(path))

    assert len(source) == 2
    assert source.detect(None, 1)[0] == LandmarkSample(0.5, 0.5, 0.0)
    assert source.detect(None, 2) == []


def test_from_json_list(tmp_path):
    path = tmp_path / "rec.json"
    path.write_text(json.dumps([[{"x": 0.1, "y": 0.2, "z": 0.3}]]))
    assert ReplayLandmarkSource.from_file(str(path)).detect(None, 1)[0].z == 0.3


def test_bad_recording_raises_value_error(tmp_path):
    path = tmp_path / "rec.yaml"
    path.write_text("frames:\n  - [[0.5]]\n")
    with pytest.raises(ValueError):
        ReplayLandmarkSource.from_file(str(path))
