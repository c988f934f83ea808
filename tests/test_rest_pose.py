from rigpose.core import Calibration
from rigpose.motion import PoseMode, RestPoseController
from rigpose.pose import JointStateStore


def make_controller():
    defaults = Calibration(position_y=-0.2, rotation_y=10.0)
    calibration = defaults.copy()
    joints = JointStateStore()
    return RestPoseController(calibration, defaults, joints), calibration, joints


def test_rest_round_trip_restores_offsets():
    controller, calibration, _ = make_controller()
    calibration.update(position_x=0.7, position_z=-1.0, rotation_x=30.0, rotation_z=-15.0)
    before = calibration.copy()

    assert controller.set_resting(True)
    assert calibration.position_x == 0.0
    assert calibration.position_y == -0.2
    assert calibration.rotation_y == 10.0

    assert controller.set_resting(False)
    assert calibration == before
    assert not controller.has_snapshot


def test_rest_does_not_touch_scale_mirror_or_smoothing():
    controller, calibration, _ = make_controller()
    calibration.update(scale_x=3.0, mirror=False, smoothing=0.8)

    controller.enter_rest()

    assert calibration.scale_x == 3.0
    assert calibration.mirror is False
    assert calibration.smoothing == 0.8


def test_entering_rest_hides_joints_and_notifies():
    controller, _, joints = make_controller()
    joints.set_visible(11, True)
    calls = []
    controller.on_enter_rest(lambda: calls.append(controller.mode))

    controller.enter_rest()

    assert not joints.any_visible()
    assert calls == [PoseMode.RESTING]


def test_repeated_transitions_are_no_ops():
    controller, _, _ = make_controller()
    assert not controller.leave_rest()
    assert controller.enter_rest()
    assert not controller.enter_rest()
    assert controller.is_resting


def test_restore_without_snapshot_is_noop():
    controller, calibration, _ = make_controller()
    calibration.position_x = 4.0
    assert not controller.restore_calibration()
    assert calibration.position_x == 4.0
