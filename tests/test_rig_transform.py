import numpy as np
from numpy.testing import assert_allclose

from rigpose.core import Calibration
from rigpose.core.math3d import UP_AXIS, X_AXIS, Z_AXIS, quat_from_axis_angle, quat_multiply, quat_rotate_vector
from rigpose.motion import RigTransformCompositor, euler_yxz_quaternion


def test_position_is_calibration_offset():
    rig = RigTransformCompositor().compose(Calibration(position_x=1.0, position_y=-2.0, position_z=0.5))
    assert_allclose(rig.position, [1.0, -2.0, 0.5])
    assert_allclose(rig.quaternion, [1.0, 0.0, 0.0, 0.0])


def test_euler_order_is_y_then_x_then_z():
    expected = quat_multiply(
        quat_multiply(
            quat_from_axis_angle(UP_AXIS, np.radians(30.0)),
            quat_from_axis_angle(X_AXIS, np.radians(45.0)),
        ),
        quat_from_axis_angle(Z_AXIS, np.radians(60.0)),
    )
    assert_allclose(euler_yxz_quaternion(45.0, 30.0, 60.0), expected)


def test_single_axis_rotation():
    rig = RigTransformCompositor().compose(Calibration(rotation_y=90.0))
    assert_allclose(quat_rotate_vector(rig.quaternion, X_AXIS), [0.0, 0.0, -1.0], atol=1e-12)


def test_to_world_rotates_then_translates():
    rig = RigTransformCompositor().compose(Calibration(position_x=1.0, rotation_z=90.0))
    world = RigTransformCompositor.to_world(rig, np.array([1.0, 0.0, 0.0]))
    assert_allclose(world, [1.0, 1.0, 0.0], atol=1e-12)
