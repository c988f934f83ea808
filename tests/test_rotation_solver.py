import numpy as np
import pytest
from numpy.testing import assert_allclose

from rigpose.core import Landmark
from rigpose.core.math3d import UP_AXIS, quat_rotate_vector, quat_to_matrix
from rigpose.motion import (
    BONE_ROTATION_CONFIG,
    RotationSolver,
    RotationStrategy,
    constrained_basis,
    load_rotation_config,
)
from conftest import place

L_SHOULDER, L_ELBOW, L_WRIST = Landmark.LEFT_SHOULDER, Landmark.LEFT_ELBOW, Landmark.LEFT_WRIST


@pytest.fixture
def arm(joints):
    place(joints, L_SHOULDER, [0.0, 0.0, 0.0])
    place(joints, L_ELBOW, [0.0, -1.0, 0.0])
    place(joints, L_WRIST, [1.0, -1.0, 0.0])
    return joints


def test_unconstrained_maps_up_onto_straight_down(arm):
    solver = RotationSolver(RotationStrategy.UNCONSTRAINED)
    q = solver.solve(L_SHOULDER, L_ELBOW, np.array([0.0, -1.0, 0.0]), arm)

    assert_allclose(quat_rotate_vector(q, UP_AXIS), [0.0, -1.0, 0.0], atol=1e-9)
    assert not np.isnan(q).any()


def test_pole_strategy_uses_wrist_bend_plane(arm):
    solver = RotationSolver(RotationStrategy.POLE)
    direction = np.array([0.0, -1.0, 0.0])
    basis = solver.target_basis(L_SHOULDER, L_ELBOW, direction, arm)

    assert basis is not None
    assert_allclose(np.abs(basis[:, 0]), [0.0, 0.0, 1.0], atol=1e-9)
    assert_allclose(basis[:, 1], direction, atol=1e-9)

    q = solver.solve(L_SHOULDER, L_ELBOW, direction, arm)
    assert_allclose(quat_rotate_vector(q, UP_AXIS), direction, atol=1e-9)


@pytest.mark.parametrize("strategy", list(RotationStrategy))
@pytest.mark.parametrize("direction", [
    [1.0, 0.0, 0.0],
    [0.0, 1.0, 0.0],
    [0.0, -1.0, 0.0],
    [0.3, -0.8, 0.5],
    [-0.6, 0.2, -0.77],
])
def test_every_strategy_maps_up_to_direction(arm, strategy, direction):
    direction = np.asarray(direction) / np.linalg.norm(direction)
    solver = RotationSolver(strategy)

    q = solver.solve(L_SHOULDER, L_ELBOW, direction, arm)

    assert_allclose(np.linalg.norm(q), 1.0, atol=1e-9)
    assert_allclose(quat_rotate_vector(q, UP_AXIS), direction, atol=1e-9)


def test_pole_parallel_to_bone_falls_back(joints):
    place(joints, L_SHOULDER, [0.0, 0.0, 0.0])
    place(joints, L_ELBOW, [0.0, -1.0, 0.0])
    place(joints, L_WRIST, [0.0, -2.0, 0.0])
    direction = np.array([0.0, -1.0, 0.0])

    pole = RotationSolver(RotationStrategy.POLE)
    free = RotationSolver(RotationStrategy.UNCONSTRAINED)

    assert pole.target_basis(L_SHOULDER, L_ELBOW, direction, joints) is None
    q = pole.solve(L_SHOULDER, L_ELBOW, direction, joints)
    assert not np.isnan(q).any()
    assert_allclose(q, free.solve(L_SHOULDER, L_ELBOW, direction, joints))


def test_hidden_pole_joint_falls_back(arm):
    arm.set_visible(L_WRIST, False)
    solver = RotationSolver(RotationStrategy.POLE)
    assert solver.target_basis(L_SHOULDER, L_ELBOW, np.array([0.0, -1.0, 0.0]), arm) is None


def test_anatomical_parallel_reference_falls_back(joints):
    solver = RotationSolver(RotationStrategy.ANATOMICAL)
    # upper arm reference is +Z; a bone pointing along +Z has no usable twist
    direction = np.array([0.0, 0.0, 1.0])
    assert solver.target_basis(L_SHOULDER, L_ELBOW, direction, joints) is None
    q = solver.solve(L_SHOULDER, L_ELBOW, direction, joints)
    assert_allclose(quat_rotate_vector(q, UP_AXIS), direction, atol=1e-9)


def test_unconfigured_pair_is_unconstrained(joints):
    solver = RotationSolver(RotationStrategy.ANATOMICAL)
    assert solver.target_basis(Landmark.NOSE, Landmark.LEFT_EYE, np.array([1.0, 0.0, 0.0]), joints) is None


def test_zero_direction_is_rejected(joints):
    solver = RotationSolver()
    with pytest.raises(ValueError):
        solver.solve(L_SHOULDER, L_ELBOW, np.zeros(3), joints)


def test_constrained_basis_is_orthonormal():
    basis = constrained_basis(np.array([0.0, 0.6, 0.8]), np.array([1.0, 0.0, 0.0]))
    assert_allclose(basis.T @ basis, np.eye(3), atol=1e-9)
    assert_allclose(np.linalg.det(basis), 1.0, atol=1e-9)


def test_solved_quaternion_matches_basis(arm):
    solver = RotationSolver(RotationStrategy.POLE)
    direction = np.array([0.0, -1.0, 0.0])
    q = solver.solve(L_SHOULDER, L_ELBOW, direction, arm)
    basis = solver.target_basis(L_SHOULDER, L_ELBOW, direction, arm)
    assert_allclose(quat_to_matrix(q), basis, atol=1e-9)


def test_strategy_accepts_string():
    solver = RotationSolver()
    solver.strategy = "anatomical"
    assert solver.strategy is RotationStrategy.ANATOMICAL
    with pytest.raises(ValueError):
        solver.strategy = "sideways"


def test_rotation_overrides_merge_with_builtin_table():
    table = load_rotation_config({"bones": {"11-13": {"pole": 19}, "0-2": {"anatomical": [1, 0, 0]}}})

    assert table[(11, 13)].pole == 19
    assert table[(11, 13)].anatomical == BONE_ROTATION_CONFIG[(11, 13)].anatomical
    assert table[(0, 2)].anatomical == (1.0, 0.0, 0.0)
    assert table[(23, 25)] == BONE_ROTATION_CONFIG[(23, 25)]


def test_rotation_override_rejects_bad_pole():
    with pytest.raises(ValueError):
        load_rotation_config({"bones": {"11-13": {"pole": 40}}})
