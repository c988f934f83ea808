"""
Vector and quaternion helpers.

Quaternions are numpy arrays in [w, x, y, z] order. Products follow the
usual convention: quat_multiply(a, b) applies b first, then a.
"""

import numpy as np

UP_AXIS = np.array([0.0, 1.0, 0.0])
X_AXIS = np.array([1.0, 0.0, 0.0])
Z_AXIS = np.array([0.0, 0.0, 1.0])


def vec3(x: float = 0.0, y: float = 0.0, z: float = 0.0) -> np.ndarray:
    return np.array([x, y, z], dtype=np.float64)


def normalize(v: np.ndarray) -> np.ndarray:
    """Unit vector along v, or zeros when v is (nearly) zero length."""
    v = np.asarray(v, dtype=np.float64)
    length = np.linalg.norm(v)
    if length < 1e-8:
        return np.zeros_like(v)
    return v / length


def quat_identity() -> np.ndarray:
    return np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64)


def quat_normalize(q: np.ndarray) -> np.ndarray:
    length = np.linalg.norm(q)
    if length < 1e-12:
        return quat_identity()
    return np.asarray(q, dtype=np.float64) / length


def quat_from_two_vectors(v_from: np.ndarray, v_to: np.ndarray) -> np.ndarray:
    """
    Shortest-arc quaternion that rotates v_from onto v_to.

    Uses the half-way form [1 + a.b, a x b]. Opposite vectors yield a 180
    degree turn about an axis perpendicular to v_from.
    """
    a = normalize(v_from)
    b = normalize(v_to)
    dot = float(np.dot(a, b))

    if dot < -0.999999:
        helper = UP_AXIS if abs(a[0]) > 0.9 else X_AXIS
        axis = normalize(np.cross(a, helper))
        return np.concatenate(([0.0], axis))

    return quat_normalize(np.concatenate(([1.0 + dot], np.cross(a, b))))


def quat_multiply(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """Hamilton product q1 * q2."""
    w1, v1 = q1[0], np.asarray(q1[1:], dtype=np.float64)
    w2, v2 = q2[0], np.asarray(q2[1:], dtype=np.float64)
    w = w1 * w2 - np.dot(v1, v2)
    v = w1 * v2 + w2 * v1 + np.cross(v1, v2)
    return np.concatenate(([w], v))


def quat_conjugate(q: np.ndarray) -> np.ndarray:
    """Inverse of a unit quaternion."""
    return np.asarray(q, dtype=np.float64) * np.array([1.0, -1.0, -1.0, -1.0])


def quat_rotate_vector(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Rotate v by unit quaternion q."""
    w, u = q[0], np.asarray(q[1:], dtype=np.float64)
    v = np.asarray(v, dtype=np.float64)
    t = 2.0 * np.cross(u, v)
    return v + w * t + np.cross(u, t)


def quat_from_axis_angle(axis: np.ndarray, angle: float) -> np.ndarray:
    """Rotation of angle radians about axis."""
    half = 0.5 * angle
    return np.concatenate(([np.cos(half)], normalize(axis) * np.sin(half)))


def basis_matrix(x_axis: np.ndarray, y_axis: np.ndarray, z_axis: np.ndarray) -> np.ndarray:
    """3x3 matrix whose columns are the given axes."""
    return np.column_stack([x_axis, y_axis, z_axis]).astype(np.float64)


def rotation_matrix_to_quaternion(R: np.ndarray) -> np.ndarray:
    """
    Quaternion for a 3x3 rotation matrix.

    Solves for whichever component is largest (w, x, y or z) and derives
    the others from it, which keeps the division well conditioned.
    """
    R = np.asarray(R, dtype=np.float64)
    trace = np.trace(R)
    pivot = int(np.argmax([trace, R[0, 0], R[1, 1], R[2, 2]]))

    if pivot == 0:
        w = 0.5 * np.sqrt(1.0 + trace)
        k = 0.25 / w
        q = [w, (R[2, 1] - R[1, 2]) * k, (R[0, 2] - R[2, 0]) * k, (R[1, 0] - R[0, 1]) * k]
    elif pivot == 1:
        x = 0.5 * np.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2])
        k = 0.25 / x
        q = [(R[2, 1] - R[1, 2]) * k, x, (R[0, 1] + R[1, 0]) * k, (R[0, 2] + R[2, 0]) * k]
    elif pivot == 2:
        y = 0.5 * np.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2])
        k = 0.25 / y
        q = [(R[0, 2] - R[2, 0]) * k, (R[0, 1] + R[1, 0]) * k, y, (R[1, 2] + R[2, 1]) * k]
    else:
        z = 0.5 * np.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1])
        k = 0.25 / z
        q = [(R[1, 0] - R[0, 1]) * k, (R[0, 2] + R[2, 0]) * k, (R[1, 2] + R[2, 1]) * k, z]

    q = quat_normalize(np.array(q))
    # q and -q are the same rotation; keep w >= 0
    return -q if q[0] < 0 else q


def quat_to_matrix(q: np.ndarray) -> np.ndarray:
    """Rotation matrix for a unit quaternion (columns are the rotated axes)."""
    return np.column_stack([
        quat_rotate_vector(q, X_AXIS),
        quat_rotate_vector(q, UP_AXIS),
        quat_rotate_vector(q, Z_AXIS),
    ])
