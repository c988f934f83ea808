"""Pose landmark schema: 33 MediaPipe landmark slots and the debug skeleton."""

from enum import IntEnum
from typing import List, Tuple


class Landmark(IntEnum):
    """MediaPipe Pose landmark indices."""
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


JOINT_COUNT = len(Landmark)

LANDMARK_LABELS = [
    "Nose",
    "Left eye inner",
    "Left eye",
    "Left eye outer",
    "Right eye inner",
    "Right eye",
    "Right eye outer",
    "Left ear",
    "Right ear",
    "Mouth left",
    "Mouth right",
    "Left shoulder",
    "Right shoulder",
    "Left elbow",
    "Right elbow",
    "Left wrist",
    "Right wrist",
    "Left pinky",
    "Right pinky",
    "Left index",
    "Right index",
    "Left thumb",
    "Right thumb",
    "Left hip",
    "Right hip",
    "Left knee",
    "Right knee",
    "Left ankle",
    "Right ankle",
    "Left heel",
    "Right heel",
    "Left foot index",
    "Right foot index",
]

# Bones of the synthetic debug skeleton (face, arms, hands, torso, legs)
BONE_PAIRS: List[Tuple[int, int]] = [
    (0, 1), (1, 2), (2, 3), (3, 7),
    (0, 4), (4, 5), (5, 6), (6, 8),
    (9, 10),
    (11, 12),
    (11, 13), (13, 15), (15, 17), (15, 19), (15, 21),
    (12, 14), (14, 16), (16, 18), (16, 20), (16, 22),
    (11, 23), (12, 24), (23, 24),
    (23, 25), (25, 27), (27, 29), (29, 31),
    (24, 26), (26, 28), (28, 30), (30, 32),
]


def is_valid_index(index) -> bool:
    """True if index addresses one of the landmark slots."""
    return isinstance(index, int) and 0 <= index < JOINT_COUNT


def format_landmark(index) -> str:
    """Human readable "<index> <label>" string used by debug output."""
    if not is_valid_index(index):
        return "(unset)"
    return f"{index} {LANDMARK_LABELS[index]}"
