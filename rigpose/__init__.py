"""rigpose - drive a segmented skeleton rig from body landmarks"""

__version__ = "0.1.0"
