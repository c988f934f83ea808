#!/usr/bin/env python3
"""
rigpose - Main Entry Point

Drives a segmented skeleton rig from live or recorded body landmarks.
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from rigpose.core import Config, ConfigError, setup_logging, get_logger
from rigpose.engine import FrameOutput, RenderMode, RetargetEngine
from rigpose.motion import RotationStrategy
from rigpose.pose import MediaPipeLandmarkSource, ReplayLandmarkSource

STATUS_INTERVAL = 30


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Retarget body landmarks onto a segmented skeleton rig"
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default="config.yaml",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--input", "-i",
        type=str,
        help="Video file or camera index (overrides config)"
    )
    parser.add_argument(
        "--replay", "-r",
        type=str,
        help="Recorded landmark file (YAML/JSON) used instead of the detector"
    )
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in RotationStrategy],
        help="Bone rotation strategy (overrides config)"
    )
    parser.add_argument(
        "--render-mode",
        choices=[m.value for m in RenderMode],
        help="Which asset to drive (overrides config)"
    )
    parser.add_argument(
        "--max-frames",
        type=int,
        help="Stop after this many frames"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging and segment markers"
    )
    return parser.parse_args(argv)


def resolve_config_path(value: str) -> Path:
    config_path = Path(value)
    if not config_path.is_absolute() and not config_path.exists():
        config_path = Path(__file__).parent / config_path
    return config_path


def main(argv=None) -> int:
    """Main application entry point."""
    args = parse_args(argv)

    config_path = resolve_config_path(args.config)
    try:
        config = Config(str(config_path))
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    log_level = "DEBUG" if args.debug else config.get("app.log_level", "INFO")
    setup_logging(level=log_level, log_file="rigpose")
    logger = get_logger("main")

    logger.info("=" * 50)
    logger.info(f"rigpose v{config.get('app.version', '0.1.0')}")
    logger.info("=" * 50)

    if args.input:
        config.set("video.source", args.input)
        logger.info(f"Input override: {args.input}")
    if args.strategy:
        config.set("tracking.strategy", args.strategy)
    if args.render_mode:
        config.set("tracking.render_mode", args.render_mode)
    if args.debug:
        config.set("tracking.show_debug_markers", True)

    try:
        if args.replay:
            return run_replay(config, args.replay, args.max_frames)
        return run_live(config, args.max_frames)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 0


def make_status_reporter(logger):
    """Periodic one-line frame summary."""
    def report(output: FrameOutput) -> None:
        if output.frame_number % STATUS_INTERVAL != 0:
            return
        tracked = sum(1 for t in output.segments.values() if t.tracked)
        logger.info(
            f"Frame {output.frame_number}: {output.mode.name.lower()}, "
            f"{output.visible_joints} joints visible, "
            f"{tracked}/{len(output.segments)} segments tracked "
            f"[{output.render_mode.value}]"
        )
    return report


def run_engine(config: Config, source, capture, max_frames) -> int:
    logger = get_logger("main")
    try:
        engine = RetargetEngine(config, source=source)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    with engine:
        engine.load_assets()
        engine.run(capture, max_frames=max_frames, on_frame=make_status_reporter(logger))
    return 0


def run_replay(config: Config, path: str, max_frames) -> int:
    """Run the pipeline on recorded landmarks without camera or detector."""
    logger = get_logger("main")
    try:
        source = ReplayLandmarkSource.from_file(path)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read replay file {path}: {e}")
        return 1
    return run_engine(config, source, None, max_frames)


def run_live(config: Config, max_frames) -> int:
    """Run the pipeline on webcam or video input through MediaPipe."""
    logger = get_logger("main")
    try:
        from rigpose.video import VideoCapture
    except ImportError as e:
        logger.error(f"Live input needs the 'capture' extra (opencv-python): {e}")
        return 1

    with VideoCapture(config) as capture:
        if not capture.open():
            return 1
        try:
            source = MediaPipeLandmarkSource(config)
        except ImportError as e:
            logger.error(f"Live input needs the 'capture' extra (mediapipe): {e}")
            return 1
        return run_engine(config, source, capture, max_frames)


if __name__ == "__main__":
    sys.exit(main())
