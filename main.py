"""
NudeNet CLI Entrypoint.

Responsibility:
    Parse command-line arguments, configure the application, wire together
    the detector and I/O handlers, and run detection over the input images.

Usage:
    python main.py --source photo.jpg
    python main.py --source images/ --recursive --workers 4
    python main.py --source images/ --mode accurate --output-mode print,save_json
    python main.py --config my_config.yaml

This module is the executable entry point. It should not be imported
by other modules.
"""

import argparse
import logging
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

# Configure logging before importing local modules
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("main")

from nudenet.config import load_config
from nudenet.detection import Mode
from nudenet.detector import Detector
from nudenet.exceptions import DecodeError, InvalidImageError, NudeNetError
from nudenet.input_handler import InputHandler
from nudenet.output_handler import OutputHandler


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="NudeNet labeled region detection CLI",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--source",
        type=str,
        help="Input source: path to an image file or a directory of images.",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=[m.value for m in Mode],
        help="Resize policy. Overrides config.",
    )
    parser.add_argument(
        "--min-prob",
        type=float,
        help="Minimum class score (0.0 - 1.0). Overrides config.",
    )
    parser.add_argument(
        "--recursive",
        action="store_true",
        help="Descend into subdirectories of a directory source.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker threads; each loads its own inference session.",
    )
    parser.add_argument(
        "--output-mode",
        type=str,
        help="Output mode(s). Use comma-separated values for multiple outputs: "
             "print, save_image, save_json, save_csv. "
             "Example: 'print,save_json'. Overrides config.",
    )
    parser.add_argument(
        "--output-path",
        type=str,
        help="Directory for output artifacts. Overrides config.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging (per-image stage timings).",
    )

    return parser.parse_args()


def main() -> int:
    """Main execution loop."""
    args = parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.workers < 1:
        logger.error("--workers must be at least 1, got %d.", args.workers)
        return 1

    # 1. Load Configuration (CLI args > ENV > YAML > Defaults)
    try:
        config = load_config(args.config)

        if args.source is not None or args.recursive:
            config = replace(config, input=replace(
                config.input,
                source=args.source if args.source is not None else config.input.source,
                recursive=args.recursive or config.input.recursive,
            ))

        if args.mode is not None:
            config = replace(config, detection=replace(config.detection, mode=Mode.parse(args.mode)))

        if args.min_prob is not None:
            if not (0.0 <= args.min_prob <= 1.0):
                raise ValueError(f"--min-prob must be in [0.0, 1.0], got {args.min_prob}.")
            config = replace(config, detection=replace(config.detection, min_prob=args.min_prob))

        if args.output_mode is not None:
            config = replace(config, output=replace(config.output, mode=args.output_mode.lower()))

        if args.output_path is not None:
            config = replace(config, output=replace(config.output, save_path=args.output_path))

        if config.input.source is None:
            raise ValueError("No input source. Pass --source or set input.source in the config.")

        logger.info("Configuration active for this run.")

    except Exception as e:
        logger.error("Configuration error: %s", e)
        return 1

    # 2. Initialize Components
    try:
        detector = Detector(config)
        input_handler = InputHandler(
            source=config.input.source,
            recursive=config.input.recursive,
        )
        output_handler = OutputHandler(config)

    except (FileNotFoundError, ValueError) as e:
        logger.error("Initialization failed: %s", e)
        return 1

    # 3. Processing Loop
    logger.info("Processing %d image(s) with %d worker(s).", len(input_handler), args.workers)

    image_count = 0
    skipped = 0
    start_time = time.perf_counter()

    try:
        with ThreadPoolExecutor(max_workers=args.workers) as pool:
            futures = [
                (image_id, path, pool.submit(detector.detect_from_path, path))
                for image_id, path in input_handler
            ]

            for image_id, path, future in futures:
                try:
                    detections = future.result()
                except (DecodeError, InvalidImageError) as e:
                    logger.warning("Skipping unreadable image (image_id=%d): %s", image_id, e)
                    skipped += 1
                    continue

                image_count += 1
                output_handler.process_image(image_id, path, detections)

                if image_count % 50 == 0:
                    logger.info("Processed %d images...", image_count)

    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    except NudeNetError as e:
        logger.error("Detection failed: %s", e)
        return 1
    finally:
        # 4. Cleanup
        elapsed = time.perf_counter() - start_time
        rate = image_count / elapsed if elapsed > 0 else 0.0

        output_handler.finalize()

        logger.info(
            "Processing finished. Images: %d (skipped %d). Avg %.2f images/s.",
            image_count, skipped, rate,
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
