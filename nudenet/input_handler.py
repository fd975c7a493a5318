"""
Input enumeration for the batch CLI.

Responsibility:
    Turn a source (single image file or directory of images) into a
    deterministic sequence of (image_id, path) pairs. Decoding happens later,
    inside the detector, so a bad file only fails its own detection call.

Non-goals:
    - No decoding, detection, drawing, or output writing.
    - No video or webcam sources.
"""

import logging
from pathlib import Path
from typing import Iterator, List, Tuple, Union

logger = logging.getLogger(__name__)

# Image extensions recognized by this handler
_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp"}


class InputHandler:
    """Uniform iterator over image files.

    The source type is auto-detected at initialization:
        - File with image extension → single image
        - Directory path → all images in directory (sorted), optionally recursive

    Usage:
        handler = InputHandler(source="path/to/images/")
        for image_id, path in handler:
            ...
    """

    def __init__(self, source: Union[str, Path], recursive: bool = False) -> None:
        """Initialize the input handler and validate the source.

        Raises:
            FileNotFoundError: If the source does not exist.
            ValueError: If the source has an unsupported extension or
                        a directory holds no images.
        """
        path = Path(str(source).strip())

        if path.is_file():
            ext = path.suffix.lower()
            if ext not in _IMAGE_EXTENSIONS:
                raise ValueError(
                    f"Unrecognized file extension: '{ext}' for source '{path}'. "
                    f"Supported images: {_IMAGE_EXTENSIONS}."
                )
            self._mode = "image"
            self._paths: List[Path] = [path]
        elif path.is_dir():
            self._mode = "directory"
            candidates = path.rglob("*") if recursive else path.iterdir()
            self._paths = sorted(
                p for p in candidates
                if p.is_file() and p.suffix.lower() in _IMAGE_EXTENSIONS
            )
            if not self._paths:
                raise ValueError(
                    f"No image files found in directory: '{path}'. "
                    f"Supported extensions: {_IMAGE_EXTENSIONS}."
                )
            logger.info("Found %d images in directory: %s", len(self._paths), path)
        else:
            raise FileNotFoundError(
                f"Input source not found: '{path}'. "
                f"Provide a valid image file or directory."
            )

        logger.info("InputHandler initialized: mode=%s, source=%s", self._mode, path)

    def __iter__(self) -> Iterator[Tuple[int, Path]]:
        """Yield (image_id, path) with a 0-based image_id."""
        yield from enumerate(self._paths)

    def __len__(self) -> int:
        return len(self._paths)

    @property
    def mode(self) -> str:
        return self._mode
