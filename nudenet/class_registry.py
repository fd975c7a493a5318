"""
Process-wide class-label registry.

The class file lists one label per line in the model's output channel
order. It is read once per process, on first use, and shared read-only by
every worker afterwards.

LazyOnce is the synchronization primitive behind it: readers take no lock
once the value is set; the first writer takes a mutex, re-checks, loads and
publishes. Readers therefore see either nothing (and go through the lock)
or the fully built value, never a partial one.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar, Union

from nudenet.detection import DetectionLabel
from nudenet.exceptions import ConfigLoadError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNSET = object()


class LazyOnce(Generic[T]):
    """A cell initialized exactly once by the first caller of get().

    If the factory raises, the cell stays empty and the error propagates;
    a later get() will try again.
    """

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._value = _UNSET
        self._lock = threading.Lock()

    def get(self) -> T:
        value = self._value
        if value is not _UNSET:
            return value

        with self._lock:
            if self._value is _UNSET:
                self._value = self._factory()
            return self._value

    @property
    def is_initialized(self) -> bool:
        return self._value is not _UNSET


def load_class_names(path: Union[str, Path]) -> Tuple[str, ...]:
    """Read the class-label file.

    Lines are stripped, blank lines are dropped, order is preserved. Every
    name must belong to the fixed DetectionLabel set.

    Raises:
        ConfigLoadError: If the file is missing, empty, or names an unknown label.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigLoadError(
            f"Classes file not found.\n"
            f"  Expected: {path}\n"
            f"  Provide the file or update 'model.classes_path' in your config."
        )

    with open(path, "r", encoding="utf-8") as f:
        names = tuple(line.strip() for line in f if line.strip())

    if not names:
        raise ConfigLoadError(f"Classes file is empty: {path}")

    known = {label.value for label in DetectionLabel}
    unknown = [name for name in names if name not in known]
    if unknown:
        raise ConfigLoadError(
            f"Classes file {path} contains unknown label(s): {unknown}. "
            f"Valid labels: {sorted(known)}."
        )

    logger.info("Loaded %d class names from %s", len(names), path)
    return names


class ClassRegistry:
    """Ordered class labels indexed by model output channel."""

    def __init__(
        self,
        classes_path: Union[str, Path],
        loader: Callable[[Union[str, Path]], Tuple[str, ...]] = load_class_names,
    ) -> None:
        self._path = Path(classes_path)
        self._cell: LazyOnce[Tuple[DetectionLabel, ...]] = LazyOnce(
            lambda: tuple(DetectionLabel(name) for name in loader(self._path))
        )

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_loaded(self) -> bool:
        return self._cell.is_initialized

    def labels(self) -> Tuple[DetectionLabel, ...]:
        """Return the labels in channel order, loading them on first call."""
        return self._cell.get()

    def classes(self) -> Tuple[str, ...]:
        """Return the label strings in channel order."""
        return tuple(label.value for label in self.labels())

    def label_for(self, index: int) -> Optional[DetectionLabel]:
        """Return the label for a class channel, or None if out of range."""
        labels = self.labels()
        if 0 <= index < len(labels):
            return labels[index]
        return None

    def check_channels(self, num_channels: int) -> None:
        """Verify a model output with num_channels features matches this registry.

        Raises:
            ConfigLoadError: If num_channels - 4 differs from the number of classes.
        """
        expected = len(self.labels())
        if num_channels - 4 != expected:
            raise ConfigLoadError(
                f"Model output has {num_channels - 4} class channel(s) but "
                f"{self._path} lists {expected} class(es)."
            )

    def __len__(self) -> int:
        return len(self.labels())


_REGISTRIES: Dict[Path, ClassRegistry] = {}
_REGISTRIES_LOCK = threading.Lock()


def get_registry(classes_path: Union[str, Path]) -> ClassRegistry:
    """Return the process-wide registry for a class file, creating it once."""
    key = Path(classes_path).resolve()

    registry = _REGISTRIES.get(key)
    if registry is not None:
        return registry

    with _REGISTRIES_LOCK:
        registry = _REGISTRIES.get(key)
        if registry is None:
            registry = ClassRegistry(key)
            _REGISTRIES[key] = registry
        return registry
