"""
Per-worker inference session cache.

Each worker (thread) gets its own engine session, created lazily on the
worker's first call and reused on every later call from that worker.
Sessions are never shared or migrated between workers, so running one
needs no locking. The price is one loaded model per worker, which suits a
small, bounded pool of CPU-bound workers.

Worker identity defaults to threading.get_ident(). With that default a
handle is dropped when its thread exits, so a pool that replaces its
threads keeps at most one loaded model per live worker. Custom worker ids
are kept until release() or clear().
"""

import logging
import threading
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional

import numpy as np

from nudenet.exceptions import InferenceError

logger = logging.getLogger(__name__)


class _ThreadOwner:
    """Token kept in thread-local storage; freed when its thread exits."""

    __slots__ = ("__weakref__",)


def _forget(handles: Dict[Hashable, "SessionHandle"], key: Hashable, handle: "SessionHandle") -> None:
    # The key may already hold a newer handle after release().
    if handles.get(key) is handle:
        handles.pop(key, None)


@dataclass(frozen=True)
class SessionHandle:
    """A loaded inference session plus the I/O names read from its metadata.

    Attributes:
        session: The engine session (onnxruntime.InferenceSession in production).
        input_name: Name of the model's single input tensor.
        output_name: Name of the model's detection output tensor.
    """

    session: Any
    input_name: str
    output_name: Optional[str] = None

    def run(self, tensor: np.ndarray) -> np.ndarray:
        """Run one forward pass on a (3, H, W) tensor.

        The batch axis is prepended as a view, not a copy.

        Raises:
            InferenceError: If the engine fails.
        """
        blob = tensor[np.newaxis, ...]
        output_names = [self.output_name] if self.output_name else None

        try:
            outputs = self.session.run(output_names, {self.input_name: blob})
        except Exception as e:
            raise InferenceError(f"Inference failed: {e}") from e

        if not outputs:
            raise InferenceError("Inference returned no outputs.")

        return np.asarray(outputs[0])


class SessionCache:
    """Lazily creates exactly one SessionHandle per worker.

    Usage:
        cache = SessionCache(lambda: load_session(config.model))
        handle = cache.get_session()        # first call on this thread loads
        handle = cache.get_session()        # same handle, no reload
    """

    def __init__(
        self,
        factory: Callable[[], SessionHandle],
        worker_id: Callable[[], Hashable] = threading.get_ident,
    ) -> None:
        """
        Args:
            factory: Builds a new SessionHandle; raises ModelLoadError on failure.
            worker_id: Returns the identity of the calling worker.
        """
        self._factory = factory
        self._worker_id = worker_id
        self._handles: Dict[Hashable, SessionHandle] = {}
        self._per_thread = worker_id is threading.get_ident
        self._local = threading.local()

    def get_session(self, worker_id: Optional[Hashable] = None) -> SessionHandle:
        """Return the calling worker's handle, creating it on first use."""
        key = self._worker_id() if worker_id is None else worker_id

        handle = self._handles.get(key)
        if handle is None:
            # Only this worker ever writes its own key.
            handle = self._factory()
            self._handles[key] = handle
            if worker_id is None and self._per_thread:
                self._bind_to_thread(key, handle)
            logger.info(
                "Created inference session for worker %s (%d cached).",
                key, len(self._handles),
            )

        return handle

    def _bind_to_thread(self, key: Hashable, handle: SessionHandle) -> None:
        """Drop the handle once the calling thread has exited."""
        owner = _ThreadOwner()
        self._local.owner = owner
        weakref.finalize(owner, _forget, self._handles, key, handle)

    def release(self, worker_id: Optional[Hashable] = None) -> None:
        """Drop the handle owned by a worker, if any."""
        key = self._worker_id() if worker_id is None else worker_id
        if self._handles.pop(key, None) is not None:
            logger.debug("Released inference session for worker %s.", key)

    def clear(self) -> None:
        """Drop every cached handle."""
        self._handles.clear()

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, worker_id: Hashable) -> bool:
        return worker_id in self._handles
