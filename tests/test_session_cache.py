"""
Tests for the per-worker session cache and model loading.
"""

import threading

import numpy as np
import pytest

from nudenet.config import ModelConfig
from nudenet.exceptions import InferenceError, ModelLoadError
from nudenet.model_loader import load_session
from nudenet.session_cache import SessionCache, SessionHandle


def _counting_factory(fake_session_cls):
    created = []

    def factory():
        handle = SessionHandle(session=fake_session_cls(), input_name="images")
        created.append(handle)
        return handle

    return factory, created


def test_same_worker_reuses_handle(fake_session_cls):
    factory, created = _counting_factory(fake_session_cls)
    cache = SessionCache(factory)

    first = cache.get_session()
    second = cache.get_session()
    third = cache.get_session()

    assert first is second is third
    assert len(created) == 1
    assert len(cache) == 1


def test_each_thread_gets_its_own_handle(fake_session_cls):
    factory, created = _counting_factory(fake_session_cls)
    cache = SessionCache(factory)
    workers = 5
    # Keep every thread alive until all have fetched, so idents are distinct.
    barrier = threading.Barrier(workers)
    handles = [None] * workers
    repeats = [None] * workers

    def worker(i):
        handles[i] = cache.get_session()
        repeats[i] = cache.get_session()
        barrier.wait()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len({id(h) for h in handles}) == workers
    assert all(r is h for r, h in zip(repeats, handles))
    assert len(created) == workers


def test_handles_are_dropped_when_threads_exit(fake_session_cls):
    factory, created = _counting_factory(fake_session_cls)
    cache = SessionCache(factory)
    main_handle = cache.get_session()

    threads = [threading.Thread(target=cache.get_session) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(created) == 7
    assert len(cache) == 1
    assert cache.get_session() is main_handle


def test_release_then_reload_keeps_new_handle(fake_session_cls):
    factory, _ = _counting_factory(fake_session_cls)
    cache = SessionCache(factory)

    first = cache.get_session()
    cache.release()
    second = cache.get_session()

    assert second is not first
    assert cache.get_session() is second
    assert len(cache) == 1


def test_explicit_worker_ids(fake_session_cls):
    factory, _ = _counting_factory(fake_session_cls)
    cache = SessionCache(factory)

    a = cache.get_session("worker-a")
    b = cache.get_session("worker-b")

    assert a is not b
    assert cache.get_session("worker-a") is a
    assert "worker-a" in cache and "worker-b" in cache


def test_release_and_clear(fake_session_cls):
    factory, created = _counting_factory(fake_session_cls)
    cache = SessionCache(factory, worker_id=lambda: "only")

    first = cache.get_session()
    cache.release()
    assert len(cache) == 0

    second = cache.get_session()
    assert second is not first
    assert len(created) == 2

    cache.clear()
    assert "only" not in cache


def test_factory_failure_is_not_cached():
    def factory():
        raise ModelLoadError("missing model")

    cache = SessionCache(factory)
    with pytest.raises(ModelLoadError):
        cache.get_session()
    assert len(cache) == 0


def test_handle_run_adds_batch_axis(fake_session_cls):
    output = np.ones((1, 22, 3), dtype=np.float32)
    session = fake_session_cls(output)
    handle = SessionHandle(session=session, input_name="images", output_name="output0")
    tensor = np.zeros((3, 32, 48), dtype=np.float32)

    result = handle.run(tensor)

    output_names, feed = session.calls[0]
    assert output_names == ["output0"]
    assert feed["images"].shape == (1, 3, 32, 48)
    assert np.shares_memory(feed["images"], tensor)
    assert result.shape == (1, 22, 3)


def test_handle_run_wraps_engine_errors(fake_session_cls):
    session = fake_session_cls(error=RuntimeError("kaboom"))
    handle = SessionHandle(session=session, input_name="images")

    with pytest.raises(InferenceError, match="kaboom"):
        handle.run(np.zeros((3, 4, 4), dtype=np.float32))


def test_load_session_missing_model(tmp_path):
    config = ModelConfig(model_path=str(tmp_path / "missing.onnx"))
    with pytest.raises(ModelLoadError, match="not found"):
        load_session(config)


def test_load_session_unparsable_model(tmp_path):
    path = tmp_path / "broken.onnx"
    path.write_bytes(b"this is not a protobuf")
    with pytest.raises(ModelLoadError, match="Failed to load"):
        load_session(ModelConfig(model_path=str(path)))
