"""Integration tests for resolving from several threads."""

import threading
import time

import pytest

from trellis_di import CircularDependencyError, Container, Reference


class SlowConnection:
    created = 0
    created_lock = threading.Lock()

    def __init__(self):
        time.sleep(0.01)
        with SlowConnection.created_lock:
            SlowConnection.created += 1


class Gateway:
    def __init__(self, connection: SlowConnection):
        self.connection = connection


class Loop:
    def __init__(self, other):
        self.other = other


def resolve_concurrently(container, identifier, workers=8):
    barrier = threading.Barrier(workers)
    results = []
    errors = []
    results_lock = threading.Lock()

    def worker():
        barrier.wait()
        try:
            instance = container.get(identifier)
        except Exception as error:
            with results_lock:
                errors.append(error)
        else:
            with results_lock:
                results.append(instance)

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results, errors


@pytest.fixture(autouse=True)
def reset_counter():
    SlowConnection.created = 0


class TestConcurrentResolution:
    """Test shared and unshared resolution across threads."""

    def test_shared_instance_built_once(self):
        container = Container()
        container.rule(SlowConnection).set_shared(True)

        results, errors = resolve_concurrently(container, SlowConnection)

        assert errors == []
        assert len(results) == 8
        assert all(result is results[0] for result in results)
        assert SlowConnection.created == 1

    def test_shared_dependency_built_once(self):
        """Test that a shared dependency of unshared services is built once."""
        container = Container()
        container.rule(SlowConnection).set_shared(True)

        results, errors = resolve_concurrently(container, Gateway)

        assert errors == []
        assert len({id(gateway) for gateway in results}) == 8
        assert all(gateway.connection is results[0].connection for gateway in results)
        assert SlowConnection.created == 1

    def test_unshared_instances_are_distinct(self):
        results, errors = resolve_concurrently(Container(), SlowConnection)

        assert errors == []
        assert len({id(result) for result in results}) == 8
        assert SlowConnection.created == 8

    def test_circular_detection_is_per_thread(self):
        """Test that each thread reports the cycle without blocking the others."""
        container = Container()
        container.rule(Loop).set_constructor_args({"other": Reference(Loop)})

        results, errors = resolve_concurrently(container, Loop, workers=4)

        assert results == []
        assert len(errors) == 4
        assert all(isinstance(error, CircularDependencyError) for error in errors)
