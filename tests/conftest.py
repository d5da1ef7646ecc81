import pytest

from cellflux import _anchor, scheduler


@pytest.fixture(autouse=True)
def _isolate_reactive_state():
    """Each test starts with an empty job queue and default hooks."""
    scheduler.queue.clear()
    yield
    for e in list(_anchor.live_effects):
        e.stop()
    scheduler.queue.clear()
    scheduler.set_scheduler(None)
    scheduler.set_error_handler(None)
