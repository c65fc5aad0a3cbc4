from markboard.core.task_runner import InlineTaskRunner, ThreadTaskRunner
from markboard.services.errors import RepositoryError


def collect():
    events = []
    return events, dict(
        on_success=lambda v: events.append(("ok", v)),
        on_error=lambda e: events.append(("error", str(e))),
        on_finished=lambda: events.append(("finished",)),
    )


def test_inline_success() -> None:
    events, callbacks = collect()
    InlineTaskRunner().submit(lambda: 42, **callbacks)
    assert events == [("ok", 42), ("finished",)]


def test_inline_error() -> None:
    def boom():
        raise RepositoryError("nope")

    events, callbacks = collect()
    InlineTaskRunner().submit(boom, **callbacks)
    assert events == [("error", "nope"), ("finished",)]


def test_unexpected_exception_is_reported_as_error() -> None:
    events, callbacks = collect()
    InlineTaskRunner().submit(lambda: 1 / 0, **callbacks)
    assert events[0][0] == "error"
    assert events[-1] == ("finished",)


def test_thread_runner_delivers_on_main_thread(qtbot) -> None:
    import threading

    main = threading.current_thread()
    seen = []
    runner = ThreadTaskRunner()
    runner.submit(
        lambda: threading.current_thread() is not main,
        on_success=lambda v: seen.append((v, threading.current_thread() is main)),
        on_error=lambda e: seen.append(e),
    )
    qtbot.waitUntil(lambda: len(seen) == 1)
    assert seen == [(True, True)]
    assert runner.pending == 0
