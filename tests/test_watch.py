import os
import queue
import signal

import pytest

from devplug.watch import watch_files, watch_signals


@pytest.fixture
def restore_user_signals():
    saved = {sig: signal.getsignal(sig) for sig in (signal.SIGUSR1, signal.SIGUSR2)}
    yield
    for sig, handler in saved.items():
        signal.signal(sig, handler)


def test_watch_files_reports_write(tmp_path):
    target = tmp_path / "config.yaml"
    target.write_text("a")
    with watch_files(target) as watcher:
        target.write_text("b")
        event = watcher.events.get(timeout=5)
    assert os.path.abspath(os.fsdecode(event.src_path)) == str(target)


def test_watch_files_ignores_other_files(tmp_path):
    target = tmp_path / "target"
    other = tmp_path / "other"
    target.write_text("a")
    other.write_text("a")
    with watch_files(target) as watcher:
        other.write_text("b")
        target.write_text("b")
        event = watcher.events.get(timeout=5)
    assert os.path.abspath(os.fsdecode(event.src_path)) == str(target)


def test_watch_files_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        watch_files(tmp_path / "missing")


def test_watch_signals_receives_signal(restore_user_signals):
    received = watch_signals(signal.SIGUSR1)
    signal.raise_signal(signal.SIGUSR1)
    assert received.get(timeout=1) == signal.SIGUSR1


def test_watch_signals_several(restore_user_signals):
    received = watch_signals(signal.SIGUSR1, signal.SIGUSR2)
    signal.raise_signal(signal.SIGUSR2)
    assert received.get(timeout=1) == signal.SIGUSR2


def test_watch_signals_buffer_holds_one(restore_user_signals):
    received = watch_signals(signal.SIGUSR1, signal.SIGUSR2)
    signal.raise_signal(signal.SIGUSR1)
    signal.raise_signal(signal.SIGUSR2)
    assert received.get(timeout=1) == signal.SIGUSR1
    with pytest.raises(queue.Empty):
        received.get_nowait()