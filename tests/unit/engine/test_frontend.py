"""Tests for run control flags and the terminal front end's key handling."""

import os

import pytest

from cbmsim.engine import FrontEnd, HeadlessFrontEnd, RunControl, TerminalFrontEnd


class TestRunControl:
    def test_start_clears_cancellation(self):
        control = RunControl(cancelled=True)
        control.start()
        assert control.in_run
        assert not control.cancelled

    def test_cancel_releases_pause(self):
        control = RunControl()
        control.pause()
        control.cancel()
        assert control.cancelled
        assert not control.paused
        assert control.should_stop

    def test_pause_resume(self):
        control = RunControl()
        control.pause()
        assert control.paused
        control.resume()
        assert not control.paused

    def test_finish(self):
        control = RunControl()
        control.start()
        control.finish()
        assert not control.in_run


class TestFrontEndBase:
    def test_headless_hooks_are_noops(self):
        frontend = HeadlessFrontEnd()
        control = RunControl()
        frontend.bind(control)
        frontend.on_run_start(3)
        frontend.poll_events()
        frontend.on_trial_end(0, {})
        frontend.on_run_end()
        assert control == RunControl()

    def test_is_paused_follows_control(self):
        frontend = FrontEnd()
        assert not frontend.is_paused()
        control = RunControl()
        frontend.bind(control)
        control.pause()
        assert frontend.is_paused()


@pytest.fixture
def pipe_frontend():
    read_fd, write_fd = os.pipe()
    stream = os.fdopen(read_fd, "r")
    frontend = TerminalFrontEnd(stream=stream)
    frontend.bind(RunControl())
    yield frontend, write_fd
    stream.close()
    os.close(write_fd)


class TestTerminalFrontEnd:
    def test_handle_keys(self):
        frontend = TerminalFrontEnd()
        control = RunControl()
        frontend.bind(control)

        frontend.handle_key("p")
        assert control.paused
        frontend.handle_key("C")
        assert not control.paused
        frontend.handle_key("x")
        assert not control.paused and not control.cancelled
        frontend.handle_key("q")
        assert control.cancelled

    def test_continue_ignored_when_running(self):
        frontend = TerminalFrontEnd()
        control = RunControl()
        frontend.bind(control)
        frontend.handle_key("c")
        assert not control.paused

    def test_poll_without_input_does_not_block(self, pipe_frontend):
        frontend, _ = pipe_frontend
        frontend.poll_events()
        assert not frontend.control.paused

    def test_poll_reads_pending_keys(self, pipe_frontend):
        frontend, write_fd = pipe_frontend
        os.write(write_fd, b"p")
        frontend.poll_events()
        assert frontend.control.paused

        os.write(write_fd, b"q")
        frontend.poll_events()
        assert frontend.control.cancelled

    def test_non_tty_run_hooks(self, pipe_frontend):
        frontend, _ = pipe_frontend
        frontend.on_run_start(1)
        frontend.on_run_end()
