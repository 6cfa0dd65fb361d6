import threading
import time
import typing

import mido
import pytest

import conftest
import simpletune.player
import simpletune.track
import simpletune.tune

from simpletune.player import PlaybackFailure, PlaybackResult, PlaybackState
from simpletune.track import EventSequence, ScheduledEvent


def _engine (port: conftest.FakeMidiOut, **kwargs: typing.Any) -> simpletune.player.PlaybackEngine:

	"""Create a fast engine playing into the given fake port."""

	options: typing.Dict[str, typing.Any] = {"bpm": 6000, "poll_interval": 0.005, "decay_hold": 0.01}
	options.update(kwargs)

	return simpletune.player.PlaybackEngine(open_output=lambda: port, **options)


def _sequence (*notes: tuple, instrument: int = 0) -> EventSequence:

	tune = simpletune.tune.Tune(instrument=instrument)

	for name, duration in notes:
		tune.add_note(name, duration)

	return simpletune.track.compile_tune(tune)


# ---------------------------------------------------------------------------
# Normal playback
# ---------------------------------------------------------------------------

def test_play_sends_events_in_order (fake_out: conftest.FakeMidiOut) -> None:

	"""Messages reach the port in tick order on the fixed channel and velocity."""

	engine = _engine(fake_out)
	result = engine.play(_sequence(("C", 8), ("E5", 4), instrument=40))

	assert result is PlaybackResult.FINISHED
	assert [(m.type, getattr(m, "note", None)) for m in fake_out.messages] == [
		("program_change", None),
		("note_on", 60),
		("note_off", 60),
		("note_on", 76),
		("note_off", 76),
	]
	assert fake_out.messages[0].program == 40
	assert all(m.channel == 1 for m in fake_out.messages)
	assert all(m.velocity == 90 for m in fake_out.of_type("note_on"))


def test_port_closed_once_and_state_idle (fake_out: conftest.FakeMidiOut) -> None:

	engine = _engine(fake_out)
	engine.play(_sequence(("C", 2)))

	assert fake_out.close_count == 1
	assert engine.state is PlaybackState.IDLE


def test_notify_receives_notes_then_end (fake_out: conftest.FakeMidiOut) -> None:

	"""Note names arrive in order on the transport thread, followed by the end marker."""

	calls: typing.List[typing.Tuple[str, bool]] = []
	threads: typing.List[threading.Thread] = []

	def notify (note_name: str, is_end: bool) -> None:

		calls.append((note_name, is_end))
		threads.append(threading.current_thread())

	_engine(fake_out).play(_sequence(("C", 2), ("Db5", 2), ("G#3", 2)), notify)

	assert [name for name, is_end in calls if not is_end] == ["C", "C#5", "G#3"]
	assert [is_end for _, is_end in calls] == [False, False, False, True]
	assert all(thread is not threading.main_thread() for thread in threads)


def test_state_is_playing_during_playback (fake_out: conftest.FakeMidiOut) -> None:

	engine = _engine(fake_out)
	seen: typing.List[PlaybackState] = []

	engine.play(_sequence(("C", 2)), lambda name, is_end: seen.append(engine.state))

	assert seen and all(state is PlaybackState.PLAYING for state in seen)


def test_notify_errors_do_not_stop_playback (fake_out: conftest.FakeMidiOut) -> None:

	def notify (note_name: str, is_end: bool) -> None:

		raise RuntimeError("display broke")

	result = _engine(fake_out).play(_sequence(("C", 2), ("D", 2)), notify)

	assert result is PlaybackResult.FINISHED
	assert len(fake_out.of_type("note_on")) == 2


def test_decay_hold_after_natural_finish (fake_out: conftest.FakeMidiOut) -> None:

	"""The port stays open for the decay hold once the last event is sent."""

	engine = _engine(fake_out, decay_hold=0.3)

	start = time.perf_counter()
	engine.play(simpletune.track.compile_note("C", 1))

	assert time.perf_counter() - start >= 0.3


def test_events_follow_tempo (fake_out: conftest.FakeMidiOut) -> None:

	"""Playback lasts at least the sequence length at the engine tempo."""

	# 16 ticks at 4 ticks per beat and 600 BPM = 0.4 s
	engine = _engine(fake_out, bpm=600, decay_hold=0.0)

	start = time.perf_counter()
	engine.play(simpletune.track.compile_note("C", 16))

	assert time.perf_counter() - start >= 0.4
	assert engine.seconds_per_tick(4) == pytest.approx(0.025)


def test_play_tune_and_play_note (fake_out: conftest.FakeMidiOut) -> None:

	engine = _engine(fake_out)
	tune = simpletune.tune.Tune()
	tune.add_note("A", 2)

	assert engine.play_tune(tune) is PlaybackResult.FINISHED
	assert engine.play_note("B", 2) is PlaybackResult.FINISHED
	assert [m.note for m in fake_out.of_type("note_on")] == [69, 71]
	assert fake_out.close_count == 2


def test_play_tune_compile_error_opens_nothing () -> None:

	opened: typing.List[bool] = []
	engine = simpletune.player.PlaybackEngine(open_output=lambda: opened.append(True))

	with pytest.raises(simpletune.track.CompileError):
		engine.play_tune(simpletune.tune.Tune())

	assert opened == []


def test_default_output_uses_mido (patch_midi: None) -> None:

	"""Without a factory the engine opens the named mido output."""

	engine = simpletune.player.PlaybackEngine(output_device_name="Dummy MIDI", bpm=6000, poll_interval=0.005, decay_hold=0.0)
	engine.play_note("C", 1)

	port = conftest._current_fake_output

	assert port is not None
	assert [m.type for m in port.messages] == ["note_on", "note_off"]
	assert port.close_count == 1


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

def test_cancel_from_notify_skips_decay (fake_out: conftest.FakeMidiOut) -> None:

	"""Cancelling releases the port once, silences the note and skips the decay hold."""

	engine = _engine(fake_out, bpm=120, decay_hold=5.0)

	def notify (note_name: str, is_end: bool) -> None:

		engine.cancel()

	start = time.perf_counter()
	result = engine.play(_sequence(("C", 64), ("D", 64)), notify)
	elapsed = time.perf_counter() - start

	assert result is PlaybackResult.CANCELLED
	assert elapsed < 2.0
	assert fake_out.close_count == 1
	assert [m.note for m in fake_out.of_type("note_on")] == [60]
	assert [m.note for m in fake_out.of_type("note_off")] == [60]
	assert engine.state is PlaybackState.IDLE


def test_cancel_from_another_thread (fake_out: conftest.FakeMidiOut) -> None:

	engine = _engine(fake_out, bpm=120, decay_hold=5.0)
	timer = threading.Timer(0.2, engine.cancel)
	timer.start()

	try:
		start = time.perf_counter()
		result = engine.play(simpletune.track.compile_note("C", 64))
		elapsed = time.perf_counter() - start
	finally:
		timer.cancel()

	assert result is PlaybackResult.CANCELLED
	assert elapsed < 2.0
	assert fake_out.close_count == 1


def test_cancel_when_idle_is_ignored (fake_out: conftest.FakeMidiOut) -> None:

	"""A stray cancel before play does not cut the next playback short."""

	engine = _engine(fake_out)
	engine.cancel()

	assert engine.play(simpletune.track.compile_note("C", 2)) is PlaybackResult.FINISHED


def test_slow_notify_sink_does_not_outlive_the_port (fake_out: conftest.FakeMidiOut) -> None:

	"""A sink still busy after cancel cannot send on the port once it is closed."""

	engine = _engine(fake_out, bpm=120, decay_hold=5.0)
	sink_done = threading.Event()

	def notify (note_name: str, is_end: bool) -> None:

		if not sink_done.is_set():
			time.sleep(1.5)
			sink_done.set()

	timer = threading.Timer(0.2, engine.cancel)
	timer.start()

	try:
		result = engine.play(simpletune.track.compile_note("C", 64), notify)
	finally:
		timer.cancel()

	assert result is PlaybackResult.CANCELLED
	assert fake_out.close_count == 1
	assert [m.note for m in fake_out.of_type("note_off")] == [60]
	assert engine.state is PlaybackState.IDLE

	assert sink_done.wait(3.0)
	time.sleep(0.1)

	assert fake_out.sent_after_close == []
	assert [m.note for m in fake_out.of_type("note_off")] == [60]


class InterruptingEvent (threading.Event):

	"""Cancel flag whose ``wait`` raises KeyboardInterrupt when ``interrupt`` says so."""

	def __init__ (self, interrupt: typing.Callable[[int, typing.Optional[float]], bool]) -> None:

		super().__init__()
		self.calls = 0
		self._interrupt = interrupt


	def wait (self, timeout: typing.Optional[float] = None) -> bool:

		self.calls += 1

		if self._interrupt(self.calls, timeout):
			raise KeyboardInterrupt

		return super().wait(timeout)


def test_keyboard_interrupt_during_playback (fake_out: conftest.FakeMidiOut) -> None:

	"""Ctrl-C while waiting for the transport cancels and cleans up."""

	engine = _engine(fake_out, bpm=120, decay_hold=5.0)
	engine._cancel = InterruptingEvent(lambda calls, timeout: calls == 3)

	start = time.perf_counter()
	result = engine.play(simpletune.track.compile_note("C", 64))
	elapsed = time.perf_counter() - start

	assert result is PlaybackResult.CANCELLED
	assert elapsed < 2.0
	assert engine._cancel.is_set()
	assert fake_out.close_count == 1
	assert [m.note for m in fake_out.of_type("note_off")] == [60]
	assert fake_out.sent_after_close == []
	assert engine.state is PlaybackState.IDLE


def test_keyboard_interrupt_during_decay_hold (fake_out: conftest.FakeMidiOut) -> None:

	engine = _engine(fake_out, decay_hold=5.0)
	engine._cancel = InterruptingEvent(lambda calls, timeout: timeout == engine.decay_hold)

	start = time.perf_counter()
	result = engine.play(simpletune.track.compile_note("C", 2))
	elapsed = time.perf_counter() - start

	assert result is PlaybackResult.CANCELLED
	assert elapsed < 2.0
	assert fake_out.close_count == 1
	assert engine.state is PlaybackState.IDLE


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

def test_no_output_available () -> None:

	engine = simpletune.player.PlaybackEngine(open_output=lambda: None)

	with pytest.raises(simpletune.player.PlaybackError) as excinfo:
		engine.play(simpletune.track.compile_note("C"))

	assert excinfo.value.reason is PlaybackFailure.OUTPUT_UNAVAILABLE
	assert engine.state is PlaybackState.IDLE


def test_output_open_failure () -> None:

	def open_output () -> None:

		raise OSError("device busy")

	engine = simpletune.player.PlaybackEngine(open_output=open_output)

	with pytest.raises(simpletune.player.PlaybackError, match="device busy") as excinfo:
		engine.play(simpletune.track.compile_note("C"))

	assert excinfo.value.reason is PlaybackFailure.OUTPUT_UNAVAILABLE
	assert engine.state is PlaybackState.IDLE


def test_no_devices_found (monkeypatch: pytest.MonkeyPatch) -> None:

	monkeypatch.setattr(mido, "get_output_names", lambda: [])

	with pytest.raises(simpletune.player.PlaybackError) as excinfo:
		simpletune.player.PlaybackEngine().play(simpletune.track.compile_note("C"))

	assert excinfo.value.reason is PlaybackFailure.OUTPUT_UNAVAILABLE


@pytest.mark.parametrize("events", [
	(ScheduledEvent(0, 'note_on', 200),),
	(ScheduledEvent(0, 'program_change', 128),),
	(ScheduledEvent(-1, 'note_on', 60),),
	(ScheduledEvent(0, 'pitchwheel', 0),),
	(ScheduledEvent(0, 'now_playing', -5),),
])
def test_malformed_events_fail_before_opening (events: tuple) -> None:

	"""Invalid event data is rejected without touching the output."""

	opened: typing.List[bool] = []
	engine = simpletune.player.PlaybackEngine(open_output=lambda: opened.append(True))

	with pytest.raises(simpletune.player.PlaybackError) as excinfo:
		engine.play(EventSequence(events))

	assert excinfo.value.reason is PlaybackFailure.INVALID_EVENT
	assert opened == []
	assert engine.state is PlaybackState.IDLE


def test_invalid_ticks_per_beat () -> None:

	engine = simpletune.player.PlaybackEngine(open_output=lambda: conftest.FakeMidiOut())

	with pytest.raises(simpletune.player.PlaybackError) as excinfo:
		engine.play(EventSequence((ScheduledEvent(0, 'note_on', 60),), ticks_per_beat=0))

	assert excinfo.value.reason is PlaybackFailure.INVALID_EVENT


def test_send_failure_raises_after_cleanup () -> None:

	class BrokenOut (conftest.FakeMidiOut):

		def send (self, message: typing.Any) -> None:

			if message.type == 'note_off':
				raise OSError("device unplugged")
			super().send(message)

	port = BrokenOut()
	engine = _engine(port)

	with pytest.raises(simpletune.player.PlaybackError) as excinfo:
		engine.play(simpletune.track.compile_note("C", 2))

	assert excinfo.value.reason is PlaybackFailure.SEND_FAILED
	assert port.close_count == 1
	assert engine.state is PlaybackState.IDLE


def test_play_while_playing_is_rejected (fake_out: conftest.FakeMidiOut) -> None:

	engine = _engine(fake_out)
	errors: typing.List[Exception] = []

	def notify (note_name: str, is_end: bool) -> None:

		try:
			engine.play(simpletune.track.compile_note("D", 1))
		except simpletune.player.PlaybackError as e:
			errors.append(e)

	engine.play(simpletune.track.compile_note("C", 2), notify)

	assert len(errors) == 2
	assert all(e.reason is PlaybackFailure.BUSY for e in errors)
	assert fake_out.close_count == 1


def test_bpm_must_be_positive () -> None:

	with pytest.raises(ValueError):
		simpletune.player.PlaybackEngine(bpm=0)
