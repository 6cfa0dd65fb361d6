"""Real-time playback of compiled event sequences.

:class:`PlaybackEngine` owns the MIDI output for the duration of a single
:meth:`~PlaybackEngine.play` call.  That call blocks the calling thread while
a :class:`Transport` thread sends the events at their scheduled times::

	engine = PlaybackEngine(bpm=120)
	engine.play(compile_tune(tune), notify=ConsoleNotifier())

Life cycle: ``IDLE -> OPENED -> PLAYING -> IDLE``.  The engine always returns
to ``IDLE`` and the output port is closed exactly once, whether playback
finishes, fails or is cancelled.

Note changes are reported through the optional ``notify(note_name, is_end)``
sink.  It is called from the transport thread, not from the thread blocked in
``play()``, in the same order as the markers' ticks.  When ``is_end`` is True
the note name carries no meaning: the sequence has ended.

Cancellation is cooperative.  :meth:`PlaybackEngine.cancel` (safe from any
thread, including the notify sink) or a ``KeyboardInterrupt`` during the wait
stops the transport, silences sounding notes and releases the port at once,
skipping the usual decay hold.
"""

import enum
import logging
import threading
import time
import typing

import mido

import simpletune.constants
import simpletune.constants.velocity
import simpletune.instruments
import simpletune.midi_utils
import simpletune.notes
import simpletune.track
import simpletune.tune


logger = logging.getLogger(__name__)


NotifySink = typing.Callable[[str, bool], None]
OutputFactory = typing.Callable[[], typing.Optional[typing.Any]]


class PlaybackFailure (enum.Enum):

	"""Why a sequence could not be played."""

	BUSY = "busy"
	OUTPUT_UNAVAILABLE = "output unavailable"
	INVALID_EVENT = "invalid event"
	SEND_FAILED = "send failed"


class PlaybackError (RuntimeError):

	"""Raised when a sequence cannot be played."""

	def __init__ (self, reason: PlaybackFailure, detail: str) -> None:

		super().__init__(detail)
		self.reason = reason


class PlaybackState (enum.Enum):

	IDLE = "idle"
	OPENED = "opened"
	PLAYING = "playing"


class PlaybackResult (enum.Enum):

	FINISHED = "finished"
	CANCELLED = "cancelled"


class NowPlaying (typing.NamedTuple):

	"""A note-change marker ready for delivery to the notify sink."""

	note_name: str
	is_end: bool


ScheduleItem = typing.Tuple[float, typing.Union[mido.Message, NowPlaying]]


class Transport:

	"""Background thread that sends scheduled MIDI messages in real time.

	Messages go to ``port`` at ``start + offset`` seconds; markers are handed to
	``notify``.  Notes still sounding when the thread ends (normally or via
	:meth:`stop`) are switched off before :meth:`is_running` turns False.
After :meth:`detach` the port is never used again, so it can be closed even
while the thread is still blocked in a slow notify sink.

	Not used directly - created by :class:`PlaybackEngine` for each play call.
	"""

	def __init__ (self, port: typing.Any, schedule: typing.Sequence[ScheduleItem], notify: typing.Optional[NotifySink] = None) -> None:

		"""Store the port and the schedule of ``(seconds_offset, item)`` pairs."""

		self._port = port
		self._schedule = list(schedule)
		self._notify = notify
		self._thread: typing.Optional[threading.Thread] = None
		self._stop = threading.Event()
		self._running = threading.Event()
		self._active_notes: typing.Set[typing.Tuple[int, int]] = set()

		# Guards the port: once detached, the thread never sends again.
		self._port_lock = threading.Lock()
		self._detached = False

		#: The exception that ended playback early, if sending failed.
		self.error: typing.Optional[BaseException] = None


	def start (self) -> None:

		"""Start sending the schedule on a daemon thread."""

		if self._thread is not None:
			return

		self._running.set()
		self._thread = threading.Thread(target=self._run, name="simpletune-transport", daemon=True)
		self._thread.start()


	def stop (self, timeout: float = 1.0) -> None:

		"""Ask the thread to stop and wait (up to ``timeout``) for it to finish."""

		self._stop.set()

		if self._thread is not None and self._thread is not threading.current_thread():
			self._thread.join(timeout=timeout)


	def detach (self) -> None:

		"""Silence sounding notes and give up the port.

		After this returns the thread will not touch the port again, even if it
		is still blocked in the notify sink, so the caller may close it.
		"""

		self._stop.set()

		with self._port_lock:
			self._silence()
			self._detached = True


	def is_alive (self) -> bool:

		"""True while the thread itself has not exited."""

		return self._thread is not None and self._thread.is_alive()


	def is_running (self) -> bool:

		"""True until the last item has been sent or the transport was stopped."""

		return self._running.is_set()


	def _run (self) -> None:

		start_time = time.perf_counter()

		try:
			for offset, item in self._schedule:

				delay = start_time + offset - time.perf_counter()

				if delay > 0 and self._stop.wait(delay):
					break

				if self._stop.is_set():
					break

				if isinstance(item, NowPlaying):
					self._deliver(item)
				else:
					self._send(item)

		except Exception as e:
			logger.exception("MIDI send failed (device may be disconnected)")
			self.error = e

		finally:
			with self._port_lock:
				if not self._detached:
					self._silence()
			self._running.clear()


	def _send (self, message: mido.Message) -> None:

		with self._port_lock:

			if self._detached or self._stop.is_set():
				return

			if message.type == 'note_on' and message.velocity > 0:
				self._active_notes.add((message.channel, message.note))
			elif message.type == 'note_off' or message.type == 'note_on':
				self._active_notes.discard((message.channel, message.note))

			self._port.send(message)


	def _deliver (self, marker: NowPlaying) -> None:

		if self._notify is None or self._stop.is_set():
			return

		try:
			self._notify(marker.note_name, marker.is_end)
		except Exception:
			logger.exception(f"Notify sink failed for {marker.note_name!r}")


	def _silence (self) -> None:

		"""Send note_off for every note still sounding.  Caller holds the port lock."""

		for channel, note in list(self._active_notes):
			try:
				self._port.send(mido.Message('note_off', channel=channel, note=note, velocity=simpletune.constants.velocity.NOTE_OFF_VELOCITY))
			except Exception:
				logger.exception("MIDI note_off failed during teardown")

		self._active_notes.clear()


class PlaybackEngine:

	"""Plays compiled event sequences on a MIDI output.

	The output is opened at the start of every :meth:`play` call and closed
	before it returns.  Pass ``open_output`` to supply the port yourself (for
	example a test double); it is called once per play and may return None to
	signal that no output is available.
	"""

	def __init__ (
		self,
		output_device_name: typing.Optional[str] = None,
		bpm: float = simpletune.constants.DEFAULT_BPM,
		open_output: typing.Optional[OutputFactory] = None,
		poll_interval: float = simpletune.constants.POLL_INTERVAL,
		decay_hold: float = simpletune.constants.DECAY_HOLD,
	) -> None:

		"""Configure the engine.

		Parameters:
			output_device_name: MIDI output to open.  When omitted the first
				available output is used.
			bpm: Tempo; one beat is ``ticks_per_beat`` ticks of the sequence.
			open_output: Factory returning an open output port with ``send()``
				and ``close()``.  Overrides ``output_device_name``.
			poll_interval: Seconds between checks for the end of playback.
			decay_hold: Seconds the port stays open after the last event so
				the final note can ring out.
		"""

		if bpm <= 0:
			raise ValueError("BPM must be positive")

		self.output_device_name = output_device_name
		self.bpm = float(bpm)
		self.poll_interval = poll_interval
		self.decay_hold = decay_hold

		self._open_output: OutputFactory = open_output if open_output is not None else self._open_device
		self._cancel = threading.Event()
		self._state_lock = threading.Lock()
		self._state = PlaybackState.IDLE


	@property
	def state (self) -> PlaybackState:

		"""The current life cycle state."""

		return self._state


	def cancel (self) -> None:

		"""Stop the current playback early.  Does nothing when idle."""

		if self._state is not PlaybackState.IDLE:
			logger.info("Cancelling playback")
			self._cancel.set()


	def seconds_per_tick (self, ticks_per_beat: int) -> float:

		"""Return the length of one tick at the engine's tempo."""

		return 60.0 / (self.bpm * ticks_per_beat)


	def play (self, sequence: simpletune.track.EventSequence, notify: typing.Optional[NotifySink] = None) -> PlaybackResult:

		"""Play a sequence and block until it has finished.

		Returns ``PlaybackResult.FINISHED`` after the last event and the decay
		hold, or ``PlaybackResult.CANCELLED`` when :meth:`cancel` or a
		``KeyboardInterrupt`` ended it early.

		Raises :class:`PlaybackError` without opening the output when the
		sequence is malformed, and without starting playback when the output
		cannot be opened or the engine is already busy.
		"""

		with self._state_lock:
			if self._state is not PlaybackState.IDLE:
				raise PlaybackError(PlaybackFailure.BUSY, f"Cannot play while {self._state.value}")
			self._state = PlaybackState.OPENED
			self._cancel.clear()

		try:
			schedule = self._prepare(sequence)
			port = self._acquire()

		except BaseException:
			self._state = PlaybackState.IDLE
			raise

		transport = Transport(port, schedule, notify)

		try:
			self._state = PlaybackState.PLAYING
			transport.start()
			logger.info(f"Playing {len(sequence)} events at {self.bpm:.2f} BPM")

			if self._wait(transport):
				logger.info("Playback cancelled")
				return PlaybackResult.CANCELLED

			if transport.error is not None:
				raise PlaybackError(PlaybackFailure.SEND_FAILED, "Something went wrong with playing the track.") from transport.error

			if self._hold():
				logger.info("Playback cancelled")
				return PlaybackResult.CANCELLED

			logger.info("Playback finished")
			return PlaybackResult.FINISHED

		finally:
			transport.stop()
			if transport.is_alive():
				logger.warning("Transport still busy in the notify sink - detaching it from the output")
			transport.detach()
			self._release(port)
			self._state = PlaybackState.IDLE


	def play_tune (self, tune: simpletune.tune.Tune, notify: typing.Optional[NotifySink] = None, catalog: typing.Optional[simpletune.instruments.InstrumentCatalog] = None) -> PlaybackResult:

		"""Compile and play a tune (see :func:`simpletune.track.compile_tune`)."""

		return self.play(simpletune.track.compile_tune(tune, catalog), notify)


	def play_note (self, name: str, duration: int = simpletune.constants.DEFAULT_DURATION, notify: typing.Optional[NotifySink] = None) -> PlaybackResult:

		"""Compile and play a single note, e.g. ``"C"``, ``"Db"`` or ``"C#5"``."""

		return self.play(simpletune.track.compile_note(name, duration), notify)


	def _wait (self, transport: Transport) -> bool:

		"""Block until the transport finishes.  Return True if cancelled."""

		try:
			while transport.is_running():
				if self._cancel.wait(self.poll_interval):
					return True

		except KeyboardInterrupt:
			self._cancel.set()
			return True

		return self._cancel.is_set()


	def _hold (self) -> bool:

		"""Keep the port open so the last note can ring out.  Return True if cancelled."""

		try:
			return self._cancel.wait(self.decay_hold)

		except KeyboardInterrupt:
			self._cancel.set()
			return True


	def _open_device (self) -> typing.Optional[typing.Any]:

		_, midi_out = simpletune.midi_utils.select_output_device(self.output_device_name)

		return midi_out


	def _acquire (self) -> typing.Any:

		try:
			port = self._open_output()
		except Exception as e:
			raise PlaybackError(PlaybackFailure.OUTPUT_UNAVAILABLE, f"Unable to open MIDI output: {e}") from e

		if port is None:
			raise PlaybackError(PlaybackFailure.OUTPUT_UNAVAILABLE, "Unfortunately, it is not possible to play MIDI tunes: no output available.")

		return port


	def _release (self, port: typing.Any) -> None:

		try:
			port.close()
		except Exception:
			logger.exception("Failed to close MIDI output")


	def _prepare (self, sequence: simpletune.track.EventSequence) -> typing.List[ScheduleItem]:

		"""Convert the sequence into timed MIDI messages and markers.

		Raises :class:`PlaybackError` for any event that could not be sent.
		"""

		ticks_per_beat = sequence.ticks_per_beat

		if isinstance(ticks_per_beat, bool) or not isinstance(ticks_per_beat, int) or ticks_per_beat <= 0:
			raise PlaybackError(PlaybackFailure.INVALID_EVENT, f"There is an error in the MIDI data: ticks per beat {ticks_per_beat!r}")

		seconds_per_tick = self.seconds_per_tick(ticks_per_beat)
		channel = simpletune.constants.MIDI_CHANNEL
		velocity = simpletune.constants.velocity.DEFAULT_VELOCITY
		schedule: typing.List[typing.Tuple[int, typing.Union[mido.Message, NowPlaying]]] = []

		for event in sequence.events:

			if isinstance(event.tick, bool) or not isinstance(event.tick, int) or event.tick < 0:
				raise PlaybackError(PlaybackFailure.INVALID_EVENT, f"There is an error in the MIDI data: tick {event.tick!r}")

			try:
				item: typing.Union[mido.Message, NowPlaying]

				if event.message_type == 'program_change':
					item = mido.Message('program_change', channel=channel, program=event.value)

				elif event.message_type in ('note_on', 'note_off'):
					item = mido.Message(event.message_type, channel=channel, note=event.value, velocity=velocity)

				elif event.message_type == 'now_playing':
					item = NowPlaying(simpletune.notes.decode(event.value), event.is_end)

				else:
					raise ValueError(f"unknown event type {event.message_type!r}")

			except (TypeError, ValueError) as e:
				raise PlaybackError(PlaybackFailure.INVALID_EVENT, f"There is an error in the MIDI data: {e}") from e

			schedule.append((event.tick, item))

		schedule.sort(key=lambda entry: entry[0])

		return [(tick * seconds_per_tick, item) for tick, item in schedule]
