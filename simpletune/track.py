"""Compile tunes into time-ordered event sequences.

A compiled sequence is what the player drives in real time.  For a tune it
holds, in tick order:

- a ``program_change`` at tick 0 selecting the tune's instrument,
- for each note a ``note_on`` and a ``now_playing`` marker at the note's start
  tick, and a ``note_off`` ``duration`` ticks later,
- a final ``now_playing`` marker with ``is_end=True`` at the last tick.

Events sharing a tick keep the order in which they were emitted, so the
``note_off`` of one note precedes the ``note_on`` of the note that follows it.

Compilation is all-or-nothing: any problem raises :class:`CompileError` and no
partial sequence is produced.
"""

import dataclasses
import enum
import logging
import typing

import mido

import simpletune.constants
import simpletune.constants.velocity
import simpletune.instruments
import simpletune.notes
import simpletune.tune


logger = logging.getLogger(__name__)


class CompileFailure (enum.Enum):

	"""Why a tune could not be compiled."""

	NO_NOTES = "no notes"
	INSTRUMENT_OUT_OF_RANGE = "instrument out of range"
	NOTE_NOT_RECOGNIZED = "note not recognized"
	INVALID_DURATION = "invalid duration"


class CompileError (ValueError):

	"""Raised when a tune or note cannot be turned into an event sequence."""

	def __init__ (self, reason: CompileFailure, detail: str) -> None:

		super().__init__(detail)
		self.reason = reason


@dataclasses.dataclass (frozen=True)
class ScheduledEvent:

	"""
	An event scheduled at a tick offset from the start of a sequence.

	``value`` is the program number for ``program_change`` and the MIDI note
	value for the other types.  ``is_end`` is only meaningful for
	``now_playing`` markers.
	"""

	tick: int
	message_type: str
	value: int = 0
	is_end: bool = False


@dataclasses.dataclass (frozen=True)
class EventSequence:

	"""
	Scheduled events in playback order, with their tick resolution.
	"""

	events: typing.Tuple[ScheduledEvent, ...]
	ticks_per_beat: int = simpletune.constants.TICKS_PER_BEAT


	@classmethod
	def from_events (cls, events: typing.Iterable[ScheduledEvent], ticks_per_beat: int = simpletune.constants.TICKS_PER_BEAT) -> "EventSequence":

		"""Build a sequence from events in emission order, stably sorted by tick."""

		return cls(tuple(sorted(events, key=lambda event: event.tick)), ticks_per_beat)


	@property
	def length_ticks (self) -> int:

		"""Tick of the last event (0 for an empty sequence)."""

		if not self.events:
			return 0

		return max(event.tick for event in self.events)


	def __len__ (self) -> int:

		return len(self.events)


	def __iter__ (self) -> typing.Iterator[ScheduledEvent]:

		return iter(self.events)


	def to_midi_file (self, bpm: float = simpletune.constants.DEFAULT_BPM) -> mido.MidiFile:

		"""Render the sequence as a single-track (type 0) MIDI file.

		Each ``now_playing`` marker becomes a ``marker`` meta message carrying the
		note name, so the notes can be followed in a DAW.  The end marker is
		covered by the track's own end-of-track message.
		"""

		mid = mido.MidiFile(type=0, ticks_per_beat=self.ticks_per_beat)
		track = mido.MidiTrack()
		mid.tracks.append(track)

		track.append(mido.MetaMessage('set_tempo', tempo=mido.bpm2tempo(bpm), time=0))

		last_tick = 0

		for event in self.events:

			message = _to_mido(event)

			if message is None:
				continue

			message.time = event.tick - last_tick
			track.append(message)
			last_tick = event.tick

		return mid


	def save (self, filename: str, bpm: float = simpletune.constants.DEFAULT_BPM) -> None:

		"""Write the sequence to a standard MIDI file."""

		logger.info(f"Saving {len(self.events)} events to {filename}")

		self.to_midi_file(bpm).save(filename)


def _to_mido (event: ScheduledEvent) -> typing.Union[mido.Message, mido.MetaMessage, None]:

	"""Convert a scheduled event for MIDI file export (None for the end marker)."""

	channel = simpletune.constants.MIDI_CHANNEL
	velocity = simpletune.constants.velocity.DEFAULT_VELOCITY

	if event.message_type == 'program_change':
		return mido.Message('program_change', channel=channel, program=event.value)

	if event.message_type in ('note_on', 'note_off'):
		return mido.Message(event.message_type, channel=channel, note=event.value, velocity=velocity)

	if event.message_type == 'now_playing':
		if event.is_end:
			return None
		return mido.MetaMessage('marker', text=simpletune.notes.decode(event.value))

	raise ValueError(f"Unknown event type {event.message_type!r}")


def _note_events (name: str, duration: int, tick: int) -> typing.List[ScheduledEvent]:

	"""Return the note_on, marker and note_off events for one note."""

	if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
		raise CompileError(CompileFailure.INVALID_DURATION, f"Note {name} has an invalid duration: {duration!r}")

	pitch = simpletune.notes.encode(name)

	if pitch is None:
		raise CompileError(CompileFailure.NOTE_NOT_RECOGNIZED, f"Note {name} is not recognised.")

	return [
		ScheduledEvent(tick, 'note_on', pitch),
		ScheduledEvent(tick, 'now_playing', pitch),
		ScheduledEvent(tick + duration, 'note_off', pitch),
	]


def compile_tune (tune: simpletune.tune.Tune, catalog: typing.Optional[simpletune.instruments.InstrumentCatalog] = None) -> EventSequence:

	"""Compile a tune into an event sequence.

	Parameters:
		tune: The tune to compile.
		catalog: Supplies the valid instrument range (General MIDI when omitted).

	Raises :class:`CompileError` when the tune has no notes, its instrument is
	not in the catalog, or any note cannot be encoded.  The first bad note
	aborts compilation.
	"""

	if catalog is None:
		catalog = simpletune.instruments.InstrumentCatalog()

	notes = tune.notes

	if not notes:
		raise CompileError(CompileFailure.NO_NOTES, "The tune has no notes. Try using its add_note method.")

	if not catalog.contains(tune.instrument):
		raise CompileError(
			CompileFailure.INSTRUMENT_OUT_OF_RANGE,
			f"The instrument number must be a positive number less than {catalog.count()}: {tune.instrument}"
		)

	events: typing.List[ScheduledEvent] = [ScheduledEvent(0, 'program_change', tune.instrument)]
	tick = 0
	pitch = 0

	for note in notes:
		note_events = _note_events(note.name, note.duration, tick)
		events.extend(note_events)
		pitch = note_events[0].value
		tick += note.duration

	events.append(ScheduledEvent(tick, 'now_playing', pitch, is_end=True))

	logger.debug(f"Compiled {len(notes)} notes into {len(events)} events ({tick} ticks)")

	return EventSequence.from_events(events)


def compile_note (name: str, duration: int = simpletune.constants.DEFAULT_DURATION) -> EventSequence:

	"""Compile a single note starting at tick 0, for previewing it on its own.

	No program change is emitted, so the note sounds on whatever instrument
	the output currently has selected.
	"""

	events = _note_events(name, duration, 0)
	events.append(ScheduledEvent(duration, 'now_playing', events[0].value, is_end=True))

	return EventSequence.from_events(events)
