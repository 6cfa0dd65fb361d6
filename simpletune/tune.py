import dataclasses
import typing

import simpletune.constants


@dataclasses.dataclass (frozen=True)
class Note:

	"""
	A named note and how long it lasts, in ticks.
	"""

	name: str
	duration: int = simpletune.constants.DEFAULT_DURATION


class Tune:

	"""A sequence of notes played on a single instrument.

	Notes are stored by name and are not checked when added - an unknown name
	is only reported when the tune is compiled for playback.

	Example::

		tune = Tune()
		tune.add_note("C", 4)
		tune.add_note("E")
		tune.instrument = 40
	"""

	def __init__ (self, instrument: int = 0) -> None:

		"""Create an empty tune for the given instrument."""

		self._instrument = 0
		self._notes: typing.List[Note] = []

		self.set_instrument(instrument)


	@property
	def instrument (self) -> int:

		"""The General MIDI program number used for the tune."""

		return self._instrument

	@instrument.setter
	def instrument (self, value: int) -> None:

		self.set_instrument(value)


	def set_instrument (self, instrument: int) -> None:

		"""Select the instrument.

		Raises ``ValueError`` for negative numbers, leaving the current
		instrument unchanged.  The upper bound depends on the instrument
		catalog and is checked at compile time.
		"""

		if instrument < 0:
			raise ValueError(f"The instrument number must be greater than or equal to zero: {instrument}")

		self._instrument = instrument


	@property
	def notes (self) -> typing.List[Note]:

		"""The notes of the tune, in order (a copy)."""

		return list(self._notes)


	def add_note (self, name: str, duration: int = simpletune.constants.DEFAULT_DURATION) -> None:

		"""Append a note to the tune."""

		self._notes.append(Note(name, duration))


	def clear (self) -> None:

		"""Discard all of the notes."""

		self._notes.clear()


	def describe (self) -> str:

		"""Return the instrument and each note with its duration, for display."""

		listing = "".join(f"{note.name} ({note.duration}) " for note in self._notes)

		return f"Instrument number: {self._instrument}\n{listing}"


	def __len__ (self) -> int:

		return len(self._notes)


	def __repr__ (self) -> str:

		return f"Tune(instrument={self._instrument}, notes={len(self._notes)})"
