"""Instrument catalog.

Maps program numbers to instrument names.  The default catalog holds the 128
General MIDI programs; pass a different sequence of names to describe a
synthesizer with its own bank.
"""

import typing

import simpletune.constants
import simpletune.constants.gm_instruments


class InstrumentCatalog:

	"""The instruments a tune can select, indexed by program number."""

	def __init__ (self, names: typing.Optional[typing.Sequence[str]] = None) -> None:

		"""Store the instrument names (General MIDI when omitted)."""

		if names is None:
			names = simpletune.constants.gm_instruments.GM_PROGRAM_NAMES

		self._names: typing.Tuple[str, ...] = tuple(names)


	def count (self) -> int:

		"""Return the number of available instruments."""

		return len(self._names)


	def name_of (self, index: int) -> str:

		"""Return the name of an instrument.

		Raises ``IndexError`` when the index is outside the catalog.
		"""

		if not 0 <= index < len(self._names):
			raise IndexError(f"Instrument {index} out of range (0-{len(self._names) - 1})")

		return self._names[index]


	def contains (self, index: int) -> bool:

		"""Return True if the index selects an instrument in this catalog."""

		return 0 <= index < len(self._names)


	def listing (self, how_many: int = simpletune.constants.DEFAULT_INSTRUMENT_LISTING) -> typing.List[str]:

		"""Return ``"<index>: <name>"`` lines for the first instruments."""

		how_many = max(0, min(how_many, len(self._names)))

		return [f"{i}: {self._names[i]}" for i in range(how_many)]
