"""Note name codec.

Converts between human note names and MIDI note values.  A note name is a
letter ``A``-``G``, an optional accidental (``#`` or ``b``) and an optional
single octave digit ``0``-``8``::

	encode("C")    # 60 - octave 4 is assumed when none is given
	encode("C#5")  # 73
	encode("Db5")  # 73 - flat and sharp spellings are enharmonic
	decode(73)     # "C#5"
	decode(60)     # "C"  - octave 4 is never written out

Module-level constants:
- `SHARP_NAMES`: The 12 chromatic pitch classes spelled with sharps
- `FLAT_NAMES`: The same 12 pitch classes spelled with flats

A two character name ending in ``#`` is looked up in `SHARP_NAMES`; every
other name (naturals and flats) is looked up in `FLAT_NAMES`.  Naturals are
spelled identically in both tables.

Decoded names always use sharps.  ``decode(encode(name)) == name`` therefore
holds only for sharp or natural names written without the ``4`` suffix.
"""

import typing

import simpletune.constants


SHARP_NAMES: typing.Tuple[str, ...] = (
	"C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B",
)

FLAT_NAMES: typing.Tuple[str, ...] = (
	"C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B",
)

_SHARP_TO_PC: typing.Dict[str, int] = {name: pc for pc, name in enumerate(SHARP_NAMES)}
_FLAT_TO_PC: typing.Dict[str, int] = {name: pc for pc, name in enumerate(FLAT_NAMES)}

_MAX_NAME_LENGTH = 3
_DIGITS = "0123456789"


def pitch_class (name: str) -> typing.Optional[int]:

	"""Return the chromatic index (0-11) of a note name without octave, or None.

	The table is chosen by shape: exactly two characters ending in ``#`` use
	the sharp table, anything else uses the flat table.  So ``"C#"`` and
	``"Db"`` are both recognised, while ``"C##"`` or ``"Hb"`` are not.
	"""

	if len(name) == 2 and name[1] == "#":
		return _SHARP_TO_PC.get(name)

	return _FLAT_TO_PC.get(name)


def encode (name: str) -> typing.Optional[int]:

	"""Return the MIDI note value for a note name, or None if it is not recognised.

	Parameters:
		name: A note name such as ``"C"``, ``"C#"``, ``"Db"``, ``"C4"`` (middle C)
			or ``"C#5"``.

	The computed value is not clamped to 0-127.  Octave 0 gives values below
	C1 and is accepted; only the shape of the name is validated.
	"""

	if not 0 < len(name) <= _MAX_NAME_LENGTH:
		return None

	if len(name) > 1 and name[-1] in _DIGITS:
		octave = int(name[-1])
		name = name[:-1]
	else:
		octave = simpletune.constants.DEFAULT_OCTAVE

	pc = pitch_class(name)

	if pc is None:
		return None

	if not simpletune.constants.MIN_OCTAVE <= octave <= simpletune.constants.MAX_OCTAVE:
		return None

	return simpletune.constants.C1_BASE_OFFSET + simpletune.constants.NOTES_PER_OCTAVE * (octave - 1) + pc


def decode (pitch: int) -> str:

	"""Return the sharp-spelled note name for a MIDI note value.

	The octave digit is omitted for octave 4, mirroring the default used by
	:func:`encode`.  Raises ``ValueError`` for negative values, which no note
	name can produce.
	"""

	if pitch < 0:
		raise ValueError(f"Note value must be non-negative, got {pitch}")

	octave = pitch // simpletune.constants.NOTES_PER_OCTAVE - 1
	pc = pitch - (octave + 1) * simpletune.constants.NOTES_PER_OCTAVE

	if octave == simpletune.constants.DEFAULT_OCTAVE:
		return SHARP_NAMES[pc]

	return f"{SHARP_NAMES[pc]}{octave}"


def is_valid (name: str) -> bool:

	"""Return True if the note name can be encoded."""

	return encode(name) is not None
