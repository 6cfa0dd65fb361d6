"""Save and load tunes as CSV.

The file holds an ``instrument,<number>`` row followed by one
``<note name>,<duration>`` row per note::

	instrument,40
	C,8
	E5,4
"""

import csv
import logging

import simpletune.constants
import simpletune.tune


logger = logging.getLogger(__name__)

_INSTRUMENT_KEY = "instrument"


def save_tune (tune: simpletune.tune.Tune, filename: str = simpletune.constants.DEFAULT_TUNE_FILENAME) -> None:

	"""Write a tune to a CSV file, replacing any existing file."""

	with open(filename, "w", newline="") as f:
		writer = csv.writer(f)
		writer.writerow([_INSTRUMENT_KEY, tune.instrument])

		for note in tune.notes:
			writer.writerow([note.name, note.duration])

	logger.info(f"Saved {len(tune)} notes to {filename}")


def load_tune (filename: str = simpletune.constants.DEFAULT_TUNE_FILENAME) -> simpletune.tune.Tune:

	"""Read a tune written by :func:`save_tune`.

	Note names are not validated here, just as with ``Tune.add_note``.  Raises
	``ValueError`` naming the offending line for rows that cannot be read.
	"""

	tune = simpletune.tune.Tune()

	with open(filename, newline="") as f:

		for line_number, row in enumerate(csv.reader(f), start=1):

			if not row or not "".join(row).strip():
				continue

			if len(row) != 2:
				raise ValueError(f"{filename}:{line_number}: expected 2 fields, found {len(row)}")

			name, value = row[0].strip(), row[1].strip()

			try:
				number = int(value)
			except ValueError:
				raise ValueError(f"{filename}:{line_number}: {value!r} is not a whole number") from None

			if name == _INSTRUMENT_KEY:
				tune.set_instrument(number)
			else:
				tune.add_note(name, number)

	logger.info(f"Loaded {len(tune)} notes from {filename}")

	return tune
