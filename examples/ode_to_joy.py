"""Play the opening of Ode to Joy on a violin, printing each note as it sounds.

Run with a MIDI synthesizer (e.g. FluidSynth) listening on an output port:

	python examples/ode_to_joy.py
"""

import logging

import simpletune


logging.basicConfig(level=logging.INFO)

MELODY = [
	("E", 4), ("E", 4), ("F", 4), ("G", 4),
	("G", 4), ("F", 4), ("E", 4), ("D", 4),
	("C", 4), ("C", 4), ("D", 4), ("E", 4),
	("E", 6), ("D", 2), ("D", 8),
]


def main () -> None:

	tune = simpletune.Tune(instrument=40)

	for name, duration in MELODY:
		tune.add_note(name, duration)

	print(tune.describe())

	engine = simpletune.PlaybackEngine(bpm=100)
	engine.play_tune(tune, notify=simpletune.ConsoleNotifier())


if __name__ == "__main__":
	main()
