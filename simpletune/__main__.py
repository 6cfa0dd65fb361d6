"""Command line entry point: ``python -m simpletune``.

Examples::

	python -m simpletune devices
	python -m simpletune instruments --count 24
	python -m simpletune note C#5 --duration 4
	python -m simpletune play C:4 D:4 E:8 --instrument 40 --export tune.mid
	python -m simpletune play --file track.csv
"""

import argparse
import logging
import sys
import typing

import simpletune.config
import simpletune.constants
import simpletune.display
import simpletune.instruments
import simpletune.midi_utils
import simpletune.player
import simpletune.storage
import simpletune.track
import simpletune.tune


logger = logging.getLogger(__name__)


def parse_note (token: str) -> typing.Tuple[str, int]:

	"""Split ``"NAME[:DURATION]"`` into a note name and a duration in ticks."""

	name, separator, duration = token.partition(":")

	if not separator:
		return name, simpletune.constants.DEFAULT_DURATION

	try:
		return name, int(duration)
	except ValueError:
		raise argparse.ArgumentTypeError(f"invalid duration in {token!r}") from None


def build_parser () -> argparse.ArgumentParser:

	parser = argparse.ArgumentParser(prog="simpletune", description="Play simple tunes over MIDI")
	parser.add_argument("--config", default=simpletune.config.DEFAULT_CONFIG_PATH, help="YAML config file (default: %(default)s)")
	parser.add_argument("--device", default=None, help="MIDI output device name (default: from config, else the first output)")
	parser.add_argument("--bpm", type=float, default=None, help="Tempo in beats per minute")
	parser.add_argument("--quiet", action="store_true", help="Do not print notes as they play")

	commands = parser.add_subparsers(dest="command", required=True)

	instruments = commands.add_parser("instruments", help="List the available instruments")
	instruments.add_argument("--count", type=int, default=simpletune.constants.DEFAULT_INSTRUMENT_LISTING, help="How many to list (default: %(default)s)")

	commands.add_parser("devices", help="List the available MIDI outputs")

	note = commands.add_parser("note", help="Play a single note")
	note.add_argument("name", help="Note name, e.g. C, Db, C#5")
	note.add_argument("--duration", type=int, default=simpletune.constants.DEFAULT_DURATION, help="Length in ticks (default: %(default)s)")

	play = commands.add_parser("play", help="Play a tune")
	play.add_argument("notes", nargs="*", type=parse_note, metavar="NAME[:DURATION]", help="Notes to append to the tune")
	play.add_argument("--file", default=None, help="Load the tune from a CSV file first")
	play.add_argument("--instrument", type=int, default=None, help="General MIDI program number")
	play.add_argument("--save", default=None, metavar="CSV", help="Save the tune as CSV")
	play.add_argument("--export", default=None, metavar="MID", help="Export the compiled tune as a MIDI file")
	play.add_argument("--no-play", action="store_true", help="Compile (and save/export) without playing")

	return parser


def _make_engine (config: simpletune.config.Config) -> simpletune.player.PlaybackEngine:

	return simpletune.player.PlaybackEngine(output_device_name=config.device_name, bpm=config.bpm)


def _notifier (config: simpletune.config.Config) -> typing.Optional[simpletune.player.NotifySink]:

	if not config.show_notes:
		return None

	return simpletune.display.ConsoleNotifier()


def _build_tune (args: argparse.Namespace, config: simpletune.config.Config) -> simpletune.tune.Tune:

	if args.file:
		tune = simpletune.storage.load_tune(args.file)
	else:
		tune = simpletune.tune.Tune(instrument=config.instrument)

	if args.instrument is not None:
		tune.set_instrument(args.instrument)

	for name, duration in args.notes:
		tune.add_note(name, duration)

	return tune


def run (args: argparse.Namespace, config: simpletune.config.Config) -> int:

	"""Execute a parsed command.  Returns the process exit status."""

	if args.command == "instruments":
		for line in simpletune.instruments.InstrumentCatalog().listing(args.count):
			print(line)
		return 0

	if args.command == "devices":
		names = simpletune.midi_utils.list_output_devices()
		if not names:
			logger.warning("No MIDI outputs found")
		for name in names:
			print(name)
		return 0 if names else 1

	if args.command == "note":
		_make_engine(config).play_note(args.name, args.duration, _notifier(config))
		return 0

	tune = _build_tune(args, config)

	if not args.quiet:
		print(tune.describe())

	sequence = simpletune.track.compile_tune(tune)

	if args.save:
		simpletune.storage.save_tune(tune, args.save)

	if args.export:
		sequence.save(args.export, config.bpm)

	if not args.no_play:
		_make_engine(config).play(sequence, _notifier(config))

	return 0


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Main entry point for the simpletune command line.
	"""

	parser = build_parser()
	args = parser.parse_args(argv)

	if args.bpm is not None and args.bpm <= 0:
		parser.error("--bpm must be positive")

	logging.basicConfig(level=logging.WARNING if args.quiet else logging.INFO)

	try:
		config = simpletune.config.load_config(args.config)

		if args.device is not None:
			config.device_name = args.device
		if args.bpm is not None:
			config.bpm = args.bpm
		if args.quiet:
			config.show_notes = False

		return run(args, config)

	except (simpletune.track.CompileError, simpletune.player.PlaybackError) as e:
		logger.error(f"{e} ({e.reason.value})")
		return 1

	except (OSError, ValueError) as e:
		logger.error(f"{type(e).__name__}: {e}")
		return 1


if __name__ == "__main__":
	sys.exit(main())
