"""Player configuration.

Settings are read from a YAML file, by default ``simpletune.yaml`` in the
working directory::

	midi:
	  device_name: "FluidSynth virtual port"
	playback:
	  bpm: 100
	  show_notes: true
	tune:
	  instrument: 0

Every key is optional.  A missing file gives the defaults.
"""

import dataclasses
import logging
import os
import typing

import yaml

import simpletune.constants


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "simpletune.yaml"


@dataclasses.dataclass
class Config:

	"""
	Settings for the player and the command line.
	"""

	device_name: typing.Optional[str] = None
	bpm: float = simpletune.constants.DEFAULT_BPM
	show_notes: bool = True
	instrument: int = 0

	def __post_init__ (self) -> None:

		if self.bpm <= 0:
			raise ValueError(f"BPM must be positive, got {self.bpm}")

		if self.instrument < 0:
			raise ValueError(f"The instrument number must be greater than or equal to zero: {self.instrument}")


	@classmethod
	def from_dict (cls, data: typing.Dict[str, typing.Any]) -> "Config":

		"""Build a config from parsed YAML, using defaults for missing keys."""

		midi = data.get('midi') or {}
		playback = data.get('playback') or {}
		tune = data.get('tune') or {}

		try:
			return cls(
				device_name = midi.get('device_name'),
				bpm = float(playback.get('bpm', simpletune.constants.DEFAULT_BPM)),
				show_notes = bool(playback.get('show_notes', True)),
				instrument = int(tune.get('instrument', 0)),
			)
		except (TypeError, AttributeError) as e:
			raise ValueError(f"Invalid configuration: {e}") from e


def load_config (config_path: str = DEFAULT_CONFIG_PATH) -> Config:

	"""
	Load configuration from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return Config()

	with open(config_path, 'r') as f:
		data = yaml.safe_load(f)

	if data is None:
		return Config()

	if not isinstance(data, dict):
		raise ValueError(f"Config file {config_path} must contain a mapping")

	return Config.from_dict(data)
