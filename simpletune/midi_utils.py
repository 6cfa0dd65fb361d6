import logging
import typing

import mido

logger = logging.getLogger(__name__)

def list_output_devices () -> typing.List[str]:

	"""
	Return the names of the available MIDI output devices (empty on failure).
	"""

	try:
		return list(mido.get_output_names())

	except Exception as e:
		logger.error(f"Failed to list MIDI outputs: {e}")
		return []


def select_output_device (device_name: typing.Optional[str] = None) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

	"""
	Open the MIDI output a tune will be played on.

	A named device must be present in the list of outputs.  Without a name
	the first output in the list is chosen, which is the only sensible guess
	on a machine with a single synthesizer attached.

	Returns ``(name, port)``, or ``(None, None)`` when nothing usable was
	found or the backend refused to open the port.  The reason is logged.
	"""

	try:
		names = mido.get_output_names()

	except Exception as e:
		logger.error(f"Cannot query MIDI outputs: {e}")
		return None, None

	if not names:
		logger.error("There are no MIDI outputs to play on.")
		return None, None

	if device_name is None:
		chosen = names[0]
		logger.info(f"Playing on '{chosen}' ({len(names)} output(s) available)")

	elif device_name in names:
		chosen = device_name

	else:
		logger.error(f"MIDI output '{device_name}' not found; choose one of {names}")
		return None, None

	try:
		port = mido.open_output(chosen)

	except Exception as e:
		logger.error(f"Cannot open MIDI output '{chosen}': {e}")
		return None, None

	logger.debug(f"Opened MIDI output '{chosen}'")

	return chosen, port
