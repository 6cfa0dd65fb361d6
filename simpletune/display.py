"""Console output for note changes during playback.

``ConsoleNotifier`` is a notify sink for :meth:`simpletune.player.PlaybackEngine.play`.
It prints each note name as it starts and ends the line when the sequence is
over::

	C D E F G
"""

import sys
import threading
import typing


class ConsoleNotifier:

	"""Print note names to a stream as they are played."""

	def __init__ (self, stream: typing.Optional[typing.TextIO] = None) -> None:

		self._stream = stream if stream is not None else sys.stdout
		self._lock = threading.Lock()


	def __call__ (self, note_name: str, is_end: bool) -> None:

		with self._lock:
			if is_end:
				self._stream.write("\n")
			else:
				self._stream.write(f"{note_name} ")
			self._stream.flush()
