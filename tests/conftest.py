import threading
import typing

import mido
import pytest


class FakeMidiOut:

	"""MIDI output stub that records what was sent."""

	def __init__ (self) -> None:

		"""Start with no messages and an open port."""

		self.messages: typing.List[mido.Message] = []
		self.sent_after_close: typing.List[mido.Message] = []
		self.close_count = 0
		self._lock = threading.Lock()


	def send (self, message: mido.Message) -> None:

		"""Record an outgoing MIDI message."""

		with self._lock:
			if self.close_count:
				self.sent_after_close.append(message)
			self.messages.append(message)


	def close (self) -> None:

		"""Count how often the port is closed."""

		with self._lock:
			self.close_count += 1


	def of_type (self, message_type: str) -> typing.List[mido.Message]:

		"""Return the recorded messages of one type."""

		with self._lock:
			return [m for m in self.messages if m.type == message_type]


def _fake_get_output_names () -> list[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI"]


# Module-level reference so tests can access the most recently opened FakeMidiOut.
_current_fake_output: typing.Optional[FakeMidiOut] = None


def _fake_open_output (name: str) -> FakeMidiOut:

	"""Return a fake MIDI output regardless of the name."""

	global _current_fake_output
	fake = FakeMidiOut()
	_current_fake_output = fake
	return fake


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use a fake MIDI output for all tests that need it."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)


@pytest.fixture
def fake_out () -> FakeMidiOut:

	"""A fresh recording output port."""

	return FakeMidiOut()
