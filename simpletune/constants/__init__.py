"""Constants for simpletune.

- ``simpletune.constants.velocity`` - MIDI velocity constants
- ``simpletune.constants.gm_instruments`` - General MIDI program names

Timing and output constants used by the compiler and the player live here.
"""

# Resolution of every compiled sequence.
TICKS_PER_BEAT = 4

# Duration given to a note when none is specified.
DEFAULT_DURATION = 8

# All notes are sent on this (0-indexed) channel.
MIDI_CHANNEL = 1

# In MIDI notation, the note value of C in octave 1.
C1_BASE_OFFSET = 24

NOTES_PER_OCTAVE = 12

# Octave assumed when a note name has no octave digit.
DEFAULT_OCTAVE = 4
MIN_OCTAVE = 0
MAX_OCTAVE = 8

DEFAULT_BPM = 120

# Seconds between checks for the end of playback.
POLL_INTERVAL = 0.1

# Seconds to hold the port open after the last event so the sound can decay.
DECAY_HOLD = 0.5

# How many instruments are listed when no count is given.
DEFAULT_INSTRUMENT_LISTING = 16

DEFAULT_TUNE_FILENAME = "track.csv"
