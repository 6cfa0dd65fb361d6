"""MIDI velocity constants.

Velocity is the MIDI attack strength (0-127). Tunes are played at a single
fixed velocity.
"""

DEFAULT_VELOCITY = 90

# Note-off messages carry no meaningful velocity.
NOTE_OFF_VELOCITY = 0
