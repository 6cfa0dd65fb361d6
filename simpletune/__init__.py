"""
simpletune - write a short melody as note names and hear it played over MIDI.

A tune is a list of note names with durations in ticks (4 ticks per beat),
played on one General MIDI instrument:

- **Note names.** ``"C"``, ``"C#"``, ``"Db"``, ``"C4"`` (middle C),
  ``"C#5"`` and so on.  Octave 4 is assumed when no octave is given.
- **Compilation.** ``compile_tune()`` turns a tune into a time-ordered event
  sequence: a program change, note on/off pairs and "now playing" markers.
  Any unknown note aborts compilation.
- **Playback.** ``PlaybackEngine.play()`` blocks until the sequence has been
  played on a MIDI output, reporting each note as it starts through an
  optional callback.  Playback can be cancelled from another thread.
- **Files.** Tunes save to CSV; compiled sequences export to standard MIDI
  files.

Minimal example:

    ```python
    import simpletune

    tune = simpletune.Tune(instrument=0)
    for name in ["C", "D", "E", "F", "G"]:
        tune.add_note(name, 4)

    engine = simpletune.PlaybackEngine(bpm=120)
    engine.play(simpletune.compile_tune(tune), notify=simpletune.ConsoleNotifier())
    ```

Package-level exports: ``Tune``, ``Note``, ``compile_tune``, ``compile_note``,
``CompileError``, ``PlaybackEngine``, ``PlaybackError``, ``PlaybackFailure``, ``PlaybackResult``,
``InstrumentCatalog``, ``ConsoleNotifier``.
"""

import simpletune.display
import simpletune.instruments
import simpletune.player
import simpletune.track
import simpletune.tune


Tune = simpletune.tune.Tune
Note = simpletune.tune.Note
compile_tune = simpletune.track.compile_tune
compile_note = simpletune.track.compile_note
CompileError = simpletune.track.CompileError
PlaybackEngine = simpletune.player.PlaybackEngine
PlaybackError = simpletune.player.PlaybackError
PlaybackFailure = simpletune.player.PlaybackFailure
PlaybackResult = simpletune.player.PlaybackResult
InstrumentCatalog = simpletune.instruments.InstrumentCatalog
ConsoleNotifier = simpletune.display.ConsoleNotifier
