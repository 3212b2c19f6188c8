"""PitchBook booking core: slot conflicts, pricing and the booking lifecycle."""

__version__ = "0.1.0"
