"""Alumni job board: job, application and feedback state with skill matching."""

__version__ = "0.1.0"
