from __future__ import annotations


class StudioError(Exception):
    """Base class for failures the studio reports or recovers from."""


class MissingInputError(StudioError, ValueError):
    """Feedback or synthesis was requested without any sacred text."""


class ConfigurationError(StudioError, ValueError):
    """A required credential, voice selection or language is absent."""


class InterpreterUpstreamError(StudioError, RuntimeError):
    """The language model call failed or returned unusable markup.

    Never shown to the user: the rule-based interpreter takes over.
    """


class SynthesisError(StudioError, RuntimeError):
    """The text-to-speech service rejected the request or could not be reached."""
