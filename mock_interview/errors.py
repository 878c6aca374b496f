"""
Error taxonomy for the interview core.

Only DeviceError is meant to reach the candidate. The others are caught at
service seams, logged, and degraded into fallbacks where one exists.
"""


class InterviewError(Exception):
    """Base class for interview core errors."""


class DeviceError(InterviewError, RuntimeError):  # Capture device unavailable or denied
    pass


class TranscriptionError(InterviewError, RuntimeError):  # One chunk could not be transcribed
    pass


class GenerationError(InterviewError, RuntimeError):  # Flow generation failed or was malformed
    pass


class StateError(InterviewError, ValueError):  # Snapshot could not be rehydrated
    pass
