"""Audio hardware drivers. PyAudio is imported only when a device is acquired."""

from .microphone import PyAudioMicrophone, find_input_device

__all__ = ["PyAudioMicrophone", "find_input_device"]
