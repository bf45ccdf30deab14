"""Exceptions raised by mintop samplers."""


class MintopError(Exception):
    """Base class for mintop errors."""


class FatalBatteryError(MintopError):
    """Battery enumeration as a whole is unusable (e.g. no power supply subsystem)."""


class PartialBatteryError(MintopError):
    """A single battery could not be read; other batteries may still be valid."""

    def __init__(self, index: int, name: str, cause: Exception) -> None:
        super().__init__(f"battery {index} ({name}): {cause}")
        self.index = index
        self.name = name
        self.cause = cause
