# Exception types raised by the HMPI backend


class HMPIError(Exception):
    """Base class for all errors raised by this package"""


class ConfigurationError(HMPIError, ValueError):
    """An environment setting could not be parsed"""


class InvalidConcentrationError(HMPIError, ValueError):
    """A recognised metal carried a value the engine refuses to score"""

    def __init__(self, metal: str, value, reason: str):
        self.metal = metal
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid concentration for {metal}: {value!r} ({reason})")
