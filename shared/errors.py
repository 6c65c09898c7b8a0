"""Exceptions raised before a flanger session can run."""


class FlangerError(Exception):
    pass


class ConfigurationError(FlangerError, ValueError):
    """A parameter is out of range, malformed, or unexpected.

    `param` names the offending parameter key, or is None when the
    problem is a leftover argument that matches no parameter.
    """

    def __init__(self, message, param=None):
        super().__init__(message)
        self.param = param


class UnsupportedChannelCount(FlangerError, ValueError):
    def __init__(self, channels, max_channels):
        super().__init__(
            f"Can not operate with more than {max_channels} channels (got {channels})")
        self.channels = channels
        self.max_channels = max_channels
