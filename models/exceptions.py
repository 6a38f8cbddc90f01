"""
Exceptions raised by the GLIF neuron model.
"""


class GLIFError(Exception):
    """Base class for all GLIF model errors."""


class BadProperty(GLIFError, ValueError):
    """A status write was rejected; committed state is unchanged."""


class UnknownReceptorType(GLIFError, ValueError):
    """An event or connection addressed a channel the neuron does not have."""

    def __init__(self, channel, n_channels, event_type='SpikeEvent'):
        self.channel = channel
        self.n_channels = n_channels
        self.event_type = event_type
        super().__init__(
            f"{event_type} on channel {channel} rejected: "
            f"neuron has {n_channels} channel(s)")


class UnknownRecordable(GLIFError, KeyError):
    """Requested recordable is not in the recordables map."""


class IntegrationError(GLIFError, RuntimeError):
    """The adaptive solver could not advance the state; fatal for the run."""

    def __init__(self, step, message):
        self.step = step
        super().__init__(f"Integration failed at step {step}: {message}")
