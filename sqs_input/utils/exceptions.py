"""Exception types raised by the SQS input."""


class SQSInputError(Exception):
    """Base class for all SQS input errors."""


class ConfigurationError(SQSInputError):
    """The input cannot run with the given configuration.

    Raised for an unresolvable queue, an unreachable backend at startup,
    an unknown codec, or a fatal (authentication / authorization) backend
    error during polling. Never retried.
    """


class DecodeError(SQSInputError):
    """A message body could not be decoded into events."""
