"""Custom exception classes for the Producer."""


class ProducerError(Exception):
    """
    Base exception class for all producer-side errors.
    """
    pass


class ConfigurationError(ProducerError):
    """
    Raised when the local batch setup is unusable. Aborts the batch before
    any request is sent.
    """
    pass


class MalformedNameError(ConfigurationError):
    """
    Raised when a source filename does not carry exactly one sequence token.
    """
    pass


class TransportError(ProducerError):
    """
    Raised when a single chunk dispatch fails at the connection, TLS or HTTP
    level. Isolated to that chunk.
    """
    pass
