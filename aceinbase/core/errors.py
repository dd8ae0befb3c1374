class QuizError(Exception):
    """Base class for every error raised by the quiz backend."""


class InitializationError(QuizError):
    """Provider credentials or configuration are missing."""


class NotInitializedError(QuizError):
    """A message was sent before a conversation session was opened."""


class ProviderError(QuizError):
    """The language model provider failed or returned nothing usable.

    Always recoverable: the learner can retry by sending another message.
    """


class PersistenceError(QuizError):
    """Reading, writing or clearing stored progress failed."""


class InvalidTransitionError(QuizError):
    """An event is not allowed in the quiz's current state."""


class QuizBusyError(QuizError):
    """A request arrived while another provider call is still pending."""
