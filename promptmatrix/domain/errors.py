class PromptMatrixError(Exception):
    pass


class ConfigurationError(PromptMatrixError):
    """Invalid suite configuration. Raised before any request is sent."""


class RequestError(PromptMatrixError):
    """Transport or protocol failure talking to a chat-completion endpoint."""
