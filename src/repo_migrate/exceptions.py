"""Migration exceptions."""

from typing import Optional


class RepoException(Exception):
    """Base exception for failures while talking to a repository or hook."""

    def __init__(self, message: str, stderr: Optional[str] = None):
        """Initialize repository error.

        Args:
            message: Error message
            stderr: Captured standard error of the failing command
        """
        super().__init__(message)
        self.stderr = stderr


class CannotResolveReferenceException(RepoException):
    """A reference expression could not be resolved to a commit."""

    pass


class CheckoutHookException(RepoException):
    """The origin checkout hook failed to execute."""

    def __init__(self, message: str, exit_code: Optional[int] = None, **kwargs):
        """Initialize checkout hook error.

        Args:
            message: Error message
            exit_code: Exit code of the hook, None if it could not be started
            **kwargs: Additional arguments for base class
        """
        super().__init__(message, **kwargs)
        self.exit_code = exit_code


class PushRejectedException(RepoException):
    """A push was rejected because an update was not a fast-forward."""

    pass


class ValidationException(Exception):
    """Configuration error detected before any repository is touched."""

    @classmethod
    def from_pydantic(cls, error, context: Optional[str] = None) -> 'ValidationException':
        """Build a validation exception from a pydantic ValidationError.

        Args:
            error: pydantic ValidationError
            context: Optional prefix, usually the name of the failing call

        Returns:
            Validation exception with one line per error
        """
        messages = []
        for item in error.errors():
            location = '.'.join(str(part) for part in item.get('loc', ()))
            message = item.get('msg', '')
            # pydantic 2 prefixes errors raised inside validators
            if message.startswith('Value error, '):
                message = message[len('Value error, ') :]
            messages.append(f'{location}: {message}' if location else message)

        text = '; '.join(messages)
        return cls(f'{context}: {text}' if context else text)
