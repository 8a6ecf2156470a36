"""Exception hierarchy for the forum inline editing service."""

from typing import Dict, Optional


class ForumInlineError(Exception):
    """Base exception for all errors reported through the service."""

    errorcode = "error"

    def __init__(self, message: str = "An error occurred", errorcode: Optional[str] = None):
        self.message = message
        if errorcode is not None:
            self.errorcode = errorcode
        super().__init__(self.message)


class RecordNotFoundError(ForumInlineError):
    """A requested record does not exist."""

    errorcode = "invalidrecord"

    def __init__(self, message: str = "Can not find data record in database"):
        super().__init__(message)


class PermissionDeniedError(ForumInlineError):
    """The acting user lacks a required capability."""

    errorcode = "nopermissions"

    def __init__(self, message: str = "Sorry, but you do not currently have permissions to do that"):
        super().__init__(message)


class InvalidParameterError(ForumInlineError):
    """A remote call received an argument it cannot use."""

    errorcode = "invalidparameter"

    def __init__(self, message: str = "Invalid parameter value detected"):
        super().__init__(message)


class FormValidationError(ForumInlineError):
    """Submitted data failed the form rules."""

    errorcode = "formvalidation"

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        fields = ", ".join(sorted(errors))
        super().__init__(f"Form validation failed: {fields}")


class StoredFileExistsError(ForumInlineError):
    """A file with the same path already exists in the target area."""

    errorcode = "storedfilenotcreated"

    def __init__(self, message: str = "Can not create file, a file with this path already exists"):
        super().__init__(message)


class PostThresholdError(ForumInlineError):
    """The user reached the posting threshold of the forum."""

    errorcode = "forumblockingtoomanyposts"

    def __init__(self, message: str = "You have exceeded the posting threshold set for this forum"):
        super().__init__(message)
