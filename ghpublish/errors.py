"""Error taxonomy and structured error responses for ghpublish."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional


class ErrorCategory(Enum):
    """Categories of errors for structured error handling."""
    REPOSITORY = "repository"
    NETWORK = "network"
    BRANCH = "branch"
    CONTENT = "content"
    FILE_IO = "file_io"
    GIT_COMMAND = "git_command"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


class PublishError(Exception):
    """Base class for every failure surfaced by a publish."""

    error_code = "PUBLISH_ERROR"
    category = ErrorCategory.SYSTEM

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class RepositoryNotFoundError(PublishError):
    """No valid local repository where one was assumed."""

    error_code = "REPOSITORY_NOT_FOUND"
    category = ErrorCategory.REPOSITORY


class GitCommandFailure(PublishError):
    """A git command failed; the message is git's own output."""

    error_code = "GIT_COMMAND_FAILED"
    category = ErrorCategory.GIT_COMMAND

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        stderr: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, context)
        self.command = command
        self.stderr = stderr


class NetworkOrAuthError(GitCommandFailure):
    """Clone, fetch, pull or push failed (unreachable, missing or forbidden)."""

    error_code = "NETWORK_OR_AUTH"
    category = ErrorCategory.NETWORK


class InvalidBranchError(GitCommandFailure):
    """Checkout of a branch that exists neither locally nor remotely."""

    error_code = "INVALID_BRANCH"
    category = ErrorCategory.BRANCH

    def __init__(self, message: str, branch: str, **kwargs):
        super().__init__(message, **kwargs)
        self.branch = branch


class GitOperationError(GitCommandFailure):
    """Any other failed git command (add, rm, commit, status)."""


class UnsupportedContentError(PublishError):
    """An incoming file carries stream-shaped content."""

    error_code = "UNSUPPORTED_CONTENT"
    category = ErrorCategory.CONTENT


class FilesystemError(PublishError):
    """Working-tree write or cache directory failure."""

    error_code = "FILESYSTEM_ERROR"
    category = ErrorCategory.FILE_IO

    def __init__(
        self,
        message: str,
        errno: Optional[int] = None,
        path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, context)
        self.errno = errno
        self.path = path

    @classmethod
    def from_os_error(cls, error: OSError, path=None) -> "FilesystemError":
        """Wrap an OSError, keeping its errno and the offending path."""
        target = path if path is not None else error.filename
        return cls(
            f"{error.strerror or error}: {target}" if target else str(error),
            errno=error.errno,
            path=str(target) if target is not None else None
        )


@dataclass
class ErrorResponse:
    """Standardized error response format for tool results."""
    error: str
    error_code: str
    message: str
    timestamp: str
    category: str
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error response to dictionary format."""
        result = {
            "error": self.error,
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp,
            "category": self.category
        }
        if self.context:
            result["context"] = self.context
        return result


class ErrorHandler:
    """Turns publish failures into structured responses."""

    def __init__(self):
        self.logger = logging.getLogger('ghpublish.error_handler')

    def handle_publish_error(self, error: Exception, context: Dict[str, Any] = None) -> ErrorResponse:
        """Handle any exception raised while publishing."""
        context = dict(context or {})

        if isinstance(error, PublishError):
            error_code = error.error_code
            category = error.category.value
            message = error.message
            context.update(error.context)
            if isinstance(error, FilesystemError):
                if error.errno is not None:
                    context['errno'] = error.errno
                if error.path:
                    context['path'] = error.path
            elif isinstance(error, GitCommandFailure) and error.command:
                context['command'] = error.command
        elif isinstance(error, ValueError):
            error_code = "CONFIGURATION_ERROR"
            category = ErrorCategory.CONFIGURATION.value
            message = str(error)
        elif isinstance(error, OSError):
            error_code = "FILESYSTEM_ERROR"
            category = ErrorCategory.FILE_IO.value
            message = f"File system error: {error}"
            if error.errno is not None:
                context['errno'] = error.errno
        else:
            error_code = "PUBLISH_GENERAL_ERROR"
            category = ErrorCategory.SYSTEM.value
            message = f"Publish failed: {error}"

        error_response = ErrorResponse(
            error="Publish failed",
            error_code=error_code,
            message=message,
            timestamp=datetime.now().isoformat(),
            category=category,
            context=context or None
        )

        self.logger.error(
            f"Publish error: {message}",
            extra={
                'operation': 'publish_error',
                'error_code': error_code,
                'branch': context.get('branch')
            }
        )

        return error_response

    def create_success_response(self, operation: str, data: Dict[str, Any], context: Dict[str, Any] = None) -> Dict[str, Any]:
        """Create a standardized success response."""
        response = {
            "success": True,
            "operation": operation,
            "timestamp": datetime.now().isoformat(),
            "data": data
        }

        if context:
            response["context"] = context

        return response


error_handler = ErrorHandler()
