"""Result type returned by a publish."""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional


@dataclass
class PublishResult:
    """Outcome of a publish invocation."""
    success: bool
    message: str
    operation: str = "publish"
    branch_used: Optional[str] = None
    created_branch: bool = False
    changed: bool = False
    committed: bool = False
    pushed: bool = False
    commit_id: Optional[str] = None
    files_published: int = 0
    files_passed_through: int = 0
    phase_durations: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def create_publish_result(
    success: bool,
    message: str,
    operation: str = "publish",
    **fields: Any
) -> PublishResult:
    """
    Helper function to create PublishResult instances.

    Args:
        success: Whether the publish completed
        message: Descriptive message about the outcome
        operation: Name of the operation that was performed
        **fields: Any other PublishResult field

    Returns:
        PublishResult instance with all fields populated
    """
    return PublishResult(success=success, message=message, operation=operation, **fields)
