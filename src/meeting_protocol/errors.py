"""
Custom exceptions and error handling for the meeting protocol generator.

Provides:
- Typed exception hierarchy for different failure modes
- Error context preservation for debugging
- Partial success handling for per-voter QR rendering
"""

from dataclasses import dataclass, field
from typing import Any


class MeetingProtocolError(Exception):
    """Base exception for all meeting protocol errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


# =============================================================================
# Render Errors
# =============================================================================


class RenderError(MeetingProtocolError):
    """A QR payload could not be encoded into an image."""

    pass


# =============================================================================
# Generation Errors
# =============================================================================


class ProtocolGenerationError(MeetingProtocolError):
    """Base class for fatal protocol generation errors."""

    pass


class InputDataError(ProtocolGenerationError):
    """Input bundle is structurally unusable (degenerate numbers never raise)."""

    pass


class TallyError(ProtocolGenerationError):
    """Error while tabulating votes."""

    pass


class CompositionError(ProtocolGenerationError):
    """Error while composing the document markup."""

    pass


class PackagingError(ProtocolGenerationError):
    """Error while assembling the document package."""

    pass


# =============================================================================
# Partial Success Handling
# =============================================================================


@dataclass
class ItemResult:
    """Result for a single item in a batch operation."""

    item_id: str | None
    success: bool
    error: MeetingProtocolError | None = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class PartialSuccessResult:
    """
    Result of a batch operation that may partially succeed.

    Used for per-voter QR rendering: a failed voter is recorded here and
    the run continues.
    """

    succeeded: list[ItemResult] = field(default_factory=list)
    failed: list[ItemResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def total_count(self) -> int:
        return self.success_count + self.failure_count

    @property
    def all_succeeded(self) -> bool:
        return self.failure_count == 0

    @property
    def all_failed(self) -> bool:
        return self.success_count == 0

    @property
    def partial_success(self) -> bool:
        return self.success_count > 0 and self.failure_count > 0

    def add_success(
        self,
        item_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Record a successful item."""
        self.succeeded.append(
            ItemResult(item_id=item_id, success=True, data=data or {})
        )

    def add_failure(
        self,
        error: MeetingProtocolError,
        item_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Record a failed item."""
        self.failed.append(
            ItemResult(item_id=item_id, success=False, error=error, data=data or {})
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'success_count': self.success_count,
            'failure_count': self.failure_count,
            'total_count': self.total_count,
            'all_succeeded': self.all_succeeded,
            'succeeded_ids': [r.item_id for r in self.succeeded if r.item_id],
            'failed_ids': [r.item_id for r in self.failed if r.item_id],
            'errors': [
                {'item_id': r.item_id, 'error': str(r.error)}
                for r in self.failed
                if r.error
            ],
        }


# =============================================================================
# Error Handling Utilities
# =============================================================================


def wrap_render_error(exc: Exception, context: dict[str, Any] | None = None) -> RenderError:
    """
    Wrap a QR/imaging library exception in our typed error hierarchy.

    Args:
        exc: The original exception
        context: Additional context for debugging

    Returns:
        RenderError carrying the original error text and type
    """
    ctx = context or {}
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__

    # qrcode raises DataOverflowError, sometimes without a message
    if type(exc).__name__ == 'DataOverflowError' or 'data overflow' in str(exc).lower():
        return RenderError(
            f"QR payload too large to encode: {exc}",
            context=ctx,
        )
    return RenderError(
        f"QR render failed: {exc}",
        context=ctx,
    )
