"""
Unit tests for exceptions module.

Tests all exception types and their error messages.
"""

import pytest

from eventfold.exceptions import (
    ConcurrencyConflictError,
    DomainError,
    EventFoldError,
    ProjectionError,
    SerializationError,
    StreamNotFoundError,
    TransportError,
)
from eventfold.stores import StreamState
from eventfold.subscriptions import (
    SubscriptionAlreadyExistsError,
    SubscriptionError,
    SubscriptionStateError,
)


class TestEventFoldError:
    """Tests for the base EventFoldError."""

    def test_base_exception(self):
        """Test that EventFoldError can be raised with message."""
        with pytest.raises(EventFoldError) as exc_info:
            raise EventFoldError("Test error")
        assert str(exc_info.value) == "Test error"

    @pytest.mark.parametrize(
        "error_class",
        [
            DomainError,
            ConcurrencyConflictError,
            StreamNotFoundError,
            ProjectionError,
            TransportError,
            SerializationError,
            SubscriptionError,
        ],
    )
    def test_library_errors_share_base(self, error_class):
        """Every library error can be caught as EventFoldError."""
        assert issubclass(error_class, EventFoldError)


class TestDomainError:
    """Tests for DomainError."""

    def test_carries_code(self):
        error = DomainError("Cart is not opened", code="CART_IS_NOT_OPENED")
        assert error.code == "CART_IS_NOT_OPENED"
        assert str(error) == "Cart is not opened"

    def test_code_is_optional(self):
        assert DomainError("nope").code is None


class TestConcurrencyConflictError:
    """Tests for ConcurrencyConflictError."""

    def test_error_with_revision_mismatch(self):
        """Message names the stream, the expectation and the actual revision."""
        error = ConcurrencyConflictError("cart-1", expected_revision=2, actual_revision=3)

        assert error.stream_id == "cart-1"
        assert error.expected_revision == 2
        assert error.actual_revision == 3
        assert "cart-1" in str(error)
        assert "expected 2" in str(error)
        assert "revision 3" in str(error)

    def test_error_for_missing_stream(self):
        """A missing stream is reported as such rather than as a revision."""
        error = ConcurrencyConflictError("cart-1", StreamState.STREAM_EXISTS, None)
        assert "no stream" in str(error)


class TestStreamNotFoundError:
    def test_message(self):
        error = StreamNotFoundError("cart-404")
        assert error.stream_id == "cart-404"
        assert "cart-404" in str(error)


class TestProjectionError:
    """Tests for ProjectionError."""

    def test_attributes_and_message(self):
        error = ProjectionError("cart-details", "project", "cart-opened", 7, "boom")

        assert error.subscription_name == "cart-details"
        assert error.handler_name == "project"
        assert error.event_type == "cart-opened"
        assert error.position == 7
        assert "position 7" in str(error)
        assert "boom" in str(error)


class TestSerializationError:
    def test_message(self):
        error = SerializationError("cart-opened", "missing cart_id")
        assert error.event_type == "cart-opened"
        assert "cart-opened" in str(error)
        assert "missing cart_id" in str(error)


class TestSubscriptionErrors:
    """Tests for subscription exceptions."""

    def test_already_exists(self):
        error = SubscriptionAlreadyExistsError("cart-details")
        assert error.name == "cart-details"
        assert "already exists" in str(error)

    def test_state_error_is_subscription_error(self):
        assert issubclass(SubscriptionStateError, SubscriptionError)
