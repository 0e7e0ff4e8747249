"""Unit tests for failure classification."""

import asyncio

import pytest

from src.engines.moderation.error_classifier import (
    ClassificationRule,
    ErrorClass,
    ErrorClassifier,
    RawFailure,
)
from src.kernel.models.entity import EntityKind, ModerationAction
from src.kernel.transport.api_client import TransportError


@pytest.fixture
def classifier() -> ErrorClassifier:
    return ErrorClassifier()


class TestDefaultRules:
    """Default rule order and fallbacks."""

    def test_401_is_auth(self, classifier):
        """HTTP 401 classifies as AuthError."""
        error = classifier.classify(RawFailure(message="Token expired", status_code=401))
        assert error.error_class == ErrorClass.AUTH
        assert error.raw_message == "Token expired"
        assert "Sign in again" in error.recovery_hint

    def test_auth_wins_over_referential_marker(self, classifier):
        """Auth is checked before referential markers."""
        error = classifier.classify(RawFailure(message="foreign key constraint", status_code=401))
        assert error.error_class == ErrorClass.AUTH

    def test_referential_marker_is_case_insensitive(self, classifier):
        """FK markers match regardless of case."""
        message = "Cannot delete or update a parent row: a FOREIGN KEY CONSTRAINT fails (`fk_novel_category`)"
        error = classifier.classify(
            RawFailure(message=message, status_code=500, action=ModerationAction.HARD_DELETE)
        )
        assert error.error_class == ErrorClass.REFERENTIAL_INTEGRITY
        assert error.raw_message == message
        assert "soft delete" in error.recovery_hint.lower()

    def test_referential_hint_for_other_actions(self, classifier):
        """Other actions get a hint without the soft-delete advice."""
        error = classifier.classify(
            RawFailure(message="row still referenced", status_code=409, action=ModerationAction.SOFT_DELETE)
        )
        assert error.error_class == ErrorClass.REFERENTIAL_INTEGRITY
        assert "soft delete" not in error.recovery_hint.lower()

    @pytest.mark.parametrize("failure", [
        RawFailure(message="Request timed out after 10s", timeout=True),
        RawFailure(message="Connection refused", network=True),
        RawFailure(message="Bad gateway", status_code=502),
        RawFailure(message="Too many requests", status_code=429),
    ])
    def test_transient(self, classifier, failure):
        """Timeouts, network errors and 5xx are transient."""
        error = classifier.classify(failure)
        assert error.error_class == ErrorClass.TRANSIENT
        assert "retry" in error.recovery_hint.lower()

    @pytest.mark.parametrize("status_code", [400, 422])
    def test_rejected_input_is_validation(self, classifier, status_code):
        """400 and 422 classify as ValidationError."""
        error = classifier.classify(RawFailure(message="Novel is not under review", status_code=status_code))
        assert error.error_class == ErrorClass.VALIDATION

    @pytest.mark.parametrize("status_code", [403, 404, 409, None])
    def test_everything_else_is_unknown(self, classifier, status_code):
        """Unmatched failures fall through to UnknownError."""
        error = classifier.classify(RawFailure(message="Something odd happened", status_code=status_code))
        assert error.error_class == ErrorClass.UNKNOWN
        assert error.raw_message == "Something odd happened"
        assert error.rule is None

    def test_empty_message_falls_back_to_action_text(self, classifier):
        """An empty message falls back to the action text."""
        error = classifier.classify(
            RawFailure(message="", status_code=409, action=ModerationAction.HARD_DELETE, kind=EntityKind.CATEGORY)
        )
        assert error.raw_message == "Failed to hard delete category"


class TestRuleExtension:
    """Rules are data: added without editing existing ones."""

    def test_custom_markers(self):
        """Configured markers replace the defaults."""
        classifier = ErrorClassifier.from_markers(["has dependent chapters"])
        error = classifier.classify(RawFailure(message="Novel has dependent chapters", status_code=400))
        assert error.error_class == ErrorClass.REFERENTIAL_INTEGRITY
        # default markers are replaced, not merged
        error = classifier.classify(RawFailure(message="fk_novel_category", status_code=400))
        assert error.error_class == ErrorClass.VALIDATION

    def test_appended_rule_matches_after_defaults(self, classifier):
        """Appended rules run after the defaults."""
        classifier.add_rule(ClassificationRule(
            name="forbidden",
            predicate=lambda f: f.status_code == 403,
            error_class=ErrorClass.AUTH,
            hint="Ask an administrator for access.",
        ))
        error = classifier.classify(RawFailure(message="Forbidden", status_code=403))
        assert error.error_class == ErrorClass.AUTH
        assert error.rule == "forbidden"

    def test_inserted_rule_takes_precedence(self, classifier):
        """Inserted rules run before later ones."""
        classifier.add_rule(
            ClassificationRule(
                name="maintenance",
                predicate=lambda f: "maintenance" in f.lowered,
                error_class=ErrorClass.TRANSIENT,
                hint="The backend is in maintenance.",
            ),
            position=0,
        )
        error = classifier.classify(RawFailure(message="Down for MAINTENANCE", status_code=401))
        assert error.error_class == ErrorClass.TRANSIENT
        assert classifier.rules[0].name == "maintenance"

    def test_broken_rule_is_skipped(self, classifier):
        """A rule whose predicate raises is skipped."""
        def explode(failure):
            raise RuntimeError("bad rule")

        classifier.add_rule(
            ClassificationRule(name="broken", predicate=explode, error_class=ErrorClass.AUTH, hint="-"),
            position=0,
        )
        error = classifier.classify(RawFailure(message="Service unavailable", status_code=503))
        assert error.error_class == ErrorClass.TRANSIENT


class TestFromException:
    """Exceptions become RawFailures."""

    def test_transport_error_fields_carry_over(self, classifier):
        """TransportError status and message feed classification."""
        exc = TransportError("Request timed out after 10s", timeout=True)
        error = classifier.classify_exception(exc, ModerationAction.APPROVE, EntityKind.NOVEL)
        assert error.error_class == ErrorClass.TRANSIENT

    def test_asyncio_timeout_is_transient(self, classifier):
        """asyncio.TimeoutError is transient."""
        error = classifier.classify_exception(asyncio.TimeoutError())
        assert error.error_class == ErrorClass.TRANSIENT

    def test_arbitrary_exception_is_unknown(self, classifier):
        """Any other exception is unknown."""
        error = classifier.classify_exception(RuntimeError("kaboom"))
        assert error.error_class == ErrorClass.UNKNOWN
        assert error.raw_message == "kaboom"
