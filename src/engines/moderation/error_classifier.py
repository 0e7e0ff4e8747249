"""
Failure classification for moderation actions.

Server error text is not a versioned contract, so classification is an
ordered list of (predicate, class) rules evaluated top-down and failing
closed to UnknownError. New backend error formats are handled by adding
rules, never by editing the matching code. Whatever the class, the raw
server message is kept verbatim.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel

from src.kernel.models.entity import EntityKind, ModerationAction
from src.kernel.transport.api_client import TransportError
from src.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_REFERENTIAL_INTEGRITY_MARKERS = (
    "foreign key constraint",
    "fk_novel_category",
    "still referenced",
)


class ErrorClass(str, Enum):
    """Failure taxonomy surfaced to the operator."""

    VALIDATION = "ValidationError"
    REFERENTIAL_INTEGRITY = "ReferentialIntegrityError"
    AUTH = "AuthError"
    TRANSIENT = "TransientError"
    UNKNOWN = "UnknownError"


@dataclass(frozen=True)
class RawFailure:
    """A failure as it came back from the collaborator, before classification."""

    message: str
    status_code: Optional[int] = None
    timeout: bool = False
    network: bool = False
    action: Optional[ModerationAction] = None
    kind: Optional[EntityKind] = None

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        action: Optional[ModerationAction] = None,
        kind: Optional[EntityKind] = None,
    ) -> "RawFailure":
        if isinstance(exc, TransportError):
            return cls(
                message=exc.message,
                status_code=exc.status_code,
                timeout=exc.timeout,
                network=exc.network,
                action=action,
                kind=kind,
            )
        if isinstance(exc, asyncio.TimeoutError):
            return cls(message=str(exc), timeout=True, action=action, kind=kind)
        return cls(message=str(exc), action=action, kind=kind)

    @property
    def lowered(self) -> str:
        return self.message.lower()

    def display_message(self) -> str:
        """The raw message, or a generic 'Failed to ...' line when the server sent none."""
        if self.message:
            return self.message
        if self.action is not None and self.kind is not None:
            return f"Failed to {self.action.value.replace('_', ' ')} {self.kind.value}"
        return "Request failed"


class ClassifiedError(BaseModel):
    """A failure with its class and the recovery path to show the operator."""

    error_class: ErrorClass
    raw_message: str
    recovery_hint: str
    status_code: Optional[int] = None
    rule: Optional[str] = None


HintSource = Union[str, Callable[[RawFailure], str]]


@dataclass(frozen=True)
class ClassificationRule:
    """One (predicate, class) rule; `hint` may depend on the failure."""

    name: str
    predicate: Callable[[RawFailure], bool]
    error_class: ErrorClass
    hint: HintSource

    def recovery_hint(self, failure: RawFailure) -> str:
        return self.hint(failure) if callable(self.hint) else self.hint


def _is_unauthorized(failure: RawFailure) -> bool:
    return failure.status_code == 401


def _mentions_any(markers: Sequence[str]) -> Callable[[RawFailure], bool]:
    lowered = tuple(m.lower() for m in markers if m)

    def _predicate(failure: RawFailure) -> bool:
        text = failure.lowered
        return any(marker in text for marker in lowered)

    return _predicate


def _is_transient(failure: RawFailure) -> bool:
    if failure.timeout or failure.network:
        return True
    code = failure.status_code
    return code is not None and (code >= 500 or code in (408, 429))


def _is_rejected_input(failure: RawFailure) -> bool:
    return failure.status_code in (400, 422)


def _referential_hint(failure: RawFailure) -> str:
    if failure.action == ModerationAction.HARD_DELETE:
        return (
            "This record is still referenced by other records. Use soft delete instead, "
            "or remove or reassign the dependent records first, then retry the hard delete."
        )
    return "This record is still referenced by other records. Remove or reassign them first, then retry."


def _transient_hint(failure: RawFailure) -> str:
    if failure.timeout:
        return "The server did not answer in time. Check the row, then retry the action."
    return "The server or network is temporarily unavailable. Retry the action in a moment."


def default_rules(
    referential_markers: Iterable[str] = DEFAULT_REFERENTIAL_INTEGRITY_MARKERS,
) -> List[ClassificationRule]:
    """The built-in rule order: auth, referential integrity, transient, validation."""
    return [
        ClassificationRule(
            name="unauthorized",
            predicate=_is_unauthorized,
            error_class=ErrorClass.AUTH,
            hint="Your session has expired. Sign in again to continue.",
        ),
        ClassificationRule(
            name="referential_integrity",
            predicate=_mentions_any(list(referential_markers)),
            error_class=ErrorClass.REFERENTIAL_INTEGRITY,
            hint=_referential_hint,
        ),
        ClassificationRule(
            name="transient",
            predicate=_is_transient,
            error_class=ErrorClass.TRANSIENT,
            hint=_transient_hint,
        ),
        ClassificationRule(
            name="rejected_input",
            predicate=_is_rejected_input,
            error_class=ErrorClass.VALIDATION,
            hint="The server rejected the request. Refresh the list; the row may be out of date.",
        ),
    ]


UNKNOWN_HINT = "The server reported an unexpected error; see the message above."


class ErrorClassifier:
    """
    Maps raw failures to ClassifiedError by the first matching rule.

    Usage:
        classifier = ErrorClassifier.from_markers(settings.referential_integrity_markers)
        classifier.add_rule(my_rule, position=0)
        error = classifier.classify(RawFailure.from_exception(exc, action, kind))
    """

    def __init__(self, rules: Optional[Iterable[ClassificationRule]] = None):
        self._rules: List[ClassificationRule] = list(rules) if rules is not None else default_rules()

    @classmethod
    def from_markers(cls, referential_markers: Iterable[str]) -> "ErrorClassifier":
        return cls(default_rules(referential_markers))

    @property
    def rules(self) -> List[ClassificationRule]:
        return list(self._rules)

    def add_rule(self, rule: ClassificationRule, position: Optional[int] = None) -> None:
        """Append a rule, or insert it at `position` to take precedence."""
        if position is None:
            self._rules.append(rule)
        else:
            self._rules.insert(position, rule)

    def classify(self, failure: RawFailure) -> ClassifiedError:
        raw_message = failure.display_message()
        for rule in self._rules:
            try:
                matched = rule.predicate(failure)
            except Exception:
                # A broken rule must not hide the failure; skip it
                logger.exception("Classification rule %s raised", rule.name)
                continue
            if matched:
                return ClassifiedError(
                    error_class=rule.error_class,
                    raw_message=raw_message,
                    recovery_hint=rule.recovery_hint(failure),
                    status_code=failure.status_code,
                    rule=rule.name,
                )
        return ClassifiedError(
            error_class=ErrorClass.UNKNOWN,
            raw_message=raw_message,
            recovery_hint=UNKNOWN_HINT,
            status_code=failure.status_code,
        )

    def classify_exception(
        self,
        exc: BaseException,
        action: Optional[ModerationAction] = None,
        kind: Optional[EntityKind] = None,
    ) -> ClassifiedError:
        return self.classify(RawFailure.from_exception(exc, action, kind))
