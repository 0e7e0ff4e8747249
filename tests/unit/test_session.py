"""Unit tests for the operator session context and the failure log."""

from src.engines.moderation.error_classifier import ClassifiedError, ErrorClass
from src.engines.moderation.failure_log import FailureLog
from src.kernel.identity.session import Credentials, SessionContext
from src.kernel.models.entity import EntityKind, EntityRef, ModerationAction


class TestSessionContext:

    def test_init_and_authorization_header(self):
        """init installs the bearer header."""
        session = SessionContext(login_path="/login")
        assert session.authorization_header() == {}

        session.init(Credentials(access_token="abc"))

        assert session.is_authenticated
        assert session.authorization_header() == {"Authorization": "Bearer abc"}

    def test_teardown_is_not_expiry(self):
        """teardown does not notify expiry listeners."""
        session = SessionContext(login_path="/login")
        expiries = []
        session.on_expire(expiries.append)
        session.init(Credentials(access_token="abc"))

        session.teardown()

        assert not session.is_authenticated
        assert not session.is_expired
        assert expiries == []

    def test_expire_notifies_once(self):
        """expire is idempotent and notifies once."""
        session = SessionContext(login_path="/yushan-admin/login")
        expiries = []
        session.on_expire(expiries.append)
        session.init(Credentials(access_token="abc"))

        first = session.expire("401 from POST /novels/1/approve")
        second = session.expire("401 from GET /categories")

        assert first is second
        assert len(expiries) == 1
        assert first.redirect_to == "/yushan-admin/login"
        assert session.credentials is None

    def test_init_after_expiry_resets(self):
        """A new init clears the previous expiry."""
        session = SessionContext(login_path="/login")
        session.expire("gone")
        session.init(Credentials(access_token="new"))
        assert session.expiry is None
        assert session.is_authenticated

    def test_unsubscribe(self):
        """Unsubscribed listeners are not called."""
        session = SessionContext(login_path="/login")
        expiries = []
        unsubscribe = session.on_expire(expiries.append)
        unsubscribe()
        session.expire("gone")
        assert expiries == []


class TestFailureLog:

    def _error(self, message: str) -> ClassifiedError:
        return ClassifiedError(error_class=ErrorClass.TRANSIENT, raw_message=message, recovery_hint="Retry")

    def test_newest_first_and_bounded(self):
        """The log keeps the newest records up to capacity."""
        log = FailureLog(capacity=3)
        for i in range(5):
            log.record(EntityRef(EntityKind.NOVEL, i), ModerationAction.APPROVE, self._error(f"fail {i}"))

        assert len(log) == 3
        assert [r.raw_message for r in log.recent()] == ["fail 4", "fail 3", "fail 2"]
        assert [r.entity for r in log.recent(limit=1)] == ["novel:4"]

    def test_clear(self):
        """clear empties the log."""
        log = FailureLog()
        log.record(EntityRef(EntityKind.CATEGORY, 1), ModerationAction.HARD_DELETE, self._error("x"), action_id="abc")
        assert log.recent()[0].action_id == "abc"
        log.clear()
        assert log.recent() == []
