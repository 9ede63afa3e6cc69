"""
SessionView 테스트.

화면 상태 바인딩: 세션 로드, 검증 저장, 선택, 진행률 파생값.
"""
import pytest

from cortex_review.models.session import SessionUpdate
from cortex_review.models.template import PromptTemplate
from cortex_review.models.validation import ValidationStatus
from cortex_review.services.session.view import SessionView


@pytest.fixture
def view(session_manager, validation_repo) -> SessionView:
    return SessionView(session_manager, validation_repo)


@pytest.fixture
def loaded_view(session_manager, validation_repo, populated_session) -> SessionView:
    return SessionView(session_manager, validation_repo, session_id=populated_session.id)


@pytest.fixture
def notifications(view):
    calls = []
    view.subscribe(lambda v: calls.append(v))
    return calls


class TestLoad:
    """세션 로드 테스트."""

    def test_initial_state(self, view):
        assert view.session is None
        assert view.loading is False
        assert view.error is None
        assert view.selected_finding_id is None
        assert view.validations == {}

    def test_load_on_construction(self, loaded_view, populated_session):
        assert loaded_view.session == populated_session
        assert loaded_view.error is None
        assert loaded_view.loading is False

    def test_load_missing_session(self, view, notifications):
        assert view.load("missing") is None

        assert view.session is None
        assert view.error == "Session not found"
        assert view.loading is False
        assert len(notifications) == 1

    def test_load_failure(self, view, session_manager, monkeypatch):
        def boom(session_id):
            raise RuntimeError("storage offline")

        monkeypatch.setattr(session_manager, "get_session", boom)

        assert view.load("s1") is None
        assert view.error == "Failed to load session"
        assert view.loading is False

    def test_load_failure_drops_previous_session(
        self, loaded_view, session_manager, populated_session, make_validation, monkeypatch
    ):
        """로드 실패 시 이전 세션과 검증 상태를 남기지 않는다."""
        loaded_view.save_validation(make_validation("f1"))
        assert loaded_view.session is not None

        def boom(session_id):
            raise RuntimeError("storage offline")

        monkeypatch.setattr(session_manager, "get_session", boom)

        assert loaded_view.load(populated_session.id) is None
        assert loaded_view.error == "Failed to load session"
        assert loaded_view.session is None
        assert loaded_view.validations == {}
        assert loaded_view.get_all_validations() == []

    def test_load_adopts_validations(
        self, session_manager, validation_repo, populated_session, make_validation
    ):
        validation_repo.save_validation(populated_session.id, make_validation("f2"))

        view = SessionView(session_manager, validation_repo, session_id=populated_session.id)

        assert list(view.validations) == ["f2"]
        assert view.get_status("f2") == ValidationStatus.CONFIRMED

    def test_load_clears_previous_error(self, view, populated_session):
        view.load("missing")
        view.load(populated_session.id)
        assert view.error is None


class TestSessionWrites:
    """세션 쓰기 테스트."""

    def test_create_session(self, view, notifications, session_store):
        session = view.create_session("Audit 1")

        assert view.session == session
        assert session_store.get(session.id) is not None
        assert len(notifications) == 1

    def test_create_session_failure(self, view, session_manager, monkeypatch):
        def boom(name):
            raise RuntimeError("disk full")

        monkeypatch.setattr(session_manager, "create_session", boom)

        assert view.create_session("Audit 1") is None
        assert view.error == "Failed to create session"
        assert view.session is None

    def test_update_session(self, loaded_view):
        updated = loaded_view.update_session(SessionUpdate(name="Renamed"))
        assert loaded_view.session.name == "Renamed"
        assert updated == loaded_view.session

    def test_update_template_and_models(self, loaded_view):
        loaded_view.update_template(PromptTemplate(id="t1", name="STRIDE"))
        loaded_view.update_models("gpt-4o", "claude")

        assert loaded_view.session.prompt_template.id == "t1"
        assert loaded_view.session.model_b_id == "claude"

    def test_update_findings(self, loaded_view, make_finding):
        loaded_view.update_findings([make_finding("h1")], [])

        assert loaded_view.session.progress.total_findings == 1
        assert loaded_view.progress.total_findings == 1

    def test_writes_without_session(self, view, make_finding):
        assert view.update_session(SessionUpdate(name="x")) is None
        assert view.update_findings([make_finding("h1")], []) is None

    def test_session_deleted_elsewhere(self, loaded_view, session_manager, make_validation):
        session_id = loaded_view.session.id
        session_manager.delete_session(session_id)

        assert loaded_view.save_validation(make_validation("f1")) is None
        assert loaded_view.validations == {}
        assert loaded_view.session.id == session_id


class TestValidations:
    """검증 저장/선택 테스트."""

    def test_save_validation_is_persisted(self, loaded_view, validation_repo, make_validation):
        session = loaded_view.save_validation(make_validation("f1"))

        assert session.progress.validated_findings == 1
        assert loaded_view.get_validation("f1").status == ValidationStatus.CONFIRMED
        assert validation_repo.get_validation(session.id, "f1") is not None

    def test_progress_reflects_write_immediately(self, loaded_view, make_validation):
        loaded_view.save_validation(make_validation("f1"))
        loaded_view.save_validation(make_validation("g1", ValidationStatus.NEEDS_REVIEW))

        progress = loaded_view.progress
        assert progress.total_findings == 5
        assert progress.validated_findings == 2
        assert progress.confirmed_findings == 1
        assert progress.needs_review == 1
        assert progress.percent_complete == pytest.approx(40.0)

    def test_pending_removes(self, loaded_view, make_validation):
        loaded_view.save_validation(make_validation("f1"))
        loaded_view.save_validation(make_validation("f1", ValidationStatus.PENDING))

        assert loaded_view.get_validation("f1") is None
        assert loaded_view.get_status("f1") == ValidationStatus.PENDING
        assert loaded_view.progress.validated_findings == 0

    def test_save_without_session_stays_in_memory(self, view, session_store, make_validation):
        assert view.save_validation(make_validation("f1")) is None
        view.save_validation(make_validation("f2", ValidationStatus.FALSE_POSITIVE))

        assert session_store.list_all() == []
        progress = view.progress
        assert progress.total_findings == 2
        assert progress.validated_findings == 2
        assert progress.percent_complete == 100.0

    def test_progress_without_anything(self, view):
        progress = view.progress
        assert progress.total_findings == 0
        assert progress.percent_complete == 0.0

    def test_selection(self, loaded_view, make_validation):
        loaded_view.save_validation(make_validation("f1", notes="confirmed in staging"))

        selected = loaded_view.select_validation("f1")
        assert selected.notes == "confirmed in staging"
        assert loaded_view.current_validation == selected

        assert loaded_view.select_validation("f2") is None
        assert loaded_view.selected_finding_id == "f2"
        assert loaded_view.current_validation is None

        loaded_view.clear_selection()
        assert loaded_view.selected_finding_id is None

    def test_clear_validations(self, loaded_view, session_store, make_validation):
        loaded_view.save_validation(make_validation("f1"))
        loaded_view.select_validation("f1")

        session = loaded_view.clear_validations()

        assert loaded_view.get_all_validations() == []
        assert loaded_view.selected_finding_id is None
        assert session_store.get(session.id).validations == []
        assert session.progress.validated_findings == 0

    def test_set_all_validations(self, loaded_view, make_validation):
        loaded_view.save_validation(make_validation("f1"))
        loaded_view.set_all_validations(
            [make_validation("g1"), make_validation("g2", ValidationStatus.FALSE_POSITIVE)]
        )

        assert [v.finding_id for v in loaded_view.get_all_validations()] == ["g1", "g2"]
        assert loaded_view.session.progress.false_positives == 1

    def test_set_all_without_session(self, view, make_validation):
        view.set_all_validations([make_validation("f1"), make_validation("f1", ValidationStatus.PENDING)])
        assert view.get_all_validations() == []

    def test_validations_property_is_a_copy(self, loaded_view, make_validation):
        loaded_view.save_validation(make_validation("f1"))
        loaded_view.validations.clear()
        assert loaded_view.get_validation("f1") is not None

    def test_validation_stats(self, loaded_view, view, make_validation):
        assert view.get_validation_stats() is None

        loaded_view.save_validation(make_validation("f1", accuracy=5))
        loaded_view.save_validation(make_validation("f2", ValidationStatus.FALSE_POSITIVE, accuracy=3))

        stats = loaded_view.get_validation_stats()
        assert stats.total == 2
        assert stats.false_positives == 1
        assert stats.average_scores.accuracy == 4.0


class TestSubscribe:
    """변경 알림 테스트."""

    def test_listener_called_on_change(self, loaded_view, make_validation):
        seen = []
        loaded_view.subscribe(lambda v: seen.append(v.progress.validated_findings))

        loaded_view.save_validation(make_validation("f1"))
        loaded_view.select_validation("f1")

        assert seen == [1, 1]

    def test_unsubscribe(self, loaded_view, make_validation):
        seen = []
        unsubscribe = loaded_view.subscribe(seen.append)
        unsubscribe()

        loaded_view.save_validation(make_validation("f1"))
        assert seen == []
        # second call is a no-op
        unsubscribe()
