"""
ValidationRepository 단위 테스트.

세션에 포함된 검증 결과의 저장/삭제/통계를 테스트합니다.
"""
import pytest

from cortex_review.db.repositories.session import DEFAULT_STORAGE_KEY
from cortex_review.db.repositories.validation import build_stats
from cortex_review.models.validation import ValidationStats, ValidationStatus


class TestSaveValidation:
    """검증 저장 테스트."""

    def test_save_returns_updated_session(self, validation_repo, populated_session, make_validation):
        session = validation_repo.save_validation(populated_session.id, make_validation("f1"))

        assert session is not None
        assert [v.finding_id for v in session.validations] == ["f1"]
        assert session.progress.validated_findings == 1
        assert session.progress.confirmed_findings == 1
        assert session.progress.total_findings == 5

    def test_write_is_persisted(self, validation_repo, session_store, populated_session, make_validation):
        validation_repo.save_validation(populated_session.id, make_validation("f1"))
        assert session_store.get(populated_session.id).progress.validated_findings == 1

    def test_upsert_replaces_in_place(self, validation_repo, populated_session, make_validation):
        validation_repo.save_validation(populated_session.id, make_validation("f1"))
        validation_repo.save_validation(populated_session.id, make_validation("f2"))
        session = validation_repo.save_validation(
            populated_session.id,
            make_validation("f1", ValidationStatus.FALSE_POSITIVE, notes="not reachable"),
        )

        assert [v.finding_id for v in session.validations] == ["f1", "f2"]
        assert session.validations[0].status == ValidationStatus.FALSE_POSITIVE
        assert session.validations[0].notes == "not reachable"
        assert session.progress.false_positives == 1
        assert session.progress.confirmed_findings == 1

    def test_pending_removes_validation(self, validation_repo, populated_session, make_validation):
        validation_repo.save_validation(populated_session.id, make_validation("f1"))
        session = validation_repo.save_validation(
            populated_session.id, make_validation("f1", ValidationStatus.PENDING)
        )

        assert session.validations == []
        assert session.progress.validated_findings == 0
        assert validation_repo.get_validation(populated_session.id, "f1") is None

    def test_pending_without_record(self, validation_repo, populated_session, make_validation):
        session = validation_repo.save_validation(
            populated_session.id, make_validation("f2", ValidationStatus.PENDING)
        )
        assert session.validations == []

    def test_missing_session_is_noop(self, validation_repo, session_store, make_validation):
        assert validation_repo.save_validation("missing", make_validation("f1")) is None
        assert session_store.list_all() == []

    def test_finding_id_not_checked(self, validation_repo, populated_session, make_validation):
        session = validation_repo.save_validation(populated_session.id, make_validation("unknown"))
        assert session.validations[0].finding_id == "unknown"


class TestReadValidations:
    """검증 조회 테스트."""

    def test_get_validation(self, validation_repo, populated_session, make_validation):
        validation_repo.save_validation(populated_session.id, make_validation("g1", accuracy=5))

        validation = validation_repo.get_validation(populated_session.id, "g1")
        assert validation.accuracy == 5
        assert validation_repo.get_validation(populated_session.id, "g2") is None

    def test_get_all_in_insertion_order(self, validation_repo, populated_session, make_validation):
        for finding_id in ("g2", "f1", "f3"):
            validation_repo.save_validation(populated_session.id, make_validation(finding_id))

        ids = [v.finding_id for v in validation_repo.get_all_validations(populated_session.id)]
        assert ids == ["g2", "f1", "f3"]

    def test_missing_session_reads_empty(self, validation_repo):
        assert validation_repo.get_all_validations("missing") == []
        assert validation_repo.get_validation("missing", "f1") is None


class TestDeleteAndReplace:
    """검증 삭제/교체 테스트."""

    def test_delete_validation(self, validation_repo, populated_session, make_validation):
        validation_repo.save_validation(populated_session.id, make_validation("f1"))
        validation_repo.save_validation(populated_session.id, make_validation("f2"))

        session = validation_repo.delete_validation(populated_session.id, "f1")

        assert [v.finding_id for v in session.validations] == ["f2"]
        assert session.progress.validated_findings == 1

    def test_delete_absent_validation(self, validation_repo, populated_session):
        session = validation_repo.delete_validation(populated_session.id, "f1")
        assert session is not None
        assert session.validations == []

    def test_delete_absent_validation_does_not_write(
        self, validation_repo, session_manager, session_store, kv_store, populated_session, make_validation
    ):
        """삭제할 검증이 없으면 저장하지 않는다 (updatedAt, 목록 순서 유지)."""
        validation_repo.save_validation(populated_session.id, make_validation("f1"))
        other = session_manager.create_session("Audit 2")
        before = kv_store.get_item(DEFAULT_STORAGE_KEY)
        stamped = session_store.get(populated_session.id).updated_at

        session = validation_repo.delete_validation(populated_session.id, "g2")

        assert [v.finding_id for v in session.validations] == ["f1"]
        assert session.updated_at == stamped
        assert kv_store.get_item(DEFAULT_STORAGE_KEY) == before
        assert [s.id for s in session_store.list_all()] == [other.id, populated_session.id]

    def test_delete_missing_session(self, validation_repo):
        assert validation_repo.delete_validation("missing", "f1") is None

    def test_replace_validations(self, validation_repo, populated_session, make_validation):
        validation_repo.save_validation(populated_session.id, make_validation("f1"))

        session = validation_repo.replace_validations(
            populated_session.id,
            [
                make_validation("g1", ValidationStatus.NEEDS_REVIEW),
                make_validation("g2", ValidationStatus.PENDING),
            ],
        )

        assert [v.finding_id for v in session.validations] == ["g1"]
        assert session.progress.validated_findings == 1
        assert session.progress.confirmed_findings == 0

    def test_replace_missing_session(self, validation_repo, make_validation):
        assert validation_repo.replace_validations("missing", [make_validation("f1")]) is None


class TestValidationStats:
    """검증 통계 테스트."""

    def test_stats(self, validation_repo, populated_session, make_validation):
        sid = populated_session.id
        validation_repo.save_validation(
            sid, make_validation("f1", ValidationStatus.CONFIRMED, accuracy=5, completeness=5)
        )
        validation_repo.save_validation(
            sid, make_validation("f2", ValidationStatus.FALSE_POSITIVE, accuracy=1, completeness=3)
        )
        validation_repo.save_validation(
            sid, make_validation("g1", ValidationStatus.NEEDS_REVIEW, accuracy=3, completeness=4)
        )

        stats = validation_repo.get_validation_stats(sid)

        assert stats.total == 3
        assert stats.confirmed == 1
        assert stats.false_positives == 1
        assert stats.needs_review == 1
        assert stats.pending == 0
        assert stats.average_scores.accuracy == 3.0
        assert stats.average_scores.completeness == 4.0
        assert stats.average_scores.relevance == 3.0

    def test_stats_without_validations(self, validation_repo, populated_session):
        stats = validation_repo.get_validation_stats(populated_session.id)
        assert stats == ValidationStats()
        assert stats.average_scores.accuracy == 0.0

    def test_stats_for_missing_session_are_zero(self, validation_repo):
        assert validation_repo.get_validation_stats("missing") == ValidationStats()

    def test_build_stats_excludes_pending_from_means(self, make_validation):
        stats = build_stats(
            [
                make_validation("f1", accuracy=4),
                make_validation("f2", ValidationStatus.PENDING, accuracy=1),
            ]
        )
        assert stats.total == 2
        assert stats.pending == 1
        assert stats.average_scores.accuracy == 4.0

    def test_stats_wire_format(self, validation_repo, populated_session):
        data = validation_repo.get_validation_stats(populated_session.id).to_dict()
        assert data["falsePositives"] == 0
        assert data["needsReview"] == 0
        assert data["averageScores"]["actionability"] == 0.0


class TestModelPerformance:
    """모델별 성과 테스트."""

    def test_performance_per_model(self, validation_repo, session_manager, populated_session, make_validation):
        sid = populated_session.id
        session_manager.update_models(sid, "gpt-4o", "claude")
        validation_repo.save_validation(sid, make_validation("f1", accuracy=5))
        validation_repo.save_validation(sid, make_validation("f2", ValidationStatus.FALSE_POSITIVE, accuracy=1))
        validation_repo.save_validation(sid, make_validation("g1", accuracy=4))

        model_a, model_b = validation_repo.get_model_performance(sid)

        assert model_a.model_id == "gpt-4o"
        assert model_a.total_findings == 3
        assert model_a.confirmed_findings == 1
        assert model_a.false_positives == 1
        assert model_a.accuracy == 3.0
        assert model_b.model_id == "claude"
        assert model_b.total_findings == 2
        assert model_b.confirmed_findings == 1
        assert model_b.accuracy == 4.0

    def test_default_model_ids(self, validation_repo, populated_session):
        performance = validation_repo.get_model_performance(populated_session.id)
        assert [p.model_id for p in performance] == ["model-a", "model-b"]
        assert performance[0].accuracy == 0.0

    def test_missing_session(self, validation_repo):
        assert validation_repo.get_model_performance("missing") == []


@pytest.mark.parametrize(
    "status",
    [ValidationStatus.CONFIRMED, ValidationStatus.FALSE_POSITIVE, ValidationStatus.NEEDS_REVIEW],
)
def test_every_non_pending_status_counts_as_validated(validation_repo, populated_session, make_validation, status):
    """pending 이외의 상태는 모두 검증 완료로 집계."""
    session = validation_repo.save_validation(populated_session.id, make_validation("f3", status))
    assert session.progress.validated_findings == 1
