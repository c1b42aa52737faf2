"""Tests for the scan pipeline."""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from socialshield.errors import (
    CatalogUnavailableError,
    ContentTooLongError,
    EmptyContentError,
    InvalidInputError,
    PersistenceError,
    UnsupportedSourceTypeError,
)
from socialshield.models.stats import DailyStats
from socialshield.models.threat import ThreatRecord
from socialshield.pipelines.scan_pipeline import ScanPipeline, validate_scan_input
from socialshield.services.stats_service import StatsStore
from socialshield.services.threat_service import ThreatStore
from socialshield.utils.explainability import SEVERITY_NARRATIVES
from socialshield.utils.severity import SeverityLevel


class UnavailableCatalog:
    def list_active_patterns(self):
        raise CatalogUnavailableError("connection refused")


class EmptyCatalog:
    def list_active_patterns(self):
        return []


class FailingThreatStore(ThreatStore):
    def create(self, record):
        raise PersistenceError("disk full")


class FailingStatsStore(StatsStore):
    def increment(self, user_id, day, severity):
        raise OperationalError("UPDATE detection_stats", {}, Exception("database is locked"))


class CancelledStatsStore(StatsStore):
    def increment(self, user_id, day, severity):
        raise asyncio.CancelledError()


class TestScanScenarios:
    """End-to-end scans against the default catalog."""

    def test_urgent_link_scenario(self, seeded_db, fixed_clock, sample_scam_text):
        record = ScanPipeline(seeded_db, clock=fixed_clock).scan("user-1", sample_scam_text, "email")

        assert record.id is not None
        assert record.detected_patterns == ["Urgent Action Required", "Suspicious Links"]
        assert record.severity_level == "high"
        assert record.confidence_score == 95
        assert record.threat_type == "urgency_manipulation"
        assert record.status == "new"
        assert record.resolved_at is None
        assert record.detected_at == fixed_clock()
        assert record.source_content == sample_scam_text
        assert "SOURCE TYPE: EMAIL" in record.explanation

    def test_safe_scenario(self, seeded_db, fixed_clock, sample_safe_text):
        record = ScanPipeline(seeded_db, clock=fixed_clock).scan("user-1", sample_safe_text, "message")

        assert record.severity_level == "safe"
        assert record.confidence_score == 95
        assert record.threat_type == "none"
        assert record.detected_patterns == []
        assert record.explanation.startswith(SEVERITY_NARRATIVES[SeverityLevel.SAFE].summary)
        assert "DETECTED ATTACK PATTERNS" not in record.explanation

    def test_creates_record_and_stats_row(self, seeded_db, fixed_clock, sample_scam_text):
        ScanPipeline(seeded_db, clock=fixed_clock).scan("user-1", sample_scam_text, "email")

        assert seeded_db.query(ThreatRecord).count() == 1
        stats = StatsStore(seeded_db).get("user-1", fixed_clock().date())
        assert stats.total_scanned == 1
        assert stats.threats_detected == 1
        assert stats.by_severity["high"] == 1

    def test_two_scans_same_day(self, seeded_db, fixed_clock, sample_scam_text, sample_safe_text):
        pipeline = ScanPipeline(seeded_db, clock=fixed_clock)
        pipeline.scan("user-1", sample_scam_text, "email")
        pipeline.scan("user-1", sample_safe_text, "message")

        stats = StatsStore(seeded_db).get("user-1", fixed_clock().date())
        assert stats.total_scanned == 2
        assert sum(stats.by_severity.values()) == 2
        assert stats.threats_detected == 1
        assert stats.by_severity == {"safe": 1, "low": 0, "medium": 0, "high": 1, "critical": 0}

    def test_source_type_normalized(self, seeded_db, fixed_clock):
        record = ScanPipeline(seeded_db, clock=fixed_clock).scan("user-1", "urgent", " EMAIL ")

        assert record.source_type == "email"


class TestCatalogFailurePolicy:
    """Catalog outages: fail open by default, fail closed when configured."""

    def test_fail_open_yields_zero_confidence_safe(self, test_db, fixed_clock, sample_scam_text):
        pipeline = ScanPipeline(
            test_db, catalog=UnavailableCatalog(), fail_closed=False, clock=fixed_clock
        )
        record = pipeline.scan("user-1", sample_scam_text, "email")

        assert record.severity_level == "safe"
        assert record.confidence_score == 0
        assert record.threat_type == "none"
        assert test_db.query(ThreatRecord).count() == 1
        assert StatsStore(test_db).get("user-1", fixed_clock().date()).total_scanned == 1

    def test_fail_closed_raises_and_persists_nothing(self, test_db, fixed_clock, sample_scam_text):
        pipeline = ScanPipeline(
            test_db, catalog=UnavailableCatalog(), fail_closed=True, clock=fixed_clock
        )

        with pytest.raises(CatalogUnavailableError):
            pipeline.scan("user-1", sample_scam_text, "email")

        assert test_db.query(ThreatRecord).count() == 0
        assert test_db.query(DailyStats).count() == 0

    def test_empty_catalog_yields_zero_confidence(self, test_db, fixed_clock, sample_scam_text):
        record = ScanPipeline(test_db, catalog=EmptyCatalog(), clock=fixed_clock).scan(
            "user-1", sample_scam_text, "email"
        )

        assert record.severity_level == "safe"
        assert record.confidence_score == 0

    def test_real_catalog_outage_detected(self, test_db, fixed_clock, sample_scam_text):
        """A missing table surfaces as a catalog outage, not a crash."""
        from socialshield.models.pattern import PatternRecord

        PatternRecord.__table__.drop(test_db.get_bind())

        record = ScanPipeline(test_db, fail_closed=False, clock=fixed_clock).scan(
            "user-1", sample_scam_text, "email"
        )
        assert record.confidence_score == 0


class TestInputValidation:
    """Invalid input is rejected before any I/O."""

    @pytest.mark.parametrize("content", ["", "   ", "\n\t"])
    def test_empty_content(self, test_db, content):
        with pytest.raises(EmptyContentError):
            ScanPipeline(test_db, catalog=UnavailableCatalog()).scan("user-1", content, "email")
        assert test_db.query(ThreatRecord).count() == 0

    def test_unknown_source_type(self, test_db):
        with pytest.raises(UnsupportedSourceTypeError):
            ScanPipeline(test_db).scan("user-1", "urgent", "fax")
        assert test_db.query(ThreatRecord).count() == 0

    def test_missing_user(self, test_db):
        with pytest.raises(InvalidInputError):
            ScanPipeline(test_db).scan("", "urgent", "email")

    def test_content_too_long(self):
        with pytest.raises(ContentTooLongError):
            validate_scan_input("x" * 11, "email", max_length=10)

    def test_errors_share_base_class(self):
        assert issubclass(EmptyContentError, InvalidInputError)
        assert issubclass(UnsupportedSourceTypeError, InvalidInputError)


class TestPersistenceFailures:
    """A scan either commits its record and stats together or nothing."""

    def test_record_failure_skips_stats(self, seeded_db, fixed_clock, sample_scam_text):
        pipeline = ScanPipeline(
            seeded_db, threats=FailingThreatStore(seeded_db), clock=fixed_clock
        )

        with pytest.raises(PersistenceError):
            pipeline.scan("user-1", sample_scam_text, "email")

        assert seeded_db.query(DailyStats).count() == 0

    def test_stats_failure_rolls_back_record(self, seeded_db, fixed_clock, sample_scam_text):
        pipeline = ScanPipeline(
            seeded_db, stats=FailingStatsStore(seeded_db), clock=fixed_clock
        )

        with pytest.raises(PersistenceError):
            pipeline.scan("user-1", sample_scam_text, "email")

        assert seeded_db.query(ThreatRecord).count() == 0

    def test_cancellation_rolls_back_record(self, seeded_db, fixed_clock, sample_scam_text):
        pipeline = ScanPipeline(
            seeded_db, stats=CancelledStatsStore(seeded_db), clock=fixed_clock
        )

        with pytest.raises(asyncio.CancelledError):
            pipeline.scan("user-1", sample_scam_text, "email")

        assert seeded_db.query(ThreatRecord).count() == 0
        assert seeded_db.query(DailyStats).count() == 0

    def test_failed_scan_is_retryable(self, seeded_db, fixed_clock, sample_scam_text):
        failing = ScanPipeline(seeded_db, stats=FailingStatsStore(seeded_db), clock=fixed_clock)
        with pytest.raises(PersistenceError):
            failing.scan("user-1", sample_scam_text, "email")

        record = ScanPipeline(seeded_db, clock=fixed_clock).scan("user-1", sample_scam_text, "email")

        assert record.id is not None
        assert StatsStore(seeded_db).get("user-1", fixed_clock().date()).total_scanned == 1
