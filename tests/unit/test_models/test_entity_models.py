"""
Tests for the entity record, module evidence merging and scan configuration.
"""
import pytest
from pydantic import ValidationError

from shared.models.entity import EntityRecord, ModuleEvidence, join_distinct, merge_evidence
from shared.models.responses import LoadedModule
from shared.models.scan import ScanConfig, ScanState
from tests.fakes import make_config, module


class TestMergeEvidence:
    """Evidence overwrites field by field; the last evidence applied wins."""

    def test_overwrites_only_carried_fields(self):
        record = EntityRecord(guid="A", library_name="log4j-core", library_version="2.14.1", library_sha1="old")

        merged = merge_evidence(record, ModuleEvidence(name="log4j-core", version="2.17.1"))

        assert merged.library_version == "2.17.1"
        assert merged.library_sha1 == "old"
        assert record.library_version == "2.14.1"

    def test_is_idempotent(self):
        evidence = ModuleEvidence(name="log4j-core", version="2.17.1", sha1="s1", sha512="s512")
        once = merge_evidence(EntityRecord(guid="A"), evidence)

        assert merge_evidence(once, evidence) == once

    def test_empty_evidence_returns_same_record(self):
        record = EntityRecord(guid="A")
        assert merge_evidence(record, ModuleEvidence()) is record

    def test_evidence_reads_checksum_attributes(self):
        loaded = LoadedModule.model_validate(module("log4j-core", "2.14.1", sha1="aa", sha512="bb"))

        evidence = ModuleEvidence.from_module(loaded)

        assert evidence == ModuleEvidence(name="log4j-core", version="2.14.1", sha1="aa", sha512="bb")

    def test_module_attribute_ignores_blank_values(self):
        loaded = LoadedModule.model_validate(
            {
                "name": "log4j-core",
                "attributes": [
                    {"name": "sha1Checksum", "value": "first"},
                    {"name": "sha1Checksum", "value": ""},
                    {"name": "other", "value": "x"},
                ],
            }
        )

        assert loaded.attribute("sha1Checksum") == "first"
        assert loaded.attribute("sha512Checksum") is None


class TestEntityRecord:
    """Report rows use the column names and leave absent fields out."""

    def test_report_row(self):
        record = EntityRecord(
            guid="A",
            account_id=1001,
            application_id=7,
            name="orders",
            reporting_url="https://rpm.newrelic.com/accounts/1001/applications/7/environment",
            library_name="log4j-core",
        )

        row = record.to_report_row()

        assert row["accountId"] == 1001
        assert row["applicationId"] == 7
        assert row["library"] == "log4j-core"
        assert row["nrUrl"].endswith("/applications/7/environment")
        assert "librarySha1" not in row

    def test_found_library_depends_on_library_name(self):
        assert EntityRecord(guid="A", library_name="log4j-core").found_library
        assert not EntityRecord(guid="B", library_version="2.14.1").found_library

    @pytest.mark.parametrize(
        ("values", "expected"),
        [
            (("7.4.0", "7.4.0"), "7.4.0"),
            (("7.3.0", "7.4.1"), "7.3.0,7.4.1"),
            ((None, "7.4.1"), "7.4.1"),
            (("", None), ""),
        ],
    )
    def test_join_distinct(self, values, expected):
        assert join_distinct(*values) == expected


class TestScanConfig:
    """Configuration is validated once and frozen."""

    def test_endpoint_follows_region(self):
        assert make_config().endpoint_url == "https://api.newrelic.com/graphql"
        assert make_config(region="EU").endpoint_url == "https://api.eu.newrelic.com/graphql"
        assert make_config(region="EU").region == "eu"

    def test_explicit_endpoint_is_kept(self):
        config = make_config(endpoint_url="http://localhost:8080/graphql")
        assert config.endpoint_url == "http://localhost:8080/graphql"

    @pytest.mark.parametrize(
        "overrides",
        [{"region": "mars"}, {"library_name": "   "}, {"request_timeout": 0}],
    )
    def test_invalid_values_are_rejected(self, overrides):
        with pytest.raises(ValidationError):
            make_config(**overrides)

    def test_frozen_and_key_hidden(self):
        config = make_config()

        with pytest.raises(ValidationError):
            config.library_name = "other"
        assert "NRAK-TEST" not in repr(config)
        assert config.api_key.get_secret_value() == "NRAK-TEST"

    def test_defaults(self):
        config = ScanConfig.model_validate({"api_key": "k", "library_name": "guava", "account_filter": [1, 2]})

        assert config.account_filter == [1, 2]
        assert config.request_timeout == 60.0
        assert config.entity_language is None


class TestScanState:
    """Duration is whole seconds, rounded up."""

    @pytest.mark.parametrize(("elapsed_ms", "expected"), [(0, 0), (1, 1), (1000, 1), (1001, 2)])
    def test_duration_rounds_up(self, elapsed_ms, expected):
        state = ScanState(config=make_config(), account_ids=[], started_at_ms=5_000)
        assert state.duration_seconds is None

        state.mark_completed(at_ms=5_000 + elapsed_ms)

        assert state.duration_seconds == expected
