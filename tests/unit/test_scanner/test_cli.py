from __future__ import annotations

import csv
import io
import json

import pytest

from config.constants import EXIT_AUTH_FAILURE, EXIT_CERTIFICATE, EXIT_OK, EXIT_USAGE
from libscan_platform.scanner import cli
from libscan_platform.scanner.session import AuthenticationError
from shared.tools.graphql_transport import CertificateTrustError
from tests.fakes import FakeTransport, entity, entity_lookup, entity_page, make_guid, make_session, module

GUID_A = make_guid(1001, 1)
GUID_B = make_guid(1001, 2)
GUID_C = make_guid(1001, 3)


@pytest.fixture(autouse=True)
def _quiet_cli(monkeypatch):
    monkeypatch.setattr(cli, "setup_logging", lambda level=None: None)
    monkeypatch.setattr(cli.sys, "stdin", io.StringIO())
    monkeypatch.setattr(cli.settings, "API_KEY", "NRAK-TEST")
    for name in ("LIBSCAN_LIBRARY", "LIBSCAN_REGION"):
        monkeypatch.delenv(name, raising=False)


def _transport(lookups: dict) -> FakeTransport:
    def handler(query, variables):
        if query.name == "ListEntities":
            return entity_page(
                [
                    entity(GUID_A, "alpha", application_id=1),
                    entity(GUID_B, "bravo", application_id=2),
                    entity(GUID_C, "charlie", application_id=3),
                ]
            )
        return lookups[variables["entityGuid"]]

    return FakeTransport(handler=handler)


def _patch_session(monkeypatch, transport: FakeTransport) -> list:
    configs: list = []

    def fake_open_session(config):
        configs.append(config)
        return make_session(transport, library_name=config.library_name, region=config.region)

    monkeypatch.setattr(cli, "open_session", fake_open_session)
    return configs


def test_happy_path_writes_matching_services(monkeypatch, tmp_path, capsys) -> None:
    transport = _transport(
        {
            GUID_A: entity_lookup([[module("log4j-core", "2.14.1", sha1="a1")]]),
            GUID_B: entity_lookup([[]]),
            GUID_C: entity_lookup([[module("log4j-core", "2.17.1")]]),
        }
    )
    _patch_session(monkeypatch, transport)

    code = cli.main(["--no-intro", "--output-dir", str(tmp_path), "--csv", "--json"])

    assert code == EXIT_OK
    csv_files = list(tmp_path.glob("log4j-core_scan_us_*.csv"))
    json_files = list(tmp_path.glob("log4j-core_scan_us_*.json"))
    assert len(csv_files) == 1 and len(json_files) == 1

    with open(csv_files[0], newline="", encoding="utf-8") as fh:
        rows = list(csv.DictReader(fh))
    assert [row["name"] for row in rows] == ["alpha", "charlie"]
    assert rows[0]["librarySha1"] == "a1"
    assert rows[1]["librarySha1"] == ""

    payload = json.loads(json_files[0].read_text(encoding="utf-8"))
    assert [row["applicationId"] for row in payload] == [1, 3]

    out = capsys.readouterr().out
    assert "Found 2 services with log4j-core." in out


def test_all_services_flag_reports_every_service(monkeypatch, tmp_path) -> None:
    transport = _transport(
        {
            GUID_A: entity_lookup([[module("log4j-core", "2.14.1")]]),
            GUID_B: entity_lookup([[]]),
            GUID_C: entity_lookup([[]]),
        }
    )
    _patch_session(monkeypatch, transport)

    code = cli.main(["--no-intro", "--output-dir", str(tmp_path), "--all-services"])

    assert code == EXIT_OK
    (report_file,) = tmp_path.glob("*.csv")
    with open(report_file, newline="", encoding="utf-8") as fh:
        assert [row["name"] for row in csv.DictReader(fh)] == ["alpha", "bravo", "charlie"]


def test_certificate_trust_failure_exits_without_further_lookups(monkeypatch, tmp_path, capsys) -> None:
    transport = _transport(
        {
            GUID_A: entity_lookup([[]]),
            GUID_B: CertificateTrustError("self signed certificate in certificate chain"),
            GUID_C: entity_lookup([[]]),
        }
    )
    _patch_session(monkeypatch, transport)

    code = cli.main(["--no-intro", "--output-dir", str(tmp_path)])

    assert code == EXIT_CERTIFICATE
    assert [v["entityGuid"] for v in transport.calls_for("LookupLibraryInEntity")] == [GUID_A, GUID_B]
    assert list(tmp_path.iterdir()) == []
    assert "REQUESTS_CA_BUNDLE" in capsys.readouterr().err


def test_authentication_failure_exits_with_auth_code(monkeypatch, tmp_path, capsys) -> None:
    def reject(config):
        raise AuthenticationError("API key is invalid")

    monkeypatch.setattr(cli, "open_session", reject)

    code = cli.main(["--no-intro", "--output-dir", str(tmp_path)])

    assert code == EXIT_AUTH_FAILURE
    assert "ERROR, API key is invalid" in capsys.readouterr().out


def test_missing_api_key_is_a_usage_error(monkeypatch) -> None:
    monkeypatch.setattr(cli.settings, "API_KEY", None)

    assert cli.main(["--no-intro"]) == EXIT_USAGE


def test_profile_with_unknown_region_is_a_usage_error(tmp_path, capsys) -> None:
    profile = tmp_path / "scan.yaml"
    profile.write_text("library: log4j-core\nregion: mars\n")

    assert cli.main(["--no-intro", "--profile", str(profile)]) == EXIT_USAGE
    assert "region" in capsys.readouterr().err


def test_profile_values_apply_and_flags_override(monkeypatch, tmp_path) -> None:
    transport = FakeTransport(handler=lambda query, variables: entity_page([]))
    configs = _patch_session(monkeypatch, transport)
    profile = tmp_path / "scan.yaml"
    profile.write_text(
        "library: jackson-databind\nregion: eu\naccounts: [1001, 2002]\ntimeout: 15\nformats: json\n"
    )

    code = cli.main(
        ["--no-intro", "--profile", str(profile), "--region", "US", "--output-dir", str(tmp_path)]
    )

    assert code == EXIT_OK
    config = configs[0]
    assert config.library_name == "jackson-databind"
    assert config.region == "us"
    assert config.account_filter == [1001, 2002]
    assert config.request_timeout == 15
    assert len(list(tmp_path.glob("jackson-databind_scan_us_*.json"))) == 1


def test_resolve_formats_defaults_to_csv() -> None:
    args = cli.build_parser().parse_args([])

    assert cli.resolve_formats(args, {}) == ["csv"]
    assert cli.resolve_formats(args, {"formats": ["JSON"]}) == ["json"]


def test_non_numeric_accounts_flag_is_rejected() -> None:
    args = cli.build_parser().parse_args(["--accounts", "1001,abc"])

    with pytest.raises(cli.UsageError):
        cli.resolve_config(args, {}, interactive=False)


@pytest.mark.parametrize("value", ["0", "-1"])
def test_non_positive_timeout_flag_is_a_usage_error(value) -> None:
    args = cli.build_parser().parse_args(["--timeout", value])

    with pytest.raises(cli.UsageError, match="request_timeout"):
        cli.resolve_config(args, {}, interactive=False)


def test_zero_timeout_in_profile_is_not_replaced_by_default() -> None:
    args = cli.build_parser().parse_args([])

    with pytest.raises(cli.UsageError, match="request_timeout"):
        cli.resolve_config(args, {"timeout": 0}, interactive=False)


def test_broken_profile_yaml_is_a_usage_error(tmp_path, capsys) -> None:
    profile = tmp_path / "scan.yaml"
    profile.write_text("library: [log4j-core\nregion: us\n")

    assert cli.main(["--no-intro", "--profile", str(profile)]) == EXIT_USAGE
    assert "scan.yaml" in capsys.readouterr().err


def test_quoted_false_in_profile_keeps_default_strategy(monkeypatch, tmp_path) -> None:
    transport = _transport({GUID_A: entity_lookup([[]]), GUID_B: entity_lookup([[]]), GUID_C: entity_lookup([[]])})
    _patch_session(monkeypatch, transport)
    profile = tmp_path / "scan.yaml"
    profile.write_text('quick_scan: "false"\nall_services: "false"\n')

    code = cli.main(["--no-intro", "--profile", str(profile), "--output-dir", str(tmp_path)])

    assert code == EXIT_OK
    assert len(transport.calls_for("LookupLibraryInEntity")) == 3
    assert transport.calls_for("LookupLibraryInAccount") == []
    (report_file,) = tmp_path.glob("*.csv")
    with open(report_file, newline="", encoding="utf-8") as fh:
        assert list(csv.DictReader(fh)) == []
