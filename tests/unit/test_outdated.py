"""
tests/unit/test_outdated.py — `brew outdated --json` Decoder Tests

Covers:
  - empty report, formulae and casks, order preserved, duplicates kept
  - pinned packages keep pinned_version; unpinned ones drop it
  - unknown fields ignored, missing optional fields defaulted
  - malformed documents raise OutdatedDecodeError
  - string rendering of packages and reports
"""

from __future__ import annotations

import json

import pytest

from brew_maintainer.brew.outdated import OutdatedPackages, Package, parse_outdated
from brew_maintainer.exceptions import ExecutionFailedError, OutdatedDecodeError

# Shape of real `brew outdated --json` output (trimmed)
_REAL_REPORT = json.dumps({
    "formulae": [
        {
            "name": "wget",
            "installed_versions": ["1.21.3"],
            "current_version": "1.24.5",
            "pinned": False,
            "pinned_version": None,
        },
        {
            "name": "node",
            "installed_versions": ["20.1.0", "20.2.0"],
            "current_version": "21.0.0",
            "pinned": True,
            "pinned_version": "20.2.0",
        },
    ],
    "casks": [
        {
            "name": "firefox",
            "installed_versions": ["120.0"],
            "current_version": "121.0",
        },
    ],
})


class TestParseOutdated:
    def test_empty_report(self):
        report = parse_outdated('{"formulae":[],"casks":[]}')
        assert report.formulae == []
        assert report.casks == []
        assert len(report) == 0

    def test_real_report(self):
        report = parse_outdated(_REAL_REPORT)
        assert [p.name for p in report.formulae] == ["wget", "node"]
        assert [p.name for p in report.casks] == ["firefox"]
        assert report.formulae[1].installed_versions == ["20.1.0", "20.2.0"]
        assert report.casks[0].pinned is False
        assert report.casks[0].pinned_version is None

    def test_iteration_is_formulae_then_casks(self):
        report = parse_outdated(_REAL_REPORT)
        assert [p.name for p in report.iter_packages()] == ["wget", "node", "firefox"]

    def test_pinned_package_preserved(self):
        raw = json.dumps({"formulae": [{
            "name": "qux",
            "installed_versions": ["2.0"],
            "current_version": "2.3",
            "pinned": True,
            "pinned_version": "2.0",
        }], "casks": []})
        pkg = parse_outdated(raw).formulae[0]
        assert pkg.pinned is True
        assert pkg.pinned_version == "2.0"

    def test_missing_pinned_version_defaults_to_absent(self):
        raw = '{"formulae":[{"name":"foo","installed_versions":["1.0"],"current_version":"1.1","pinned":false}],"casks":[]}'
        pkg = parse_outdated(raw).formulae[0]
        assert pkg.pinned_version is None

    def test_unknown_fields_ignored(self):
        raw = json.dumps({
            "formulae": [{
                "name": "foo", "installed_versions": [], "current_version": "1.1",
                "pinned": False, "some_future_field": {"x": 1},
            }],
            "casks": [],
            "generated_at": "2024-01-01",
        })
        report = parse_outdated(raw)
        assert report.formulae[0].name == "foo"
        assert report.formulae[0].installed_versions == []

    def test_missing_lists_default_empty(self):
        report = parse_outdated("{}")
        assert len(report) == 0

    def test_duplicates_are_kept(self):
        pkg = {"name": "foo", "installed_versions": ["1.0"], "current_version": "1.1", "pinned": False}
        report = parse_outdated(json.dumps({"formulae": [pkg, pkg], "casks": []}))
        assert [p.name for p in report.formulae] == ["foo", "foo"]

    def test_round_trip_preserves_fields(self):
        report = parse_outdated(_REAL_REPORT)
        again = parse_outdated(report.model_dump_json())
        assert again == report

    @pytest.mark.parametrize("raw", [
        "",
        "not json",
        "[]",
        '{"formulae": {"name": "foo"}}',
        '{"formulae": [{"installed_versions": [], "current_version": "1"}]}',
        '{"formulae": [{"name": "", "current_version": "1"}]}',
        '{"formulae": [{"name": "foo"}]}',
        '{"formulae": [{"name": "foo", "current_version": "1", "pinned": true}]}',
    ])
    def test_malformed_documents_raise(self, raw):
        with pytest.raises(OutdatedDecodeError) as exc_info:
            parse_outdated(raw)
        assert "error on parsing the outdated report" in str(exc_info.value)

    def test_decode_error_is_an_execution_failure(self):
        with pytest.raises(ExecutionFailedError):
            parse_outdated("{")


class TestRendering:
    def test_package_str(self):
        pkg = Package(
            name="node",
            installed_versions=["20.1.0", "20.2.0"],
            current_version="21.0.0",
            pinned=True,
            pinned_version="20.2.0",
        )
        assert str(pkg) == (
            "node(available:21.0.0): |installed: 20.1.0, 20.2.0"
            "|pinned: true|pinned-version: 20.2.0|"
        )

    def test_unpinned_package_str(self):
        pkg = Package(name="wget", installed_versions=["1.0"], current_version="1.1")
        assert str(pkg).endswith("|pinned: false|pinned-version: |")

    def test_report_str_one_line_per_package(self):
        report = parse_outdated(_REAL_REPORT)
        assert len(str(report).splitlines()) == 3

    def test_empty_report_str(self):
        assert str(OutdatedPackages()) == "(none)"
