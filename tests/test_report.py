"""Tests for status mapping, diagnostics output and result submission."""
from __future__ import annotations

import io
from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest
import requests

from readiness_api import assess_windows11_readiness
from report import (
    ReadinessStatus,
    build_payload,
    emit,
    format_outcome,
    readiness_status,
    send_data_to_api,
)


class TestReadinessStatus:
    def test_exit_codes_are_distinct(self):
        codes = {status.exit_code for status in ReadinessStatus}
        assert codes == {0, 1, 2}

    def test_compliant_device_succeeds(self, compliant_facts):
        assert readiness_status(assess_windows11_readiness(compliant_facts)) is ReadinessStatus.SUCCESS

    def test_failed_check_fails(self, compliant_facts):
        outcome = assess_windows11_readiness(replace(compliant_facts, cpu_max_clock_mhz=800, cpu_logical_cores=1))
        assert readiness_status(outcome) is ReadinessStatus.FAILURE

    def test_manual_key_entry_is_indeterminate(self, compliant_facts):
        facts = replace(compliant_facts, burned_in_product_key=None, backup_product_key="XYZ-999")
        assert readiness_status(assess_windows11_readiness(facts)) is ReadinessStatus.INDETERMINATE

    def test_manual_key_entry_wins_over_failures(self, failing_facts):
        outcome = assess_windows11_readiness(failing_facts)
        assert not outcome.overall_passed
        assert readiness_status(outcome) is ReadinessStatus.INDETERMINATE

    def test_short_circuit_succeeds(self, failing_facts):
        outcome = assess_windows11_readiness(replace(failing_facts, is_server_edition=True))
        assert readiness_status(outcome) is ReadinessStatus.SUCCESS


class TestEmit:
    def test_one_line_per_failure(self, compliant_facts):
        outcome = assess_windows11_readiness(replace(compliant_facts, cpu_max_clock_mhz=800, cpu_logical_cores=1))
        stream = io.StringIO()
        result = emit(outcome, stream=stream)

        output = stream.getvalue()
        assert result.status is ReadinessStatus.FAILURE
        assert result.exit_code == 1
        assert output.count("FAIL [") == 2
        assert "800 MHz < 1000 MHz" in output
        assert "2 of 8 checks failed" in output

    def test_advisory_printed_first(self, compliant_facts):
        outcome = assess_windows11_readiness(
            replace(compliant_facts, burned_in_product_key=None, backup_product_key="XYZ-999"))
        result = emit(outcome, stream=io.StringIO())
        assert result.lines[0].startswith("WARNING:")
        assert "XYZ-999" in result.lines[0]
        assert result.exit_code == 2

    def test_writes_to_stdout_by_default(self, compliant_facts, capsys):
        result = emit(assess_windows11_readiness(compliant_facts))
        assert result.exit_code == 0
        assert "meets the Windows 11 minimum" in capsys.readouterr().out

    def test_short_circuit_reason_is_reported(self, compliant_facts):
        outcome = assess_windows11_readiness(replace(compliant_facts, os_build_number=22631))
        assert format_outcome(outcome) == ["Device is already running Windows 11 (build 22631)."]


class TestSubmission:
    def test_payload_hides_product_keys(self, compliant_facts):
        facts = replace(compliant_facts, burned_in_product_key=None, backup_product_key="XYZ-999")
        outcome = assess_windows11_readiness(facts)
        result = emit(outcome, stream=io.StringIO())
        payload = build_payload(facts, outcome, result, assessment_id="A-42")

        assert payload["assessment_id"] == "A-42"
        assert payload["status"] == "Indeterminate"
        assert payload["facts"]["backup_product_key_found"] is True
        assert "backup_product_key" not in payload["facts"]
        assert payload["facts"]["secure_boot"] == "ENABLED"

    @patch("report.requests.post")
    def test_send_success(self, mock_post: MagicMock):
        mock_post.return_value = MagicMock(raise_for_status=MagicMock(return_value=None))
        success, message = send_data_to_api({"a": 1}, url="https://example.test/api")
        assert success
        assert message == "Success"
        mock_post.assert_called_once()
        assert mock_post.call_args.kwargs["json"] == {"a": 1}

    @pytest.mark.parametrize("exc,fragment", [
        (requests.exceptions.Timeout(), "timed out"),
        (requests.exceptions.ConnectionError("refused"), "Could not connect"),
    ])
    @patch("report.requests.post")
    def test_send_failures(self, mock_post: MagicMock, exc, fragment):
        mock_post.side_effect = exc
        success, message = send_data_to_api({}, url="https://example.test/api")
        assert not success
        assert fragment in message
