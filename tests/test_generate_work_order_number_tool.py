"""
Tests for the generate_work_order_number tool.

Covers the primary/fallback sequence with a mocked client and the number
formats produced by the reference backend.
"""

from unittest.mock import MagicMock, call

import pytest

from db.rpc_client import RpcClient
from models.errors import create_remote_error
from tools.generate_work_order_number import (
    FALLBACK_PROCEDURE,
    PRIMARY_PROCEDURE,
    generate_work_order_number,
)

PARAMS = {"org_id": "org-globex", "location_number": None}


def _client(*rpc_results):
    client = MagicMock(spec=RpcClient)
    client.rpc.side_effect = list(rpc_results)
    return client


class TestPrimaryPath:
    def test_primary_success(self):
        client = _client({"success": True, "work_order_number": "GLX-0007"})

        result = generate_work_order_number({"organization_id": "org-globex"}, client=client)

        assert result == {"work_order_number": "GLX-0007", "is_fallback": False}
        client.rpc.assert_called_once_with(PRIMARY_PROCEDURE, PARAMS)

    def test_location_code_is_forwarded(self):
        client = _client({"success": True, "work_order_number": "ACM-104-001"})

        generate_work_order_number(
            {"organization_id": "org-acme", "location_code": " 104 "}, client=client
        )

        client.rpc.assert_called_once_with(
            PRIMARY_PROCEDURE, {"org_id": "org-acme", "location_number": "104"}
        )


class TestFallback:
    """The simple procedure is tried exactly once after any primary failure."""

    def test_primary_raises(self):
        client = _client(create_remote_error("timeout"), "GLX-S0001")

        result = generate_work_order_number({"organization_id": "org-globex"}, client=client)

        assert result["work_order_number"] == "GLX-S0001"
        assert result["is_fallback"] is True
        assert "timeout" in result["warning"]
        assert "Remote error" not in result["warning"]
        assert client.rpc.call_args_list == [
            call(PRIMARY_PROCEDURE, PARAMS),
            call(FALLBACK_PROCEDURE, PARAMS),
        ]

    def test_primary_reports_failure(self):
        client = _client(
            {"success": False, "code": "location_required", "message": "Location required"},
            "ACM-S0003",
        )

        result = generate_work_order_number({"organization_id": "org-acme"}, client=client)

        assert result["is_fallback"] is True
        assert "Location required" in result["warning"]

    def test_primary_returns_no_number(self):
        client = _client({"success": True, "work_order_number": ""}, "GLX-S0002")

        result = generate_work_order_number({"organization_id": "org-globex"}, client=client)

        assert result["work_order_number"] == "GLX-S0002"
        assert result["is_fallback"] is True

    def test_unexpected_primary_exception(self):
        client = _client(RuntimeError("socket closed"), "GLX-S0003")

        result = generate_work_order_number({"organization_id": "org-globex"}, client=client)

        assert result["is_fallback"] is True
        assert "socket closed" in result["warning"]

    def test_both_fail(self):
        client = _client(create_remote_error("timeout"), create_remote_error("refused"))

        result = generate_work_order_number({"organization_id": "org-globex"}, client=client)

        assert result["work_order_number"] == ""
        assert result["error"]["code"] == "REMOTE_ERROR"
        assert result["error"]["retryable"] is True
        assert "timeout" in result["error"]["message"]
        assert "refused" in result["error"]["message"]
        assert result["error"]["message"].count("Remote error") == 1
        assert client.rpc.call_count == 2

    def test_fallback_returns_empty(self):
        client = _client(create_remote_error("timeout"), "")

        result = generate_work_order_number({"organization_id": "org-globex"}, client=client)

        assert result["work_order_number"] == ""
        assert result["error"]["code"] == "REMOTE_ERROR"


class TestValidation:
    @pytest.mark.parametrize(
        "args",
        [
            {},
            {"organization_id": ""},
            {"organization_id": 42},
            {"organization_id": "org-acme", "location_code": "10 4"},
        ],
    )
    def test_invalid_input_makes_no_call(self, args):
        client = _client()

        result = generate_work_order_number(args, client=client)

        assert result["work_order_number"] == ""
        assert result["error"]["code"] == "VALIDATION_ERROR"
        client.rpc.assert_not_called()


class TestAgainstBackend:
    def test_location_format(self, backend_db):
        result = generate_work_order_number(
            {"organization_id": "org-acme", "location_code": "104", "db_path": backend_db}
        )

        assert result == {"work_order_number": "ACM-104-001", "is_fallback": False}

    def test_missing_location_falls_back(self, backend_db):
        result = generate_work_order_number({"organization_id": "org-acme", "db_path": backend_db})

        assert result["work_order_number"] == "ACM-S0001"
        assert result["is_fallback"] is True

    def test_unknown_organization(self, backend_db):
        result = generate_work_order_number(
            {"organization_id": "org-missing", "db_path": backend_db}
        )

        assert result["work_order_number"] == ""
        assert result["error"]["code"] == "REMOTE_ERROR"
