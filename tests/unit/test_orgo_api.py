"""Unit tests for the Orgo REST client and attach outcome mapping."""

from unittest.mock import Mock, patch

import pytest
import requests

from orgolin.exceptions import (
    OrgoAPIError,
    OrgoAuthError,
    OrgoNetworkError,
    ProjectNotFoundError,
)
from orgolin.orgo_api import (
    AuthFailure,
    NetworkFailure,
    NotFound,
    OrgoClient,
    RemoteFailure,
    attach_outcome_from_error,
)

VALID_UUID = "0f8fad5b-d9cb-469f-a165-70867728950e"


def make_response(status_code: int = 200, json_data=None, reason: str = "OK") -> Mock:
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = reason
    response.content = b"" if json_data is None else b"{}"
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def client():
    return OrgoClient(api_key="sk_live_test", base_url="https://orgo.test/api")


@pytest.fixture
def mock_request():
    with patch("orgolin.orgo_api.requests.request") as mock:
        yield mock


class TestClientInit:
    """Test constructor validation."""

    def test_requires_api_key(self):
        with pytest.raises(ValueError, match="ORGO_API_KEY"):
            OrgoClient(api_key="")

    def test_requires_https(self):
        with pytest.raises(ValueError, match="HTTPS"):
            OrgoClient(api_key="k", base_url="http://orgo.test/api")

    def test_localhost_allowed(self):
        client = OrgoClient(api_key="k", base_url="http://localhost:3000/api/")

        assert client.base_url == "http://localhost:3000/api"

    def test_default_timeout(self):
        assert OrgoClient(api_key="k").timeout == OrgoClient.API_TIMEOUT


class TestRequests:
    """Test endpoint paths, headers and bodies."""

    def test_auth_header_and_timeout(self, client, mock_request):
        mock_request.return_value = make_response(json_data={"status": "ready"})

        client.get_status(VALID_UUID)

        args, kwargs = mock_request.call_args
        assert args == ("GET", f"https://orgo.test/api/computers/{VALID_UUID}/status")
        assert kwargs["headers"]["Authorization"] == "Bearer sk_live_test"
        assert kwargs["timeout"] == 30.0

    def test_create_project(self, client, mock_request):
        mock_request.return_value = make_response(json_data={"id": VALID_UUID})

        project = client.create_project({"ram": 4})

        assert project == {"id": VALID_UUID}
        args, kwargs = mock_request.call_args
        assert args == ("POST", "https://orgo.test/api/projects")
        assert kwargs["json"] == {"ram": 4}

    def test_list_projects_unwraps(self, client, mock_request):
        mock_request.return_value = make_response(json_data={"projects": [{"id": "a"}]})

        assert client.list_projects() == [{"id": "a"}]

    def test_list_projects_plain_list(self, client, mock_request):
        mock_request.return_value = make_response(json_data=[{"id": "a"}])

        assert client.list_projects() == [{"id": "a"}]

    @pytest.mark.parametrize("action", ["start", "stop", "restart"])
    def test_project_action(self, client, mock_request, action):
        mock_request.return_value = make_response(json_data={})

        client.project_action(VALID_UUID, action)

        assert mock_request.call_args[0][1].endswith(f"/projects/{VALID_UUID}/{action}")

    def test_project_action_rejects_unknown(self, client, mock_request):
        with pytest.raises(ValueError, match="Unsupported"):
            client.project_action(VALID_UUID, "reboot")

        mock_request.assert_not_called()

    def test_delete_project(self, client, mock_request):
        mock_request.return_value = make_response()

        client.delete_project(VALID_UUID)

        assert mock_request.call_args[0] == (
            "POST",
            f"https://orgo.test/api/projects/{VALID_UUID}/delete",
        )

    def test_run_bash(self, client, mock_request):
        mock_request.return_value = make_response(json_data={"output": "hi\n", "success": True})

        result = client.run_bash(VALID_UUID, "echo hi")

        assert result["output"] == "hi\n"
        assert mock_request.call_args[1]["json"] == {"command": "echo hi"}

    def test_press_key(self, client, mock_request):
        mock_request.return_value = make_response(json_data={})

        client.press_key(VALID_UUID, "Return")

        assert mock_request.call_args[1]["json"] == {"key": "Return"}

    def test_screenshot(self, client, mock_request):
        mock_request.return_value = make_response(json_data={"image": "aW1hZ2U="})

        assert client.screenshot(VALID_UUID) == "aW1hZ2U="

    def test_screenshot_without_image(self, client, mock_request):
        mock_request.return_value = make_response(json_data={})

        with pytest.raises(OrgoAPIError, match="no image"):
            client.screenshot(VALID_UUID)

    @pytest.mark.parametrize("bad_id", ["../etc", "a/b", "", "id?x=1"])
    def test_rejects_unsafe_path_segments(self, client, mock_request, bad_id):
        with pytest.raises(ValueError, match="Invalid project ID"):
            client.get_project(bad_id)

        mock_request.assert_not_called()


class TestErrors:
    """Test HTTP and transport error mapping."""

    def test_404_is_not_found(self, client, mock_request):
        mock_request.return_value = make_response(404, {"error": "Project not found"}, "Not Found")

        with pytest.raises(ProjectNotFoundError) as exc_info:
            client.get_project(VALID_UUID)

        assert exc_info.value.status_code == 404
        assert str(exc_info.value) == "Project not found"

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_errors(self, client, mock_request, status):
        mock_request.return_value = make_response(status, {"error": "Invalid API key"})

        with pytest.raises(OrgoAuthError) as exc_info:
            client.list_projects()

        assert exc_info.value.status_code == status

    def test_other_http_error(self, client, mock_request):
        mock_request.return_value = make_response(502, ValueError("no json"), "Bad Gateway")

        with pytest.raises(OrgoAPIError) as exc_info:
            client.list_projects()

        assert exc_info.value.status_code == 502
        assert "HTTP 502: Bad Gateway" in str(exc_info.value)

    def test_timeout(self, client, mock_request):
        mock_request.side_effect = requests.Timeout("read timed out")

        with pytest.raises(OrgoNetworkError, match="timed out"):
            client.list_projects()

    def test_connection_error_is_sanitized(self, client, mock_request):
        mock_request.side_effect = requests.ConnectionError(
            "failed with Authorization: Bearer sk_live_test"
        )

        with pytest.raises(OrgoNetworkError) as exc_info:
            client.list_projects()

        assert "sk_live_test" not in str(exc_info.value)
        assert exc_info.value.status_code is None

    def test_invalid_json(self, client, mock_request):
        response = make_response(200, ValueError("bad json"))
        response.content = b"<html>"
        mock_request.return_value = response

        with pytest.raises(OrgoNetworkError, match="invalid JSON"):
            client.list_projects()

    def test_bash_404_mentions_expiry(self, client, mock_request):
        mock_request.return_value = make_response(404, {"error": "Not found"})

        with pytest.raises(ProjectNotFoundError, match="may have expired"):
            client.run_bash(VALID_UUID, "ls")

    def test_bash_500_suggests_simple_command(self, client, mock_request):
        mock_request.return_value = make_response(500, {"error": "boom"})

        with pytest.raises(OrgoAPIError, match="'ls' or 'pwd'") as exc_info:
            client.run_bash(VALID_UUID, "ls")

        assert exc_info.value.status_code == 500


class TestAttachOutcome:
    """Test mapping attach failures onto outcomes."""

    def test_not_found_error(self):
        outcome = attach_outcome_from_error(ProjectNotFoundError("gone"))

        assert isinstance(outcome, NotFound)
        assert not outcome.matched_message

    def test_structured_404(self):
        outcome = attach_outcome_from_error(OrgoAPIError("whatever", status_code=404))

        assert isinstance(outcome, NotFound)

    def test_auth(self):
        error = OrgoAuthError("bad key", status_code=401)

        outcome = attach_outcome_from_error(error)

        assert isinstance(outcome, AuthFailure)
        assert outcome.error is error

    def test_network(self):
        assert isinstance(
            attach_outcome_from_error(OrgoNetworkError("timeout")), NetworkFailure
        )

    def test_message_match_compatibility(self):
        """Test that an uncoded error mentioning 404 is treated as not found."""
        outcome = attach_outcome_from_error(RuntimeError("Request failed with status 404"))

        assert isinstance(outcome, NotFound)
        assert outcome.matched_message

    def test_message_match_ignored_with_structured_code(self):
        """Test that a structured code takes precedence over message text."""
        outcome = attach_outcome_from_error(OrgoAPIError("upstream 404 page", status_code=500))

        assert isinstance(outcome, RemoteFailure)

    def test_other_errors(self):
        outcome = attach_outcome_from_error(OrgoAPIError("server error", status_code=500))

        assert isinstance(outcome, RemoteFailure)
        assert outcome.message == "server error"
