"""API utility functions and client for the Customer Feedback UI.

This module provides an API client class for making HTTP requests to the
feedback backend (campaigns, feedback storage, dashboard and analysis
routes) and a helper for recognising the client's error results.

python scripts/run_api.py --action campaign --campaign-id <id>
python scripts/run_api.py --action dashboard
python scripts/run_api.py --action analysis
"""

from http import HTTPStatus
from typing import Any, Optional

import requests

from utils.logging_utils import get_logger

API_TIMER_SEC = 20
ERROR_LEN = 2

SAVE_FEEDBACK_ENDPOINT = "/api/save-feedback"
DASHBOARD_ENDPOINT = "/api/dashboard"
RUN_ANALYSIS_ENDPOINT = "/api/run-analysis"
CAMPAIGN_ENDPOINT = "/api/campaigns"

logger = get_logger(__name__, level="INFO")

ErrorResult = tuple[dict[str, str], int]


# Disabling pylint warning for too many arguments in APIClient class
# This is to maintain clarity in the APIClient constructor and methods.
# pylint: disable=too-many-arguments,too-many-positional-arguments
class APIClient:
    """API client for making HTTP requests to the feedback backend.

    This class provides methods for sending GET, JSON POST and multipart POST
    requests. Failures are logged and returned as an error tuple
    ``({"error": message}, status_code)`` instead of raising.
    """

    def __init__(self, base_url: str, token: str, logger_handle):
        """Initialises the API client with base URL, token, and logger.

        Args:
            base_url (str): The base URL for the API.
            token (str): The bearer token for API requests; empty for none.
            logger_handle: Logger instance for logging messages.
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.logger_handle = logger_handle

    def _default_headers(self) -> dict[str, str]:
        """Returns the default headers for API requests.

        Returns:
            dict: The authorisation header, when a token is configured.
        """
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def get(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
        return_json: bool = True,
    ):
        """Sends a GET request to the specified API endpoint.

        Args:
            endpoint (str): The API endpoint to send the request to.
            params (dict, optional): Query string parameters.
            headers (dict, optional): Additional headers for the request.
            return_json (bool): Whether to return JSON response.

        Returns:
            dict or str: The API response data, or an error tuple.
        """
        return self._request(
            "GET", endpoint, params=params, headers=headers, return_json=return_json
        )

    def post(
        self,
        endpoint: str,
        body: Optional[dict] = None,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
        return_json: bool = True,
    ):
        """Sends a JSON POST request to the specified API endpoint.

        Args:
            endpoint (str): The API endpoint to send the request to.
            body (dict, optional): The request body as a dictionary.
            params (dict, optional): Query string parameters.
            headers (dict, optional): Additional headers for the request.
            return_json (bool): Whether to return JSON response.

        Returns:
            dict or str: The API response data, or an error tuple.
        """
        return self._request(
            "POST",
            endpoint,
            body=body,
            params=params,
            headers=headers,
            return_json=return_json,
        )

    def post_form(
        self,
        endpoint: str,
        data: dict[str, str],
        files: Optional[dict[str, tuple[str, bytes, str]]] = None,
        headers: Optional[dict] = None,
    ):
        """Sends a multipart/form-data POST request.

        Args:
            endpoint (str): The API endpoint to send the request to.
            data (dict): Plain form fields.
            files (dict, optional): File parts as ``(filename, bytes, content_type)``.
            headers (dict, optional): Additional headers for the request.

        Returns:
            dict or str: The API response data, or an error tuple.
        """
        return self._request(
            "POST_FORM", endpoint, data=data, files=files, headers=headers
        )

    def _send(  # noqa: PLR0913
        self,
        method: str,
        url: str,
        headers: dict,
        params: Optional[dict],
        body: Optional[dict],
        data: Optional[dict],
        files: Optional[dict],
    ) -> requests.Response:
        if method == "GET":
            return requests.get(
                url, params=params, headers=headers, timeout=API_TIMER_SEC
            )
        if method == "POST":
            return requests.post(
                url, json=body, params=params, headers=headers, timeout=API_TIMER_SEC
            )
        if method == "POST_FORM":
            return requests.post(
                url, data=data, files=files, headers=headers, timeout=API_TIMER_SEC
            )
        raise ValueError(f"Unsupported method: {method}")

    def _request(  # noqa: PLR0913
        self,
        method: str,
        endpoint: str,
        body: Optional[dict] = None,
        params: Optional[dict] = None,
        data: Optional[dict] = None,
        files: Optional[dict] = None,
        headers: Optional[dict] = None,
        return_json: bool = True,
    ):
        """Sends an HTTP request to the specified API endpoint.

        Args:
            method (str): "GET", "POST" (JSON) or "POST_FORM" (multipart).
            endpoint (str): The API endpoint to send the request to.
            body (dict, optional): JSON body for POST requests.
            params (dict, optional): Query string parameters.
            data (dict, optional): Form fields for multipart requests.
            files (dict, optional): File parts for multipart requests.
            headers (dict, optional): Additional headers for the request.
            return_json (bool): Whether to return JSON response.

        Returns:
            dict or str: The API response data, or an error tuple if an error occurs.
        """
        url = f"{self.base_url}{endpoint}"
        combined_headers = {**self._default_headers(), **(headers or {})}

        self.logger_handle.debug(f"Sending {method} request to {url}")

        # File parts are never logged
        if body is not None:
            self.logger_handle.debug(body)
        if data is not None:
            self.logger_handle.debug(data)

        result = None
        error = None
        status_code = HTTPStatus.INTERNAL_SERVER_ERROR

        try:
            response = self._send(
                method, url, combined_headers, params, body, data, files
            )
            response.raise_for_status()
            result = response.json() if return_json else response.text
            self.logger_handle.debug(f"Received response from {url}")
            self.logger_handle.debug(result)

        except requests.exceptions.Timeout:
            self.logger_handle.error(
                f"Request to {url} timed out after {API_TIMER_SEC} seconds"
            )
            error = "Request timed out"
            status_code = HTTPStatus.GATEWAY_TIMEOUT
        except requests.exceptions.ConnectionError:
            self.logger_handle.error(f"Failed to connect to API at {url}")
            error = "Failed to connect to API"
            status_code = HTTPStatus.BAD_GATEWAY
        except requests.exceptions.HTTPError as http_err:
            self.logger_handle.error(f"HTTP error occurred: {http_err}")
            error = f"HTTP error: {http_err.response.status_code}"
            status_code = http_err.response.status_code
        except ValueError as val_err:
            self.logger_handle.error(f"Value error: {val_err}")
            error = f"Value error: {val_err}"
        except (TypeError, AttributeError) as exc:
            self.logger_handle.error(f"Unexpected type or attribute error: {exc}")
            error = f"Unexpected error: {exc!s}"

        if error:
            return self._handle_error(error, status_code)

        return result

    def _handle_error(self, message: str, status_code: int) -> ErrorResult:
        """Logs an API error and returns it as an error tuple.

        Args:
            message (str): The error message to log and return.
            status_code (int): The HTTP status code for the error.

        Returns:
            tuple: ``({"error": message}, status_code)``.
        """
        self.logger_handle.error(message)
        return {"error": message}, int(status_code)


def is_api_error(raw: Any) -> bool:
    """Return True if ``raw`` is an error result from ``APIClient``.

    The backend may also report a failure in a successful response body as
    ``{"error": "..."}``; that is treated as an error too.
    """
    if isinstance(raw, tuple) and len(raw) == ERROR_LEN and isinstance(raw[0], dict):
        return True
    return isinstance(raw, dict) and bool(raw.get("error"))


def api_error_message(raw: Any) -> str:
    """Return the error message carried by an error result."""
    if isinstance(raw, tuple) and raw and isinstance(raw[0], dict):
        return str(raw[0].get("error", "Unknown error"))
    if isinstance(raw, dict):
        return str(raw.get("error", "Unknown error"))
    return "Unknown error"
