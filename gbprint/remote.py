"""Client for the remote label count endpoint."""

import logging

import pydantic
import requests
from pydantic import BaseModel, ConfigDict, Field, StrictInt

from gbprint.exceptions import PollError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class WorkCount(BaseModel):
    """Pending label count reported by the server.

    The server resets its counter once it has been read, so a count is only
    ever acted on once.
    """

    model_config = ConfigDict(extra="ignore")

    count: StrictInt = Field(..., ge=0, description="Labels waiting to be printed")
    timestamp: str | None = Field(None, description="Server time of the count (advisory)")


class WorkSource:
    """Reads the pending label count from the server."""

    def __init__(self, endpoint: str, timeout: float = DEFAULT_TIMEOUT):
        """Initialize the work source.

        Args:
            endpoint: Full URL of the count endpoint.
            timeout: Request timeout in seconds.
        """
        self.endpoint = endpoint
        self.timeout = timeout

    def fetch(self) -> WorkCount:
        """Fetch the current label count.

        Returns:
            WorkCount: Parsed response.

        Raises:
            PollError: On timeout, network error, non-2xx status or a
                response without a valid count.
        """
        try:
            response = requests.get(
                self.endpoint,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.Timeout as err:
            raise PollError("Request timeout", reason="timeout") from err
        except requests.ConnectionError as err:
            raise PollError(f"Network unavailable: {err}", reason="network") from err
        except requests.RequestException as err:
            raise PollError(f"Request failed: {err}", reason="network") from err

        if not response.ok:
            raise PollError(f"HTTP {response.status_code}: {response.reason}", reason="http")

        try:
            data = response.json()
        except ValueError as err:
            raise PollError("Invalid response: body is not JSON", reason="malformed") from err

        try:
            return WorkCount.model_validate(data)
        except pydantic.ValidationError as err:
            raise PollError(
                "Invalid response: missing or invalid count field", reason="malformed"
            ) from err
