"""
Direct HTTP client for the Replicate prediction API.

Uses the Replicate HTTP API directly via requests. Predictions are created
once and then polled on a fixed interval for a bounded number of attempts;
there is no retry or backoff: every failure is terminal for the request and
the user has to resubmit.
"""

import logging
import time
from typing import Any, Optional

import requests

from thumbnail_studio.config import Settings, get_settings
from thumbnail_studio.services.errors import PredictionTimeout, RemoteServiceError

logger = logging.getLogger(__name__)

# Replicate prediction states.
TERMINAL_SUCCESS = "succeeded"
TERMINAL_FAILURES = ("failed", "canceled")

REQUEST_TIMEOUT = 30  # seconds, for create/download calls
POLL_TIMEOUT = 10  # seconds, for a single status poll


class ReplicateHTTPClient:
    """
    Thin client around Replicate's `/predictions` endpoints.

    Only two operations matter to the studio: creating a prediction and
    waiting for it to reach a terminal state.
    """

    def __init__(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize Replicate HTTP client.

        Args:
            api_token: Replicate API token. Defaults to REPLICATE_API_TOKEN.
            base_url: API root, defaults to https://api.replicate.com/v1.
            poll_interval: Seconds between status polls (default 1).
            max_attempts: Maximum number of status polls (default 60).
        """
        settings = settings or get_settings()
        self.api_token = api_token or settings.replicate_api_token
        self.base_url = (base_url or settings.replicate_base_url).rstrip("/")
        self.poll_interval = settings.poll_interval if poll_interval is None else poll_interval
        self.max_attempts = settings.max_poll_attempts if max_attempts is None else max_attempts

        if not self.api_token:
            print("\n" + "=" * 60)
            print("⚠️  REPLICATE API TOKEN NOT FOUND - generation and editing DISABLED")
            print("=" * 60)
            print("  1. Get token: https://replicate.com/account/api-tokens")
            print("  2. Add to .env file: REPLICATE_API_TOKEN=your_token")
            print("  3. Restart server")
            print("=" * 60 + "\n")
            logger.warning("REPLICATE_API_TOKEN not set. Replicate features will be unavailable.")
            self.available = False
            return

        if not self.api_token.startswith("r8_"):
            logger.warning("Replicate token doesn't start with 'r8_' - it might be invalid")

        self.available = True
        logger.info(
            f"Replicate HTTP client initialized (poll every {self.poll_interval}s, "
            f"max {self.max_attempts} polls)"
        )

    def is_available(self) -> bool:
        """Check if Replicate client is properly configured."""
        return self.available and self.api_token is not None

    @property
    def headers(self) -> dict:
        return {
            "Authorization": f"Token {self.api_token}",
            "Content-Type": "application/json",
        }

    def create_prediction(
        self,
        input: dict,
        version: Optional[str] = None,
        model: Optional[str] = None,
    ) -> dict:
        """
        Start a prediction.

        Either `version` (a 64-character version hash, or `owner/name:hash`)
        or `model` (an official `owner/name` model) must be given.

        Returns:
            The prediction JSON as returned by Replicate.
        """
        if not self.is_available():
            raise RemoteServiceError(
                "Replicate is not configured",
                details="Set REPLICATE_API_TOKEN to enable image generation.",
            )
        if version:
            url = f"{self.base_url}/predictions"
            payload = {"version": self._get_model_version(version), "input": input}
            target = version
        elif model:
            url = f"{self.base_url}/models/{model}/predictions"
            payload = {"input": input}
            target = model
        else:
            raise ValueError("Either `version` or `model` is required.")

        logger.info(f"Creating Replicate prediction for {target}")
        try:
            response = requests.post(url, headers=self.headers, json=payload, timeout=REQUEST_TIMEOUT)
        except requests.exceptions.RequestException as exc:
            raise RemoteServiceError(f"Replicate request failed: {exc}") from exc

        self._raise_for_status(response, target)
        prediction = response.json()
        logger.info(f"Prediction started: {prediction.get('id')}")
        return prediction

    def get_prediction(self, prediction: dict) -> dict:
        """Fetch the current state of `prediction`."""
        url = (prediction.get("urls") or {}).get("get") or f"{self.base_url}/predictions/{prediction['id']}"
        try:
            response = requests.get(url, headers=self.headers, timeout=POLL_TIMEOUT)
        except requests.exceptions.RequestException as exc:
            raise RemoteServiceError(f"Replicate request failed: {exc}") from exc
        self._raise_for_status(response, prediction.get("id", url))
        return response.json()

    def wait_for_prediction(self, prediction: dict) -> str:
        """
        Poll `prediction` until it reaches a terminal state.

        Polls are strictly sequential, `poll_interval` seconds apart, and at
        most `max_attempts` of them are made.

        Returns:
            The output URL (first element when the model returns a list).

        Raises:
            RemoteServiceError: the prediction failed or reported an error.
            PredictionTimeout: no terminal state within `max_attempts` polls.
        """
        for attempt in range(self.max_attempts):
            result = self.get_prediction(prediction)
            status = result.get("status")
            logger.info(f"Poll attempt {attempt + 1} status: {status}")

            if result.get("error"):
                logger.error(f"Replicate error: {result['error']}")
                raise RemoteServiceError(f"Replicate error: {result['error']}")

            if status == TERMINAL_SUCCESS:
                return self._extract_output(result)

            if status in TERMINAL_FAILURES:
                logger.error(f"Prediction {result.get('id')} {status}")
                raise RemoteServiceError("Image generation failed", details=f"Prediction status: {status}")

            if attempt + 1 < self.max_attempts:
                time.sleep(self.poll_interval)

        logger.error(f"Prediction {prediction.get('id')} timed out after {self.max_attempts} polls")
        raise PredictionTimeout()

    def run(self, input: dict, version: Optional[str] = None, model: Optional[str] = None) -> str:
        """Create a prediction and wait for its output URL."""
        prediction = self.create_prediction(input, version=version, model=model)
        return self.wait_for_prediction(prediction)

    def _extract_output(self, prediction: dict) -> str:
        output: Any = prediction.get("output")
        if isinstance(output, list):
            output = output[0] if output else None
        if not isinstance(output, str) or not output:
            raise RemoteServiceError("Invalid response format from image generation service")
        return output

    def _raise_for_status(self, response: requests.Response, target: str) -> None:
        if response.status_code < 400:
            return

        try:
            body = response.json()
            detail = body.get("detail", body) if isinstance(body, dict) else body
        except ValueError:
            detail = response.text[:500]

        if response.status_code == 401:
            message = "Replicate authentication failed (401): invalid token"
        elif response.status_code == 404:
            message = f"Replicate model not found (404): {target}"
        elif response.status_code == 422:
            message = f"Replicate rejected the request (422): {detail}"
        elif response.status_code == 429:
            message = "Replicate rate limited (429): too many requests"
        else:
            message = f"Replicate API error ({response.status_code})"
        logger.error(f"{message} - detail: {detail}")
        raise RemoteServiceError(message, details=str(detail))

    def _get_model_version(self, model: str) -> str:
        """
        Get the version hash for the `version` field.

        Accepts either a bare version hash or `owner/name:version_hash`.
        """
        if ":" in model:
            parts = model.split(":")
            if len(parts) == 2:
                return parts[1]
        return model


# Global client instance
_replicate_client: Optional[ReplicateHTTPClient] = None


def get_replicate_client() -> ReplicateHTTPClient:
    """Get or create global Replicate HTTP client instance."""
    global _replicate_client
    if _replicate_client is None:
        _replicate_client = ReplicateHTTPClient()
    return _replicate_client


def set_replicate_client(client: Optional[ReplicateHTTPClient]) -> None:
    """Replace the global client (None forces re-creation on next use)."""
    global _replicate_client
    _replicate_client = client
