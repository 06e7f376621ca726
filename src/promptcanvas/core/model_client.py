"""Bedrock runtime client for the Stability SDXL text-to-image model.

:class:`BedrockImageModel` is the only place that talks to AWS.  It takes a
Stability request body (see
:meth:`~promptcanvas.core.request_builder.ModelInvocationPayload.to_request_body`),
calls ``invoke_model`` synchronously, and returns the parsed JSON response.
Interpreting the response is left to the fan-out executor.

The boto3 client is created lazily on first use so that importing this
module, or building the FastAPI app in tests, never requires AWS access.

Usage
-----
::

    from promptcanvas.core.config import config
    from promptcanvas.core.model_client import BedrockImageModel

    model = BedrockImageModel.from_config(config)
    response = model.invoke(payload.to_request_body())
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from promptcanvas.core.config import PromptCanvasConfig
from promptcanvas.core.errors import UpstreamGenerationError

logger = logging.getLogger(__name__)


class ImageModel(Protocol):
    """Anything that can run one text-to-image invocation."""

    def invoke(self, body: dict) -> Any:
        """Send *body* to the model and return the decoded JSON response."""
        ...


class BedrockImageModel:
    """Synchronous wrapper around ``bedrock-runtime.invoke_model``.

    Attributes:
        model_id (str): Bedrock model identifier.
        region (str): AWS region of the runtime endpoint.
    """

    def __init__(
        self,
        model_id: str,
        region: str,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
    ) -> None:
        self.model_id = model_id
        self.region = region
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._client = None
        self._client_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: PromptCanvasConfig) -> BedrockImageModel:
        """Create a model client from application configuration."""
        return cls(
            model_id=config.bedrock_model_id,
            region=config.aws_region,
            access_key_id=config.aws_access_key_id,
            secret_access_key=config.aws_secret_access_key,
        )

    def _get_client(self):
        # invoke() runs in worker threads; build the boto3 client exactly once.
        with self._client_lock:
            if self._client is None:
                kwargs: dict[str, str] = {"region_name": self.region}
                if self._access_key_id and self._secret_access_key:
                    kwargs["aws_access_key_id"] = self._access_key_id
                    kwargs["aws_secret_access_key"] = self._secret_access_key
                self._client = boto3.client("bedrock-runtime", **kwargs)
                logger.info(
                    "Bedrock runtime client created (region=%s, model=%s)",
                    self.region,
                    self.model_id,
                )
            return self._client

    def invoke(self, body: dict) -> Any:
        """Invoke the model once.

        Args:
            body: Stability request body.

        Returns:
            The decoded JSON response.

        Raises:
            UpstreamGenerationError: On transport or authorisation errors, or
                when the response body is not valid JSON.
        """
        try:
            response = self._get_client().invoke_model(
                modelId=self.model_id,
                contentType="application/json",
                accept="application/json",
                body=json.dumps(body),
            )
            raw = response["body"].read()
        except ClientError as exc:
            message = exc.response.get("Error", {}).get("Message") or str(exc)
            raise UpstreamGenerationError(message) from exc
        except BotoCoreError as exc:
            raise UpstreamGenerationError(str(exc)) from exc

        try:
            return json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise UpstreamGenerationError(f"Invalid JSON from model: {exc}") from exc
