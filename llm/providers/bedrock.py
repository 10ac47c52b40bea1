"""
AWS Bedrock LLM Provider.
"""

import json
import logging
from typing import List, Optional

import boto3
from botocore.exceptions import (
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    ReadTimeoutError,
)

from ..resilience import ClassifierAuthError, ClassifierUnavailable

logger = logging.getLogger(__name__)

# ClientError codes worth another attempt
RETRYABLE_ERROR_CODES = {
    "ThrottlingException",
    "ServiceUnavailableException",
    "InternalServerException",
    "ModelTimeoutException",
    "ModelNotReadyException",
    "TooManyRequestsException",
}

AUTH_ERROR_CODES = {
    "AccessDeniedException",
    "UnrecognizedClientException",
    "ExpiredTokenException",
    "InvalidSignatureException",
}


class BedrockProvider:
    """
    AWS Bedrock LLM provider.

    Supports Claude models via Bedrock.
    """

    DEFAULT_MODEL = "us.anthropic.claude-sonnet-4-20250514-v1:0"

    def __init__(
        self,
        model_id: str = DEFAULT_MODEL,
        region: str = "us-east-1",
        max_tokens: int = 1024,
        temperature: float = 0.3,
        client=None,
    ):
        """
        Initialize Bedrock provider.

        Args:
            model_id: Bedrock model ID
            region: AWS region
            max_tokens: Maximum tokens for response
            temperature: Generation temperature
            client: Preconfigured bedrock-runtime client (tests)
        """
        self.model_id = model_id
        self.region = region
        self.max_tokens = max_tokens
        self.temperature = temperature

        self._client = client or boto3.client("bedrock-runtime", region_name=region)
        logger.info(f"Bedrock provider initialized: {model_id} in {region}")

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        stop_sequences: Optional[List[str]] = None
    ) -> str:
        """
        Generate response from prompt.

        Args:
            prompt: User prompt
            system: System prompt
            max_tokens: Override max tokens
            temperature: Override temperature
            stop_sequences: Stop sequences

        Returns:
            Generated response
        """
        body = {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": max_tokens or self.max_tokens,
            "temperature": temperature if temperature is not None else self.temperature,
            "messages": [
                {
                    "role": "user",
                    "content": [{"type": "text", "text": prompt}]
                }
            ]
        }

        if system:
            body["system"] = system

        if stop_sequences:
            body["stop_sequences"] = stop_sequences

        try:
            response = self._client.invoke_model(
                modelId=self.model_id,
                body=json.dumps(body),
                contentType="application/json",
                accept="application/json",
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in RETRYABLE_ERROR_CODES:
                logger.warning(f"Bedrock transient error: {code}")
                raise ClassifierUnavailable(f"Bedrock unavailable: {code}") from e
            if code in AUTH_ERROR_CODES:
                logger.error(f"Bedrock rejected credentials: {code}")
                raise ClassifierAuthError(f"Bedrock rejected credentials: {code}") from e
            logger.error(f"Bedrock API error: {e}")
            raise
        except (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError) as e:
            logger.warning(f"Bedrock connection error: {type(e).__name__}")
            raise ClassifierUnavailable(f"Bedrock unavailable: {type(e).__name__}") from e
        except NoCredentialsError as e:
            raise ClassifierAuthError("No AWS credentials configured") from e

        response_body = json.loads(response["body"].read())

        if "content" in response_body and response_body["content"]:
            return response_body["content"][0]["text"].strip()

        logger.warning("Empty response from Bedrock")
        return ""
