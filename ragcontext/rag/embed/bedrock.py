"""AWS Bedrock embedding provider (Titan text embeddings)."""

import asyncio
import json
from collections.abc import Callable
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from ragcontext.rag.embed.embedder import EmbeddingProvider
from ragcontext.rag.embed.model_registry import DEFAULT_MODELS, EmbeddingBackend
from ragcontext.rag.errors import CredentialMissingError, EmbeddingProviderError
from ragcontext.rag.usage import UsageTracker

BedrockClientFactory = Callable[[str, str, str], Any]


def default_bedrock_client_factory(region: str, access_key_id: str, secret_access_key: str) -> Any:
    """Build a bedrock-runtime client for the given credentials."""
    return boto3.client(
        "bedrock-runtime",
        region_name=region,
        aws_access_key_id=access_key_id,
        aws_secret_access_key=secret_access_key,
    )


class BedrockEmbeddingProvider(EmbeddingProvider):
    """Embeddings from a Bedrock runtime invoke_model call.

    The response body is `{embedding, inputTextTokenCount}`. boto3 is
    blocking, so the call runs in a worker thread.
    """

    provider_name = EmbeddingBackend.BEDROCK.value

    def __init__(
        self,
        model_id: str = DEFAULT_MODELS[EmbeddingBackend.BEDROCK],
        *,
        region: str,
        access_key_id: str,
        secret_access_key: str,
        client_factory: BedrockClientFactory = default_bedrock_client_factory,
        usage_tracker: UsageTracker | None = None,
        track_usage: bool = True,
    ):
        super().__init__(model_id, usage_tracker=usage_tracker, track_usage=track_usage)
        self.region = region
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.client_factory = client_factory

    async def _embed(self, text: str) -> tuple[list[float], int | None]:
        if not self.access_key_id or not self.secret_access_key:
            raise CredentialMissingError(self.provider_name, "AWS credentials are required for Bedrock embeddings")

        payload = await asyncio.to_thread(self._invoke, text)

        embedding = payload.get("embedding")
        if not isinstance(embedding, list) or not embedding:
            raise EmbeddingProviderError(self.provider_name, "response contained no embedding")
        return [float(x) for x in embedding], payload.get("inputTextTokenCount")

    def _invoke(self, text: str) -> dict[str, Any]:
        client = self.client_factory(self.region, self.access_key_id, self.secret_access_key)
        try:
            response = client.invoke_model(
                modelId=self.model_id,
                body=json.dumps({"inputText": text}),
                contentType="application/json",
                accept="application/json",
            )
            return json.loads(response["body"].read())
        except NoCredentialsError as e:
            raise CredentialMissingError(self.provider_name, str(e)) from e
        except ClientError as e:
            status_code = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            raise EmbeddingProviderError(self.provider_name, str(e), status_code=status_code) from e
        except (BotoCoreError, KeyError, ValueError) as e:
            raise EmbeddingProviderError(self.provider_name, str(e)) from e
