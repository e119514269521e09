"""Gemini API client wrapper for embeddings and answer generation."""
import httpx
from typing import List, Dict, Optional
import structlog

from docqa import config
from docqa.errors import ProviderUnavailableError, RateLimitError

logger = structlog.get_logger()

ANSWER_PROMPT = """You are a helpful assistant. Answer the user's question based on the following context.
If the context does not contain the answer, say that you don't know.

Context:
{context}

Question:
{question}

Answer:
"""


class GeminiClient:
    """Async client for the Google Generative Language REST API."""

    def __init__(
        self,
        api_key: str = None,
        base_url: str = None,
        embedding_model: str = None,
        chat_model: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Gemini client.

        Args:
            api_key: API key (defaults to config.GOOGLE_API_KEY)
            base_url: API base URL (defaults to config.GEMINI_BASE_URL)
            embedding_model: Embedding model (defaults to config.EMBEDDING_MODEL)
            chat_model: Generation model (defaults to config.CHAT_MODEL)
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.api_key = api_key or config.GOOGLE_API_KEY
        self.base_url = (base_url or config.GEMINI_BASE_URL).rstrip("/")
        self.embedding_model = embedding_model or config.EMBEDDING_MODEL
        self.chat_model = chat_model or config.CHAT_MODEL
        self.timeout = timeout or config.PROVIDER_TIMEOUT
        self._transport = transport

    def _client(self, timeout: float = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout or self.timeout,
            transport=self._transport,
            headers={"x-goog-api-key": self.api_key},
        )

    async def _request(
        self, method: str, path: str, event: str, json: Dict = None, timeout: float = None
    ) -> Dict:
        """Send a request and map transport failures to provider errors."""
        try:
            async with self._client(timeout) as client:
                response = await client.request(
                    method, f"{self.base_url}/{path}", json=json
                )
                response.raise_for_status()
                return response.json()

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error(f"{event}_http_error", error=str(e), status_code=status_code)
            if status_code == 429:
                raise RateLimitError() from e
            raise ProviderUnavailableError(
                f"Provider returned HTTP {status_code}"
            ) from e
        except httpx.ConnectError as e:
            logger.error(f"{event}_connection_error", error=str(e), base_url=self.base_url)
            raise ProviderUnavailableError() from e
        except httpx.HTTPError as e:
            logger.error(f"{event}_error", error=str(e), error_type=type(e).__name__)
            raise ProviderUnavailableError() from e
        except ValueError as e:
            # Response body was not JSON
            logger.error(f"{event}_invalid_response", error=str(e))
            raise ProviderUnavailableError("Provider returned an invalid response") from e

    async def embed(self, text: str) -> List[float]:
        """Generate an embedding vector for a text.

        Args:
            text: Text to embed

        Returns:
            Embedding values

        Raises:
            RateLimitError: On HTTP 429
            ProviderUnavailableError: On any other failure or an empty embedding
        """
        payload = {
            "model": f"models/{self.embedding_model}",
            "content": {"parts": [{"text": text}]},
        }

        logger.debug(
            "gemini_embedding_request",
            model=self.embedding_model,
            text_length=len(text),
        )

        data = await self._request(
            "POST",
            f"models/{self.embedding_model}:embedContent",
            "gemini_embedding",
            json=payload,
        )
        values = data.get("embedding", {}).get("values", [])

        if not values:
            logger.error("gemini_empty_embedding", model=self.embedding_model)
            raise ProviderUnavailableError("Empty embedding returned from provider")

        logger.debug(
            "gemini_embedding_response",
            model=self.embedding_model,
            dimension=len(values),
        )
        return values

    async def generate(self, question: str, context: str) -> str:
        """Generate an answer to a question grounded in the given context.

        Args:
            question: User question (or a summarization instruction)
            context: Retrieved chunk texts

        Returns:
            Answer text, verbatim from the model

        Raises:
            RateLimitError: On HTTP 429
            ProviderUnavailableError: On any other failure or an empty answer
        """
        prompt = ANSWER_PROMPT.format(context=context, question=question)
        payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}

        logger.info(
            "gemini_generate_request",
            model=self.chat_model,
            prompt_length=len(prompt),
        )

        data = await self._request(
            "POST",
            f"models/{self.chat_model}:generateContent",
            "gemini_generate",
            json=payload,
        )

        candidates = data.get("candidates") or []
        parts = candidates[0].get("content", {}).get("parts", []) if candidates else []
        answer = "".join(part.get("text", "") for part in parts)

        if not answer:
            logger.error(
                "gemini_empty_answer",
                model=self.chat_model,
                finish_reason=candidates[0].get("finishReason") if candidates else None,
            )
            raise ProviderUnavailableError("Empty answer returned from provider")

        logger.info(
            "gemini_generate_response",
            model=self.chat_model,
            response_length=len(answer),
        )
        return answer

    async def list_models(self) -> List[str]:
        """List the model names visible to this API key.

        Raises:
            ProviderUnavailableError: On API errors
        """
        data = await self._request("GET", "models", "gemini_list_models", timeout=5.0)
        return [m["name"].split("/", 1)[-1] for m in data.get("models", [])]
