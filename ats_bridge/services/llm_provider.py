"""
LLM Provider abstraction
Supports multiple providers: Gemini API (default), OpenAI, Anthropic

Gemini is called through the Google GenAI SDK directly so the output schema is
enforced server-side (response_schema + JSON mime type) and documents can be
sent inline. OpenAI and Anthropic go through Pydantic AI with the schema as the
agent's output type.

Every response is validated into the requested Pydantic model; nothing is
trusted optimistically.
"""
import os
import json
import re
from typing import Optional, Type, TypeVar
from pydantic import BaseModel, ValidationError
from google import genai
from google.genai import types
from pydantic_ai import Agent, BinaryContent
from pydantic_ai.exceptions import UnexpectedModelBehavior
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIChatModel

from ats_bridge.api.schemas.resume import DocumentPayload
from ats_bridge.utils.exceptions import (
    ATSBridgeException,
    MissingCredentialError,
    EmptyResponseError,
    MalformedResponseError,
    TransportFailureError,
)
from ats_bridge.utils.logger import get_logger
from ats_bridge.utils.config import settings

logger = get_logger(__name__)

SUPPORTED_PROVIDERS = ["gemini", "openai", "anthropic"]

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")

T = TypeVar('T', bound=BaseModel)


class LLMProvider:
    """
    Unified gateway to the delegate model.

    A Gemini client or a Pydantic AI model can be injected (tests do this);
    otherwise they are created lazily from settings on first use.
    """

    def __init__(self, client: Optional[genai.Client] = None, model: Optional[Model] = None):
        self._client = client
        self._model = model
        self._provider_name: str = settings.AI_PROVIDER.lower()

    @property
    def provider_name(self) -> str:
        """Get the current provider name"""
        return self._provider_name

    @property
    def model_name(self) -> str:
        return settings.active_model_name

    @property
    def uses_native_schema(self) -> bool:
        """Gemini enforces the response schema itself; other providers go through Pydantic AI"""
        return self._provider_name == "gemini"

    @property
    def client(self) -> genai.Client:
        """Get or create the Google GenAI client"""
        if self._client is None:
            logger.info(f"Initializing Gemini API client for model: {settings.GEMINI_MODEL}")
            self._client = genai.Client(api_key=self.require_credential())
        return self._client

    @property
    def model(self) -> Model:
        """Get or create the Pydantic AI model based on configuration"""
        if self._model is None:
            self._model = self._create_model()
        return self._model

    def require_credential(self) -> str:
        """Return the configured credential or fail with MissingCredentialError"""
        credential = settings.active_credential
        if credential is None:
            raise MissingCredentialError(settings.active_credential_name)
        return credential

    def _create_model(self) -> Model:
        """Create the Pydantic AI model for non-Gemini providers"""
        if self._provider_name == "openai":
            return self._create_openai_model()
        elif self._provider_name == "anthropic":
            return self._create_anthropic_model()
        else:
            raise ValueError(
                f"Unsupported AI provider: {self._provider_name}. Supported: {', '.join(SUPPORTED_PROVIDERS)}"
            )

    def _create_openai_model(self) -> OpenAIChatModel:
        """Create OpenAI model"""
        # pydantic-ai picks the key up from the environment
        os.environ['OPENAI_API_KEY'] = self.require_credential()

        model_name = settings.OPENAI_MODEL
        logger.info(f"Initializing OpenAI model: {model_name}")

        return OpenAIChatModel(model_name)

    def _create_anthropic_model(self) -> Model:
        """Create Anthropic model"""
        from pydantic_ai.models.anthropic import AnthropicModel
        from pydantic_ai.providers.anthropic import AnthropicProvider

        model_name = settings.ANTHROPIC_MODEL
        logger.info(f"Initializing Anthropic model: {model_name}")

        return AnthropicModel(
            model_name,
            provider=AnthropicProvider(api_key=self.require_credential())
        )

    async def generate_structured(
        self,
        output_type: Type[T],
        instructions: str,
        document: Optional[DocumentPayload] = None,
        text: Optional[str] = None
    ) -> T:
        """
        Generate a schema-conformant response from the delegate model

        Args:
            output_type: Pydantic model class the response must validate into
            instructions: Natural-language instruction payload
            document: Optional inline document (sent as bytes + media type)
            text: Optional plain-text payload (used when no document is given)

        Returns:
            Validated instance of output_type

        Raises:
            MissingCredentialError: No credential configured for the provider
            EmptyResponseError: The model returned no text
            MalformedResponseError: The text is not valid JSON for output_type
            TransportFailureError: The call itself failed
        """
        self.require_credential()

        if self.uses_native_schema:
            raw = await self._call_gemini(output_type, instructions, document, text)
            if raw is None or not raw.strip():
                raise EmptyResponseError()
            return self._parse_json_response(raw, output_type)

        return await self._run_agent(output_type, instructions, document, text)

    def _thinking_config(self) -> Optional[types.ThinkingConfig]:
        if settings.GEMINI_THINKING_BUDGET is None:
            return None
        return types.ThinkingConfig(thinking_budget=settings.GEMINI_THINKING_BUDGET)

    def _build_parts(
        self,
        instructions: str,
        document: Optional[DocumentPayload],
        text: Optional[str]
    ) -> list:
        parts = [types.Part.from_text(text=instructions)]
        if document is not None:
            parts.append(types.Part.from_bytes(data=document.raw_bytes(), mime_type=document.mime_type))
        elif text is not None:
            parts.append(types.Part.from_text(text=f"CV CONTENT:\n{text}"))
        return parts

    async def _call_gemini(
        self,
        output_type: Type[T],
        instructions: str,
        document: Optional[DocumentPayload],
        text: Optional[str]
    ) -> Optional[str]:
        """Call Gemini with the schema enforced through response_schema"""
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=output_type,
            temperature=settings.LLM_TEMPERATURE,
            thinking_config=self._thinking_config(),
        )
        contents = [types.Content(role="user", parts=self._build_parts(instructions, document, text))]

        logger.info(f"Calling Gemini {self.model_name} for {output_type.__name__}")

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=config,
            )
        except ATSBridgeException:
            raise
        except Exception as e:
            logger.error(f"Gemini call failed: {e}")
            raise TransportFailureError(f"Gemini call failed: {e}", details={"provider": "gemini"}) from e

        result_text = response.text
        logger.debug(f"Gemini response length: {len(result_text or '')} chars")
        return result_text

    async def _run_agent(
        self,
        output_type: Type[T],
        instructions: str,
        document: Optional[DocumentPayload],
        text: Optional[str]
    ) -> T:
        """Run a Pydantic AI agent with output_type as the structured output"""
        logger.info(f"Running agent on {self._provider_name}:{self.model_name} for {output_type.__name__}")

        agent = Agent(
            self.model,
            output_type=output_type,
            system_prompt=instructions,
            retries=0
        )

        if document is not None:
            user_prompt = [
                "Analyze the attached resume document.",
                BinaryContent(data=document.raw_bytes(), media_type=document.mime_type),
            ]
        elif text is not None:
            user_prompt = f"CV CONTENT:\n{text}"
        else:
            user_prompt = "Produce the requested JSON output."

        model_settings = None
        if settings.LLM_TEMPERATURE is not None:
            model_settings = {"temperature": settings.LLM_TEMPERATURE}

        try:
            result = await agent.run(user_prompt, model_settings=model_settings)
        except UnexpectedModelBehavior as e:
            logger.error(f"Agent output failed validation: {e}")
            raise MalformedResponseError(f"Model returned output that doesn't match schema: {e}") from e
        except ATSBridgeException:
            raise
        except Exception as e:
            logger.error(f"Agent call failed: {e}")
            raise TransportFailureError(
                f"{self._provider_name} call failed: {e}", details={"provider": self._provider_name}
            ) from e

        if result.output is None:
            raise EmptyResponseError()
        return result.output

    def _parse_json_response(self, text: str, output_type: Type[T]) -> T:
        """
        Parse the model's JSON text and validate it strictly against output_type.
        Missing required fields and type mismatches are rejected, not coerced.
        """
        text = _CODE_FENCE_RE.sub("", text.strip()).strip()

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON response: {e}")
            logger.error(f"Raw response: {text[:500]}...")
            raise MalformedResponseError(f"Model returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Model returned JSON {type(data).__name__}, expected an object"
            )

        try:
            return output_type.model_validate_json(text, strict=True)
        except ValidationError as e:
            errors = [
                {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
                for err in e.errors()
            ]
            logger.error(f"JSON validation failed for {output_type.__name__}: {e.error_count()} error(s)")
            raise MalformedResponseError(
                f"Model returned JSON that doesn't match {output_type.__name__}",
                details={"errors": errors}
            ) from e


# Singleton instance
_llm_provider: Optional[LLMProvider] = None


def get_llm_provider() -> LLMProvider:
    """Get or create singleton LLM provider instance"""
    global _llm_provider
    if _llm_provider is None:
        _llm_provider = LLMProvider()
    return _llm_provider


def reset_llm_provider():
    """Reset the singleton (useful for testing or config changes)"""
    global _llm_provider
    _llm_provider = None
