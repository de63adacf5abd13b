from __future__ import annotations

import logging
from typing import Sequence, Type

from google import genai
from google.genai import types
from google.genai.errors import APIError
from pydantic import ValidationError

from recipe_editor.app.domain.models import ConversationMessage
from recipe_editor.app.infra.llm.base import (
    ModelClient,
    ModelReply,
    SchemaT,
    ToolCall,
    ToolResultBatch,
    ToolSpec,
    TranscriptEntry,
)
from recipe_editor.services.errors import (
    ModelCallError,
    ModelConfigurationError,
    RateLimitedError,
)

log = logging.getLogger(__name__)

_ROLE_BY_SPEAKER = {"user": "user", "assistant": "model"}


def _is_rate_limited_error(exc: Exception) -> bool:
    status_code = getattr(exc, "code", None)
    message = str(exc)
    if status_code == 429:
        return True
    if "RESOURCE_EXHAUSTED" in message:
        return True
    return False


def _translate_api_error(exc: APIError) -> ModelCallError:
    if _is_rate_limited_error(exc):
        return RateLimitedError("Gemini API rate limit reached. Try again in a moment.")
    return ModelCallError(f"Gemini request failed: {exc}")


def _reply_to_content(reply: ModelReply) -> types.Content:
    if isinstance(reply.raw, types.Content):
        return reply.raw
    parts: list[types.Part] = []
    if reply.text:
        parts.append(types.Part.from_text(text=reply.text))
    for call in reply.tool_calls:
        parts.append(
            types.Part(function_call=types.FunctionCall(name=call.name, args=call.arguments, id=call.call_id))
        )
    return types.Content(role="model", parts=parts)


def _results_to_content(batch: ToolResultBatch) -> types.Content:
    parts = []
    for result in batch.results:
        part = types.Part.from_function_response(name=result.name, response={"result": result.output})
        if result.call_id and part.function_response is not None:
            part.function_response.id = result.call_id
        parts.append(part)
    return types.Content(role="user", parts=parts)


def build_contents(transcript: Sequence[TranscriptEntry]) -> list[types.Content]:
    contents: list[types.Content] = []
    for entry in transcript:
        if isinstance(entry, ConversationMessage):
            content = entry.content.strip()
            if not content:
                continue
            contents.append(
                types.Content(role=_ROLE_BY_SPEAKER[entry.role], parts=[types.Part.from_text(text=content)])
            )
        elif isinstance(entry, ModelReply):
            contents.append(_reply_to_content(entry))
        elif isinstance(entry, ToolResultBatch):
            if entry.results:
                contents.append(_results_to_content(entry))
    return contents


def build_tools(tools: Sequence[ToolSpec]) -> list[types.Tool]:
    if not tools:
        return []
    declarations = [
        types.FunctionDeclaration(
            name=spec.name,
            description=spec.description,
            parameters_json_schema=spec.parameters,
        )
        for spec in tools
    ]
    return [types.Tool(function_declarations=declarations)]


class GeminiModelClient(ModelClient):
    def __init__(self, api_key: str, model_name: str = "gemini-2.5-flash") -> None:
        if not api_key:
            raise ModelConfigurationError("Missing Google API key.")
        self.model_name = model_name
        self._client = genai.Client(api_key=api_key)

    async def complete(
        self,
        system_prompt: str,
        transcript: Sequence[TranscriptEntry],
        tools: Sequence[ToolSpec],
    ) -> ModelReply:
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            tools=build_tools(tools),
            # The edit turn runs its own loop so it can apply effects and stop early
            automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model_name,
                contents=build_contents(transcript),
                config=config,
            )
        except APIError as err:
            raise _translate_api_error(err) from err

        calls = [
            ToolCall(name=call.name or "", arguments=dict(call.args or {}), call_id=call.id)
            for call in (response.function_calls or [])
        ]
        raw = response.candidates[0].content if response.candidates else None
        text = None if calls else response.text
        log.debug("gemini.complete model=%s tool_calls=%d", self.model_name, len(calls))
        return ModelReply(tool_calls=calls, text=text, raw=raw)

    async def generate_text(self, prompt: str) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model_name,
                contents=prompt,
            )
        except APIError as err:
            raise _translate_api_error(err) from err

        if not response.text:
            raise ModelCallError("Model response did not include text content.")
        return response.text

    async def generate_structured(self, prompt: str, schema: Type[SchemaT]) -> SchemaT:
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_json_schema=schema.model_json_schema(),
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=config,
            )
        except APIError as err:
            raise _translate_api_error(err) from err

        if not response.text:
            raise ModelCallError("Model response did not include JSON content.")
        try:
            return schema.model_validate_json(response.text)
        except ValidationError as err:
            raise ModelCallError(f"Model returned an invalid {schema.__name__}: {err}") from err
