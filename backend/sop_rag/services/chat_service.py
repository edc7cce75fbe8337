"""Answer synthesizer: grounded chat over retrieved SOP sections."""

from __future__ import annotations

import logging
import re
from typing import Any

from claude_agent_sdk import (
    AssistantMessage,
    CLIConnectionError,
    CLIJSONDecodeError,
    CLINotFoundError,
    ClaudeSDKError,
    ClaudeAgentOptions,
    ProcessError,
    ResultMessage,
    TextBlock,
    query,
)

from sop_rag.config import Settings
from sop_rag.errors import (
    ConfigurationError,
    IndexUnavailable,
    InvalidInput,
    ProviderUnavailable,
)
from sop_rag.models.rag import ChatAnswer, ConversationTurn, SearchResult
from sop_rag.services.retrieval_service import RetrievalOrchestrator

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = (
    "I apologize, but I encountered an error processing your request. "
    "Please try again."
)
EMPTY_RESPONSE = "I apologize, but I was unable to generate a response."
CONTEXT_SEPARATOR = "\n\n---\n\n"
ALLOWED_ROLES = {"user", "assistant", "system"}

_SCOPE_PATTERN = re.compile(r"^[a-zA-Z0-9 _-]+$")

SYSTEM_PROMPT_TEMPLATE = """\
You are a helpful operations assistant for {organization}. \
You help staff with SOPs (Standard Operating Procedures), policies, and \
operational questions.
{context_block}
Guidelines:
- Be concise and helpful
- Reference specific SOPs when applicable
- If the question isn't covered by available SOPs, provide general best practices
- Format responses with bullet points or numbered lists when appropriate
- If you don't know something, say so honestly"""


# --- Input normalization ---


def normalize_message(message: Any, max_length: int = 2000) -> str:
    if not isinstance(message, str):
        raise InvalidInput(f"Message is required and must be under {max_length} characters.")
    trimmed = message.strip()
    if not trimmed or len(trimmed) > max_length:
        raise InvalidInput(f"Message is required and must be under {max_length} characters.")
    return trimmed


def normalize_scope(scope: Any, max_length: int = 64) -> str | None:
    if scope is None:
        return None
    if not isinstance(scope, str):
        raise InvalidInput("Invalid department value")
    trimmed = scope.strip()
    if not trimmed:
        return None
    if len(trimmed) > max_length or not _SCOPE_PATTERN.match(trimmed):
        raise InvalidInput("Invalid department value")
    return trimmed


def normalize_history(
    history: Any, max_turns: int = 10, max_content_length: int = 1000
) -> list[ConversationTurn]:
    """Keep the trailing ``max_turns`` entries and silently drop malformed ones."""
    if history is None:
        return []
    if not isinstance(history, list):
        raise InvalidInput("History must be an array")

    turns = []
    for entry in history[-max_turns:]:
        if not isinstance(entry, dict):
            continue
        role = entry.get("role")
        content = entry.get("content")
        if role not in ALLOWED_ROLES or not isinstance(content, str):
            continue
        content = content.strip()
        if not content or len(content) > max_content_length:
            continue
        turns.append(ConversationTurn(role=role, content=content))
    return turns


# --- Prompt assembly ---


def format_context(results: list[SearchResult]) -> str:
    return CONTEXT_SEPARATOR.join(
        f"[{r.document_title} - {r.section_title}]\n{r.content}" for r in results
    )


def build_system_prompt(context: str, organization: str) -> str:
    context_block = (
        f"\nUse the following SOP content to answer questions:\n\n{context}\n"
        if context
        else ""
    )
    return SYSTEM_PROMPT_TEMPLATE.format(
        organization=organization, context_block=context_block
    )


def build_prompt(message: str, history: list[ConversationTurn], max_turns: int = 5) -> str:
    """Render the trailing history as a transcript followed by the new message."""
    recent = history[-max_turns:] if max_turns > 0 else []
    if not recent:
        return message
    lines = ["Conversation so far:"]
    for turn in recent:
        lines.append(f"{turn.role.capitalize()}: {turn.content}")
    lines.append("")
    lines.append(f"User: {message}")
    return "\n".join(lines)


class AnswerSynthesizer:
    def __init__(self, orchestrator: RetrievalOrchestrator, settings: Settings) -> None:
        self.orchestrator = orchestrator
        self.settings = settings

    async def answer(
        self, message: Any, history: Any = None, scope: Any = None
    ) -> ChatAnswer:
        s = self.settings
        message = normalize_message(message, s.max_message_length)
        scope = normalize_scope(scope, s.max_scope_length)
        turns = normalize_history(history, s.max_history_turns, s.max_history_content_length)

        if not s.anthropic_api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY not configured")

        logger.info(
            "=== Chat request: scope=%r history=%d turns message=%r ===",
            scope,
            len(turns),
            message[:100],
        )
        sources = await self._retrieve_context(message, scope)
        system_prompt = build_system_prompt(format_context(sources), s.organization_name)
        prompt = build_prompt(message, turns, s.history_prompt_turns)

        try:
            response = await self._complete(system_prompt, prompt)
        except ProviderUnavailable:
            logger.exception("Chat completion failed, returning fallback response")
            return ChatAnswer(response=FALLBACK_RESPONSE, sources=[])

        return ChatAnswer(response=response, sources=sources)

    async def _retrieve_context(self, message: str, scope: str | None) -> list[SearchResult]:
        try:
            outcome = await self.orchestrator.retrieve(
                message,
                scope=scope,
                limit=self.settings.chat_context_limit,
                threshold=self.settings.chat_context_threshold,
            )
        except IndexUnavailable:
            logger.exception("Context retrieval failed, answering without SOP context")
            return []
        logger.info(
            "Context: %d sections via %s search", len(outcome.results), outcome.route
        )
        return outcome.results

    async def _complete(self, system_prompt: str, prompt: str) -> str:
        options = ClaudeAgentOptions(
            system_prompt=system_prompt,
            model=self.settings.chat_model,
            max_turns=1,
            allowed_tools=[],
            permission_mode="bypassPermissions",
            env={"ANTHROPIC_API_KEY": self.settings.anthropic_api_key},
        )
        logger.debug("System prompt (%d chars):\n%s", len(system_prompt), system_prompt)

        text_parts: list[str] = []
        result_text: str | None = None
        try:
            async for message in query(prompt=prompt, options=options):
                if isinstance(message, AssistantMessage):
                    for block in message.content:
                        if isinstance(block, TextBlock):
                            text_parts.append(block.text)
                elif isinstance(message, ResultMessage):
                    logger.info(
                        "ResultMessage: duration=%dms cost=$%.4f is_error=%s",
                        message.duration_ms or 0,
                        message.total_cost_usd or 0,
                        message.is_error,
                    )
                    if message.is_error:
                        raise ProviderUnavailable(
                            message.result or "Chat provider returned an error"
                        )
                    result_text = message.result
        except ProviderUnavailable:
            raise
        except CLINotFoundError as e:
            raise ProviderUnavailable("Claude Code CLI not found") from e
        except CLIConnectionError as e:
            if result_text is None:
                raise ProviderUnavailable(f"Failed to connect to Claude CLI: {e}") from e
            logger.warning("CLIConnectionError after result received (ignoring): %s", e)
        except BaseExceptionGroup as eg:
            # The SDK task group can wrap CLIConnectionError in an ExceptionGroup
            # during query.close(), after the result has already arrived.
            cli_errors = eg.subgroup(CLIConnectionError)
            if cli_errors and result_text is not None:
                logger.warning(
                    "CLIConnectionError in task group after result (ignoring): %s",
                    cli_errors.exceptions[0],
                )
            elif cli_errors:
                raise ProviderUnavailable(
                    f"Failed to connect to Claude CLI: {cli_errors.exceptions[0]}"
                ) from eg
            elif isinstance(eg, Exception):
                raise ProviderUnavailable(f"Chat provider failed: {eg}") from eg
            else:
                raise
        except ProcessError as e:
            raise ProviderUnavailable(f"Chat process failed: {e}") from e
        except CLIJSONDecodeError as e:
            raise ProviderUnavailable(f"Failed to parse chat response: {e}") from e
        except ClaudeSDKError as e:
            raise ProviderUnavailable(f"Chat provider error: {e}") from e
        except Exception as e:
            logger.exception("Unexpected error from chat provider")
            raise ProviderUnavailable(f"Chat provider failed: {type(e).__name__}") from e

        text = (result_text or "".join(text_parts)).strip()
        return text or EMPTY_RESPONSE
