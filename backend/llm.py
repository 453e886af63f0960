"""Generative text adapter shared by the keyword, outline and enrichment stages.

Chat providers
--------------
``openai`` (default)
    ``langchain_openai.ChatOpenAI``.  Requires ``OPENAI_API_KEY``.
    Configure via ``OPENAI_CHAT_MODEL``.

``ollama``
    ``langchain_ollama.ChatOllama`` against the local Ollama server.
    Configure via ``OLLAMA_BASE_URL`` and ``OLLAMA_CHAT_MODEL``.

Set ``LLM_PROVIDER=ollama`` in your ``.env`` to switch providers.  Callers
only see :func:`complete`; prompt wording and response validation live with
the stage that owns them.
"""

from __future__ import annotations

from typing import Any

from langchain_core.messages import HumanMessage, SystemMessage

from backend.config import settings


def _get_llm(temperature: float, json_output: bool) -> Any:
    """Return a configured LangChain chat model based on ``settings``."""
    if settings.llm_provider == "ollama":
        from langchain_ollama import ChatOllama

        return ChatOllama(
            model=settings.ollama_chat_model,
            base_url=settings.ollama_base_url,
            temperature=temperature,
            format="json" if json_output else "",
        )

    from langchain_openai import ChatOpenAI

    llm = ChatOpenAI(
        model=settings.openai_chat_model,
        temperature=temperature,
        timeout=settings.request_timeout * 2,
    )
    if json_output:
        return llm.bind(response_format={"type": "json_object"})
    return llm


async def complete(
    system_prompt: str,
    user_prompt: str,
    *,
    json_output: bool = False,
    temperature: float = 0.3,
) -> str:
    """Send one system + user exchange to the chat model and return its text.

    Args:
        system_prompt: Instruction message.
        user_prompt: Payload message.
        json_output: Ask the provider for a strict JSON object response.
        temperature: Sampling temperature.

    Returns:
        The assistant message content as a plain string.

    Raises:
        Any provider / transport exception, unchanged.  Callers translate it
        into their own error type.
    """
    llm = _get_llm(temperature, json_output)
    response = await llm.ainvoke(
        [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]
    )
    content = response.content if hasattr(response, "content") else str(response)
    if isinstance(content, list):
        # Some providers return content blocks instead of a single string.
        content = "".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        )
    return content
