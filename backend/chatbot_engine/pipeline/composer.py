"""Prompt assembly and answer generation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from chatbot_engine.core.logging import get_logger
from chatbot_engine.llm.client import GenerativeClient
from chatbot_engine.models.entities import Chatbot
from chatbot_engine.pipeline.history import NEW_CONVERSATION, is_new_conversation

logger = get_logger(__name__)

NO_INFORMATION_REPLY = "I don't have information about that"
DEFAULT_DIRECTIVE = "You are a helpful, knowledgeable assistant."

GROUNDED_PROMPT = """{directive}

Answer the user's question using ONLY the CONTEXT below.

RULES:
1. Use nothing but the context; do not rely on outside knowledge.
2. Combine information from every relevant chunk and be specific about features, pricing and timelines.
3. If the context does not contain the answer, reply exactly: "{refusal}."
4. Do not mention chunk numbers, relevance scores or sources.
5. Keep a helpful, conversational tone.

CONTEXT:
{context}

CONVERSATION HISTORY:
{history}
{actions}
USER QUESTION: {question}

ANSWER:"""

OPEN_PROMPT = """{system_prompt}

You're having a conversation with a user. They may ask about services, features, or general questions.

CONVERSATION HISTORY:
{history}
{actions}
USER: {question}

ASSISTANT:"""

GUIDELINES = """Guidelines:
- Be conversational and helpful
- Provide specific details when available
- If you're unsure, say so clearly
- Stay professional but friendly"""


class AnswerMode(str, Enum):
    GROUNDED = "grounded"
    OPEN = "open"


@dataclass(slots=True)
class ComposedAnswer:
    text: str
    mode: AnswerMode
    prompt: str


class AnswerComposer:
    """Builds the grounded or open prompt and invokes the chatbot's model.

    Generation errors propagate as ProviderError.
    """

    def __init__(self, client: GenerativeClient, default_model: str) -> None:
        self.client = client
        self.default_model = default_model

    def compose(
        self,
        chatbot: Chatbot,
        message: str,
        context: str,
        annotations: str = "",
        history: str = NEW_CONVERSATION,
    ) -> ComposedAnswer:
        mode, prompt = build_prompt(chatbot, message, context, annotations, history)
        model_id = chatbot.model_id or self.default_model
        logger.info("Composing answer", extra={"ctx_mode": mode.value, "ctx_chatbot_id": chatbot.id})
        text = self.client.generate(
            model_id,
            prompt,
            chatbot.max_tokens,
            chatbot.temperature,
            purpose="answer",
        )
        return ComposedAnswer(text=text.strip(), mode=mode, prompt=prompt)


def build_prompt(
    chatbot: Chatbot,
    message: str,
    context: str,
    annotations: str = "",
    history: str = NEW_CONVERSATION,
) -> tuple[AnswerMode, str]:
    history_block = NEW_CONVERSATION if is_new_conversation(history) else history
    actions_block = f"\n{annotations.strip()}\n" if annotations.strip() else ""
    if context.strip():
        prompt = GROUNDED_PROMPT.format(
            directive=chatbot.directive or DEFAULT_DIRECTIVE,
            refusal=NO_INFORMATION_REPLY,
            context=context,
            history=history_block,
            actions=actions_block,
            question=message,
        )
        return AnswerMode.GROUNDED, prompt
    prompt = OPEN_PROMPT.format(
        system_prompt=system_prompt(chatbot),
        history=history_block,
        actions=actions_block,
        question=message,
    )
    return AnswerMode.OPEN, prompt


def system_prompt(chatbot: Chatbot) -> str:
    base = chatbot.directive or DEFAULT_DIRECTIVE
    personality = f"\n\nYour personality: {chatbot.description}" if chatbot.description else ""
    return f"{base}{personality}\n\n{GUIDELINES}"


__all__ = [
    "NO_INFORMATION_REPLY",
    "AnswerMode",
    "AnswerComposer",
    "ComposedAnswer",
    "build_prompt",
    "system_prompt",
]
