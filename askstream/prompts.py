"""Prompt assembly for ask requests."""

from __future__ import annotations

from typing import List, Optional, Sequence

from askstream.models import SYSTEM_ROLE, USER_ROLE, ImagePart, Message, TextPart

HISTORY_PLACEHOLDER = "{{CONVERSATION_HISTORY}}"
HISTORY_LINE_LIMIT = 30
NO_HISTORY_TEXT = "No conversation history available."

SCREEN_CONTEXT_REQUEST = (
    "Analyze the current screen and provide the most relevant help right now."
)
SCREEN_CONTEXT_QUESTION = "[Screen context]"

ANALYSIS_SYSTEM_PROMPT = """You are a real-time assistant running as an overlay on the user's desktop.
You see what the user sees: a screenshot of their screen (when available) and the
transcript of the conversation they are in.

Answer the user's request directly. Lead with the answer, keep it short, and use
markdown lists or code blocks only when they make the answer easier to scan.
If the request is ambiguous, answer the most likely interpretation based on the
screen and the conversation.
{preset_section}
<conversation_history>
{{CONVERSATION_HISTORY}}
</conversation_history>"""


def format_conversation_for_prompt(conversation_texts: Optional[Sequence[str]]) -> str:
    if not conversation_texts:
        return NO_HISTORY_TEXT
    return "\n".join(conversation_texts[-HISTORY_LINE_LIMIT:])


def build_system_prompt(preset_prompt: str, conversation_history: str) -> str:
    preset_section = ""
    if preset_prompt and preset_prompt.strip():
        preset_section = f"\n<user_instructions>\n{preset_prompt.strip()}\n</user_instructions>\n"
    template = ANALYSIS_SYSTEM_PROMPT.replace("{preset_section}", preset_section)
    return template.replace(HISTORY_PLACEHOLDER, conversation_history)


def build_ask_messages(
    system_prompt: str,
    user_request: str,
    screenshot_base64: Optional[str] = None,
) -> List[Message]:
    content: List = [TextPart(text=f"User Request: {user_request}")]
    if screenshot_base64:
        content.append(ImagePart.from_base64(screenshot_base64, "image/jpeg"))
    return [
        Message(role=SYSTEM_ROLE, content=system_prompt),
        Message(role=USER_ROLE, content=content),
    ]


def build_text_only_messages(system_prompt: str, user_request: str) -> List[Message]:
    return [
        Message(role=SYSTEM_ROLE, content=system_prompt),
        Message(role=USER_ROLE, content=f"User Request: {user_request}"),
    ]


__all__ = [
    "HISTORY_LINE_LIMIT",
    "NO_HISTORY_TEXT",
    "SCREEN_CONTEXT_QUESTION",
    "SCREEN_CONTEXT_REQUEST",
    "build_ask_messages",
    "build_system_prompt",
    "build_text_only_messages",
    "format_conversation_for_prompt",
]
