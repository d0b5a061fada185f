"""Recognise and strip the machine-generated text Claude Code injects into user turns.

Used to pick a human-readable preview for each conversation: tool results,
interrupted-request markers, hook output and system reminders are not
something the user typed.
"""

import re

_NOISE_PATTERNS = [
    re.compile(r"^\[Request interrupted"),
    re.compile(r"^<local-command-caveat>"),
    re.compile(r"^<local-command-stdout>"),
    re.compile(r"^<bash-input>"),
    re.compile(r"^<bash-stdout>"),
    re.compile(r"^<bash-stderr>"),
    re.compile(r"^<user-prompt-submit-hook>"),
    re.compile(r"^<system-reminder>"),
]

_STRIP_PATTERNS = [
    re.compile(r"<local-command-caveat>[^<]*</local-command-caveat>"),
    re.compile(r"<local-command-stdout>[^<]*</local-command-stdout>"),
    re.compile(r"<command-name>[^<]*</command-name>"),
    re.compile(r"<command-message>[^<]*</command-message>"),
    re.compile(r"<command-args>[^<]*</command-args>"),
    re.compile(r"<system-reminder>.*?</system-reminder>", re.DOTALL),
]

_COMMAND_NAME_RE = re.compile(r"<command-name>([^<]+)</command-name>")
_COMMAND_MESSAGE_RE = re.compile(r"<command-message>([^<]+)</command-message>")

_SKILL_MARKER = "Base directory for this skill:"


def is_noise_content(text: str) -> bool:
    stripped = text.strip()
    return any(p.match(stripped) for p in _NOISE_PATTERNS)


def extract_command(text: str) -> str | None:
    """Return the slash command a command-tagged message invoked."""
    match = _COMMAND_NAME_RE.search(text)
    if match:
        return match.group(1).strip()

    match = _COMMAND_MESSAGE_RE.search(text)
    if match:
        cmd = match.group(1).strip()
        return cmd if cmd.startswith("/") else f"/{cmd}"

    return None


def extract_skill_trigger(text: str) -> str | None:
    """Return ``/skill-name`` for a skill-loading message."""
    first_line = text.strip().split("\n", 1)[0]
    if _SKILL_MARKER not in first_line:
        return None
    path = first_line.split(":")[-1].strip().rstrip("/")
    name = path.split("/")[-1]
    return f"/{name}" if name else None


def clean_user_input(text: str) -> str:
    """Strip system tags, collapsing command and skill messages to their trigger."""
    cleaned = text.strip()

    if "<command-name>" in cleaned or "<command-message>" in cleaned:
        cmd = extract_command(cleaned)
        if cmd:
            return cmd

    if _SKILL_MARKER in cleaned:
        trigger = extract_skill_trigger(cleaned)
        if trigger:
            return trigger

    for pattern in _STRIP_PATTERNS:
        cleaned = pattern.sub("", cleaned)

    return cleaned.strip()


def extract_user_text(content) -> str:
    """Extract plain text from a user message's content (ignoring tool_results)."""
    if isinstance(content, str):
        return content

    parts = []
    if isinstance(content, list):
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                text = block.get("text")
                if isinstance(text, str):
                    parts.append(text)
            elif isinstance(block, str):
                parts.append(block)
    return "\n".join(parts)


def is_real_user_input(content) -> bool:
    """Return True if the content is something the user actually typed."""
    if isinstance(content, str):
        text = content.strip()
        return bool(text) and not is_noise_content(text)

    if isinstance(content, list):
        for block in content:
            if not isinstance(block, dict):
                continue
            block_type = block.get("type")
            if block_type == "tool_result":
                return False
            if block_type == "text":
                text = block.get("text")
                if isinstance(text, str) and text.strip() and not is_noise_content(text):
                    return True

    return False
