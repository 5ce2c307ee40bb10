"""Numbered-line batch protocol between the pipeline and the LLM.

A batch of records goes out as one user message::

    1. こんにちは{{CODE}}
    2. はい

and the model is asked to answer with the same numbering, one translation
per line.  Replies are never exact, so ``parse_response`` recovers exactly
one string per input line no matter what came back.
"""

import logging
import re
from dataclasses import dataclass

from .config import LANGUAGE_NAMES
from .control_codes import PLACEHOLDER

log = logging.getLogger(__name__)

# Stand-in for embedded newlines so each record stays on one protocol line
LINE_BREAK_TOKEN = "{{BR}}"

# "1. text", "2) text", "3 - text", "4: text"
_NUMBERED_RE = re.compile(r'^\d+\s*[.)\-:]\s*(.+)$')
_BARE_NUMBER_RE = re.compile(r'^\d+$')
# Reasoning blocks some models emit before the answer
_THINK_RE = re.compile(r'<think>.*?</think>\s*', re.DOTALL)
_FENCE_RE = re.compile(r'^\s*```[\w-]*\s*$')

SYSTEM_PROMPT = """You are a professional translator specializing in video game localization for RPG Maker games.

CRITICAL TRANSLATION RULES:
1. Translate from {source} to {target} naturally and accurately
2. Preserve the original meaning, tone, and character personality
3. Use appropriate gaming terminology in {target}
4. Keep game-specific terms consistent (HP, MP, stats names)
5. Maintain the emotional tone (serious, humorous, dramatic)
6. For character dialogue, use natural conversational {target}
7. For item/skill names, keep them concise and impactful
8. Preserve ALL {placeholder} placeholders exactly as they appear
9. Keep every {line_break} marker; it stands for a line break
10. Do NOT add any explanations, notes, or comments
11. Return ONLY the numbered translations, one per line

Context: These texts are from an RPG Maker game. Consider gaming conventions and player expectations when translating."""


@dataclass
class BatchRequest:
    """One prompt ready to send to the translation service."""
    system_instructions: str
    user_message: str
    count: int

    def messages(self) -> list:
        return [
            {"role": "system", "content": self.system_instructions},
            {"role": "user", "content": self.user_message},
        ]


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)


def _encode_line(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\n", LINE_BREAK_TOKEN)


def build_request(batch: list, source_lang: str, target_lang: str) -> BatchRequest:
    """Render a batch of records as a numbered translation request.

    Uses each record's ``masked_text`` (masking is done upstream).
    """
    source = language_name(source_lang)
    target = language_name(target_lang)
    text_list = "\n".join(
        f"{i}. {_encode_line(record.masked_text)}"
        for i, record in enumerate(batch, start=1)
    )
    system = SYSTEM_PROMPT.format(source=source, target=target,
                                  placeholder=PLACEHOLDER,
                                  line_break=LINE_BREAK_TOKEN)
    user = (
        f"Translate these {source} texts to {target}:\n\n"
        f"{text_list}\n\n"
        "Return the translations in the exact same numbered format (1., 2., 3...), "
        "one translation per line. No extra text."
    )
    return BatchRequest(system_instructions=system, user_message=user,
                        count=len(batch))


def _clean_response(text: str) -> str:
    """Strip reasoning blocks and markdown fences around the answer."""
    text = _THINK_RE.sub("", text)
    return "\n".join(line for line in text.split("\n")
                     if not _FENCE_RE.match(line))


def parse_response(text, expected_count: int) -> list:
    """Recover exactly ``expected_count`` translations from a reply.

    Numbered prefixes are stripped, bare numbers dropped, anything else is
    kept verbatim.  Missing lines become empty strings and surplus lines
    are cut, so position i always belongs to input record i.
    """
    if expected_count <= 0:
        return []
    translations = []
    if isinstance(text, str):
        for line in _clean_response(text).split("\n"):
            line = line.strip()
            if not line:
                continue
            m = _NUMBERED_RE.match(line)
            if m:
                translations.append(m.group(1).strip())
            elif not _BARE_NUMBER_RE.match(line):
                translations.append(line)

    if len(translations) != expected_count:
        log.debug("Batch reply had %d line(s), expected %d",
                  len(translations), expected_count)
    translations = translations[:expected_count]
    translations += [""] * (expected_count - len(translations))
    return [t.replace(LINE_BREAK_TOKEN, "\n") for t in translations]
