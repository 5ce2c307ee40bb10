"""Control code masking — keeps engine escapes out of the translator's reach.

RPG Maker text carries inline escapes (``\\C[2]`` colour, ``\\N[1]`` actor
name, ``\\!`` wait for input, ...).  Before a string is sent for translation
every escape is replaced with the same neutral placeholder; after the reply
comes back the escapes are put back in their original order.
"""

import logging
from typing import NamedTuple

from . import CONTROL_CODE_RE

log = logging.getLogger(__name__)

PLACEHOLDER = "{{CODE}}"


class ControlCode(NamedTuple):
    """One escape sequence found in a source string."""
    code: str       # Verbatim substring, e.g. "\\C[2]"
    position: int   # Offset in the original string


def extract_codes(text: str) -> list:
    """Return every control code in ``text``, first to last."""
    if not text:
        return []
    return [ControlCode(m.group(0), m.start())
            for m in CONTROL_CODE_RE.finditer(text)]


def mask(text: str) -> str:
    """Replace every control code with ``PLACEHOLDER``."""
    if not text:
        return text
    return CONTROL_CODE_RE.sub(PLACEHOLDER, text)


def count_placeholders(text: str) -> int:
    return text.count(PLACEHOLDER) if text else 0


def restore(translated: str, codes: list) -> str:
    """Put control codes back into a translated string, left to right.

    Placeholders are consumed one-to-one in order.  When the translation
    lost placeholders the trailing codes are dropped; when it gained some,
    the surplus placeholders stay as-is rather than inventing a code.
    """
    if not codes or not translated:
        return translated
    pieces = translated.split(PLACEHOLDER)
    out = [pieces[0]]
    for i, piece in enumerate(pieces[1:]):
        out.append(codes[i].code if i < len(codes) else PLACEHOLDER)
        out.append(piece)
    dropped = len(codes) - (len(pieces) - 1)
    if dropped > 0:
        log.debug("Dropped %d trailing control code(s): %s",
                  dropped, "".join(c.code for c in codes[-dropped:]))
    return "".join(out)
