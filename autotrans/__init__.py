"""RPG Maker MV/MZ auto-translator — batch LLM localization of game data."""

import re

__version__ = "1.0.0"

# RPG Maker inline escape codes.  Bracketed codes are case-insensitive in
# the engine (\c[2] == \C[2]); bare letter escapes are matched upper-case only
# so a literal "\n" in prose is never swallowed.
CONTROL_CODE_RE = re.compile(
    r'\\(?i:FS|PX|PY|[VNPCIG])\[\d+\]'   # \V[n] \N[n] \P[n] \C[n] \I[n] \G[n] \FS[n] \PX[n] \PY[n]
    r'|\\[.|!><^${}\\]'                  # \. \| \! \> \< \^ \$ \{ \} \\
    r'|\\[CFHKG]'                        # bare plugin / currency escapes
)
