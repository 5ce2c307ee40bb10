"""RPG Maker MV/MZ data-file classification and text location.

Walks map files, CommonEvents.json and database tables, producing an
ordered list of TextRecords that point at every translatable string.
Each asset kind has its own traversal function, chosen once from the
filename; the order of records follows the document (outer index first,
then inner structures) so paths can be written back unambiguously.
"""

import json
import logging
import re
from enum import Enum
from typing import Optional

from . import CONTROL_CODE_RE, control_codes
from .path_address import Index, Key
from .project_model import RecordKind, TextRecord

log = logging.getLogger(__name__)

# RPG Maker event command codes that contain translatable text
CODE_SHOW_TEXT = 401          # Show Text line — parameters[0] is text
CODE_SHOW_CHOICES = 102       # Show Choices — parameters[0] is list of strings
CODE_SCROLL_TEXT = 405        # Scroll Text line — parameters[0] is text
CODE_CHANGE_NAME = 320        # Change Actor Name — params[0]=actorId, params[1]=name
CODE_CHANGE_NICKNAME = 324    # Change Actor Nickname — params[1]=nickname
CODE_CHANGE_PROFILE = 325     # Change Actor Profile — params[1]=profile

# Codes whose parameters are game logic (variable ids, operands, JS) even
# when they sit next to dialogue.  Never read, listed for reference.
CODE_INPUT_NUMBER = 103
CODE_COMMON_EVENT = 117
CODE_CONTROL_VARIABLES = 122  # params[3] == 4 -> params[4] is a script expression
CODE_SCRIPT = 355
CODE_SCRIPT_CONT = 655
CODE_PLUGIN_COMMAND_MV = 356
CODE_PLUGIN_COMMAND_MZ = 357
LOGIC_CODES = frozenset({
    CODE_INPUT_NUMBER, CODE_COMMON_EVENT, CODE_CONTROL_VARIABLES,
    CODE_SCRIPT, CODE_SCRIPT_CONT, CODE_PLUGIN_COMMAND_MV, CODE_PLUGIN_COMMAND_MZ,
})

_DIALOGUE_CODES = (CODE_SHOW_TEXT, CODE_SCROLL_TEXT)
_ACTOR_CHANGE_KINDS = {
    CODE_CHANGE_NAME: RecordKind.NAME,
    CODE_CHANGE_NICKNAME: RecordKind.NICKNAME,
    CODE_CHANGE_PROFILE: RecordKind.PROFILE,
}

# Database files recognised by filename prefix (lower-case)
DATABASE_PREFIXES = (
    "actors", "classes", "skills", "items", "weapons", "armors",
    "enemies", "troops", "states", "animations", "tilesets", "system",
)
MAP_PREFIX = "map"
COMMON_EVENTS_FILE = "commonevents.json"

# Row fields of database tables: (field, kind, toggle attribute)
_ROW_FIELDS = (
    ("name", RecordKind.NAME, "translate_names"),
    ("nickname", RecordKind.NICKNAME, "translate_names"),
    ("profile", RecordKind.PROFILE, "translate_descriptions"),
    ("description", RecordKind.DESCRIPTION, "translate_descriptions"),
    ("note", RecordKind.NOTE, "translate_descriptions"),
)
_MESSAGE_FIELDS = ("message1", "message2", "message3", "message4")

# System.json name arrays (battle menus and equipment screens)
_SYSTEM_TYPE_ARRAYS = ("elements", "skillTypes", "weaponTypes", "armorTypes", "equipTypes")
_SYSTEM_TERM_ARRAYS = ("basic", "commands", "params")

# Strings made only of digits, whitespace and punctuation
_NON_TEXT_RE = re.compile(r'^[\d\s\W_]*$')

# Lightweight "already in the target script" tests
_TARGET_SCRIPT_PATTERNS = {
    "vi": re.compile(r'[àáảãạăằắẳẵặâầấẩẫậèéẻẽẹêềếểễệìíỉĩịòóỏõọôồốổỗộơờớởỡợùúủũụưừứửữựỳýỷỹỵđ]',
                     re.IGNORECASE),
    "zh": re.compile(r'[\u4e00-\u9fff]'),
    "ja": re.compile(r'[\u3040-\u309f\u30a0-\u30ff]'),
    "ko": re.compile(r'[\uac00-\ud7af]'),
    "ru": re.compile(r'[\u0400-\u04ff]'),
    "uk": re.compile(r'[\u0400-\u04ff]'),
    "th": re.compile(r'[\u0e00-\u0e7f]'),
}
# English is "already translated" only when the whole string is plain ASCII
_ENGLISH_RE = re.compile(r'^[a-zA-Z0-9\s.,!?\'"()-]+$')


class AssetKind(Enum):
    MAP = "map"
    COMMON_EVENTS = "common_events"
    DATABASE = "database"


def classify(filename: str) -> Optional[AssetKind]:
    """Return the asset kind for a data filename, or None if unrecognised."""
    lower = filename.replace("\\", "/").rsplit("/", 1)[-1].lower()
    if lower.startswith(MAP_PREFIX):
        return AssetKind.MAP
    if lower == COMMON_EVENTS_FILE:
        return AssetKind.COMMON_EVENTS
    if lower.startswith(DATABASE_PREFIXES):
        return AssetKind.DATABASE
    return None


def detect_engine(document) -> str:
    """Guess whether a parsed data file came from MZ or MV.

    MZ exports carry ``_name``-style keys on the root object or rows.
    """
    if isinstance(document, dict) and "_name" in document:
        return "mz"
    if isinstance(document, list):
        first = next((row for row in document if isinstance(row, dict)), None)
        if first is not None and "_name" in first:
            return "mz"
    return "mv"


def has_target_language(text: str, target_language: str) -> bool:
    """Check whether text already looks like it is in the target language.

    A per-script character test, not language detection: best effort only.
    """
    if target_language == "en":
        return bool(_ENGLISH_RE.match(text))
    pattern = _TARGET_SCRIPT_PATTERNS.get(target_language)
    return bool(pattern and pattern.search(text))


def should_translate(text, config) -> bool:
    """Decide whether a located value is worth sending for translation."""
    if not isinstance(text, str) or not text.strip():
        return False
    if config.skip_translated and has_target_language(text, config.target_language):
        return False
    # Digits/punctuation only, once engine escapes are ignored
    if _NON_TEXT_RE.match(CONTROL_CODE_RE.sub("", text)):
        return False
    return True


# ── Record construction ───────────────────────────────────────────

def _make_record(kind: str, path: tuple, text: str, config) -> TextRecord:
    if config.preserve_formatting:
        codes = control_codes.extract_codes(text)
        masked = control_codes.mask(text) if codes else text
    else:
        codes, masked = [], text
    return TextRecord(kind=kind, path=path, original=text,
                      masked_text=masked, codes=codes)


def _add(records: list, kind: str, path: tuple, value, config):
    if should_translate(value, config):
        records.append(_make_record(kind, path, value, config))


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


# ── Event command lists (maps, common events, troop pages) ────────

def _locate_commands(cmd_list, base: tuple, config) -> list:
    """Extract text from one event command list."""
    records = []
    for ci, cmd in enumerate(_as_list(cmd_list)):
        if not isinstance(cmd, dict):
            continue
        code = cmd.get("code")
        if code in LOGIC_CODES:
            continue
        params = _as_list(cmd.get("parameters"))
        if not params:
            continue
        param_path = base + (Index(ci), Key("parameters"))

        if code in _DIALOGUE_CODES:
            if config.translate_dialogue:
                _add(records, RecordKind.DIALOGUE, param_path + (Index(0),),
                     params[0], config)

        elif code == CODE_SHOW_CHOICES:
            if config.translate_dialogue:
                for choice_idx, choice in enumerate(_as_list(params[0])):
                    _add(records, RecordKind.CHOICE,
                         param_path + (Index(0), Index(choice_idx)), choice, config)

        elif code in _ACTOR_CHANGE_KINDS and len(params) > 1:
            kind = _ACTOR_CHANGE_KINDS[code]
            toggle = (config.translate_descriptions if kind == RecordKind.PROFILE
                      else config.translate_names)
            if toggle:
                _add(records, kind, param_path + (Index(1),), params[1], config)
    return records


# ── Per-kind traversals ───────────────────────────────────────────

def _locate_map(document, config) -> list:
    """Map###.json: events -> pages -> list, then displayName."""
    records = []
    if not isinstance(document, dict):
        return records

    for ei, event in enumerate(_as_list(document.get("events"))):
        if not isinstance(event, dict):
            continue  # Event slot 0 and deleted events are null
        for pi, page in enumerate(_as_list(event.get("pages"))):
            if not isinstance(page, dict):
                continue
            records.extend(_locate_commands(
                page.get("list"),
                (Key("events"), Index(ei), Key("pages"), Index(pi), Key("list")),
                config))

    if config.translate_names:
        _add(records, RecordKind.NAME, (Key("displayName"),),
             document.get("displayName"), config)
    return records


def _locate_common_events(document, config) -> list:
    """CommonEvents.json: each entry's name, then its command list."""
    records = []
    for ei, event in enumerate(_as_list(document)):
        if not isinstance(event, dict):
            continue
        if config.translate_names:
            _add(records, RecordKind.NAME, (Index(ei), Key("name")),
                 event.get("name"), config)
        records.extend(_locate_commands(
            event.get("list"), (Index(ei), Key("list")), config))
    return records


def _locate_row(row: dict, base: tuple, config) -> list:
    records = []
    for fld, kind, toggle in _ROW_FIELDS:
        if getattr(config, toggle):
            _add(records, kind, base + (Key(fld),), row.get(fld), config)
    if config.translate_descriptions:
        for fld in _MESSAGE_FIELDS:
            _add(records, RecordKind.MESSAGE, base + (Key(fld),), row.get(fld), config)
    # Troops: battle event pages share the map page structure
    for pi, page in enumerate(_as_list(row.get("pages"))):
        if isinstance(page, dict):
            records.extend(_locate_commands(
                page.get("list"), base + (Key("pages"), Index(pi), Key("list")),
                config))
    return records


def _locate_system(document: dict, config) -> list:
    """System.json: game title, type names and UI terms."""
    records = []
    if config.translate_names:
        for fld in ("gameTitle", "currencyUnit"):
            _add(records, RecordKind.NAME, (Key(fld),), document.get(fld), config)
        for arr_name in _SYSTEM_TYPE_ARRAYS:
            for i, val in enumerate(_as_list(document.get(arr_name))):
                _add(records, RecordKind.NAME, (Key(arr_name), Index(i)), val, config)

    terms = document.get("terms")
    if not isinstance(terms, dict):
        return records
    if config.translate_names:
        for arr_name in _SYSTEM_TERM_ARRAYS:
            for i, val in enumerate(_as_list(terms.get(arr_name))):
                _add(records, RecordKind.NAME,
                     (Key("terms"), Key(arr_name), Index(i)), val, config)
    if config.translate_descriptions:
        # Dict in MV, list in MZ
        messages = terms.get("messages")
        if isinstance(messages, dict):
            for key, msg in messages.items():
                _add(records, RecordKind.MESSAGE,
                     (Key("terms"), Key("messages"), Key(key)), msg, config)
        else:
            for i, msg in enumerate(_as_list(messages)):
                _add(records, RecordKind.MESSAGE,
                     (Key("terms"), Key("messages"), Index(i)), msg, config)
    return records


def _locate_database(document, config) -> list:
    """Database tables: one row per id; System.json is a single object."""
    if isinstance(document, dict):
        return _locate_system(document, config)
    records = []
    for ri, row in enumerate(_as_list(document)):
        if isinstance(row, dict):
            records.extend(_locate_row(row, (Index(ri),), config))
    return records


_LOCATORS = {
    AssetKind.MAP: _locate_map,
    AssetKind.COMMON_EVENTS: _locate_common_events,
    AssetKind.DATABASE: _locate_database,
}


def locate(document, kind: AssetKind, config) -> list:
    """Return the ordered TextRecords for a document of the given kind."""
    records = _LOCATORS[kind](document, config)
    log.debug("Located %d %s text(s)", len(records), kind.value)
    return records


# ── File helpers ──────────────────────────────────────────────────

def load_document(path: str):
    """Read a data file as JSON."""
    with open(path, "r", encoding="utf-8-sig") as f:
        return json.load(f)


def save_document(path: str, document):
    """Write a data file the way the editor's exporter would."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(document, f, ensure_ascii=False, indent=2)
