"""Turns raw LLM completion text into validated recipes.

Models are told to answer with bare JSON, but what comes back varies by
vendor and by mood: markdown fences, a chatty sentence before the payload,
an unrequested ``{"recipes": [...]}`` envelope. The normalizer is lenient
about that framing and strict about the payload: a candidate is accepted only
once it passes the validator, and a parseable-but-invalid candidate just moves
the chain on to the next strategy.

Pure and stateless: no I/O, no retries.
"""
import json
import logging
import re
from enum import Enum

from moodbite.core.schemas import Mode, RECIPES_PER_BATCH
from moodbite.core.validator import ValidationError, validate_recipe, validate_recipe_array

log = logging.getLogger(__name__)

MAX_EXCERPT_CHARS = 500

_FENCE_RE = re.compile(r"```[ \t]*[A-Za-z0-9_-]*[ \t]*\r?\n?(.*?)```", re.DOTALL)
_CLOSERS = {"{": "}", "[": "]"}


class NormalizationErrorKind(str, Enum):
    NO_JSON_FOUND = "no_json_found"
    SCHEMA_MISMATCH = "schema_mismatch"


class NormalizationError(Exception):
    def __init__(self, kind, raw_text, validation_error=None):
        self.kind = NormalizationErrorKind(kind)
        self.raw_excerpt = excerpt(raw_text)
        self.validation_error = validation_error
        if self.kind is NormalizationErrorKind.NO_JSON_FOUND:
            msg = "No JSON payload found in model response"
        else:
            msg = f"Model response did not match the recipe schema ({validation_error})"
        super().__init__(msg)

    def to_dict(self):
        d = {"kind": self.kind.value, "raw_excerpt": self.raw_excerpt}
        if self.validation_error is not None:
            d["validation"] = self.validation_error.to_dict()
        return d


def excerpt(text, limit=MAX_EXCERPT_CHARS):
    text = text or ""
    if len(text) <= limit:
        return text
    return text[:limit] + "…"


# --- EXTRACTION STRATEGIES ---
# Each yields candidate JSON strings, most literal reading first.

def direct(text):
    yield text.strip()


def fenced_blocks(text):
    for match in _FENCE_RE.finditer(text):
        yield match.group(1).strip()


def bracket_scan(text):
    openers = sorted((text.find(o), o) for o in _CLOSERS if text.find(o) != -1)
    for start, opener in openers:
        end = text.rfind(_CLOSERS[opener])
        if end > start:
            yield text[start:end + 1]


STRATEGIES = [direct, fenced_blocks, bracket_scan]


# --- ENVELOPE UNWRAPPING ---

def unwrap_envelope(value, mode):
    """Yields inner values that may hold the real payload."""
    if mode is Mode.GENERATE:
        if isinstance(value, dict):
            for v in value.values():
                if isinstance(v, list):
                    yield v
                    return
    else:
        if isinstance(value, dict):
            for v in value.values():
                if isinstance(v, dict):
                    try:
                        validate_recipe(v)
                    except ValidationError:
                        continue
                    yield v
                    return
        elif isinstance(value, list) and len(value) == 1:
            # array-shaped response schema around a single recipe
            yield value[0]


def _validate_for_mode(value, mode, expected_count):
    if mode is Mode.GENERATE:
        return validate_recipe_array(value, expected_count=expected_count)
    return validate_recipe(value)


def _parse(candidate):
    try:
        return True, json.loads(candidate, strict=False)
    except (ValueError, RecursionError):
        return False, None


def normalize(text, mode, expected_count=RECIPES_PER_BATCH):
    """Returns a Recipe (adjust) or a list of Recipe (generate).

    Raises NormalizationError when no strategy yields a schema-valid payload.
    """
    mode = Mode(mode)
    text = text or ""

    seen = set()
    parsed_any = False
    first_error = None

    for strategy in STRATEGIES:
        for candidate in strategy(text):
            if not candidate or candidate in seen:
                continue
            seen.add(candidate)

            ok, value = _parse(candidate)
            if not ok:
                continue
            parsed_any = True

            error = None
            for option in [value, *unwrap_envelope(value, mode)]:
                try:
                    result = _validate_for_mode(option, mode, expected_count)
                except ValidationError as e:
                    error = e
                    continue
                log.debug("Normalized %s response via %s", mode.value, strategy.__name__)
                return result

            if first_error is None:
                first_error = error

    if not parsed_any:
        log.warning("No JSON found in %s response (%d chars)", mode.value, len(text))
        raise NormalizationError(NormalizationErrorKind.NO_JSON_FOUND, text)

    log.warning("Schema mismatch in %s response: %s", mode.value, first_error)
    raise NormalizationError(NormalizationErrorKind.SCHEMA_MISMATCH, text, validation_error=first_error)
