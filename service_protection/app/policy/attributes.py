"""
Persisted protection attributes.

Each attribute stored per document is described once here: how a raw
stored value is sanitized, what a valid sanitized value looks like, how it
decodes into the policy's types and how a value is encoded for storage.
Policy construction and the settings editor iterate this schema instead of
switching on attribute names.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Tuple
from urllib.parse import urlsplit

from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .models import IdentityState, ItemMatchMode

REQUIRED_ITEMS = "required_items"
IDENTITY_STATE = "identity_state"
REDIRECT_TARGET = "redirect_target"
ITEM_MATCH_MODE = "item_match_mode"
CASCADES_TO_CHILDREN = "cascades_to_children"
OVERRIDES_INHERITANCE = "overrides_inheritance"

# Conditions are inherited together, never one by one
CONDITION_ATTRIBUTES: Tuple[str, ...] = (REQUIRED_ITEMS, ITEM_MATCH_MODE, IDENTITY_STATE)

_TAG_RE = re.compile(r"<[^>]*>")
_NON_DIGIT_RE = re.compile(r"[^0-9]+")
_URL_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9\-~+_.?#=!&;,/:%@$|*'()\[\]]")
_URL_ADAPTER = TypeAdapter(HttpUrl)


def sanitize_id(value: str) -> str:
    """Keep only the digits of an identifier."""
    return _NON_DIGIT_RE.sub("", value.strip())


def sanitize_string(value: str) -> str:
    """Trim, drop markup and strip control and non-ASCII characters."""
    value = _TAG_RE.sub("", value.strip())
    return "".join(ch for ch in value if 32 <= ord(ch) < 127)


def sanitize_url(value: str) -> str:
    """Drop unsafe characters; only http and https URLs survive."""
    value = _URL_UNSAFE_RE.sub("", value.strip())
    if not value:
        return ""
    if urlsplit(value).scheme.lower() not in ("http", "https"):
        return ""
    return value


def is_positive_id(value: str) -> bool:
    return value.isdigit() and int(value) > 0


def is_redirect_target(value: str) -> bool:
    """Empty means the fallback URL; anything else must be a real URL."""
    if value == "":
        return True
    try:
        _URL_ADAPTER.validate_python(value)
    except PydanticValidationError:
        return False
    return True


def _one_of(*choices: str) -> Callable[[str], bool]:
    return lambda value: value in choices


def encode_flag(value: Any) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def encode_value(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


@dataclass(frozen=True)
class AttributeSpec:
    """Contract of one persisted attribute."""
    name: str
    sanitize: Callable[[str], str]
    validate: Callable[[str], bool]
    decode: Callable[[str], Any]
    encode: Callable[[Any], str]
    default: Any
    multiple: bool = False

    @property
    def key(self) -> str:
        """Settings store key."""
        return self.name


ATTRIBUTES: Dict[str, AttributeSpec] = {
    attribute.name: attribute for attribute in (
        AttributeSpec(
            name=REQUIRED_ITEMS,
            sanitize=sanitize_id,
            validate=is_positive_id,
            decode=int,
            encode=encode_value,
            default=frozenset(),
            multiple=True,
        ),
        AttributeSpec(
            name=IDENTITY_STATE,
            sanitize=sanitize_string,
            validate=_one_of(*(state.value for state in IdentityState)),
            decode=IdentityState,
            encode=encode_value,
            default=IdentityState.ANY,
        ),
        AttributeSpec(
            name=REDIRECT_TARGET,
            sanitize=sanitize_url,
            validate=is_redirect_target,
            decode=str,
            encode=str,
            default="",
        ),
        AttributeSpec(
            name=ITEM_MATCH_MODE,
            sanitize=sanitize_string,
            validate=_one_of(*(mode.value for mode in ItemMatchMode)),
            decode=ItemMatchMode,
            encode=encode_value,
            default=ItemMatchMode.ANY,
        ),
        AttributeSpec(
            name=CASCADES_TO_CHILDREN,
            sanitize=sanitize_string,
            validate=_one_of("yes", "no"),
            decode=lambda value: value == "yes",
            encode=encode_flag,
            default=False,
        ),
        AttributeSpec(
            name=OVERRIDES_INHERITANCE,
            sanitize=sanitize_string,
            validate=_one_of("yes", "no"),
            decode=lambda value: value == "yes",
            encode=encode_flag,
            default=False,
        ),
    )
}


def get_attribute(name: str) -> AttributeSpec:
    """Look up an attribute contract, raising KeyError for unknown names."""
    return ATTRIBUTES[name]
