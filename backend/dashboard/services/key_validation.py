"""Format checks for API keys and account handles, per service."""
import re
from typing import Callable, Dict

from dashboard.services.settings_store import SettingValidationError

_OPENAI_MESSAGE = "Invalid OpenAI key format (should start with sk-)"
_AYRSHARE_RE = re.compile(r"^[A-Z0-9]{8}-[A-Z0-9]{8}-[A-Z0-9]{8}-[A-Z0-9]{8}$")
_USERNAME_RE = re.compile(r"^[a-zA-Z0-9._]{1,30}$")
_TWITTER_RE = re.compile(r"^@?[a-zA-Z0-9_]{1,15}$")
_TIKTOK_RE = re.compile(r"^@?[a-zA-Z0-9._]{2,24}$")
_BLUESKY_RE = re.compile(r"^@?[a-zA-Z0-9.-]+$")


def _claude(value: str) -> None:
    if not value.startswith("sk-ant-"):
        raise SettingValidationError("Invalid Claude key format (should start with sk-ant-)")


def _openai(value: str) -> None:
    if not value.startswith("sk-"):
        raise SettingValidationError(_OPENAI_MESSAGE)


def _ayrshare(value: str) -> None:
    if not _AYRSHARE_RE.match(value):
        raise SettingValidationError(
            "Invalid Ayrshare key format (should be XXXXXXXX-XXXXXXXX-XXXXXXXX-XXXXXXXX)"
        )


def _instagram(value: str) -> None:
    if not _USERNAME_RE.match(value):
        raise SettingValidationError(
            "Invalid Instagram username format (letters, numbers, dots, underscores only)"
        )


def _threads(value: str) -> None:
    if not _USERNAME_RE.match(value):
        raise SettingValidationError(
            "Invalid Threads username format (letters, numbers, dots, underscores only)"
        )


def _facebook(value: str) -> None:
    if len(value) < 2 or len(value) > 50:
        raise SettingValidationError("Facebook page name should be 2-50 characters")


def _twitter(value: str) -> None:
    if not _TWITTER_RE.match(value):
        raise SettingValidationError("Invalid Twitter handle format (@username, 1-15 characters)")


def _tiktok(value: str) -> None:
    if not _TIKTOK_RE.match(value):
        raise SettingValidationError("Invalid TikTok username format (@username, 2-24 characters)")


def _bluesky(value: str) -> None:
    if not _BLUESKY_RE.match(value) or len(value) < 2 or len(value) > 50:
        raise SettingValidationError("Invalid Bluesky handle format")


def _fallback(value: str) -> None:
    if len(value) < 2:
        raise SettingValidationError("Input seems too short")


VALIDATORS: Dict[str, Callable[[str], None]] = {
    "Claude AI": _claude,
    "GPT-4": _openai,
    "DALL-E 3": _openai,
    "Ayrshare": _ayrshare,
    "Instagram": _instagram,
    "Facebook": _facebook,
    "Twitter / X": _twitter,
    "Threads": _threads,
    "TikTok": _tiktok,
    "Bluesky": _bluesky,
}


def validate_key_format(service_name: str, value: str) -> str:
    """
    Check ``value`` against the known format for ``service_name``.

    Returns the stripped value; raises SettingValidationError with a
    user-facing message when the format does not match.
    """
    value = (value or "").strip()
    if not value:
        raise SettingValidationError("API key or account handle is required")
    VALIDATORS.get(service_name, _fallback)(value)
    return value
