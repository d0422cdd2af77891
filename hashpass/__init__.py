"""HashPass -- deterministic site password derivation.

Core functions for validating the input fields and deriving a site-specific
password from them.  Nothing is stored: the same site, username, master
secret, phrase and settings always produce the same password.
"""

import asyncio
import hashlib
import inspect
import logging
import re
import string
from dataclasses import dataclass, field
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


# ── Errors ────────────────────────────────────────────────────────────────


class HashPassError(Exception):
    """Base class for every error raised by hashpass."""


class ValidationError(HashPassError, ValueError):
    """A single input field failed its format or length rule."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class InvalidConfiguration(HashPassError, ValueError):
    """No character class is enabled."""


class InvalidInput(HashPassError, ValueError):
    """Derivation was requested for input that does not validate."""

    def __init__(self, result: "ValidationResult"):
        super().__init__("; ".join(result.messages()))
        self.result = result


class DigestUnavailable(HashPassError, RuntimeError):
    """The hash function is missing, failed, or returned garbage."""


# ── Settings ──────────────────────────────────────────────────────────────

MIN_LENGTH = 4
MAX_LENGTH = 50


@dataclass(frozen=True)
class Configuration:
    """Character-class preferences and target length.

    The engine takes this as an immutable snapshot per call.  Length is not
    range-checked here; use :meth:`checked` (or :func:`validate_length`) at
    the point where user input turns into a configuration.
    """

    uppercase: bool = True
    lowercase: bool = True
    numbers: bool = True
    symbols: bool = False
    length: int = 8

    def checked(self) -> "Configuration":
        validate_length(self.length)
        return self

    def as_dict(self) -> dict:
        return {
            "uppercase": self.uppercase,
            "lowercase": self.lowercase,
            "numbers": self.numbers,
            "symbols": self.symbols,
            "length": self.length,
        }


DEFAULT_CONFIGURATION = Configuration()


@dataclass(frozen=True)
class DerivationInput:
    site: str
    secret: str
    username: str = ""
    phrase: str = ""


# ── Input validation ──────────────────────────────────────────────────────

# Browser whitespace (ECMAScript \s), not Python's: no \x1c-\x1f or \x85,
# but U+FEFF is included.
WHITESPACE = (
    "\t\n\v\f\r \u00a0\u1680\u2000-\u200a"
    "\u2028\u2029\u202f\u205f\u3000\ufeff"
)
_WHITESPACE_RUN = re.compile(f"[{WHITESPACE}]+")
_BLANK = re.compile(f"[{WHITESPACE}]*")
_TEXT_PATTERN = re.compile(f"[A-Za-z0-9{WHITESPACE}]*")
_USERNAME_PATTERN = re.compile(r"[A-Za-z0-9._-]*")

SECRET_MIN_LENGTH = 8
SECRET_MAX_LENGTH = 50


def _is_blank(value: str) -> bool:
    return _BLANK.fullmatch(value) is not None


def validate_site(value: str) -> None:
    if _is_blank(value):
        raise ValidationError("site", "Website name is required")
    if not _TEXT_PATTERN.fullmatch(value):
        raise ValidationError("site", "Only letters, numbers, and spaces are allowed")


def validate_username(value: str) -> None:
    """Usernames are optional; a blank value is always accepted."""
    if _is_blank(value):
        return
    if not _USERNAME_PATTERN.fullmatch(value):
        raise ValidationError(
            "username",
            "Only letters, numbers, dashes, underscores, and dots are allowed",
        )


def validate_secret(value: str) -> None:
    """Check the master secret.

    Rules are applied in a fixed order and the first failure wins: present,
    no whitespace, 8 to 50 characters, then at least one uppercase letter,
    lowercase letter, digit and symbol.
    """
    if not value:
        raise ValidationError("secret", "Master password is required")
    if _WHITESPACE_RUN.search(value):
        raise ValidationError("secret", "No spaces allowed")
    if len(value) < SECRET_MIN_LENGTH:
        raise ValidationError("secret", "Must be at least 8 characters long")
    if len(value) > SECRET_MAX_LENGTH:
        raise ValidationError("secret", "Must be 50 characters or less")

    missing = [
        name
        for name, present in (
            ("uppercase", re.search(r"[A-Z]", value)),
            ("lowercase", re.search(r"[a-z]", value)),
            ("numbers", re.search(r"[0-9]", value)),
            ("symbols", re.search(r"[^A-Za-z0-9]", value)),
        )
        if not present
    ]
    if missing:
        raise ValidationError(
            "secret",
            "Must include uppercase, lowercase, numbers, and symbols "
            f"(missing {', '.join(missing)})",
        )


def validate_phrase(value: str) -> None:
    if _is_blank(value):
        return
    if not _TEXT_PATTERN.fullmatch(value):
        raise ValidationError("phrase", "Only letters, numbers, and spaces are allowed")


def validate_length(length: int) -> None:
    if not MIN_LENGTH <= length <= MAX_LENGTH:
        raise ValidationError(
            "length", f"Length must be between {MIN_LENGTH} and {MAX_LENGTH}"
        )


FIELDS = ("site", "username", "secret", "phrase")

_VALIDATORS = {
    "site": validate_site,
    "username": validate_username,
    "secret": validate_secret,
    "phrase": validate_phrase,
}


@dataclass
class ValidationResult:
    """Outcome of validating every field; *errors* holds only the failures."""

    errors: dict[str, ValidationError] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def field_valid(self, name: str) -> bool:
        return name not in self.errors

    def messages(self) -> list[str]:
        return [str(self.errors[name]) for name in FIELDS if name in self.errors]


def validate(site: str, username: str = "", secret: str = "", phrase: str = "") -> ValidationResult:
    """Validate all four fields independently and collect the failures."""
    values = {"site": site, "username": username, "secret": secret, "phrase": phrase}
    result = ValidationResult()
    for name in FIELDS:
        try:
            _VALIDATORS[name](values[name])
        except ValidationError as exc:
            result.errors[name] = exc
    return result


def validate_input(data: DerivationInput) -> ValidationResult:
    return validate(data.site, data.username, data.secret, data.phrase)


def is_form_valid(site: str, username: str = "", secret: str = "", phrase: str = "") -> bool:
    return validate(site, username, secret, phrase).is_valid


# ── Hashing ───────────────────────────────────────────────────────────────

Hasher = Callable[[bytes], str]
AsyncHasher = Callable[[bytes], Awaitable[str]]

_HEX_DIGEST = re.compile(r"(?:[0-9a-f]{2})+")


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def hasher_for(name: str) -> Hasher:
    """Return a hasher for any :mod:`hashlib` algorithm of at least 128 bits.

    Variable-length algorithms (``shake_*``) are not supported.
    """
    try:
        probe = hashlib.new(name)
    except (ValueError, TypeError) as exc:
        raise DigestUnavailable(f"Unknown digest algorithm: {name}") from exc

    if probe.digest_size < 16:
        raise DigestUnavailable(f"Digest {name} is shorter than 128 bits")

    def _hexdigest(data: bytes) -> str:
        return hashlib.new(name, data).hexdigest()

    _hexdigest.__name__ = f"{probe.name}_hex"
    return _hexdigest


def _check_digest(digest: object) -> str:
    if not isinstance(digest, str) or not _HEX_DIGEST.fullmatch(digest):
        raise DigestUnavailable("Hasher did not return a lower-case hex digest")
    return digest


def _digest(hasher: Hasher, data: bytes) -> str:
    if hasher is None:
        raise DigestUnavailable("No hash function available")
    try:
        digest = hasher(data)
    except HashPassError:
        raise
    except Exception as exc:
        raise DigestUnavailable(f"Hash function failed: {exc}") from exc
    return _check_digest(digest)


# ── Derivation ────────────────────────────────────────────────────────────

UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
DIGITS = string.digits
SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"


def character_groups(config: Configuration) -> list[str]:
    """Character sets of the enabled classes, in seeding order."""
    groups = []
    if config.uppercase:
        groups.append(UPPERCASE)
    if config.lowercase:
        groups.append(LOWERCASE)
    if config.numbers:
        groups.append(DIGITS)
    if config.symbols:
        groups.append(SYMBOLS)
    return groups


def _enabled_groups(config: Configuration) -> list[str]:
    groups = character_groups(config)
    if not groups:
        raise InvalidConfiguration("At least one character class must be enabled")
    return groups


def canonicalize(data: DerivationInput) -> str:
    """Build the string that gets hashed: site, username, secret, phrase.

    Site and phrase lose all whitespace and are lower-cased; the username is
    lower-cased; the secret is used exactly as typed.
    """
    site = _WHITESPACE_RUN.sub("", data.site).lower()
    username = data.username.lower()
    phrase = _WHITESPACE_RUN.sub("", data.phrase).lower()
    return site + username + data.secret + phrase


def _byte_at(digest: str, cursor: int) -> int:
    return int(digest[cursor : cursor + 2], 16)


def expand_digest(digest: str, config: Configuration) -> str:
    """Turn a hex *digest* into a password according to *config*.

    One character of each enabled class is seeded first, the rest is filled
    from the combined alphabet, and the result is shuffled with indexes read
    from the digest.  Every step reads the digest one byte (two hex
    characters) at a time and wraps around at its end.
    """
    groups = _enabled_groups(config)
    alphabet = "".join(groups)
    _check_digest(digest)

    span = len(digest)
    chars: list[str] = []
    cursor = 0

    # Stage 1: one member of each class, as long as there is room.
    # The cursor only moves for classes that were actually seeded.
    for group in groups:
        if len(chars) < config.length:
            chars.append(group[_byte_at(digest, cursor) % len(group)])
            cursor = (cursor + 2) % span

    # Stage 2: fill from the combined alphabet
    while len(chars) < config.length:
        chars.append(alphabet[_byte_at(digest, cursor) % len(alphabet)])
        cursor = (cursor + 2) % span

    # Stage 3: Fisher-Yates with digest-derived indexes
    for i in range(len(chars) - 1, 0, -1):
        j = _byte_at(digest, (i * 2) % span) % (i + 1)
        chars[i], chars[j] = chars[j], chars[i]

    return "".join(chars)


def derive(data: DerivationInput, config: Configuration, hasher: Hasher = sha256_hex) -> str:
    """Derive the password for *data* under *config*.

    Raises :class:`InvalidConfiguration` when no class is enabled,
    :class:`InvalidInput` when *data* does not validate and
    :class:`DigestUnavailable` when hashing fails.
    """
    _enabled_groups(config)

    result = validate_input(data)
    if not result.is_valid:
        raise InvalidInput(result)

    digest = _digest(hasher, canonicalize(data).encode("utf-8"))
    logger.debug("Derived %d-character password from %d-bit digest",
                 config.length, len(digest) * 4)
    return expand_digest(digest, config)


def password_if_valid(data: DerivationInput, config: Configuration, hasher: Hasher = sha256_hex) -> str:
    """Return the derived password, or ``""`` when the form is not valid.

    This is what a form shell shows after every edit: an invalid field
    clears the password instead of raising.
    """
    if not validate_input(data).is_valid:
        return ""
    return derive(data, config, hasher)


# ── Async derivation ──────────────────────────────────────────────────────


async def derive_async(
    data: DerivationInput,
    config: Configuration,
    hasher: Hasher | AsyncHasher = sha256_hex,
) -> str:
    """Like :func:`derive`, for hosts whose hash facility may suspend.

    *hasher* may return the digest or an awaitable of it.  Coroutine
    functions are called on the event loop; any other callable runs in a
    worker thread and its result is awaited when it turns out awaitable
    (a lambda wrapping a coroutine, say).
    """
    _enabled_groups(config)

    result = validate_input(data)
    if not result.is_valid:
        raise InvalidInput(result)

    digest = await _digest_async(hasher, canonicalize(data).encode("utf-8"))
    return expand_digest(digest, config)


def _is_coroutine_callable(hasher) -> bool:
    return inspect.iscoroutinefunction(hasher) or inspect.iscoroutinefunction(
        getattr(hasher, "__call__", None)
    )


async def _digest_async(hasher: Hasher | AsyncHasher, data: bytes) -> str:
    if hasher is None:
        raise DigestUnavailable("No hash function available")
    try:
        if _is_coroutine_callable(hasher):
            digest = hasher(data)
        else:
            digest = await asyncio.to_thread(hasher, data)
        if inspect.isawaitable(digest):
            digest = await digest
    except HashPassError:
        raise
    except Exception as exc:
        raise DigestUnavailable(f"Hash function failed: {exc}") from exc
    return _check_digest(digest)


class LatestOnly:
    """Discard results of derivations that were superseded.

    Every :meth:`submit` takes a ticket; when it completes after a newer
    submission was made, its result is dropped and ``None`` is returned so
    a stale password never replaces a fresher one.
    """

    def __init__(self, hasher: Hasher | AsyncHasher = sha256_hex):
        self.hasher = hasher
        self._issued = 0

    def issue(self) -> int:
        self._issued += 1
        return self._issued

    def is_current(self, ticket: int) -> bool:
        return ticket == self._issued

    async def submit(self, data: DerivationInput, config: Configuration) -> str | None:
        ticket = self.issue()
        password = await derive_async(data, config, self.hasher)
        if not self.is_current(ticket):
            logger.debug("Dropping result of superseded derivation #%d", ticket)
            return None
        return password
