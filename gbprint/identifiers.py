"""GBTID generation: time-ordered UUIDs plus short human-readable codes."""

import secrets
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from gbprint.exceptions import FatalStartupError

# Reason: 'O' is left out so codes can't be misread as containing zero
CODE_ALPHABET = "ABCDEFGHIJKLMNPQRSTUVWXYZ0123456789"
CODE_LENGTH = 8

GBTID_SCHEME = "gbtid"

_RAND_BITS = 74
_RAND_MASK = (1 << _RAND_BITS) - 1
_TIMESTAMP_MASK = (1 << 48) - 1


@dataclass(frozen=True)
class LabelIdentity:
    """Identity printed on one physical label.

    Attributes:
        token: Globally unique, time-ordered UUID (version 7).
        code: Short code printed in plain text under the QR code.
    """

    token: uuid.UUID
    code: str

    @property
    def uri(self) -> str:
        """Payload encoded in the label's QR code."""
        return f"{GBTID_SCHEME}://{self.token}:{self.code}"


def build_uuid7(unix_ms: int, rand: int) -> uuid.UUID:
    """Assemble a version 7 UUID.

    Layout: 48-bit unix epoch milliseconds, 4-bit version, 12 random bits,
    2-bit variant, 62 random bits.

    Args:
        unix_ms: Milliseconds since the unix epoch.
        rand: 74 random bits.

    Returns:
        uuid.UUID: The assembled UUID.
    """
    rand &= _RAND_MASK
    value = (unix_ms & _TIMESTAMP_MASK) << 80
    value |= 0x7 << 76
    value |= (rand >> 62) << 64
    value |= 0b10 << 62
    value |= rand & ((1 << 62) - 1)
    return uuid.UUID(int=value)


def random_code(length: int = CODE_LENGTH) -> str:
    """Generate a random code from CODE_ALPHABET.

    Args:
        length: Number of characters.

    Returns:
        str: Uppercase alphanumeric code like 'K7PZ2M4Q'.
    """
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class IdentifierGenerator:
    """Produces a fresh LabelIdentity for every label.

    Tokens from one generator are strictly increasing, even when several are
    created within the same millisecond or the wall clock steps backwards.
    """

    def __init__(self, clock: Callable[[], int] = time.time_ns):
        """Initialize the generator.

        Args:
            clock: Returns the current time in nanoseconds.

        Raises:
            FatalStartupError: If the system entropy source is unavailable.
        """
        self._clock = clock
        self._last_ms = -1
        self._last_rand = 0

        try:
            secrets.token_bytes(16)
        except (NotImplementedError, OSError) as err:
            raise FatalStartupError(f"No entropy source available: {err}") from err

    def _next_token(self) -> uuid.UUID:
        now_ms = self._clock() // 1_000_000

        if now_ms > self._last_ms:
            self._last_ms = now_ms
            self._last_rand = secrets.randbits(_RAND_BITS)
        elif self._last_rand < _RAND_MASK:
            self._last_rand += 1
        else:
            # Random space for this millisecond is exhausted; borrow the next one
            self._last_ms += 1
            self._last_rand = secrets.randbits(_RAND_BITS - 1)

        return build_uuid7(self._last_ms, self._last_rand)

    def next(self) -> LabelIdentity:
        """Create the identity for the next label.

        Returns:
            LabelIdentity: New token and code.
        """
        return LabelIdentity(token=self._next_token(), code=random_code())
