"""Version tokens for optimistic concurrency."""

import uuid
from dataclasses import dataclass

TOKEN_SIZE = 16


@dataclass(frozen=True, order=False)
class VersionToken:
    """Opaque revision marker for one stored vehicle.

    Tokens support equality only. A fresh random value is issued on every
    write, so two revisions of one record never share a token; nothing can be
    inferred from comparing their bytes.
    """

    value: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.value, (bytes, bytearray)) or not self.value:
            raise ValueError("VersionToken requires a non-empty byte string")
        object.__setattr__(self, "value", bytes(self.value))

    def hex(self) -> str:
        return self.value.hex()

    @classmethod
    def from_hex(cls, text: str) -> "VersionToken":
        try:
            return cls(bytes.fromhex(text.strip()))
        except (AttributeError, ValueError):
            raise ValueError(f"Malformed version token: {text!r}") from None

    def __repr__(self) -> str:
        return f"VersionToken({self.hex()})"


def new_version_token() -> VersionToken:
    return VersionToken(uuid.uuid4().bytes)
