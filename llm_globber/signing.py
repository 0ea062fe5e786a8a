"""Ed25519 signing of archive entries, backed by PyCryptodomex.

Keys and signatures travel inside the archive as standard padded base64.
Only the 32-byte public key is ever written out; the private half lives in
the :class:`KeyPair` for the duration of one globbing run.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Union

from Cryptodome.PublicKey import ECC
from Cryptodome.Signature import eddsa

from .constants import PUBLIC_KEY_SIZE, SIGNATURE_SIZE
from .errors import InvalidEncoding, InvalidLength, VerificationFailed


_CURVE = "Ed25519"
_MODE = "rfc8032"


@dataclass
class KeyPair:
    private_key: ECC.EccKey = field(repr=False)
    public_key: bytes

    @property
    def public_key_b64(self) -> str:
        return encode_public_key(self.public_key)


def generate_keypair() -> KeyPair:
    key = ECC.generate(curve=_CURVE)
    public = key.public_key().export_key(format="raw")
    return KeyPair(private_key=key, public_key=bytes(public))


def sign(private: Union[KeyPair, ECC.EccKey], data: bytes) -> str:
    """Sign ``data`` exactly as given and return the base64 signature."""
    key = private.private_key if isinstance(private, KeyPair) else private
    signature = eddsa.new(key, _MODE).sign(bytes(data))
    return base64.b64encode(signature).decode("ascii")


def verify(public_key: Union[bytes, ECC.EccKey], data: bytes, signature_b64: str) -> None:
    """Check ``signature_b64`` over ``data``.

    Raises:
        InvalidEncoding: the signature text is not valid base64.
        InvalidLength: the decoded signature is not 64 bytes.
        VerificationFailed: the signature does not match.
    """
    signature = _b64decode(signature_b64, "signature")
    if len(signature) != SIGNATURE_SIZE:
        raise InvalidLength(f"signature is {len(signature)} bytes, expected {SIGNATURE_SIZE}")
    key = public_key if isinstance(public_key, ECC.EccKey) else _import_public(public_key)
    try:
        eddsa.new(key, _MODE).verify(bytes(data), signature)
    except ValueError as exc:
        raise VerificationFailed("signature does not match content") from exc


def encode_public_key(public_key: bytes) -> str:
    if len(public_key) != PUBLIC_KEY_SIZE:
        raise InvalidLength(f"public key is {len(public_key)} bytes, expected {PUBLIC_KEY_SIZE}")
    return base64.b64encode(public_key).decode("ascii")


def decode_public_key(text: str) -> bytes:
    raw = _b64decode(text, "public key")
    if len(raw) != PUBLIC_KEY_SIZE:
        raise InvalidLength(f"public key is {len(raw)} bytes, expected {PUBLIC_KEY_SIZE}")
    # Reject encodings that are not a point on the curve up front.
    _import_public(raw)
    return raw


def _import_public(raw: bytes) -> ECC.EccKey:
    if len(raw) != PUBLIC_KEY_SIZE:
        raise InvalidLength(f"public key is {len(raw)} bytes, expected {PUBLIC_KEY_SIZE}")
    try:
        return eddsa.import_public_key(bytes(raw))
    except ValueError as exc:
        raise InvalidEncoding("public key is not a valid Ed25519 point") from exc


def _b64decode(text: str, what: str) -> bytes:
    try:
        return base64.b64decode(text.strip().encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise InvalidEncoding(f"{what} is not valid base64") from exc
