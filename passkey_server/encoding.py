# (c) Copyright Datacraft, 2026
"""Canonical byte handling for WebAuthn payloads and stored credentials.

Credential ids, public keys and challenges cross several boundaries: the
browser sends base64url JSON, some clients send standard base64, PostgreSQL
``bytea`` comes back as ``\\x``-prefixed hex text and JavaScript callers
sometimes post a serialized ``Buffer`` or ``Uint8Array``. Everything is
funnelled through :func:`to_bytes` and stored or compared as the unpadded
base64url string returned by :func:`to_canonical_string`.
"""

import base64
import binascii
import json
import re
from typing import Any

from webauthn.helpers import bytes_to_base64url

from passkey_server.errors import EncodingInvalid

HEX_PREFIX = "\\x"

_BASE64URL = re.compile(r"^[A-Za-z0-9_-]*={0,2}$")
_BASE64 = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")

# Byte fields of a PublicKeyCredential JSON payload, by location
_TOP_LEVEL_FIELDS = ("id", "rawId")
_RESPONSE_FIELDS = (
	"clientDataJSON",
	"attestationObject",
	"authenticatorData",
	"signature",
	"userHandle",
)
_REQUIRED_FIELDS = {"id", "clientDataJSON"}


def to_bytes(value: Any) -> bytes:
	"""Decode any supported representation into raw bytes.

	Raises:
		EncodingInvalid: the value is not one of the recognised shapes
	"""
	if isinstance(value, (bytes, bytearray, memoryview)):
		return bytes(value)

	if isinstance(value, str):
		return _str_to_bytes(value)

	if isinstance(value, (list, tuple)):
		return _numbers_to_bytes(value)

	if isinstance(value, dict):
		# Node.js Buffer#toJSON()
		if value.get("type") == "Buffer" and isinstance(value.get("data"), list):
			return _numbers_to_bytes(value["data"])
		# JSON.stringify(new Uint8Array(...)) -> {"0": 12, "1": 34, ...}
		if value and all(isinstance(k, str) and k.isdigit() for k in value):
			indexes = sorted(int(k) for k in value)
			if indexes != list(range(len(indexes))):
				raise EncodingInvalid("sparse numeric byte array")
			return _numbers_to_bytes([value[str(i)] for i in indexes])

	raise EncodingInvalid(f"unsupported byte representation: {type(value).__name__}")


def to_canonical_string(raw: bytes) -> str:
	"""Unpadded base64url, the only form used for storage and comparison."""
	if not isinstance(raw, (bytes, bytearray, memoryview)):
		raise EncodingInvalid("canonical strings are built from bytes only")
	return bytes_to_base64url(bytes(raw))


def canonicalize(value: Any) -> str:
	return to_canonical_string(to_bytes(value))


def _str_to_bytes(value: str) -> bytes:
	if value.startswith(HEX_PREFIX):
		try:
			return bytes.fromhex(value[len(HEX_PREFIX):])
		except ValueError as e:
			raise EncodingInvalid("malformed hex byte string") from e

	if _BASE64URL.match(value):
		return _decode_base64(value, altchars=b"-_")
	if _BASE64.match(value):
		return _decode_base64(value, altchars=None)

	raise EncodingInvalid("string is neither base64, base64url nor escaped hex")


def _decode_base64(value: str, altchars: bytes | None) -> bytes:
	body = value.rstrip("=")
	if len(body) % 4 == 1:
		raise EncodingInvalid("base64 length is impossible")
	if body != value and len(value) % 4 != 0:
		raise EncodingInvalid("base64 padding is malformed")

	padded = body + "=" * (-len(body) % 4)
	try:
		return base64.b64decode(padded, altchars=altchars, validate=True)
	except binascii.Error as e:
		raise EncodingInvalid("base64 decoding failed") from e


def _numbers_to_bytes(numbers) -> bytes:
	for n in numbers:
		if isinstance(n, bool) or not isinstance(n, int) or not 0 <= n <= 255:
			raise EncodingInvalid("numeric byte array holds a non-byte value")
	return bytes(numbers)


def normalize_credential_response(payload: Any) -> dict[str, Any]:
	"""Return a copy of a browser credential payload with every byte field
	rewritten as canonical base64url.

	Unknown keys (``type``, ``transports``, ``clientExtensionResults``...) are
	kept untouched. ``rawId`` falls back to ``id`` and a null ``userHandle``
	stays null.
	"""
	if not isinstance(payload, dict):
		raise EncodingInvalid("credential payload must be a JSON object")

	normalized = dict(payload)
	response = payload.get("response")
	if not isinstance(response, dict):
		raise EncodingInvalid("credential payload has no response object")
	normalized["response"] = dict(response)

	if normalized.get("rawId") is None:
		normalized["rawId"] = normalized.get("id")

	for name in _TOP_LEVEL_FIELDS:
		normalized[name] = _normalize_field(name, normalized.get(name))
	for name in _RESPONSE_FIELDS:
		if name in response:
			normalized["response"][name] = _normalize_field(name, response[name])
		elif name in _REQUIRED_FIELDS:
			raise EncodingInvalid(f"missing field: response.{name}")

	return normalized


def _normalize_field(name: str, value: Any) -> str | None:
	if value is None:
		if name in _REQUIRED_FIELDS:
			raise EncodingInvalid(f"missing field: {name}")
		return None
	try:
		return canonicalize(value)
	except EncodingInvalid as e:
		raise EncodingInvalid(f"field {name}: {e}") from e


def extract_client_challenge(payload: Any) -> str | None:
	"""Challenge the authenticator signed over, read from clientDataJSON.

	Returns None when the payload does not carry a readable client data blob.
	"""
	if not isinstance(payload, dict) or not isinstance(payload.get("response"), dict):
		return None

	client_data = payload["response"].get("clientDataJSON")
	if client_data is None:
		return None

	try:
		parsed = json.loads(to_bytes(client_data).decode("utf-8"))
		challenge = parsed.get("challenge") if isinstance(parsed, dict) else None
		if not isinstance(challenge, str) or not challenge:
			return None
		return canonicalize(challenge)
	except (EncodingInvalid, UnicodeDecodeError, ValueError):
		return None
