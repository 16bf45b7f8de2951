"""Vault codec: encrypt before save, decrypt after fetch.

Stored `password` fields come in a small, closed set of historical shapes.
`classify` picks the first matching `StorageFormat` in `DETECTION_ORDER`
and `unpack` dispatches on it. Failures never raise to the caller; they
come back as an `UnpackResult` whose value is the `DECRYPTION_FAILED`
sentinel.
"""
from __future__ import annotations
import base64, binascii, json, logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional
from config.settings import DECRYPTION_FAILED, LEGACY_FALLBACK_IV
from .crypto import VaultCrypto, DerivedKey, EncryptedEnvelope, DecryptionFailed

log = logging.getLogger(__name__)

class UnrecognizedEnvelopeFormat(DecryptionFailed):
	pass

class StorageFormat(Enum):
	EMPTY = 'empty'
	ENVELOPE = 'envelope'                # current AES-GCM envelope
	LEGACY_FALLBACK = 'legacy-fallback'  # {"data": base64, "iv": "fallback"}
	LEGACY_CIPHER = 'legacy-cipher'      # {"data", "iv"} from the retired client cipher
	LEGACY_BASE64 = 'legacy-base64'
	UNRECOGNIZED = 'unrecognized'


@dataclass(frozen=True)
class UnpackResult:
	value: str
	format: StorageFormat
	raw: str
	error: Optional[str] = None

	@property
	def ok(self) -> bool:
		return self.error is None


def _parse_object(stored: str) -> Optional[Dict[str, Any]]:
	if not stored.startswith('{'):
		return None
	try:
		obj = json.loads(stored)
	except (ValueError, RecursionError):
		return None
	return obj if isinstance(obj, dict) else None

def decode_base64_text(stored: str) -> Optional[str]:
	"""Strict base64 decode that only accepts UTF-8 text (tabs and line breaks allowed)."""
	try:
		text = base64.b64decode(stored.encode('ascii'), validate=True).decode('utf-8')
	except (binascii.Error, UnicodeError):
		return None
	return text if text and _is_text(text) else None

def _is_text(text: str) -> bool:
	return all(c.isprintable() or c in "\t\n\r" for c in text)

def _has_str(obj: Optional[Dict[str, Any]], *keys: str) -> bool:
	return obj is not None and all(isinstance(obj.get(k), str) for k in keys)

Detector = Callable[[Optional[Dict[str, Any]], str], bool]

_DETECTORS: Dict[StorageFormat, Detector] = {
	StorageFormat.ENVELOPE: lambda obj, s: _has_str(obj, 'ciphertext', 'iv', 'kcv'),
	StorageFormat.LEGACY_FALLBACK: lambda obj, s: _has_str(obj, 'data') and obj.get('iv') == LEGACY_FALLBACK_IV,
	StorageFormat.LEGACY_CIPHER: lambda obj, s: _has_str(obj, 'data', 'iv'),
	StorageFormat.LEGACY_BASE64: lambda obj, s: obj is None and decode_base64_text(s) is not None,
}

DETECTION_ORDER = (
	StorageFormat.ENVELOPE,
	StorageFormat.LEGACY_FALLBACK,
	StorageFormat.LEGACY_CIPHER,
	StorageFormat.LEGACY_BASE64,
)

def classify(stored: str) -> StorageFormat:
	if not stored:
		return StorageFormat.EMPTY
	obj = _parse_object(stored)
	for fmt in DETECTION_ORDER:
		if _DETECTORS[fmt](obj, stored):
			return fmt
	return StorageFormat.UNRECOGNIZED


class VaultCodec:
	def __init__(self, crypto: VaultCrypto | None = None):
		self.crypto = crypto or VaultCrypto()

	def pack_for_storage(self, plaintext: str, key: DerivedKey) -> str:
		return self.crypto.encrypt(plaintext, key).to_json()

	def unpack(self, stored: str, key: DerivedKey) -> UnpackResult:
		fmt = classify(stored)
		try:
			value = self._open(fmt, stored, key)
		except DecryptionFailed as e:
			log.warning('Could not unpack stored value (%s): %s', fmt.value, type(e).__name__)
			return UnpackResult(DECRYPTION_FAILED, fmt, stored, str(e))
		if fmt is not StorageFormat.ENVELOPE:
			log.debug('Unpacked legacy stored value (%s)', fmt.value)
		return UnpackResult(value, fmt, stored)

	def unpack_from_storage(self, stored: str, key: DerivedKey) -> str:
		"""Plaintext, or the DECRYPTION_FAILED sentinel when it cannot be recovered."""
		return self.unpack(stored, key).value

	def is_envelope(self, stored: str) -> bool:
		return classify(stored) is StorageFormat.ENVELOPE

	def repack(self, stored: str, key: DerivedKey) -> str:
		"""Re-encrypt a legacy stored value into the current envelope.

		Raises DecryptionFailed (or UnrecognizedEnvelopeFormat) when the value
		cannot be recovered; migration jobs must not overwrite it with the sentinel.
		"""
		result = self.unpack(stored, key)
		if not result.ok:
			if result.format is StorageFormat.UNRECOGNIZED:
				raise UnrecognizedEnvelopeFormat(result.error)
			raise DecryptionFailed(result.error)
		if result.format is StorageFormat.ENVELOPE:
			return stored
		return self.pack_for_storage(result.value, key)

	def _open(self, fmt: StorageFormat, stored: str, key: DerivedKey) -> str:
		if fmt is StorageFormat.EMPTY:
			return ''
		if fmt is StorageFormat.ENVELOPE:
			return self.crypto.decrypt(EncryptedEnvelope.from_json(stored), key)
		if fmt is StorageFormat.LEGACY_FALLBACK:
			text = decode_base64_text(json.loads(stored)['data'])
			if text is None:
				raise DecryptionFailed('Legacy fallback data is not valid base64 text')
			return text
		if fmt is StorageFormat.LEGACY_CIPHER:
			raise DecryptionFailed('Value was encrypted with the retired client cipher')
		if fmt is StorageFormat.LEGACY_BASE64:
			return decode_base64_text(stored)
		raise UnrecognizedEnvelopeFormat('Stored value matches no known format')
