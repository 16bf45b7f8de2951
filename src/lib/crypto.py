"""Cryptographic core: PBKDF2 key derivation and AES-256-GCM envelopes."""
from __future__ import annotations
import base64, binascii, json, logging, secrets
from dataclasses import dataclass, field
from typing import Union
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.backends import default_backend
from config.settings import (
	DEFAULT_ITERATIONS, MIN_ITERATIONS, KEY_LENGTH, IV_LENGTH, AUTH_TAG_LENGTH, SALT_LENGTH,
	KCV_LENGTH, KCV_LABEL, ENVELOPE_VERSION, LEGACY_SALT_SUFFIX
)

log = logging.getLogger(__name__)

class CryptoError(Exception):
	pass

class DecryptionFailed(CryptoError):
	"""Plaintext could not be recovered from an envelope."""

class MalformedEnvelope(DecryptionFailed):
	pass

class KeyMismatch(DecryptionFailed):
	pass

class CorruptCiphertext(DecryptionFailed):
	pass


@dataclass(frozen=True)
class DerivedKey:
	"""Symmetric key material held in memory for one session."""
	material: bytes = field(repr=False)

	def __post_init__(self):
		if len(self.material) != KEY_LENGTH:
			raise CryptoError(f"Key must be {KEY_LENGTH} bytes")

	@property
	def check_value(self) -> bytes:
		h = hmac.HMAC(self.material, hashes.SHA256())
		h.update(KCV_LABEL)
		return h.finalize()[:KCV_LENGTH]


def _b64(raw: bytes) -> str:
	return base64.b64encode(raw).decode('ascii')

def _unb64(text: str, name: str) -> bytes:
	try:
		return base64.b64decode(text.encode('ascii'), validate=True)
	except (binascii.Error, UnicodeEncodeError) as e:
		raise MalformedEnvelope(f"Field '{name}' is not valid base64") from e


@dataclass(frozen=True)
class EncryptedEnvelope:
	ciphertext: str  # base64(ciphertext + tag)
	iv: str          # base64 nonce
	kcv: str         # base64 key-check value
	v: int = ENVELOPE_VERSION

	def header(self) -> bytes:
		"""Associated data binding version and key-check value to the ciphertext."""
		return f"v{self.v}:{self.kcv}".encode('ascii')

	def to_json(self) -> str:
		return json.dumps({'v': self.v, 'iv': self.iv, 'kcv': self.kcv, 'ciphertext': self.ciphertext}, separators=(',', ':'))

	@classmethod
	def from_json(cls, text: str) -> 'EncryptedEnvelope':
		try:
			raw = json.loads(text)
		except (TypeError, ValueError, RecursionError) as e:
			raise MalformedEnvelope('Envelope is not valid JSON') from e
		if not isinstance(raw, dict):
			raise MalformedEnvelope('Envelope must be a JSON object')
		missing = [k for k in ('ciphertext', 'iv', 'kcv') if not isinstance(raw.get(k), str)]
		if missing:
			raise MalformedEnvelope(f"Envelope missing fields: {', '.join(missing)}")
		version = raw.get('v', ENVELOPE_VERSION)
		if version != ENVELOPE_VERSION:
			raise MalformedEnvelope(f'Unsupported envelope version: {version!r}')
		return cls(raw['ciphertext'], raw['iv'], raw['kcv'], version)


class VaultCrypto:
	def __init__(self, iterations: int = DEFAULT_ITERATIONS):
		if iterations < MIN_ITERATIONS:
			raise CryptoError(f"Iterations must be at least {MIN_ITERATIONS}")
		self.iterations = iterations
		self._backend = default_backend()

	def generate_salt(self) -> bytes:
		return secrets.token_bytes(SALT_LENGTH)

	def derive_key(self, secret: str, salt: Union[str, bytes]) -> DerivedKey:
		"""Stretch `secret` with PBKDF2-HMAC-SHA256; same inputs always give the same key."""
		if not secret:
			raise CryptoError("Secret empty")
		if isinstance(salt, str):
			salt = salt.encode('utf-8')
		if not salt:
			raise CryptoError("Salt empty")
		kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=KEY_LENGTH, salt=salt, iterations=self.iterations, backend=self._backend)
		return DerivedKey(kdf.derive(secret.encode('utf-8')))

	def derive_identity_key(self, user_id: str, email: str) -> DerivedKey:
		"""Legacy key: secret is user id + email, salt is email + fixed suffix.

		Both inputs are public to anyone who can see the account, so this key
		only obscures stored data. Kept so existing vault items stay readable.
		"""
		log.warning('Deriving vault key from account identity; prefer a master passphrase')
		return self.derive_key(user_id + email, email + LEGACY_SALT_SUFFIX)

	def derive_master_key(self, passphrase: str, salt: Union[str, bytes]) -> DerivedKey:
		"""Key from a separate master passphrase; `salt` should come from `generate_salt`."""
		if isinstance(salt, bytes) and len(salt) < SALT_LENGTH:
			log.warning("Master key salt is shorter than %d bytes", SALT_LENGTH)
		return self.derive_key(passphrase, salt)

	def encrypt(self, plaintext: str, key: DerivedKey) -> EncryptedEnvelope:
		iv = secrets.token_bytes(IV_LENGTH)
		kcv = _b64(key.check_value)
		envelope = EncryptedEnvelope('', _b64(iv), kcv)
		cipher = Cipher(algorithms.AES(key.material), modes.GCM(iv), backend=self._backend)
		enc = cipher.encryptor()
		enc.authenticate_additional_data(envelope.header())
		ct = enc.update(plaintext.encode('utf-8')) + enc.finalize()
		return EncryptedEnvelope(_b64(ct + enc.tag), envelope.iv, kcv)

	def decrypt(self, envelope: EncryptedEnvelope, key: DerivedKey) -> str:
		iv = _unb64(envelope.iv, 'iv')
		blob = _unb64(envelope.ciphertext, 'ciphertext')
		kcv = _unb64(envelope.kcv, 'kcv')
		if len(iv) != IV_LENGTH: raise MalformedEnvelope("Bad IV length")
		if len(blob) < AUTH_TAG_LENGTH: raise MalformedEnvelope("Ciphertext too short")
		if not secrets.compare_digest(kcv, key.check_value):
			raise KeyMismatch("Envelope was encrypted under a different key")
		ct = blob[:-AUTH_TAG_LENGTH]; tag = blob[-AUTH_TAG_LENGTH:]
		cipher = Cipher(algorithms.AES(key.material), modes.GCM(iv, tag), backend=self._backend)
		dec = cipher.decryptor()
		dec.authenticate_additional_data(envelope.header())
		try:
			raw = dec.update(ct) + dec.finalize()
		except InvalidTag as e:
			raise CorruptCiphertext("Authentication tag check failed") from e
		try:
			return raw.decode('utf-8')
		except UnicodeDecodeError as e:  # pragma: no cover (authenticated data is always ours)
			raise CorruptCiphertext("Plaintext is not UTF-8") from e
