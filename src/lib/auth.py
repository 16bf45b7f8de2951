"""Authentication helpers and the per-session vault key.

The auth layer hands us a user id and email once per session. A
`VaultSession` derives the vault key from them (or from a master
passphrase) exactly once and drops it again on `close()`.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional, Union
import bcrypt
from .crypto import VaultCrypto, DerivedKey
from .codec import VaultCodec, UnpackResult

log = logging.getLogger(__name__)

class AuthError(Exception):
	pass

@dataclass(frozen=True)
class AuthUser:
	user_id: str
	email: str

def hash_passphrase(passphrase: str) -> str:
	if not passphrase:
		raise AuthError('Empty passphrase')
	return bcrypt.hashpw(passphrase.encode(), bcrypt.gensalt()).decode()

def verify_passphrase(passphrase: str, hashed: str) -> bool:
	try:
		return bcrypt.checkpw(passphrase.encode(), hashed.encode())
	except ValueError:
		return False


class VaultSession:
	def __init__(self, key: DerivedKey, codec: VaultCodec | None = None):
		self._key: Optional[DerivedKey] = key
		self.codec = codec or VaultCodec()

	@classmethod
	def for_user(cls, user: AuthUser, crypto: VaultCrypto | None = None) -> 'VaultSession':
		"""Open a session keyed on account identity (legacy vaults)."""
		crypto = crypto or VaultCrypto()
		return cls(crypto.derive_identity_key(user.user_id, user.email), VaultCodec(crypto))

	@classmethod
	def with_passphrase(cls, passphrase: str, salt: Union[str, bytes], hashed: str | None = None,
						crypto: VaultCrypto | None = None) -> 'VaultSession':
		"""Open a session keyed on a master passphrase.

		When `hashed` is given the passphrase is checked against it first, so a
		typo fails here instead of as a wall of undecryptable items.
		"""
		if not passphrase:
			raise AuthError('Empty passphrase')
		if hashed is not None and not verify_passphrase(passphrase, hashed):
			raise AuthError('Invalid passphrase')
		crypto = crypto or VaultCrypto()
		return cls(crypto.derive_master_key(passphrase, salt), VaultCodec(crypto))

	@property
	def key(self) -> DerivedKey:
		if self._key is None:
			raise AuthError('Session is closed')
		return self._key

	@property
	def is_open(self) -> bool:
		return self._key is not None

	def pack(self, plaintext: str) -> str:
		return self.codec.pack_for_storage(plaintext, self.key)

	def unpack(self, stored: str) -> UnpackResult:
		return self.codec.unpack(stored, self.key)

	def close(self) -> None:
		self._key = None
		log.debug('Vault session closed')

	def __enter__(self) -> 'VaultSession':
		return self

	def __exit__(self, *exc) -> None:
		self.close()
