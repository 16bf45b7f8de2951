"""Project configuration settings.

Constants shared by the crypto core, the generator, the codec and the CLI.
A few values can be overridden through the environment.
"""

import os
import string

# Security / crypto
DEFAULT_ITERATIONS = int(os.environ.get("PASSVAULT_ITERATIONS", "10000"))  # PBKDF2 rounds
MIN_ITERATIONS = 100
KEY_LENGTH = 32       # AES-256
IV_LENGTH = 12        # GCM nonce
AUTH_TAG_LENGTH = 16  # GCM tag length
SALT_LENGTH = 16
KCV_LENGTH = 8        # key-check value stored in each envelope
KCV_LABEL = b"passvault-kcv"
ENVELOPE_VERSION = 1

# Salt suffix used by the legacy identity-derived key; existing vaults depend on it
LEGACY_SALT_SUFFIX = "_vault_salt_2024"

# Generator
UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
NUMBERS = string.digits
SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"
SIMILAR_CHARS = "il1Lo0O"
MIN_LENGTH = 4
MAX_LENGTH = 64
DEFAULT_LENGTH = 16

# Codec
DECRYPTION_FAILED = "DECRYPTION_FAILED"
LEGACY_FALLBACK_IV = "fallback"

# Logging
LOG_LEVEL = os.environ.get("PASSVAULT_LOG_LEVEL", "WARNING").upper()

__all__ = [
	'DEFAULT_ITERATIONS','MIN_ITERATIONS','KEY_LENGTH','IV_LENGTH','AUTH_TAG_LENGTH','SALT_LENGTH',
	'KCV_LENGTH','KCV_LABEL','ENVELOPE_VERSION','LEGACY_SALT_SUFFIX',
	'UPPERCASE','LOWERCASE','NUMBERS','SYMBOLS','SIMILAR_CHARS','MIN_LENGTH','MAX_LENGTH','DEFAULT_LENGTH',
	'DECRYPTION_FAILED','LEGACY_FALLBACK_IV','LOG_LEVEL'
]
