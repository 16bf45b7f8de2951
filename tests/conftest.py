import pytest
from src.lib.crypto import VaultCrypto

@pytest.fixture
def crypto():
    # Low iteration count keeps the suite fast; derivation logic is unchanged
    return VaultCrypto(iterations=1000)

@pytest.fixture
def key(crypto):
    return crypto.derive_key('user-1' + 'a@example.com', 'a@example.com_vault_salt_2024')
