import base64, json
import pytest
from src.lib.crypto import (
    VaultCrypto, DerivedKey, EncryptedEnvelope, CryptoError, DecryptionFailed,
    MalformedEnvelope, KeyMismatch, CorruptCiphertext,
)

def test_derive_key_consistency(crypto):
    salt = crypto.generate_salt()
    k1 = crypto.derive_key('secret', salt)
    k2 = crypto.derive_key('secret', salt)
    assert k1 == k2 and len(k1.material) == 32

def test_derive_key_depends_on_inputs(crypto):
    k = crypto.derive_key('secret', 'salt-a')
    assert k != crypto.derive_key('secret', 'salt-b')
    assert k != crypto.derive_key('other', 'salt-a')

def test_derive_key_depends_on_iterations():
    assert VaultCrypto(1000).derive_key('s', 'salt') != VaultCrypto(2000).derive_key('s', 'salt')

def test_identity_key_matches_manual_derivation(crypto):
    k = crypto.derive_identity_key('user-1', 'a@example.com')
    assert k == crypto.derive_key('user-1a@example.com', 'a@example.com_vault_salt_2024')

@pytest.mark.parametrize('secret,salt', [('', 'salt'), ('secret', ''), ('secret', b'')])
def test_derive_key_rejects_empty(crypto, secret, salt):
    with pytest.raises(CryptoError):
        crypto.derive_key(secret, salt)

def test_too_few_iterations():
    with pytest.raises(CryptoError):
        VaultCrypto(iterations=10)

def test_key_repr_hides_material(key):
    assert key.material.hex() not in repr(key)

def test_bad_key_length():
    with pytest.raises(CryptoError):
        DerivedKey(b'short')

@pytest.mark.parametrize('payload', ['', 'a', 'hello world', 'x' * 1024, 'päss ☃ \U0001f511'])
def test_encrypt_decrypt_various(crypto, key, payload):
    env = crypto.encrypt(payload, key)
    assert payload == '' or payload not in env.ciphertext
    assert crypto.decrypt(env, key) == payload

def test_fresh_iv_per_call(crypto, key):
    ivs = {crypto.encrypt('same', key).iv for _ in range(200)}
    assert len(ivs) == 200

def test_envelope_json_roundtrip(crypto, key):
    env = crypto.encrypt('data', key)
    text = env.to_json()
    assert text.startswith('{')
    assert EncryptedEnvelope.from_json(text) == env

def test_decrypt_wrong_key(crypto, key):
    other = crypto.derive_key('someone-else', 'salt')
    env = crypto.encrypt('data', key)
    with pytest.raises(KeyMismatch):
        crypto.decrypt(env, other)

def test_decrypt_corrupted(crypto, key):
    env = crypto.encrypt('data', key)
    blob = bytearray(base64.b64decode(env.ciphertext))
    blob[0] ^= 0xFF
    bad = EncryptedEnvelope(base64.b64encode(bytes(blob)).decode(), env.iv, env.kcv)
    with pytest.raises(CorruptCiphertext):
        crypto.decrypt(bad, key)

def test_decrypt_swapped_iv(crypto, key):
    a = crypto.encrypt('data', key); b = crypto.encrypt('data', key)
    with pytest.raises(CorruptCiphertext):
        crypto.decrypt(EncryptedEnvelope(a.ciphertext, b.iv, a.kcv), key)

@pytest.mark.parametrize('field,value', [('iv', '@@@'), ('iv', 'AAAA'), ('ciphertext', 'AAAA'), ('kcv', 'not base64!')])
def test_decrypt_malformed_fields(crypto, key, field, value):
    env = crypto.encrypt('data', key)
    raw = json.loads(env.to_json()); raw[field] = value
    with pytest.raises(MalformedEnvelope):
        crypto.decrypt(EncryptedEnvelope.from_json(json.dumps(raw)), key)

@pytest.mark.parametrize('text', ['not json', '[]', '{"iv": "x"}', '{"v": 9, "iv": "a", "kcv": "b", "ciphertext": "c"}'])
def test_from_json_rejects(text):
    with pytest.raises(MalformedEnvelope):
        EncryptedEnvelope.from_json(text)

def test_error_hierarchy():
    for exc in (MalformedEnvelope, KeyMismatch, CorruptCiphertext):
        assert issubclass(exc, DecryptionFailed)
    assert issubclass(DecryptionFailed, CryptoError)

def test_from_json_deeply_nested():
    with pytest.raises(MalformedEnvelope):
        EncryptedEnvelope.from_json('{"a":' * 100000 + '1' + '}' * 100000)

def test_master_key_matches_derive_key(crypto):
    salt = crypto.generate_salt()
    k = crypto.derive_master_key('correct horse', salt)
    assert k == crypto.derive_master_key('correct horse', salt)
    assert k == crypto.derive_key('correct horse', salt)
    assert k != crypto.derive_master_key('correct horse', crypto.generate_salt())

def test_master_key_rejects_empty(crypto):
    with pytest.raises(CryptoError):
        crypto.derive_master_key('', crypto.generate_salt())
