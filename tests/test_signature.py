import hashlib
import hmac

from services.signature import compute_signature, verify_signature

BODY = b'{"event":"payment.captured","payload":{"payment":{"entity":{"id":"pay_1"}}}}'
SECRET = "s3cret"


def test_signature_is_lowercase_hex_hmac_sha256():
    sig = compute_signature(BODY, SECRET)
    assert sig == hmac.new(b"s3cret", BODY, hashlib.sha256).hexdigest()
    assert sig == sig.lower() and len(sig) == 64


def test_verify_accepts_matching_signature_repeatedly():
    sig = compute_signature(BODY, SECRET)
    assert all(verify_signature(BODY, sig, SECRET) for _ in range(3))


def test_any_single_bit_flip_in_body_is_rejected():
    sig = compute_signature(BODY, SECRET)
    for i in range(len(BODY)):
        for bit in range(8):
            mutated = bytearray(BODY)
            mutated[i] ^= 1 << bit
            assert not verify_signature(bytes(mutated), sig, SECRET)


def test_any_single_bit_flip_in_signature_is_rejected():
    sig = compute_signature(BODY, SECRET)
    raw = sig.encode("ascii")
    for i in range(len(raw)):
        for bit in range(8):
            mutated = bytearray(raw)
            mutated[i] ^= 1 << bit
            # some flips give non-utf8 bytes; latin-1 mirrors what WSGI headers hold
            assert not verify_signature(BODY, bytes(mutated).decode("latin-1"), SECRET)


def test_reserialized_json_does_not_verify():
    sig = compute_signature(BODY, SECRET)
    spaced = BODY.replace(b":", b": ")
    assert not verify_signature(spaced, sig, SECRET)


def test_missing_signature_or_secret_is_false_not_error():
    sig = compute_signature(BODY, SECRET)
    assert verify_signature(BODY, None, SECRET) is False
    assert verify_signature(BODY, "", SECRET) is False
    assert verify_signature(BODY, sig, None) is False
    assert verify_signature(BODY, sig, "") is False


def test_wrong_secret_and_uppercase_hex_are_rejected():
    sig = compute_signature(BODY, SECRET)
    assert not verify_signature(BODY, sig, "other")
    assert not verify_signature(BODY, sig.upper(), SECRET)
