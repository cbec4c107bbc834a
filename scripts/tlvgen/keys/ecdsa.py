"""
ECDSA key management
"""
# Copyright 2020-2026 STMicroelectronics
# SPDX-License-Identifier: Apache-2.0
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.hashes import SHA256

from .general import KeyClass


class ECDSAUsageError(Exception):
    pass


class ECDSAPublicKey(KeyClass):
    """
    Wrapper around an ECDSA public key.
    """
    def __init__(self, key):
        self.key = key

    def key_size(self):
        return self.key.key_size

    def shortname(self):
        return "ecdsa"

    def sig_tlv(self):
        return "ECDSA{}".format(self.key_size())

    def _unsupported(self, name):
        raise ECDSAUsageError("Operation {} requires private key".format(name))

    def _get_public(self):
        return self.key

    def export_private(self, path, passwd=None):
        self._unsupported('export_private')

    def sign(self, payload):
        self._unsupported('sign')

    def get_public_bytes_raw(self):
        size = (self.key_size() + 7) // 8
        pn = self._get_public().public_numbers()
        return pn.x.to_bytes(size, byteorder='big') + \
            pn.y.to_bytes(size, byteorder='big')

    @staticmethod
    def strip_padding(signature):
        # Signatures are zero padded up to sig_len() in the TLV area; the
        # DER SEQUENCE header tells how much of it is real.
        signature = bytes(signature)
        if len(signature) < 2 or signature[0] != 0x30:
            raise ValueError("Incorrect signature")
        der_len = signature[1] + 2
        if der_len > len(signature) or any(signature[der_len:]):
            raise ValueError("Incorrect signature padding")
        return signature[:der_len]

    def verify(self, signature, payload):
        """Raise cryptography's InvalidSignature if the check fails."""
        k = self._get_public()
        return k.verify(self.strip_padding(signature), bytes(payload),
                        ec.ECDSA(SHA256()))


class ECDSAPrivateKey(object):
    """
    Private half shared by the ECDSA wrappers.
    """
    curve = None

    def _get_public(self):
        return self.key.public_key()

    def is_private(self):
        return True

    def export_private(self, path, passwd=None):
        """Write the private key to the given file, protecting it with the
        optional password."""
        if passwd is None:
            enc = serialization.NoEncryption()
        else:
            enc = serialization.BestAvailableEncryption(passwd)
        pem = self.key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=enc)
        with open(path, 'wb') as f:
            f.write(pem)

    def sign(self, payload):
        """Return the DER signature, not padded"""
        return self.key.sign(
                data=bytes(payload),
                signature_algorithm=ec.ECDSA(SHA256()))


class ECDSA256P1Public(ECDSAPublicKey):
    """
    Wrapper around an ECDSA (p256) public key.
    """
    def shortname(self):
        return "ecdsa"

    def sig_type(self):
        return "ECDSA256_SHA256"

    def sig_len(self):
        # The DER encoding uses signed integers, so R and S take 33 bytes
        # each when their high bit is set: 2 + 2 * (2 + 33).
        return 72


class ECDSA256P1(ECDSAPrivateKey, ECDSA256P1Public):
    """
    Wrapper around an ECDSA (p256) private key.
    """
    curve = ec.SECP256R1

    @staticmethod
    def generate():
        pk = ec.generate_private_key(
                ec.SECP256R1(),
                backend=default_backend())
        return ECDSA256P1(pk)


class ECDSA224P1Public(ECDSAPublicKey):
    """
    Wrapper around an ECDSA (p224) public key.
    """
    def shortname(self):
        return "ecdsap224"

    def sig_type(self):
        return "ECDSA224_SHA256"

    def sig_len(self):
        # 2 + 2 * (2 + 29)
        return 64


class ECDSA224P1(ECDSAPrivateKey, ECDSA224P1Public):
    """
    Wrapper around an ECDSA (p224) private key.
    """
    curve = ec.SECP224R1

    @staticmethod
    def generate():
        pk = ec.generate_private_key(
                ec.SECP224R1(),
                backend=default_backend())
        return ECDSA224P1(pk)
