"""
RSA key management
"""
# Copyright 2020-2026 STMicroelectronics
# SPDX-License-Identifier: Apache-2.0
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.hashes import SHA256

from .general import KeyClass

# Sizes that bootutil will recognize
RSA_KEY_SIZES = [2048]

# The PSS salt length matches the digest length (32 bytes for SHA-256),
# which is what bootutil expects.
PSS_SALT_LENGTH = 32


class RSAUsageError(Exception):
    pass


def _pss():
    return padding.PSS(mgf=padding.MGF1(SHA256()),
                       salt_length=PSS_SALT_LENGTH)


class RSAPublic(KeyClass):
    """The public key can only do a few operations"""
    def __init__(self, key):
        self.key = key

    def key_size(self):
        return self.key.key_size

    def shortname(self):
        return "rsa"

    def sig_type(self):
        return "PKCS1_PSS_RSA{}_SHA256".format(self.key_size())

    def sig_tlv(self):
        return "RSA{}".format(self.key_size())

    def sig_len(self):
        return self.key_size() // 8

    def _unsupported(self, name):
        raise RSAUsageError("Operation {} requires private key".format(name))

    def _get_public(self):
        return self.key

    def export_private(self, path, passwd=None):
        self._unsupported('export_private')

    def sign(self, payload, pss=True):
        self._unsupported('sign')

    def verify(self, signature, payload, pss=True):
        """Raise cryptography's InvalidSignature if the check fails."""
        k = self._get_public()
        if pss:
            k.verify(signature=bytes(signature), data=bytes(payload),
                     padding=_pss(), algorithm=SHA256())
        else:
            k.verify(signature=bytes(signature), data=bytes(payload),
                     padding=padding.PKCS1v15(), algorithm=SHA256())


class RSA(RSAPublic):
    """
    Wrapper around an RSA key, with imgtool support.
    """

    def __init__(self, key):
        """The key should be a private key from cryptography"""
        self.key = key

    @staticmethod
    def generate(key_size=2048):
        if key_size not in RSA_KEY_SIZES:
            raise RSAUsageError("Key size {} is not supported by MCUboot"
                                .format(key_size))
        pk = rsa.generate_private_key(
                public_exponent=65537,
                key_size=key_size,
                backend=default_backend())
        return RSA(pk)

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
        # TraditionalOpenSSL gives the "RSA PRIVATE KEY" PEM block.
        pem = self.key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.TraditionalOpenSSL,
                encryption_algorithm=enc)
        with open(path, 'wb') as f:
            f.write(pem)

    def sign(self, payload, pss=True):
        if pss:
            pad = _pss()
        else:
            pad = padding.PKCS1v15()
        return self.key.sign(
                data=bytes(payload),
                padding=pad,
                algorithm=SHA256())
