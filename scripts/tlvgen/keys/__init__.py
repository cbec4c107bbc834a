# Copyright 2017-2020 Linaro Limited
# Copyright 2019-2024 Arm Limited
# Copyright 2020-2026 STMicroelectronics
#
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Cryptographic key management for tlvgen.
"""

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ec import (
    EllipticCurvePrivateKey, EllipticCurvePublicKey)
from cryptography.hazmat.primitives.asymmetric.rsa import (
    RSAPrivateKey, RSAPublicKey)
from cryptography.exceptions import UnsupportedAlgorithm

from ..exceptions import KeyLoadError
from .rsa import RSA, RSAPublic, RSAUsageError, RSA_KEY_SIZES
from .ecdsa import (ECDSA224P1, ECDSA224P1Public, ECDSA256P1,
                    ECDSA256P1Public, ECDSAUsageError)

# Private and public wrapper for each supported curve.
EC_CURVES = {
    ECDSA224P1.curve.name: (ECDSA224P1, ECDSA224P1Public),
    ECDSA256P1.curve.name: (ECDSA256P1, ECDSA256P1Public),
}


def _wrap_private(pk):
    if isinstance(pk, RSAPrivateKey):
        if pk.key_size not in RSA_KEY_SIZES:
            raise KeyLoadError("Unsupported RSA key size: " +
                               str(pk.key_size))
        return RSA(pk)
    elif isinstance(pk, EllipticCurvePrivateKey):
        if pk.curve.name not in EC_CURVES:
            raise KeyLoadError("Unsupported EC curve: " + pk.curve.name)
        return EC_CURVES[pk.curve.name][0](pk)
    raise KeyLoadError("Unknown key type: " + str(type(pk)))


def _wrap_public(pk):
    if isinstance(pk, RSAPublicKey):
        if pk.key_size not in RSA_KEY_SIZES:
            raise KeyLoadError("Unsupported RSA key size: " +
                               str(pk.key_size))
        return RSAPublic(pk)
    elif isinstance(pk, EllipticCurvePublicKey):
        if pk.curve.name not in EC_CURVES:
            raise KeyLoadError("Unsupported EC curve: " + pk.curve.name)
        return EC_CURVES[pk.curve.name][1](pk)
    raise KeyLoadError("Unknown key type: " + str(type(pk)))


def load_pem(raw_pem, passwd=None):
    """Parse a PEM private or public key.

    Returns None when the key is encrypted and no passphrase was given.
    """
    if not raw_pem:
        raise KeyLoadError("No key material")
    if isinstance(raw_pem, str):
        try:
            raw_pem = raw_pem.encode('ascii')
        except UnicodeEncodeError as e:
            raise KeyLoadError("Malformed key: {}".format(e)) from e
    raw_pem = bytes(raw_pem)
    try:
        pk = serialization.load_pem_private_key(
                raw_pem,
                password=passwd,
                backend=default_backend())
        return _wrap_private(pk)
    except TypeError as e:
        if passwd is None and 'encrypted' in str(e):
            return None
        raise KeyLoadError(str(e)) from e
    except (ValueError, UnsupportedAlgorithm) as priv_error:
        # This seems to happen if the key is a public key, let's try
        # loading it as a public key.
        try:
            pk = serialization.load_pem_public_key(
                    raw_pem,
                    backend=default_backend())
        except (ValueError, UnsupportedAlgorithm):
            raise KeyLoadError("Malformed key: {}".format(priv_error)) \
                from priv_error
        return _wrap_public(pk)


def load(path, passwd=None):
    """Try loading a key from the given path.  Returns None if the password
    wasn't specified."""
    try:
        with open(path, 'rb') as f:
            raw_pem = f.read()
    except OSError as e:
        raise KeyLoadError("Cannot read key {}: {}".format(path, e)) from e
    return load_pem(raw_pem, passwd)


def pem_provider(raw_pem, passwd=None):
    """Key provider parsing in-memory PEM data on every call."""
    def provider():
        key = load_pem(raw_pem, passwd)
        if key is None:
            raise KeyLoadError("Key is protected by a passphrase")
        return key
    return provider


def file_provider(path, passwd=None):
    """Key provider reading the key file on every call."""
    def provider():
        key = load(path, passwd)
        if key is None:
            raise KeyLoadError(
                "{}: key is protected by a passphrase".format(path))
        return key
    return provider
