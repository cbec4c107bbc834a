# Copyright 2020-2026 STMicroelectronics
# SPDX-License-Identifier: Apache-2.0

import pytest

from tlvgen import keys


@pytest.fixture(scope='session')
def rsa_key():
    return keys.RSA.generate()


@pytest.fixture(scope='session')
def ecdsa224_key():
    return keys.ECDSA224P1.generate()


@pytest.fixture(scope='session')
def ecdsa256_key():
    return keys.ECDSA256P1.generate()


@pytest.fixture(scope='session')
def key_for(rsa_key, ecdsa224_key, ecdsa256_key):
    """Map a scheme value to a private key able to sign with it."""
    return {
        'hash': None,
        'rsa-2048-pss': rsa_key,
        'rsa-2048-pkcs15': rsa_key,
        'ecdsa-p224': ecdsa224_key,
        'ecdsa-p256': ecdsa256_key,
    }


@pytest.fixture(scope='session')
def key_files(tmp_path_factory, rsa_key, ecdsa256_key):
    d = tmp_path_factory.mktemp('keys')
    files = {
        'rsa': str(d / 'rsa.pem'),
        'rsa_pub': str(d / 'rsa_pub.pem'),
        'ecdsa': str(d / 'ecdsa.pem'),
        'ecdsa_enc': str(d / 'ecdsa_enc.pem'),
    }
    rsa_key.export_private(files['rsa'])
    rsa_key.export_public(files['rsa_pub'])
    ecdsa256_key.export_private(files['ecdsa'])
    ecdsa256_key.export_private(files['ecdsa_enc'], passwd=b'hunter2')
    return files
