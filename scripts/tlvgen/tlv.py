# Copyright 2018 Nordic Semiconductor ASA
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
TLV area generation.

Images are followed immediately by a list of TLV records holding the
integrity information of the image.  The size of that list is stored in
the image header, and the header is covered by the hash and signature, so
generation takes two passes: the size is declared first from the
configured record kinds, and the records are computed once the header and
body have been accumulated.  Signatures that vary in length are always
accounted at their largest possible size.
"""

import hashlib
import struct
from collections import namedtuple
from enum import Enum

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm

from . import keys
from .exceptions import (ConfigurationError, GeneratorFinalizedError,
                         InvariantViolation, KeyLoadError, SigningError,
                         TLVFormatError)

# Image header flags.
IMAGE_F = {
        'PIC':                      0x00000001,
        'SHA256':                   0x00000002,
        'PKCS15_RSA2048_SHA256':    0x00000004,
        'ECDSA224_SHA256':          0x00000008,
        'NON_BOOTABLE':             0x00000010,
        'ECDSA256_SHA256':          0x00000020,
        'PKCS1_PSS_RSA2048_SHA256': 0x00000040,
}

TLV_VALUES = {
        'SHA256': 0x01,
        'RSA2048': 0x02,
        'ECDSA224': 0x03,
        'ECDSA256': 0x04,
}

# Largest payload each record kind can carry.  Both the declared size and
# the generated records are checked against this table.
TLV_PAYLOAD_LEN = {
        'SHA256': 32,
        'RSA2048': 256,
        'ECDSA224': 64,
        'ECDSA256': 72,
}

TLV_SIZE = 4
TLV_FMT = '<BBH'

SHA_TLVS = ['SHA256']

VerifyResult = Enum('VerifyResult',
                    ['OK', 'INVALID_LAYOUT', 'INVALID_HASH',
                     'INVALID_SIGNATURE', 'KEY_MISMATCH'])


class Scheme(Enum):
    HASH_ONLY = 'hash'
    RSA2048_PSS = 'rsa-2048-pss'
    RSA2048_PKCS15 = 'rsa-2048-pkcs15'
    ECDSA224 = 'ecdsa-p224'
    ECDSA256 = 'ecdsa-p256'


SchemeT = namedtuple('SchemeT', ['flags', 'kinds', 'key_class'])

SCHEMES = {
    Scheme.HASH_ONLY: SchemeT(
        ['SHA256'], ['SHA256'], None),
    Scheme.RSA2048_PSS: SchemeT(
        ['SHA256', 'PKCS1_PSS_RSA2048_SHA256'], ['SHA256', 'RSA2048'],
        keys.RSA),
    Scheme.RSA2048_PKCS15: SchemeT(
        ['SHA256', 'PKCS15_RSA2048_SHA256'], ['SHA256', 'RSA2048'],
        keys.RSA),
    Scheme.ECDSA224: SchemeT(
        ['SHA256', 'ECDSA224_SHA256'], ['SHA256', 'ECDSA224'],
        keys.ECDSA224P1),
    Scheme.ECDSA256: SchemeT(
        ['SHA256', 'ECDSA256_SHA256'], ['SHA256', 'ECDSA256'],
        keys.ECDSA256P1),
}

Layout = namedtuple('Layout', ['kinds', 'flags', 'size'])


def get_scheme(scheme):
    """Accept a Scheme member or its string value."""
    if isinstance(scheme, Scheme):
        return scheme
    try:
        return Scheme(scheme)
    except ValueError:
        raise ConfigurationError("Unsupported protection scheme: {!r}"
                                 .format(scheme)) from None


def resolve(scheme):
    """Return the record kinds, header flags and TLV area size of a scheme.

    This only depends on the scheme, so it can be called before the
    header is laid out.
    """
    conf = SCHEMES[get_scheme(scheme)]
    flags = 0
    for name in conf.flags:
        flags |= IMAGE_F[name]
    size = sum(TLV_SIZE + TLV_PAYLOAD_LEN[kind] for kind in conf.kinds)
    return Layout(tuple(conf.kinds), flags, size)


def get_digest(payload):
    sha = hashlib.sha256()
    sha.update(payload)
    return sha.digest()


class TLV():
    def __init__(self):
        self.buf = bytearray()

    def __len__(self):
        return len(self.buf)

    def add(self, kind, payload):
        """
        Add a TLV record.  Kind should be a string found in TLV_VALUES above,
        or the numeric tag itself.
        """
        if isinstance(kind, int):
            tlv_value = kind
        elif kind in TLV_VALUES:
            tlv_value = TLV_VALUES[kind]
        else:
            raise ConfigurationError("Unknown TLV kind {}".format(kind))
        self.buf += struct.pack(TLV_FMT, tlv_value, 0, len(payload))
        self.buf += payload

    def get(self):
        return bytes(self.buf)


def iter_tlvs(data):
    """Yield (tag, payload) for every record of a TLV area."""
    data = bytes(data)
    off = 0
    while off < len(data):
        if off + TLV_SIZE > len(data):
            raise TLVFormatError("Truncated TLV header at offset {}"
                                 .format(off))
        tag, reserved, length = struct.unpack_from(TLV_FMT, data, off)
        if reserved != 0:
            raise TLVFormatError("Reserved byte of TLV at offset {} is {}"
                                 .format(off, reserved))
        off += TLV_SIZE
        if off + length > len(data):
            raise TLVFormatError("TLV 0x{:02x} overruns the area".format(tag))
        yield tag, data[off:off + length]
        off += length


class TlvGen():
    """Builds the TLV area of one image.

    The generator is configured from a scheme, then fed the covered
    content (header followed by body) through append(), and consumed by
    a single call to finalize().  key_provider is a callable returning a
    private key wrapper from tlvgen.keys; it is only called by finalize()
    and only when the scheme carries a signature.
    """

    def __init__(self, scheme, key_provider=None):
        self.scheme = get_scheme(scheme)
        self.kinds, self.flags, self.size = resolve(self.scheme)
        self.key_provider = key_provider
        self.payload = bytearray()
        self.finalized = False

    def __repr__(self):
        return "<{} scheme={}, flags=0x{:x}, size={}, payload={}, " \
               "finalized={}>".format(
                    self.__class__.__name__,
                    self.scheme.value,
                    self.flags,
                    self.size,
                    0 if self.payload is None else len(self.payload),
                    self.finalized)

    def get_flags(self):
        """Header flags for this configuration.  Can be called at any time."""
        return self.flags

    def get_size(self):
        """Size of the TLV area.  Can be called at any time."""
        return self.size

    def append(self, data):
        """Add bytes to the covered content."""
        if self.finalized:
            raise GeneratorFinalizedError("TLV area was already generated")
        self.payload += data

    def _get_key(self, kind):
        if self.key_provider is None:
            raise KeyLoadError("Scheme {} needs a signing key"
                               .format(self.scheme.value))
        try:
            key = self.key_provider()
        except KeyLoadError:
            raise
        except (OSError, ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyLoadError("Cannot load signing key: {}".format(e)) from e
        if key is None:
            raise KeyLoadError("Key provider returned no key")
        if not isinstance(key, SCHEMES[self.scheme].key_class) or \
                key.sig_tlv() != kind:
            raise KeyLoadError("Scheme {} can not be used with a {} key"
                               .format(self.scheme.value,
                                       type(key).__name__))
        return key

    def _sign(self, key, kind, payload):
        try:
            if kind == 'RSA2048':
                sig = key.sign(payload,
                               pss=self.scheme is Scheme.RSA2048_PSS)
            else:
                sig = key.sign(payload)
        except (ValueError, TypeError, OSError, UnsupportedAlgorithm,
                keys.RSAUsageError, keys.ECDSAUsageError) as e:
            raise SigningError("{} signing failed: {}".format(kind, e)) from e

        max_len = TLV_PAYLOAD_LEN[kind]
        if len(sig) > max_len:
            raise InvariantViolation(
                "{} signature is {} bytes, declared size is {}"
                .format(kind, len(sig), max_len))
        if kind in ('ECDSA224', 'ECDSA256'):
            # DER signatures vary in length; pad up to the declared size.
            sig += b'\000' * (max_len - len(sig))
        return sig

    def finalize(self):
        """Compute the TLV area over the accumulated content.

        The generator can not be used again afterwards, even if this
        raises.
        """
        if self.finalized:
            raise GeneratorFinalizedError("TLV area was already generated")
        self.finalized = True
        payload, self.payload = bytes(self.payload), None

        tlv = TLV()
        for kind in self.kinds:
            if kind in SHA_TLVS:
                value = get_digest(payload)
            else:
                key = self._get_key(kind)
                value = self._sign(key, kind, payload)
            if len(value) != TLV_PAYLOAD_LEN[kind]:
                raise InvariantViolation(
                    "{} record is {} bytes, expected {}"
                    .format(kind, len(value), TLV_PAYLOAD_LEN[kind]))
            tlv.add(kind, value)

        if len(tlv) != self.size:
            raise InvariantViolation("TLV area is {} bytes, declared {}"
                                     .format(len(tlv), self.size))
        return tlv.get()


def verify(payload, tlv_area, scheme, key=None):
    """Check a TLV area against the content it covers.

    Host side counterpart of finalize(), for build pipelines and tests.
    """
    kinds, _, size = resolve(scheme)
    if len(tlv_area) != size:
        return VerifyResult.INVALID_LAYOUT
    try:
        records = list(iter_tlvs(tlv_area))
    except TLVFormatError:
        return VerifyResult.INVALID_LAYOUT
    if [tag for tag, _ in records] != [TLV_VALUES[k] for k in kinds]:
        return VerifyResult.INVALID_LAYOUT

    for kind, (_, value) in zip(kinds, records):
        if kind in SHA_TLVS:
            if value != get_digest(payload):
                return VerifyResult.INVALID_HASH
        elif key is not None:
            if key.sig_tlv() != kind:
                return VerifyResult.KEY_MISMATCH
            try:
                if kind == 'RSA2048':
                    key.verify(value, payload,
                               pss=get_scheme(scheme) is Scheme.RSA2048_PSS)
                else:
                    key.verify(value, payload)
            except (InvalidSignature, ValueError):
                return VerifyResult.INVALID_SIGNATURE
    return VerifyResult.OK
