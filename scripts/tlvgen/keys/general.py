"""General key class."""
# Copyright 2020-2026 STMicroelectronics
# SPDX-License-Identifier: Apache-2.0

import sys

from cryptography.hazmat.primitives import serialization


class KeyClass(object):
    def _get_public(self):
        raise NotImplementedError()

    def get_public_bytes(self):
        # Public keys are embedded in the bootloader in
        # "SubjectPublicKeyInfo" DER format.
        return self._get_public().public_bytes(
                encoding=serialization.Encoding.DER,
                format=serialization.PublicFormat.SubjectPublicKeyInfo)

    def get_public_pem(self):
        return self._get_public().public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo)

    def export_public(self, path):
        """Write the public key to the given file."""
        with open(path, 'wb') as f:
            f.write(self.get_public_pem())

    def emit_public_pem(self, file=None):
        print(str(self.get_public_pem(), 'utf-8'), file=file, end='')

    def emit_raw_public(self, file=None):
        if file is None:
            file = sys.stdout.buffer
        file.write(self.get_public_bytes())

    def is_private(self):
        return False

    def shortname(self):
        raise NotImplementedError()

    def sig_type(self):
        raise NotImplementedError()

    def sig_tlv(self):
        raise NotImplementedError()

    def sig_len(self):
        raise NotImplementedError()
