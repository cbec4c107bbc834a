#! /usr/bin/env python3
#
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

import getpass
import os
import sys

import click
from intelhex import IntelHex

from tlvgen import keys, tlv, tlvgen_version
from tlvgen.exceptions import TLVError
from tlvgen.keys import ECDSA224P1, ECDSA256P1, RSA

INTEL_HEX_EXT = "hex"

MIN_PYTHON_VERSION = (3, 6)
if sys.version_info < MIN_PYTHON_VERSION:
    sys.exit("Python %s.%s or newer is required by tlvgen."
             % MIN_PYTHON_VERSION)


def gen_rsa2048(keyfile, passwd, export):
    new_key = RSA.generate()
    new_key.export_private(path=keyfile, passwd=passwd)
    if export:
        new_key.export_public(path=export)


def gen_ecdsa_p224(keyfile, passwd, export):
    new_key = ECDSA224P1.generate()
    new_key.export_private(path=keyfile, passwd=passwd)
    if export:
        new_key.export_public(path=export)


def gen_ecdsa_p256(keyfile, passwd, export):
    new_key = ECDSA256P1.generate()
    new_key.export_private(path=keyfile, passwd=passwd)
    if export:
        new_key.export_public(path=export)


keygens = {
    'rsa-2048':   gen_rsa2048,
    'ecdsa-p224': gen_ecdsa_p224,
    'ecdsa-p256': gen_ecdsa_p256,
}
valid_encodings = ['pem', 'raw']
valid_schemes = [s.value for s in tlv.Scheme]


def load_key(keyfile):
    try:
        key = keys.load(keyfile)
        if key is not None:
            return key
        passwd = getpass.getpass("Enter key passphrase: ").encode('utf-8')
        key = keys.load(keyfile, passwd)
    except TLVError as e:
        raise click.UsageError(str(e))
    if key is None:
        raise click.UsageError("Invalid passphrase")
    return key


def get_password():
    while True:
        passwd = getpass.getpass("Enter key passphrase: ")
        passwd2 = getpass.getpass("Reenter passphrase: ")
        if passwd == passwd2:
            break
        click.echo("Passwords do not match, try again")

    # Password must be bytes, always use UTF-8 for consistent
    # encoding.
    return passwd.encode('utf-8')


def load_image(path):
    """Return (content, base address) of a binary or Intel HEX file"""
    ext = os.path.splitext(path)[1][1:].lower()
    try:
        if ext == INTEL_HEX_EXT:
            ih = IntelHex(path)
            return bytes(ih.tobinarray()), ih.minaddr()
        with open(path, 'rb') as f:
            return f.read(), None
    except FileNotFoundError:
        raise click.UsageError("Input file {} not found".format(path))


def save_image(path, data, base_addr=None):
    ext = os.path.splitext(path)[1][1:].lower()
    if ext == INTEL_HEX_EXT:
        # HEX output needs to know the base address
        if base_addr is None:
            raise click.UsageError("No address exists in input file "
                                   "neither was it provided by user")
        h = IntelHex()
        h.frombytes(bytes=data, offset=base_addr)
        h.tofile(path, 'hex')
    else:
        with open(path, 'wb') as f:
            f.write(data)


class BasedIntParamType(click.ParamType):
    name = 'integer'

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            return int(value, 0)
        except ValueError:
            self.fail('%s is not a valid integer. Please use code literals '
                      'prefixed with 0b/0B, 0o/0O, or 0x/0X as necessary.'
                      % value, param, ctx)


scheme_option = click.option(
    '-s', '--scheme', type=click.Choice(valid_schemes), required=True,
    help='Protection scheme. One of: {}'.format(', '.join(valid_schemes)))


@click.option('-p', '--password', is_flag=True,
              help='Prompt for password to protect key')
@click.option('-t', '--type', metavar='type', required=True,
              type=click.Choice(keygens.keys()), prompt=True,
              help='{}'.format('One of: {}'.format(', '.join(keygens.keys()))))
@click.option('-k', '--key', metavar='filename', required=True)
@click.option('-e', '--export', metavar='filename', required=False,
              help='Also write the public key to this file')
@click.command(help='Generate pub/private keypair')
def keygen(type, key, password, export):
    password = get_password() if password else None
    keygens[type](key, password, export)


@click.option('-e', '--encoding', metavar='encoding', default='pem',
              type=click.Choice(valid_encodings),
              help='Valid encodings: {}'.format(', '.join(valid_encodings)))
@click.option('-k', '--key', metavar='filename', required=True)
@click.option('-o', '--output', metavar='output', required=False,
              help='Specify the output file\'s name. \
                    The stdout is used if it is not provided.')
@click.command(help='Dump public key from keypair')
def getpub(key, encoding, output):
    key = load_key(key)
    if encoding == 'pem':
        if output:
            with open(output, 'w') as f:
                key.emit_public_pem(file=f)
        else:
            key.emit_public_pem()
    else:
        if output:
            with open(output, 'wb') as f:
                key.emit_raw_public(file=f)
        else:
            key.emit_raw_public()


@click.option('--non-bootable', default=False, is_flag=True,
              help='Mark the image as non-bootable.')
@click.option('--pic', default=False, is_flag=True,
              help='Mark the image as position independent.')
@scheme_option
@click.command(help='Print the header flags and TLV area size of a scheme')
def resolve(scheme, pic, non_bootable):
    layout = tlv.resolve(scheme)
    flags = layout.flags
    if pic:
        flags |= tlv.IMAGE_F['PIC']
    if non_bootable:
        flags |= tlv.IMAGE_F['NON_BOOTABLE']
    click.echo("flags: 0x{:08x}".format(flags))
    click.echo("size: {}".format(layout.size))
    click.echo("tlvs: {}".format(", ".join(layout.kinds)))


@click.argument('outfile')
@click.argument('infile')
@click.option('-x', '--hex-addr', type=BasedIntParamType(), required=False,
              help='Adjust address in hex output file.')
@click.option('--tlv-only', default=False, is_flag=True,
              help='Only write the TLV area to OUTFILE')
@click.option('-k', '--key', metavar='filename',
              help='Private key, required by signed schemes')
@scheme_option
@click.command(help='''Append the TLV area to an image.\n
               INFILE must hold the image header, with its TLV size field
               already set, followed by the body. INFILE and OUTFILE are
               parsed as Intel HEX if the params have .hex extension,
               otherwise binary format is used''')
def sign(scheme, key, tlv_only, hex_addr, infile, outfile):
    layout = tlv.resolve(scheme)
    if len(layout.kinds) > 1 and key is None:
        raise click.UsageError("Scheme {} requires a key (-k)".format(scheme))
    if len(layout.kinds) == 1 and key is not None:
        raise click.UsageError("Scheme {} does not use a key".format(scheme))
    if key is not None:
        # Ask for a passphrase only once, then sign with the loaded key.
        signing_key = load_key(key)
        provider = lambda: signing_key  # noqa: E731
    else:
        provider = None

    payload, base_addr = load_image(infile)
    gen = tlv.TlvGen(scheme, key_provider=provider)
    gen.append(payload)
    try:
        tlv_area = gen.finalize()
    except TLVError as e:
        raise click.ClickException(str(e))

    if hex_addr is not None:
        base_addr = hex_addr
    if tlv_only:
        if base_addr is not None:
            base_addr += len(payload)
        save_image(outfile, tlv_area, base_addr)
    else:
        save_image(outfile, payload + tlv_area, base_addr)


@click.argument('imgfile')
@click.option('-k', '--key', metavar='filename')
@scheme_option
@click.command(help="Check the TLV area at the end of an image")
def verify(scheme, key, imgfile):
    key = load_key(key) if key else None
    b, _ = load_image(imgfile)
    size = tlv.resolve(scheme).size
    if len(b) < size:
        click.echo("Image is smaller than its TLV area")
        sys.exit(1)
    payload, tlv_area = b[:-size], b[-size:]
    ret = tlv.verify(payload, tlv_area, scheme, key)
    if ret == tlv.VerifyResult.OK:
        click.echo("Image was correctly validated")
        click.echo("Image digest: {}".format(tlv.get_digest(payload).hex()))
        return
    elif ret == tlv.VerifyResult.INVALID_LAYOUT:
        click.echo("TLV area does not match scheme {}".format(scheme))
    elif ret == tlv.VerifyResult.INVALID_HASH:
        click.echo("Image has an invalid hash")
    elif ret == tlv.VerifyResult.INVALID_SIGNATURE:
        click.echo("No signature found for the given key")
    elif ret == tlv.VerifyResult.KEY_MISMATCH:
        click.echo("Key type does not match TLV record")
    else:
        click.echo("Unknown return code: {}".format(ret))
    sys.exit(1)


@click.argument('tlvfile')
@click.option('--offset', type=BasedIntParamType(), default=0,
              help='Offset of the TLV area in TLVFILE')
@click.command(help='Print the records of a TLV area')
def dumpinfo(tlvfile, offset):
    b, _ = load_image(tlvfile)
    names = {v: k for k, v in tlv.TLV_VALUES.items()}
    try:
        for tag, value in tlv.iter_tlvs(b[offset:]):
            click.echo("{:<10} tag=0x{:02x} len={:<4} {}".format(
                names.get(tag, "UNKNOWN"), tag, len(value), value.hex()))
    except TLVError as e:
        raise click.ClickException(str(e))


@click.command(help='Print tlvgen version information')
def version():
    click.echo(tlvgen_version)


@click.group(context_settings=dict(help_option_names=['-h', '--help'],
                                   auto_envvar_prefix='TLVGEN'))
def tlvgen():
    pass


tlvgen.add_command(keygen)
tlvgen.add_command(getpub)
tlvgen.add_command(resolve)
tlvgen.add_command(sign)
tlvgen.add_command(verify)
tlvgen.add_command(dumpinfo)
tlvgen.add_command(version)


if __name__ == '__main__':
    tlvgen()
