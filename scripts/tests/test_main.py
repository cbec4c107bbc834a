# Copyright 2020-2026 STMicroelectronics
# SPDX-License-Identifier: Apache-2.0

import hashlib

import pytest
from click.testing import CliRunner
from intelhex import IntelHex

from tlvgen import keys, tlv, tlvgen_version
from tlvgen.main import tlvgen

# Header with its TLV size field already laid out by the caller.
CONTENT = b'\x3d\xb8\xf3\x96' + bytes(28) + b'application body' * 64


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def image(tmp_path):
    path = tmp_path / 'app.bin'
    path.write_bytes(CONTENT)
    return path


def test_version(runner):
    result = runner.invoke(tlvgen, ['version'])
    assert result.exit_code == 0
    assert result.output.strip() == tlvgen_version


def test_resolve(runner):
    result = runner.invoke(tlvgen, ['resolve', '-s', 'rsa-2048-pss'])
    assert result.exit_code == 0
    assert 'flags: 0x00000042' in result.output
    assert 'size: 296' in result.output
    assert 'tlvs: SHA256, RSA2048' in result.output


def test_resolve_extra_flags(runner):
    result = runner.invoke(tlvgen, ['resolve', '-s', 'hash', '--pic',
                                    '--non-bootable'])
    assert result.exit_code == 0
    assert 'flags: 0x00000013' in result.output
    assert 'size: 36' in result.output


def test_resolve_unknown_scheme(runner):
    result = runner.invoke(tlvgen, ['resolve', '-s', 'rsa-4096'])
    assert result.exit_code == 2


def test_resolve_scheme_from_environment(runner):
    result = runner.invoke(tlvgen, ['resolve'],
                           env={'TLVGEN_RESOLVE_SCHEME': 'ecdsa-p256'})
    assert result.exit_code == 0
    assert 'size: 112' in result.output


def test_sign_hash_only(runner, image, tmp_path):
    out = tmp_path / 'app.tlv'
    result = runner.invoke(tlvgen, ['sign', '-s', 'hash', '--tlv-only',
                                    str(image), str(out)])
    assert result.exit_code == 0, result.output
    area = out.read_bytes()
    assert len(area) == 36
    assert area[4:] == hashlib.sha256(CONTENT).digest()


def test_keygen_sign_verify(runner, image, tmp_path):
    key = tmp_path / 'key.pem'
    pub = tmp_path / 'pub.pem'
    signed = tmp_path / 'app.signed.bin'
    result = runner.invoke(tlvgen, ['keygen', '-k', str(key), '-t',
                                    'ecdsa-p256', '-e', str(pub)])
    assert result.exit_code == 0, result.output
    assert isinstance(keys.load(str(pub)), keys.ECDSA256P1Public)

    result = runner.invoke(tlvgen, ['sign', '-s', 'ecdsa-p256', '-k',
                                    str(key), str(image), str(signed)])
    assert result.exit_code == 0, result.output
    data = signed.read_bytes()
    assert data[:len(CONTENT)] == CONTENT
    assert len(data) == len(CONTENT) + 112

    result = runner.invoke(tlvgen, ['verify', '-s', 'ecdsa-p256', '-k',
                                    str(pub), str(signed)])
    assert result.exit_code == 0, result.output
    assert 'Image was correctly validated' in result.output


def test_verify_detects_tampering(runner, image, tmp_path, key_files):
    signed = tmp_path / 'app.signed.bin'
    result = runner.invoke(tlvgen, ['sign', '-s', 'rsa-2048-pss', '-k',
                                    key_files['rsa'], str(image),
                                    str(signed)])
    assert result.exit_code == 0, result.output
    data = bytearray(signed.read_bytes())
    data[40] ^= 0xff
    signed.write_bytes(bytes(data))

    result = runner.invoke(tlvgen, ['verify', '-s', 'rsa-2048-pss', '-k',
                                    key_files['rsa_pub'], str(signed)])
    assert result.exit_code == 1
    assert 'invalid hash' in result.output


def test_sign_requires_key(runner, image, tmp_path):
    result = runner.invoke(tlvgen, ['sign', '-s', 'rsa-2048-pss',
                                    str(image), str(tmp_path / 'out.bin')])
    assert result.exit_code == 2
    assert 'requires a key' in result.output


def test_sign_wrong_key_type(runner, image, tmp_path, key_files):
    out = tmp_path / 'out.bin'
    result = runner.invoke(tlvgen, ['sign', '-s', 'rsa-2048-pss', '-k',
                                    key_files['ecdsa'], str(image), str(out)])
    assert result.exit_code == 1
    assert not out.exists()


def test_sign_missing_input(runner, tmp_path, key_files):
    result = runner.invoke(tlvgen, ['sign', '-s', 'hash',
                                    str(tmp_path / 'missing.bin'),
                                    str(tmp_path / 'out.bin')])
    assert result.exit_code == 2
    assert 'not found' in result.output


def test_sign_hex(runner, image, tmp_path):
    out = tmp_path / 'app.hex'
    result = runner.invoke(tlvgen, ['sign', '-s', 'hash', '-x', '0x8000000',
                                    str(image), str(out)])
    assert result.exit_code == 0, result.output
    ih = IntelHex(str(out))
    assert ih.minaddr() == 0x8000000
    data = bytes(ih.tobinarray())
    assert data[:len(CONTENT)] == CONTENT
    assert tlv.verify(data[:-36], data[-36:], 'hash') == tlv.VerifyResult.OK


def test_sign_hex_needs_address(runner, image, tmp_path):
    result = runner.invoke(tlvgen, ['sign', '-s', 'hash', str(image),
                                    str(tmp_path / 'app.hex')])
    assert result.exit_code == 2


def test_dumpinfo(runner, image, tmp_path, key_files):
    signed = tmp_path / 'app.signed.bin'
    result = runner.invoke(tlvgen, ['sign', '-s', 'rsa-2048-pkcs15', '-k',
                                    key_files['rsa'], str(image),
                                    str(signed)])
    assert result.exit_code == 0, result.output

    result = runner.invoke(tlvgen, ['dumpinfo', '--offset',
                                    hex(len(CONTENT)), str(signed)])
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0].startswith('SHA256')
    assert 'len=32' in lines[0]
    assert lines[1].startswith('RSA2048')
    assert 'len=256' in lines[1]


def test_dumpinfo_malformed(runner, tmp_path):
    bad = tmp_path / 'bad.tlv'
    bad.write_bytes(b'\x01\x00\x20\x00' + bytes(4))
    result = runner.invoke(tlvgen, ['dumpinfo', str(bad)])
    assert result.exit_code == 1


def test_getpub(runner, key_files):
    result = runner.invoke(tlvgen, ['getpub', '-k', key_files['ecdsa']])
    assert result.exit_code == 0, result.output
    assert result.output.startswith('-----BEGIN PUBLIC KEY-----')


def test_getpub_raw(runner, key_files, tmp_path):
    out = tmp_path / 'pub.der'
    result = runner.invoke(tlvgen, ['getpub', '-k', key_files['rsa'],
                                    '-e', 'raw', '-o', str(out)])
    assert result.exit_code == 0, result.output
    assert out.read_bytes() == keys.load(key_files['rsa']).get_public_bytes()


def test_sign_hash_rejects_key(runner, image, tmp_path, key_files):
    out = tmp_path / 'out.bin'
    result = runner.invoke(tlvgen, ['sign', '-s', 'hash', '-k',
                                    key_files['ecdsa_enc'], str(image),
                                    str(out)])
    assert result.exit_code == 2
    assert 'does not use a key' in result.output
    assert not out.exists()
