"""
Tests for ERC-6492 signature helpers.
"""

import pytest

from x402_facilitator.utils.erc6492 import (
    ERC6492_MAGIC_VALUE,
    is_erc6492_signature,
    parse_erc6492_signature,
    wrap_erc6492_signature,
)

FACTORY = "0x4e59b44847b379578588920cA78FbF26c0B4956C"


def test_plain_signature_is_not_wrapped():
    assert is_erc6492_signature("0x" + "ab" * 65) is False
    assert is_erc6492_signature(b"") is False


def test_parse_wrapped_signature():
    wrapped = wrap_erc6492_signature(FACTORY, b"\x01\x02", b"\x11" * 65)

    assert wrapped.endswith(ERC6492_MAGIC_VALUE)
    assert is_erc6492_signature("0x" + wrapped.hex())

    parsed = parse_erc6492_signature(wrapped)
    assert parsed.factory == FACTORY
    assert parsed.factory_calldata == b"\x01\x02"
    assert parsed.inner_signature == b"\x11" * 65


def test_parse_rejects_plain_signature():
    with pytest.raises(ValueError):
        parse_erc6492_signature("0x" + "ab" * 65)


def test_parse_rejects_garbage_with_magic_suffix():
    with pytest.raises(Exception):
        parse_erc6492_signature(b"\x00" * 10 + ERC6492_MAGIC_VALUE)
