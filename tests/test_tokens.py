"""
Tests for TokenRegistry.
"""

from x402_facilitator.tokens import TokenRegistry


def test_find_by_address_case_insensitive():
    token = TokenRegistry.find_by_address(
        "eip155:84532", "0x036cbd53842c5426634e7929541ec2318f3dcf7e"
    )
    assert token is not None
    assert token.name == "USDC"
    assert token.version == "2"


def test_find_on_wrong_network():
    assert TokenRegistry.find_by_address("eip155:97", "0x036CbD53842c5426634e7929541eC2318f3dCF7e") is None


def test_default_version():
    token = TokenRegistry.find_by_address("eip155:97", "0x375cADdd2cB68cE82e3D9B075D551067a7b4B816")
    assert token is not None
    assert token.version == "1"
