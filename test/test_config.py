#!/usr/bin/env python3
"""Tests for the configuration module."""

import pytest
from eth_account import Account

from gas_relayer.config import BlockchainConfig, NodeConfig, RelayerConfig, WhisperConfig

from conftest import LOCAL_KEY, RELAYER_ACCOUNT, SYM_KEY


@pytest.fixture
def relayer_env(monkeypatch, contracts_file):
    for name in ("NODE_PROTOCOL", "NODE_HOST", "NODE_PORT", "MIN_BALANCE", "GAS_LIMIT",
                 "WHISPER_TTL", "WHISPER_MIN_POW", "LOCAL_PRIVATE_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RELAYER_ACCOUNT", RELAYER_ACCOUNT)
    monkeypatch.setenv("WHISPER_SYM_KEY", SYM_KEY)
    monkeypatch.setenv("CONTRACTS_FILE", str(contracts_file))
    return monkeypatch


class TestNodeConfig:
    """Tests for NodeConfig."""

    def test_defaults(self):
        assert NodeConfig().url == "http://localhost:8545"

    def test_invalid_protocol(self):
        with pytest.raises(ValueError, match="Invalid node protocol"):
            NodeConfig(protocol="ftp")

    def test_invalid_port(self):
        with pytest.raises(ValueError, match="Node port"):
            NodeConfig(port=0)


class TestBlockchainConfig:
    """Tests for BlockchainConfig."""

    def test_checksum_address_conversion(self):
        config = BlockchainConfig(account="0x85bfe05492afc3d04ff3b2ca6771acf6f853d90d")
        assert config.account == "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"

    def test_invalid_account(self):
        with pytest.raises(ValueError, match="Invalid relayer account"):
            BlockchainConfig(account="invalid-address")

    def test_negative_threshold(self):
        with pytest.raises(ValueError, match="Minimum balance"):
            BlockchainConfig(account=RELAYER_ACCOUNT, min_balance=-1)


class TestWhisperConfig:
    """Tests for WhisperConfig."""

    def test_sym_key_gets_prefix(self):
        config = WhisperConfig(sym_key="cd" * 32)
        assert config.sym_key == SYM_KEY

    @pytest.mark.parametrize("sym_key,message", [
        ("", "symmetric key is required"),
        ("0x1234", "Invalid symmetric key length"),
        ("0x" + "zz" * 32, "Must be hexadecimal"),
    ])
    def test_invalid_sym_key(self, sym_key, message):
        with pytest.raises(ValueError, match=message):
            WhisperConfig(sym_key=sym_key)

    def test_invalid_ttl(self):
        with pytest.raises(ValueError, match="TTL must be positive"):
            WhisperConfig(sym_key=SYM_KEY, ttl=0)


class TestRelayerConfig:
    """Tests for RelayerConfig.from_env."""

    def test_from_env_defaults(self, relayer_env, contracts_file):
        config = RelayerConfig.from_env()

        assert config.node.url == "http://localhost:8545"
        assert config.blockchain.account == RELAYER_ACCOUNT
        assert config.blockchain.min_balance == 100000
        assert config.blockchain.gas_limit is None
        assert config.whisper.ttl == 10
        assert config.whisper.min_pow == 0.002
        assert config.whisper.pow_time == 1
        assert config.contracts_file == str(contracts_file)
        assert config.local_mode is False
        assert config.local_private_key is None

    def test_from_env_overrides(self, relayer_env):
        relayer_env.setenv("NODE_HOST", "geth")
        relayer_env.setenv("NODE_PORT", "8546")
        relayer_env.setenv("MIN_BALANCE", str(10**30))
        relayer_env.setenv("GAS_LIMIT", "300000")

        config = RelayerConfig.from_env()

        assert config.node.url == "http://geth:8546"
        assert config.blockchain.min_balance == 10**30
        assert config.blockchain.gas_limit == 300000

    def test_missing_sym_key(self, relayer_env):
        relayer_env.delenv("WHISPER_SYM_KEY")

        with pytest.raises(ValueError, match="WHISPER_SYM_KEY"):
            RelayerConfig.from_env()

    def test_missing_account(self, relayer_env):
        relayer_env.delenv("RELAYER_ACCOUNT")

        with pytest.raises(ValueError, match="RELAYER_ACCOUNT"):
            RelayerConfig.from_env()

    def test_local_mode_requires_key(self, relayer_env):
        with pytest.raises(ValueError, match="LOCAL_PRIVATE_KEY"):
            RelayerConfig.from_env(local_mode=True)

    def test_local_mode_derives_account_from_key(self, relayer_env):
        relayer_env.delenv("RELAYER_ACCOUNT")
        relayer_env.setenv("LOCAL_PRIVATE_KEY", LOCAL_KEY)

        config = RelayerConfig.from_env(local_mode=True)

        assert config.blockchain.account == Account.from_key(LOCAL_KEY).address
        assert config.local_private_key == LOCAL_KEY

    def test_local_mode_accepts_matching_account(self, relayer_env):
        relayer_env.setenv("RELAYER_ACCOUNT", Account.from_key(LOCAL_KEY).address.lower())
        relayer_env.setenv("LOCAL_PRIVATE_KEY", LOCAL_KEY)

        config = RelayerConfig.from_env(local_mode=True)

        assert config.blockchain.account == Account.from_key(LOCAL_KEY).address

    def test_local_mode_rejects_account_of_another_key(self, relayer_env):
        """Test that local mode cannot watch an account it does not sign for."""
        relayer_env.setenv("LOCAL_PRIVATE_KEY", LOCAL_KEY)

        with pytest.raises(ValueError, match="does not match the address of LOCAL_PRIVATE_KEY"):
            RelayerConfig.from_env(local_mode=True)

    def test_log_config_hides_secrets(self, relayer_env, caplog):
        caplog.set_level("INFO")
        RelayerConfig.from_env().log_config()

        assert "Gas Relayer Configuration" in caplog.text
        assert SYM_KEY not in caplog.text
