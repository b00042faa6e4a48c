"""
Tests for network configuration, session tuning and keypair loading.
"""
import json

import pytest
from pydantic import ValidationError
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from bonsol_sdk import BONSOL_PROGRAM_ID, NetworkConfig, SessionConfig, load_keypair

from tests.test_helpers import TEST_PROGRAM_ID, make_keypair

SIGNATURE = "5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uirBgmQpjKhoR4tjF3ZpRzrFmBV6UjKdiSZkQUW"


class TestNetworkConfig:
    """Test NetworkConfig class."""

    def test_load_networks(self):
        networks = NetworkConfig.load_networks()
        assert set(networks) == {"devnet", "testnet", "mainnet-beta", "localnet"}

    def test_from_network(self):
        config = NetworkConfig.from_network("devnet")
        assert config.rpc_url == "https://api.devnet.solana.com"
        assert config.explorer_cluster == "devnet"
        assert config.bonsol_program_id == BONSOL_PROGRAM_ID

    def test_rpc_override(self):
        config = NetworkConfig.from_network("testnet", rpc_url="https://my-node.example.com")
        assert config.rpc_url == "https://my-node.example.com"
        assert config.explorer_cluster == "testnet"

    def test_unknown_network(self):
        with pytest.raises(ValueError, match="Unknown network 'moonnet'"):
            NetworkConfig.from_network("moonnet")

    def test_from_env_defaults(self, monkeypatch):
        for var in ("BONSOL_NETWORK", "BONSOL_RPC_URL", "ANCHOR_PROVIDER_URL", "BONSOL_PROGRAM_ID"):
            monkeypatch.delenv(var, raising=False)
        config = NetworkConfig.from_env()
        assert config.name == "devnet"
        assert config.rpc_url == "https://api.devnet.solana.com"

    def test_from_env_overrides(self, monkeypatch):
        monkeypatch.setenv("BONSOL_NETWORK", "localnet")
        monkeypatch.delenv("BONSOL_RPC_URL", raising=False)
        monkeypatch.setenv("ANCHOR_PROVIDER_URL", "http://localhost:9999")
        monkeypatch.setenv("BONSOL_PROGRAM_ID", str(TEST_PROGRAM_ID))

        config = NetworkConfig.from_env()
        assert config.name == "localnet"
        assert config.rpc_url == "http://localhost:9999"
        assert config.bonsol_program_id == TEST_PROGRAM_ID

    def test_bonsol_rpc_url_wins(self, monkeypatch):
        monkeypatch.setenv("BONSOL_NETWORK", "devnet")
        monkeypatch.setenv("BONSOL_RPC_URL", "https://a.example.com")
        monkeypatch.setenv("ANCHOR_PROVIDER_URL", "https://b.example.com")
        assert NetworkConfig.from_env().rpc_url == "https://a.example.com"

    def test_tx_url(self):
        assert NetworkConfig.from_network("devnet").tx_url(SIGNATURE) == \
            f"https://explorer.solana.com/tx/{SIGNATURE}?cluster=devnet"

    def test_tx_url_mainnet(self):
        assert NetworkConfig.from_network("mainnet-beta").tx_url(SIGNATURE) == \
            f"https://explorer.solana.com/tx/{SIGNATURE}"

    def test_account_url_localnet(self):
        url = NetworkConfig.from_network("localnet").account_url(TEST_PROGRAM_ID)
        assert url == (f"https://explorer.solana.com/address/{TEST_PROGRAM_ID}"
                       "?cluster=custom&customUrl=http%3A%2F%2F127.0.0.1%3A8899")


class TestSessionConfig:
    def test_defaults(self):
        config = SessionConfig()
        assert config.poll_interval == 1.0
        assert config.watch_timeout == 60.0
        assert config.claim_state_reserve == 512
        assert config.capacity_budget == 10_240
        assert config.capacity is None
        assert config.verify_image is True
        assert config.instruction_name == "request_execution"

    @pytest.mark.parametrize("kwargs", [
        {"poll_interval": 0},
        {"watch_timeout": -1},
        {"max_consecutive_failures": 0},
        {"claim_state_reserve": -1},
        {"capacity": 0},
    ])
    def test_rejects_invalid_values(self, kwargs):
        with pytest.raises(ValidationError):
            SessionConfig(**kwargs)


class TestLoadKeypair:
    def _write(self, path, keypair: Keypair):
        path.write_text(json.dumps(list(bytes(keypair))))
        return path

    def test_load_from_path(self, tmp_path):
        keypair = make_keypair(3)
        path = self._write(tmp_path / "id.json", keypair)
        assert load_keypair(str(path)).pubkey() == keypair.pubkey()

    def test_load_from_anchor_wallet(self, tmp_path, monkeypatch):
        keypair = make_keypair(4)
        path = self._write(tmp_path / "wallet.json", keypair)
        monkeypatch.setenv("ANCHOR_WALLET", str(path))
        assert load_keypair().pubkey() == keypair.pubkey()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_keypair(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="not valid JSON"):
            load_keypair(str(path))

    def test_wrong_length(self, tmp_path):
        path = tmp_path / "short.json"
        path.write_text(json.dumps([1, 2, 3]))
        with pytest.raises(ValueError, match="64 bytes"):
            load_keypair(str(path))

    def test_pubkey_type(self, tmp_path):
        path = self._write(tmp_path / "id.json", make_keypair(5))
        assert isinstance(load_keypair(str(path)).pubkey(), Pubkey)
