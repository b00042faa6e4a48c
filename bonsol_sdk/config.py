"""
Configuration for the Bonsol SDK: networks, session tuning and keypairs.
"""
import json
import logging
import os
import urllib.parse
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .builder import DEFAULT_CAPACITY_BUDGET, DEFAULT_CLAIM_STATE_RESERVE
from .instructions import BONSOL_PROGRAM_ID, DEFAULT_INSTRUCTION_NAME

logger = logging.getLogger(__name__)

DEFAULT_NETWORK = "devnet"
DEFAULT_KEYPAIR_PATH = "~/.config/solana/id.json"
EXPLORER_URL = "https://explorer.solana.com"

NETWORKS: Dict[str, Dict[str, Optional[str]]] = {
    "devnet": {"rpc_url": "https://api.devnet.solana.com", "explorer_cluster": "devnet"},
    "testnet": {"rpc_url": "https://api.testnet.solana.com", "explorer_cluster": "testnet"},
    "mainnet-beta": {"rpc_url": "https://api.mainnet-beta.solana.com", "explorer_cluster": None},
    "localnet": {"rpc_url": "http://127.0.0.1:8899", "explorer_cluster": "custom"},
}


class NetworkConfig(BaseModel):
    """Where to reach a cluster and how to link to its explorer"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    rpc_url: str
    explorer_cluster: Optional[str] = None
    bonsol_program_id: Pubkey = BONSOL_PROGRAM_ID

    @staticmethod
    def load_networks() -> Dict[str, Dict[str, Optional[str]]]:
        return dict(NETWORKS)

    @classmethod
    def from_network(cls, network: str, rpc_url: Optional[str] = None) -> "NetworkConfig":
        """
        Build the configuration of a known network.

        Args:
            network: One of the names returned by ``load_networks``
            rpc_url: Optional RPC URL override

        Raises:
            ValueError: If the network is unknown
        """
        if network not in NETWORKS:
            raise ValueError(f"Unknown network '{network}'. Available: {', '.join(sorted(NETWORKS))}")
        entry = NETWORKS[network]
        return cls(
            name=network,
            rpc_url=rpc_url or entry["rpc_url"],
            explorer_cluster=entry["explorer_cluster"]
        )

    @classmethod
    def from_env(cls) -> "NetworkConfig":
        """
        Read BONSOL_NETWORK, then BONSOL_RPC_URL or ANCHOR_PROVIDER_URL as RPC override,
        and BONSOL_PROGRAM_ID as Bonsol program override.
        """
        network = os.environ.get("BONSOL_NETWORK", DEFAULT_NETWORK)
        rpc_url = os.environ.get("BONSOL_RPC_URL") or os.environ.get("ANCHOR_PROVIDER_URL")
        config = cls.from_network(network, rpc_url=rpc_url)
        program_id = os.environ.get("BONSOL_PROGRAM_ID")
        if program_id:
            config.bonsol_program_id = Pubkey.from_string(program_id)
        logger.debug(f"Network configuration from environment: {config.name} at {config.rpc_url}")
        return config

    def _explorer_query(self) -> str:
        if self.explorer_cluster is None:
            return ""
        if self.explorer_cluster == "custom":
            return "?cluster=custom&customUrl=" + urllib.parse.quote(self.rpc_url, safe="")
        return f"?cluster={self.explorer_cluster}"

    def tx_url(self, signature: str) -> str:
        """Explorer link for a transaction signature"""
        return f"{EXPLORER_URL}/tx/{signature}{self._explorer_query()}"

    def account_url(self, address: Pubkey) -> str:
        """Explorer link for an account"""
        return f"{EXPLORER_URL}/address/{address}{self._explorer_query()}"


class SessionConfig(BaseModel):
    """Tuning for one request session"""

    poll_interval: float = Field(1.0, gt=0)
    watch_timeout: float = Field(60.0, ge=0)
    read_retries: int = Field(2, ge=0)
    max_consecutive_failures: int = Field(5, ge=1)
    confirm_timeout: float = Field(60.0, gt=0)
    claim_state_reserve: int = Field(DEFAULT_CLAIM_STATE_RESERVE, ge=0)
    capacity_budget: int = Field(DEFAULT_CAPACITY_BUDGET, gt=0)
    capacity: Optional[int] = Field(None, gt=0)
    verify_image: bool = True
    instruction_name: str = DEFAULT_INSTRUCTION_NAME


def load_keypair(path: Optional[str] = None) -> Keypair:
    """
    Load a Solana CLI keypair file (JSON array of 64 bytes).

    Args:
        path: Keypair file; defaults to ANCHOR_WALLET, then ~/.config/solana/id.json

    Returns:
        The keypair

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a valid keypair
    """
    raw_path = path or os.environ.get("ANCHOR_WALLET") or DEFAULT_KEYPAIR_PATH
    keypair_path = Path(os.path.expanduser(raw_path))

    with keypair_path.open("r") as f:
        try:
            secret = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Keypair file {keypair_path} is not valid JSON: {e}") from e

    if not isinstance(secret, list) or len(secret) != 64:
        raise ValueError(f"Keypair file {keypair_path} must hold a JSON array of 64 bytes")
    keypair = Keypair.from_bytes(bytes(secret))
    logger.debug(f"Loaded keypair {str(keypair.pubkey())[:8]}... from {keypair_path}")
    return keypair
