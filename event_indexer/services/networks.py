# event_indexer/services/networks.py
"""
Network resolution and the per-network RPC client registry.

The registry is built once by ``create_app`` and handed to the components that
need chain access; nothing in the package holds a client as module state.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from web3 import Web3

from event_indexer.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkConfig:
    name: str
    chain_id: int
    rpc_url: str


# canonical name -> (chain id, config key holding the RPC URL)
NETWORKS: Dict[str, tuple] = {
    "mainnet": (1, "MAINNET_RPC_URL"),
    "testnet": (11155111, "TESTNET_RPC_URL"),
}

ALIASES = {
    "ethereum": "mainnet",
    "sepolia": "testnet",
}


def normalize_network(name: Optional[str]) -> str:
    """Return the canonical network identifier (raises ValidationError if unknown)."""
    nw = (name or "").strip().lower()
    nw = ALIASES.get(nw, nw)
    if nw not in NETWORKS:
        raise ValidationError(
            f"Unsupported network: {name!r}. Expected one of: {', '.join(sorted(NETWORKS))}"
        )
    return nw


def resolve_network(name: str, config: Mapping) -> NetworkConfig:
    nw = normalize_network(name)
    chain_id, url_key = NETWORKS[nw]
    rpc_url = config.get(url_key)
    if not rpc_url:
        raise ValidationError(f"{url_key} is not configured")
    return NetworkConfig(name=nw, chain_id=chain_id, rpc_url=rpc_url)


class ChainClient:
    """Thin wrapper over a web3 HTTP provider, limited to what indexing needs."""

    def __init__(self, network: NetworkConfig, timeout: int = 10):
        self.network = network
        # every upstream call carries a bounded timeout
        self.w3 = Web3(Web3.HTTPProvider(network.rpc_url, request_kwargs={"timeout": timeout}))

    def block_number(self) -> int:
        return int(self.w3.eth.block_number)

    def get_logs(self, address: str, topic: str, from_block: int, to_block: int) -> List:
        return self.w3.eth.get_logs({
            "address": Web3.to_checksum_address(address),
            "topics": [topic],
            "fromBlock": from_block,
            "toBlock": to_block,
        })

    def __repr__(self):
        return f"ChainClient(network={self.network.name!r}, chain_id={self.network.chain_id})"


class ClientRegistry:
    """Maps canonical network names to chain clients."""

    def __init__(self, clients: Mapping[str, object]):
        self._clients = {normalize_network(k): v for k, v in clients.items()}

    @classmethod
    def from_config(cls, config: Mapping) -> "ClientRegistry":
        timeout = int(config.get("RPC_TIMEOUT", 10))
        clients = {}
        for nw in NETWORKS:
            net = resolve_network(nw, config)
            clients[nw] = ChainClient(net, timeout=timeout)
            logger.info("RPC client ready", extra={"context": {"network": nw, "chain_id": net.chain_id}})
        return cls(clients)

    def get(self, network: str):
        nw = normalize_network(network)
        try:
            return self._clients[nw]
        except KeyError:
            raise ValidationError(f"No RPC client configured for network {nw!r}") from None

    def networks(self) -> List[str]:
        return sorted(self._clients)


def get_registry(app=None) -> ClientRegistry:
    """Return the registry attached to the (current) Flask app."""
    if app is None:
        from flask import current_app
        app = current_app
    return app.extensions["chain_clients"]
