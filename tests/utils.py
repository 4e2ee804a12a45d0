"""Shared test helpers: fake chain client and log builders."""
from hexbytes import HexBytes
from web3 import Web3
from web3.datastructures import AttributeDict


CONTRACT = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"
HOLDER_A = "0x00000000000000000000000000000000000000aa"
HOLDER_B = "0x00000000000000000000000000000000000000bb"

TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
APPROVAL_TOPIC = "0x8c5be1e5ebec7d5bd14f71427d1e84f3dd0314c0f7b2291e5b200ac8c7c3b925"

ERC20_INTERFACE = [
    {
        "type": "event",
        "name": "Transfer",
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "from", "type": "address"},
            {"indexed": True, "name": "to", "type": "address"},
            {"indexed": False, "name": "value", "type": "uint256"},
        ],
    },
    {
        "type": "event",
        "name": "Approval",
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "owner", "type": "address"},
            {"indexed": True, "name": "spender", "type": "address"},
            {"indexed": False, "name": "value", "type": "uint256"},
        ],
    },
    {
        "type": "function",
        "name": "transfer",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "to", "type": "address"}, {"name": "value", "type": "uint256"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
]


def _word(value: int) -> HexBytes:
    return HexBytes(value.to_bytes(32, "big"))


def _address_topic(addr: str) -> HexBytes:
    return HexBytes(bytes(12) + bytes.fromhex(addr[2:]))


def make_log(block, log_index, tx=None, topic=TRANSFER_TOPIC, value=1, address=CONTRACT):
    """A log shaped like what web3 returns from eth_getLogs."""
    tx = tx or "0x" + f"{block:032x}{log_index:032x}"
    return AttributeDict({
        "address": Web3.to_checksum_address(address),
        "blockNumber": block,
        "blockHash": HexBytes("0x" + f"{block:064x}"),
        "transactionHash": HexBytes(tx),
        "transactionIndex": 0,
        "logIndex": log_index,
        "topics": [HexBytes(topic), _address_topic(HOLDER_A), _address_topic(HOLDER_B)],
        "data": _word(value),
        "removed": False,
    })


class FakeChainClient:
    """In-memory stand-in for ChainClient."""

    def __init__(self, head=6_701_000):
        self.reset(head)

    def reset(self, head=6_701_000):
        self.head = head
        self.head_error = None
        self.logs = []
        self.failing = set()   # chunk start blocks that raise
        self.calls = []

    def block_number(self):
        if self.head_error is not None:
            raise self.head_error
        return self.head

    def get_logs(self, address, topic, from_block, to_block):
        self.calls.append((topic, from_block, to_block))
        if from_block in self.failing or "*" in self.failing:
            raise ConnectionError(f"upstream timeout for {from_block}-{to_block}")
        return [
            log for log in self.logs
            if Web3.to_hex(log["topics"][0]) == topic
            and from_block <= log["blockNumber"] <= to_block
            and log["address"].lower() == address.lower()
        ]
