__all__ = [
    "ChainClient",
    "Web3ChainClient",
]

from .base import ChainClient
from .evm import Web3ChainClient
