import asyncio
import logging
from typing import Dict, Optional, Tuple

from web3 import Web3

from .artifacts import ArtifactStore, ContractArtifact
from .config import AdminConfig
from .errors import UnknownNetwork, UsageError
from .models import ContractRef
from .transports import ChainClient

logger = logging.getLogger(__name__)


class NetworkResolver:
    """Resolve deployed contracts for the network the chain client talks to.

    Resolved refs are cached for the resolver's lifetime, so the same
    (name, network) pair always maps to the same address within a run.
    """

    def __init__(self, config: AdminConfig, chain: ChainClient, artifacts: Optional[ArtifactStore] = None):
        self.config = config
        self.chain = chain
        self.artifacts = artifacts or ArtifactStore(config.artifacts, timeout_s=config.request_timeout)
        self._network_id: Optional[str] = config.network_id
        self._artifacts: Dict[str, ContractArtifact] = {}
        self._refs: Dict[Tuple[str, str], ContractRef] = {}

    async def network_id(self) -> str:
        if self._network_id is None:
            self._network_id = await self.chain.network_id()
            logger.debug("connected network id: %s", self._network_id)
        return self._network_id

    async def _artifact(self, name: str) -> ContractArtifact:
        artifact = self._artifacts.get(name)
        if artifact is None:
            artifact = await asyncio.to_thread(self.artifacts.load, name)
            self._artifacts[name] = artifact
        return artifact

    async def resolve(self, contract_name: str, network_id: Optional[str] = None) -> ContractRef:
        network = str(network_id) if network_id is not None else await self.network_id()
        key = (contract_name, network)
        ref = self._refs.get(key)
        if ref is not None:
            return ref

        artifact = await self._artifact(contract_name)
        address = artifact.address_for(network)
        if not address or not Web3.is_address(address):
            raise UnknownNetwork(contract_name, network)

        ref = ContractRef(
            name=contract_name,
            address=Web3.to_checksum_address(address),
            abi=artifact.abi,
            network_id=network,
        )
        self._refs[key] = ref
        logger.info("resolved %s on network %s at %s", contract_name, network, ref.address)
        return ref

    async def bind(self, contract_name: str, address: str) -> ContractRef:
        """Ref for a contract created at run time, using ``contract_name``'s ABI."""
        if not Web3.is_address(address):
            raise UsageError(f"invalid {contract_name} address: {address!r}")
        artifact = await self._artifact(contract_name)
        return ContractRef(
            name=contract_name,
            address=Web3.to_checksum_address(address),
            abi=artifact.abi,
            network_id=self._network_id,
        )
