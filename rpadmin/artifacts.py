"""Contract build artifacts: ABI plus per-network deployment addresses.

Artifacts follow the truffle layout, one ``<ContractName>.json`` per contract:

    {"contractName": "...", "abi": [...], "networks": {"<id>": {"address": "0x..."}}}

The store reads them from a local directory or from an HTTP(S) base URL.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from . import __version__
from .errors import UnknownContract

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractArtifact:
    name: str
    abi: List[Dict[str, Any]] = field(repr=False)
    networks: Dict[str, str] = field(default_factory=dict)

    def address_for(self, network_id: str) -> Optional[str]:
        return self.networks.get(str(network_id))


def parse_artifact(name: str, data: Dict[str, Any]) -> ContractArtifact:
    abi = data.get("abi")
    if not isinstance(abi, list):
        raise UnknownContract(f"artifact for {name} has no ABI")
    networks: Dict[str, str] = {}
    for network_id, entry in (data.get("networks") or {}).items():
        if isinstance(entry, dict) and entry.get("address"):
            networks[str(network_id)] = str(entry["address"])
    return ContractArtifact(name=name, abi=abi, networks=networks)


class ArtifactStore:
    def __init__(self, source: str, timeout_s: float = 20):
        self.source = source
        self.timeout_s = timeout_s
        self._remote = source.startswith(("http://", "https://"))
        self._session: Optional[requests.Session] = None
        if self._remote:
            self._session = requests.Session()
            self._session.headers.update({"User-Agent": f"rpadmin/{__version__}"})

    def _read_local(self, name: str) -> Dict[str, Any]:
        path = Path(self.source).expanduser() / f"{name}.json"
        if not path.exists():
            raise UnknownContract(f"no artifact for {name} at {path}")
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise UnknownContract(f"unreadable artifact {path}: {e}")

    def _read_remote(self, name: str) -> Dict[str, Any]:
        assert self._session is not None
        url = f"{self.source.rstrip('/')}/{name}.json"
        try:
            resp = self._session.get(url, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise UnknownContract(f"cannot fetch artifact {url}: {e}")
        if resp.status_code == 404:
            raise UnknownContract(f"no artifact for {name} at {url}")
        if resp.status_code >= 400:
            raise UnknownContract(f"cannot fetch artifact {url}: HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError:
            raise UnknownContract(f"artifact {url} is not JSON")

    def load(self, name: str) -> ContractArtifact:
        logger.debug("loading artifact %s from %s", name, self.source)
        data = self._read_remote(name) if self._remote else self._read_local(name)
        if not isinstance(data, dict):
            raise UnknownContract(f"artifact for {name} must be a JSON object")
        return parse_artifact(name, data)

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
