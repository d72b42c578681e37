import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .artifacts import ArtifactStore
from .commands import get_command
from .config import AdminConfig
from .errors import AdminError
from .invoker import ContractInvoker
from .resolver import NetworkResolver
from .submitter import TransactionSubmitter
from .transports import ChainClient, Web3ChainClient

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    ok: bool
    command: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[AdminError] = None

    @property
    def exit_code(self) -> int:
        if self.ok:
            return 0
        return self.error.exit_code if self.error is not None else 1

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"ok": self.ok, "command": self.command, "message": self.message}
        if self.ok:
            out["data"] = self.data
        else:
            out["error"] = type(self.error).__name__ if self.error is not None else "AdminError"
        return out


class Dispatcher:
    """Runs administrative commands against one configured network.

    All components share one chain client and one resolver, so contracts
    are resolved at most once per run. Independent commands can run
    concurrently with ``run_many``.
    """

    def __init__(
        self,
        config: AdminConfig,
        chain: Optional[ChainClient] = None,
        artifacts: Optional[ArtifactStore] = None,
        audit_dir: Optional[Path] = None,
    ):
        self.config = config
        self.chain = chain or Web3ChainClient(
            config.rpc_url,
            request_timeout=config.request_timeout,
            private_key=config.private_key,
            from_address=config.from_address,
        )
        self.resolver = NetworkResolver(config, self.chain, artifacts)
        self.submitter = TransactionSubmitter(
            self.chain,
            gas_limit=config.gas_limit,
            receipt_timeout=config.receipt_timeout,
            audit_log=config.audit_log,
            audit_dir=audit_dir,
        )
        self.invoker = ContractInvoker(self.chain, self.submitter)

    async def dispatch(self, command: str, tokens: Sequence[str] = (), **options: Any) -> DispatchResult:
        logger.debug("dispatch %s %s", command, list(tokens))
        try:
            result = await get_command(command).run(self, list(tokens), options)
        except AdminError as e:
            logger.info("%s failed: %s", command, e)
            return DispatchResult(ok=False, command=command, message=str(e), error=e)
        except Exception as e:
            logger.exception("%s crashed", command)
            err = AdminError(f"{command} failed unexpectedly: {type(e).__name__}: {e}")
            return DispatchResult(ok=False, command=command, message=str(err), error=err)
        return DispatchResult(ok=True, command=command, message=result.message, data=result.data)

    async def run_many(self, jobs: Sequence[Tuple[str, Sequence[str]]]) -> List[DispatchResult]:
        return list(await asyncio.gather(*(self.dispatch(name, tokens) for name, tokens in jobs)))

    async def close(self) -> None:
        await self.chain.close()
        self.resolver.artifacts.close()

    async def __aenter__(self) -> "Dispatcher":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()
