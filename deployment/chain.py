import typing
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, List, NamedTuple, Optional, Sequence

from eth_typing import ChecksumAddress

from deployment.errors import DependencyError


class HandleState(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class DeploymentReceipt(NamedTuple):
    """Inclusion details of a confirmed deployment, as needed by the registry."""

    chain_id: int
    tx_hash: str
    block_number: int
    deployer: str
    abi: List[typing.Dict[str, Any]]


class DeployedContractHandle:
    """
    Tracks a single submitted contract deployment.

    The address is only readable once the deployment is confirmed; a pending
    or failed handle cannot be used as an input to another deployment.
    """

    def __init__(self, name: str, constructor_args: Sequence[Any]):
        self.name = name
        self.constructor_args = tuple(constructor_args)
        self.state = HandleState.PENDING
        self.receipt: Optional[DeploymentReceipt] = None
        self.instance: Any = None  # client specific, e.g. an ape ContractInstance
        self.error: Optional[BaseException] = None
        self._address: Optional[ChecksumAddress] = None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name} {self.state.value}>"

    @property
    def confirmed(self) -> bool:
        return self.state is HandleState.CONFIRMED

    @property
    def address(self) -> ChecksumAddress:
        if not self.confirmed:
            raise DependencyError(
                f"address is unavailable; deployment is {self.state.value}",
                contract_name=self.name,
                cause=self.error,
            )
        return self._address

    def mark_confirmed(self, address: ChecksumAddress) -> None:
        self._transition(HandleState.CONFIRMED)
        self._address = address

    def mark_failed(self, error: BaseException) -> None:
        self._transition(HandleState.FAILED)
        self.error = error

    def _transition(self, state: HandleState) -> None:
        if self.state is not HandleState.PENDING:
            raise RuntimeError(f"{self.name} deployment is already {self.state.value}")
        self.state = state


class ChainClient(ABC):
    """Submits contract deployments and tracks their confirmation."""

    @property
    @abstractmethod
    def chain_id(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def deploy_contract(
        self, name: str, constructor_args: Sequence[Any]
    ) -> DeployedContractHandle:
        """
        Submits a contract creation transaction and returns a pending handle
        without waiting for inclusion.
        """
        raise NotImplementedError

    @abstractmethod
    def await_confirmation(
        self, handle: DeployedContractHandle, timeout: Optional[float] = None
    ) -> ChecksumAddress:
        """Blocks until the deployment is confirmed and returns its address."""
        raise NotImplementedError

    def verify(self, handles: List[DeployedContractHandle]) -> None:
        """Publishes deployed contracts to a block explorer, where supported."""
