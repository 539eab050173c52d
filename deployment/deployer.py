import os
import typing
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, List, Optional, Sequence

import click
from ape import networks, project
from ape.api import AccountAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractContainer, ContractInstance
from ape.exceptions import (
    ApeException,
    ContractLogicError,
    TransactionError,
    TransactionNotFoundError,
    VirtualMachineError,
)
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address, to_hex
from web3 import Web3

from deployment.chain import ChainClient, DeployedContractHandle, DeploymentReceipt
from deployment.confirm import _confirm_resolution
from deployment.constants import LOCAL_NETWORKS
from deployment.errors import (
    ConfigurationError,
    ConfirmationError,
    ConfirmationTimeout,
    SubmissionError,
)

w3 = Web3()


def is_local_network() -> bool:
    return networks.provider.network.name in LOCAL_NETWORKS


def check_etherscan_plugin() -> None:
    """
    Checks that the ape-etherscan plugin is installed and that
    the appropriate API key environment variable is set.
    """
    if is_local_network():
        # unnecessary for local deployment
        return
    try:
        from ape_etherscan.utils import API_KEY_ENV_KEY_MAP
    except ImportError:
        raise ConfigurationError("Please install the ape-etherscan plugin to verify contracts.")
    ecosystem_name = networks.provider.network.ecosystem.name
    explorer_envvar = API_KEY_ENV_KEY_MAP.get(ecosystem_name)
    api_key = os.environ.get(explorer_envvar)
    if not api_key:
        raise ConfigurationError(f"{explorer_envvar} is not set.")


def check_infura_plugin() -> None:
    """Checks that the ape-infura plugin is installed."""
    if is_local_network():
        return  # unnecessary for local deployment
    if networks.provider.name != "infura":
        return  # unnecessary when using a provider different than infura
    try:
        from ape_infura.provider import _ENVIRONMENT_VARIABLE_NAMES
    except ImportError:
        raise ConfigurationError("Please install the ape-infura plugin to use infura.")
    for envvar in _ENVIRONMENT_VARIABLE_NAMES:
        api_key = os.environ.get(envvar)
        if api_key:
            break
    else:
        raise ConfigurationError(
            f"No Infura API key found in "
            f"environment variables: {', '.join(_ENVIRONMENT_VARIABLE_NAMES)}"
        )


def check_plugins(verify: bool) -> None:
    print("Checking plugins...")
    if verify:
        check_etherscan_plugin()
    check_infura_plugin()


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            contract_container = getattr(dependency_api, contract)
            return contract_container
        except AttributeError:
            continue
    raise ValueError(f"No contract found with name '{contract}'.")


def get_contract_container(contract: str) -> ContractContainer:
    try:
        contract_container = getattr(project, contract)
    except AttributeError:
        # not in root project; check dependencies
        contract_container = _get_dependency_contract_container(contract)

    return contract_container


def _validate_constructor_args(
    contract_name: str, abi_inputs: List[Any], constructor_args: Sequence[Any]
) -> None:
    """Validates the constructor arguments against the constructor ABI."""
    if len(constructor_args) != len(abi_inputs):
        raise SubmissionError(
            f"Constructor parameters length mismatch - "
            f"ABI requires {len(abi_inputs)}, Got {len(constructor_args)}.",
            contract_name=contract_name,
        )

    for position, (abi_input, value) in enumerate(zip(abi_inputs, constructor_args)):
        if not w3.is_encodable(abi_input.type, value):
            raise SubmissionError(
                f"Constructor param '{abi_input.name}' at position {position} has a value "
                f"'{value}' whose type does not match expected ABI type '{abi_input.type}'",
                contract_name=contract_name,
            )


def _get_receipt(instance: ContractInstance, receipt) -> DeploymentReceipt:
    return DeploymentReceipt(
        chain_id=receipt.chain_id,
        tx_hash=receipt.txn_hash,
        block_number=receipt.block_number,
        deployer=receipt.transaction.sender,
        abi=[entry.model_dump(mode="json", by_alias=True) for entry in instance.contract_type.abi],
    )


class ApeDeployer(ChainClient):
    """
    Represents an ape account plus validated/annotated contract deployment.

    Gas estimation, signing and broadcast happen on the calling thread, one
    transaction at a time, each with an explicit nonce. Only the wait for
    the receipt runs on a worker thread, so that independent contracts can
    be in flight at the same time.
    """

    MAX_WORKERS = 2

    def __init__(
        self,
        account: typing.Optional[AccountAPI] = None,
        autosign: bool = False,
        verify: bool = False,
    ):
        check_plugins(verify=verify)
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
            self._account.set_autosign(True)
        self._autosign = autosign
        self.verify_contracts = verify

        self._executor = ThreadPoolExecutor(
            max_workers=self.MAX_WORKERS, thread_name_prefix="deploy"
        )
        self._futures: typing.Dict[DeployedContractHandle, Future] = dict()
        self._next_nonce: Optional[int] = None
        self._print_deployment_info()

    def __enter__(self) -> "ApeDeployer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        # broadcast transactions cannot be recalled; only stop waiting on them
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._futures.clear()

    def get_account(self) -> AccountAPI:
        return self._account

    @property
    def chain_id(self) -> int:
        return networks.provider.chain_id

    def _take_nonce(self) -> int:
        if self._next_nonce is None:
            self._next_nonce = self._account.nonce
        nonce = self._next_nonce
        self._next_nonce += 1
        return nonce

    def deploy_contract(
        self, name: str, constructor_args: Sequence[Any]
    ) -> DeployedContractHandle:
        try:
            container = get_contract_container(name)
        except ValueError as e:
            raise SubmissionError(str(e), contract_name=name, cause=e) from e

        abi_inputs = container.constructor.abi.inputs
        _validate_constructor_args(name, abi_inputs, constructor_args)
        if not self._autosign:
            try:
                _confirm_resolution(constructor_args, [i.name for i in abi_inputs], name)
            except click.Abort as e:
                raise SubmissionError("declined by operator", contract_name=name, cause=e) from e

        handle = DeployedContractHandle(name=name, constructor_args=constructor_args)
        nonce = self._take_nonce()
        try:
            txn_hash = self._send(container, handle.constructor_args, nonce)
        except Exception as e:
            # nothing was broadcast with this nonce; re-read it from the chain
            self._next_nonce = None
            if isinstance(e, SubmissionError):
                e.contract_name = name
                raise
            raise SubmissionError(
                f"deployment transaction not sent: {e}", contract_name=name, cause=e
            ) from e

        print(f"(i) {name} transaction {txn_hash} sent with nonce {nonce}")
        self._futures[handle] = self._executor.submit(self._wait, container, txn_hash)
        return handle

    def _send(
        self, container: ContractContainer, constructor_args: Sequence[Any], nonce: int
    ) -> str:
        """Estimates, signs and broadcasts the deployment transaction."""
        txn = container.constructor.serialize_transaction(*constructor_args, nonce=nonce)
        txn = self._account.prepare_transaction(txn)
        signed_txn = self._account.sign_transaction(txn)
        if signed_txn is None:
            raise SubmissionError("signing declined by operator")
        txn_hash = networks.provider.web3.eth.send_raw_transaction(
            signed_txn.serialize_transaction()
        )
        return to_hex(txn_hash)

    def _wait(self, container: ContractContainer, txn_hash: str):
        receipt = networks.provider.get_receipt(txn_hash)
        receipt.raise_for_status()
        instance = container.at(receipt.contract_address, txn_hash=txn_hash)
        return instance, receipt

    def await_confirmation(
        self, handle: DeployedContractHandle, timeout: Optional[float] = None
    ) -> ChecksumAddress:
        future = self._futures.pop(handle)
        try:
            instance, receipt = future.result(timeout=timeout)
        except FutureTimeoutError as e:
            raise ConfirmationTimeout(
                f"not confirmed within {timeout} seconds", contract_name=handle.name, cause=e
            ) from e
        except (
            ContractLogicError,
            VirtualMachineError,
            TransactionError,
            TransactionNotFoundError,
        ) as e:
            raise ConfirmationError(
                f"deployment transaction failed: {e}", contract_name=handle.name, cause=e
            ) from e
        except ApeException as e:
            raise SubmissionError(
                f"deployment transaction rejected: {e}", contract_name=handle.name, cause=e
            ) from e

        handle.instance = instance
        handle.receipt = _get_receipt(instance, receipt)
        return to_checksum_address(instance.address)

    def verify(self, handles: List[DeployedContractHandle]) -> None:
        if not self.verify_contracts:
            return
        explorer = networks.provider.network.explorer
        for handle in handles:
            print(f"(i) Verifying {handle.name}...")
            explorer.publish_contract(handle.address)

    def _print_deployment_info(self):
        print(
            f"Account: {self.get_account().address}",
            f"Verify: {self.verify_contracts}",
            f"Ecosystem: {networks.provider.network.ecosystem.name}",
            f"Network: {networks.provider.network.name}",
            f"Chain ID: {networks.provider.network.chain_id}",
            f"Gas Price: {networks.provider.gas_price}",
            sep="\n",
        )
