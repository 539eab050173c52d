from collections import OrderedDict
from typing import Any, Dict, List, NamedTuple, Sequence, Type

from eth_typing import ChecksumAddress

from deployment.chain import ChainClient, DeployedContractHandle
from deployment.config import DeploymentConfig
from deployment.constants import (
    PRECONF_COMMITMENT_STORE,
    PROVIDER_REGISTRY,
    USER_REGISTRY,
)
from deployment.errors import ConfirmationError, DeploymentError, SubmissionError


class DeploymentResult(NamedTuple):
    user_registry: ChecksumAddress
    provider_registry: ChecksumAddress
    preconf_commitment_store: ChecksumAddress
    handles: List[DeployedContractHandle]

    def addresses(self) -> "OrderedDict[str, ChecksumAddress]":
        """Contract name to address, in deployment order."""
        return OrderedDict((handle.name, handle.address) for handle in self.handles)


def _wrap(
    error: Exception, contract_name: str, kind: Type[DeploymentError]
) -> DeploymentError:
    if isinstance(error, DeploymentError):
        if error.contract_name is None:
            error.contract_name = contract_name
        return error
    wrapped = kind(f"{error.__class__.__name__}: {error}", contract_name=contract_name, cause=error)
    wrapped.__cause__ = error
    return wrapped


class DeploymentOrchestrator:
    """
    Deploys UserRegistry and ProviderRegistry, then PreConfCommitmentStore
    wired to both of their confirmed addresses.

    With `concurrent` set, both registries are submitted before either
    confirmation is awaited, unless the first submission fails. Otherwise
    each deployment is confirmed before the next one is submitted.
    """

    def __init__(self, client: ChainClient, concurrent: bool = True):
        self.client = client
        self.concurrent = concurrent
        self.handles: List[DeployedContractHandle] = list()

    def run(self, config: DeploymentConfig) -> DeploymentResult:
        self.handles = list()
        registries = [
            (USER_REGISTRY, config.user_registry_args()),
            (PROVIDER_REGISTRY, config.provider_registry_args()),
        ]
        if self.concurrent:
            user_registry, provider_registry = self._deploy_together(registries, config)
        else:
            user_registry, provider_registry = [
                self._deploy(name, args, config) for name, args in registries
            ]

        # both registries are confirmed past this point
        store_args = [user_registry.address, provider_registry.address, config.oracle]
        preconf_commitment_store = self._deploy(PRECONF_COMMITMENT_STORE, store_args, config)

        return DeploymentResult(
            user_registry=user_registry.address,
            provider_registry=provider_registry.address,
            preconf_commitment_store=preconf_commitment_store.address,
            handles=list(self.handles),
        )

    def _deploy(
        self, name: str, args: Sequence[Any], config: DeploymentConfig
    ) -> DeployedContractHandle:
        handle = self._submit(name, args)
        self._confirm(handle, config)
        return handle

    def _deploy_together(self, contracts, config: DeploymentConfig) -> List[DeployedContractHandle]:
        handles, failures = list(), list()
        for name, args in contracts:
            try:
                handles.append(self._submit(name, args))
            except DeploymentError as e:
                # nothing more is sent once a submission fails
                failures.append(e)
                break

        # anything in flight is awaited, even after a failure, so that every
        # irreversible deployment ends up reported
        for handle in handles:
            try:
                self._confirm(handle, config)
            except DeploymentError as e:
                failures.append(e)

        if failures:
            order = [name for name, _ in contracts]
            error = min(failures, key=lambda e: order.index(e.contract_name))
            error.deployed = self._deployed()
            raise error
        return handles

    def _submit(self, name: str, args: Sequence[Any]) -> DeployedContractHandle:
        print(f"\nDeploying {name}...")
        try:
            handle = self.client.deploy_contract(name, args)
        except Exception as e:
            error = _wrap(e, name, SubmissionError)
            error.deployed = self._deployed()
            raise error
        self.handles.append(handle)
        return handle

    def _confirm(self, handle: DeployedContractHandle, config: DeploymentConfig) -> None:
        try:
            address = self.client.await_confirmation(handle, timeout=config.confirmation_timeout)
        except Exception as e:
            error = _wrap(e, handle.name, ConfirmationError)
            handle.mark_failed(error)
            error.deployed = self._deployed()
            raise error
        handle.mark_confirmed(address)
        print(f"{handle.name} deployed to: {address}")

    def _deployed(self) -> Dict[str, ChecksumAddress]:
        return {handle.name: handle.address for handle in self.handles if handle.confirmed}
