from typing import Optional

import pytest

from deployment.chain import ChainClient, DeployedContractHandle, DeploymentReceipt
from deployment.config import DeploymentConfig
from deployment.constants import PRECONF_COMMITMENT_STORE, PROVIDER_REGISTRY, USER_REGISTRY

CHAIN_ID = 1337

FEE_RECIPIENT = "0x388C818CA8B9251b393131C08a736A67ccB19297"
ORACLE = "0x388C818CA8B9251b393131C08a736A67ccB19297"

# placeholder addresses assigned on confirmation
USER_REGISTRY_ADDRESS = "0x" + "a" * 40
PROVIDER_REGISTRY_ADDRESS = "0x" + "b" * 40
PRECONF_COMMITMENT_STORE_ADDRESS = "0x" + "c" * 40

ADDRESSES = {
    USER_REGISTRY: USER_REGISTRY_ADDRESS,
    PROVIDER_REGISTRY: PROVIDER_REGISTRY_ADDRESS,
    PRECONF_COMMITMENT_STORE: PRECONF_COMMITMENT_STORE_ADDRESS,
}


class FakeChainClient(ChainClient):
    """
    Assigns fixed addresses on confirmation and records every call.
    Failures are injected per contract name.
    """

    def __init__(self, addresses=None):
        self.addresses = dict(addresses or ADDRESSES)
        self.calls = list()  # ("deploy" | "await", name, payload)
        self.submission_failures = dict()
        self.confirmation_failures = dict()
        self.verified = list()

    @property
    def chain_id(self) -> int:
        return CHAIN_ID

    @property
    def deployed_names(self):
        return [name for call, name, _ in self.calls if call == "deploy"]

    def submitted_args(self, name):
        for call, call_name, args in self.calls:
            if call == "deploy" and call_name == name:
                return args
        raise KeyError(name)

    def deploy_contract(self, name, constructor_args) -> DeployedContractHandle:
        self.calls.append(("deploy", name, tuple(constructor_args)))
        if name in self.submission_failures:
            raise self.submission_failures[name]
        return DeployedContractHandle(name=name, constructor_args=constructor_args)

    def await_confirmation(self, handle, timeout: Optional[float] = None):
        self.calls.append(("await", handle.name, timeout))
        if handle.name in self.confirmation_failures:
            raise self.confirmation_failures[handle.name]
        handle.receipt = DeploymentReceipt(
            chain_id=CHAIN_ID,
            tx_hash="0x" + "1" * 64,
            block_number=len(self.calls),
            deployer=FEE_RECIPIENT,
            abi=[{"type": "constructor", "inputs": []}],
        )
        return self.addresses[handle.name]

    def verify(self, handles):
        self.verified.extend(handle.name for handle in handles)


@pytest.fixture
def chain_client():
    return FakeChainClient()


@pytest.fixture
def config():
    return DeploymentConfig.create(
        min_stake="1000000000000000000",
        fee_recipient=FEE_RECIPIENT,
        oracle=ORACLE,
        fee_percent="15",
        confirmation_timeout=30,
    )
