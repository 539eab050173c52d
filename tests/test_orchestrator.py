import pytest

from deployment.chain import HandleState
from deployment.constants import PRECONF_COMMITMENT_STORE, PROVIDER_REGISTRY, USER_REGISTRY
from deployment.errors import (
    ConfirmationError,
    ConfirmationTimeout,
    DependencyError,
    DeploymentError,
    SubmissionError,
)
from deployment.orchestrator import DeploymentOrchestrator
from tests.conftest import (
    PRECONF_COMMITMENT_STORE_ADDRESS,
    PROVIDER_REGISTRY_ADDRESS,
    USER_REGISTRY_ADDRESS,
)


@pytest.fixture(params=[True, False], ids=["concurrent", "sequential"])
def orchestrator(request, chain_client):
    return DeploymentOrchestrator(client=chain_client, concurrent=request.param)


def test_deploys_all_contracts(orchestrator, chain_client, config):
    result = orchestrator.run(config)

    assert result.user_registry == USER_REGISTRY_ADDRESS
    assert result.provider_registry == PROVIDER_REGISTRY_ADDRESS
    assert result.preconf_commitment_store == PRECONF_COMMITMENT_STORE_ADDRESS
    assert list(result.addresses()) == [USER_REGISTRY, PROVIDER_REGISTRY, PRECONF_COMMITMENT_STORE]
    assert all(handle.state is HandleState.CONFIRMED for handle in result.handles)

    # registries in any order, commitment store last
    assert sorted(chain_client.deployed_names[:2]) == sorted([USER_REGISTRY, PROVIDER_REGISTRY])
    assert chain_client.deployed_names[2] == PRECONF_COMMITMENT_STORE


def test_constructor_arguments(orchestrator, chain_client, config):
    orchestrator.run(config)

    registry_args = (config.min_stake, config.fee_recipient, config.fee_percent)
    assert chain_client.submitted_args(USER_REGISTRY) == registry_args
    assert chain_client.submitted_args(PROVIDER_REGISTRY) == registry_args
    assert registry_args == (10**18, config.fee_recipient, 15)

    # wired to the confirmed addresses of this run
    assert chain_client.submitted_args(PRECONF_COMMITMENT_STORE) == (
        USER_REGISTRY_ADDRESS,
        PROVIDER_REGISTRY_ADDRESS,
        config.oracle,
    )


def test_commitment_store_submitted_after_both_confirmations(orchestrator, chain_client, config):
    orchestrator.run(config)

    store_index = chain_client.calls.index(
        ("deploy", PRECONF_COMMITMENT_STORE, chain_client.submitted_args(PRECONF_COMMITMENT_STORE))
    )
    awaited_before_store = [
        name for call, name, _ in chain_client.calls[:store_index] if call == "await"
    ]
    assert sorted(awaited_before_store) == sorted([USER_REGISTRY, PROVIDER_REGISTRY])


def test_confirmation_timeout_is_passed_to_client(orchestrator, chain_client, config):
    orchestrator.run(config)
    timeouts = [payload for call, _, payload in chain_client.calls if call == "await"]
    assert timeouts == [config.confirmation_timeout] * 3


def test_concurrent_submits_registries_before_awaiting(chain_client, config):
    orchestrator = DeploymentOrchestrator(client=chain_client, concurrent=True)
    orchestrator.run(config)

    first_two = [call for call, _, _ in chain_client.calls[:2]]
    assert first_two == ["deploy", "deploy"]


def test_sequential_preserves_strict_order(chain_client, config):
    orchestrator = DeploymentOrchestrator(client=chain_client, concurrent=False)
    orchestrator.run(config)

    assert [(call, name) for call, name, _ in chain_client.calls] == [
        ("deploy", USER_REGISTRY),
        ("await", USER_REGISTRY),
        ("deploy", PROVIDER_REGISTRY),
        ("await", PROVIDER_REGISTRY),
        ("deploy", PRECONF_COMMITMENT_STORE),
        ("await", PRECONF_COMMITMENT_STORE),
    ]


def test_prints_addresses_in_deployment_order(orchestrator, config, capsys):
    orchestrator.run(config)

    lines = [line for line in capsys.readouterr().out.splitlines() if "deployed to" in line]
    assert lines == [
        f"{USER_REGISTRY} deployed to: {USER_REGISTRY_ADDRESS}",
        f"{PROVIDER_REGISTRY} deployed to: {PROVIDER_REGISTRY_ADDRESS}",
        f"{PRECONF_COMMITMENT_STORE} deployed to: {PRECONF_COMMITMENT_STORE_ADDRESS}",
    ]


def test_user_registry_confirmation_failure(orchestrator, chain_client, config):
    chain_client.confirmation_failures[USER_REGISTRY] = ConfirmationError("reverted")

    with pytest.raises(ConfirmationError) as exc_info:
        orchestrator.run(config)

    error = exc_info.value
    assert error.contract_name == USER_REGISTRY
    assert USER_REGISTRY in str(error)
    assert PRECONF_COMMITMENT_STORE not in chain_client.deployed_names

    user_registry = orchestrator.handles[0]
    assert user_registry.state is HandleState.FAILED
    with pytest.raises(DependencyError):
        _ = user_registry.address


def test_concurrent_failure_still_confirms_other_registry(chain_client, config):
    chain_client.confirmation_failures[USER_REGISTRY] = ConfirmationError("reverted")
    orchestrator = DeploymentOrchestrator(client=chain_client, concurrent=True)

    with pytest.raises(ConfirmationError) as exc_info:
        orchestrator.run(config)

    assert PROVIDER_REGISTRY in chain_client.deployed_names
    assert exc_info.value.deployed == {PROVIDER_REGISTRY: PROVIDER_REGISTRY_ADDRESS}


def test_concurrent_submission_failure_stops_submitting(chain_client, config):
    chain_client.submission_failures[USER_REGISTRY] = SubmissionError("gas estimation failed")
    orchestrator = DeploymentOrchestrator(client=chain_client, concurrent=True)

    with pytest.raises(SubmissionError) as exc_info:
        orchestrator.run(config)

    assert chain_client.deployed_names == [USER_REGISTRY]
    assert exc_info.value.contract_name == USER_REGISTRY
    assert exc_info.value.deployed == {}


def test_sequential_failure_stops_before_provider_registry(chain_client, config):
    chain_client.confirmation_failures[USER_REGISTRY] = ConfirmationError("reverted")
    orchestrator = DeploymentOrchestrator(client=chain_client, concurrent=False)

    with pytest.raises(ConfirmationError) as exc_info:
        orchestrator.run(config)

    assert chain_client.deployed_names == [USER_REGISTRY]
    assert exc_info.value.deployed == {}


def test_provider_registry_failure(orchestrator, chain_client, config):
    chain_client.confirmation_failures[PROVIDER_REGISTRY] = ConfirmationTimeout("too slow")

    with pytest.raises(ConfirmationTimeout) as exc_info:
        orchestrator.run(config)

    error = exc_info.value
    assert isinstance(error, ConfirmationError)
    assert error.contract_name == PROVIDER_REGISTRY
    assert error.deployed == {USER_REGISTRY: USER_REGISTRY_ADDRESS}
    assert PRECONF_COMMITMENT_STORE not in chain_client.deployed_names


def test_first_failure_in_deployment_order_is_raised(chain_client, config):
    chain_client.submission_failures[PROVIDER_REGISTRY] = RuntimeError("nonce too low")
    chain_client.confirmation_failures[USER_REGISTRY] = ConfirmationError("reverted")
    orchestrator = DeploymentOrchestrator(client=chain_client, concurrent=True)

    with pytest.raises(ConfirmationError) as exc_info:
        orchestrator.run(config)

    assert exc_info.value.contract_name == USER_REGISTRY


def test_submission_failure_is_wrapped(orchestrator, chain_client, config):
    cause = RuntimeError("insufficient funds")
    chain_client.submission_failures[USER_REGISTRY] = cause

    with pytest.raises(SubmissionError) as exc_info:
        orchestrator.run(config)

    error = exc_info.value
    assert error.contract_name == USER_REGISTRY
    assert error.cause is cause
    assert error.__cause__ is cause
    assert "insufficient funds" in str(error)
    assert PRECONF_COMMITMENT_STORE not in chain_client.deployed_names


def test_unexpected_confirmation_failure_is_wrapped(orchestrator, chain_client, config):
    cause = RuntimeError("transaction dropped")
    chain_client.confirmation_failures[PRECONF_COMMITMENT_STORE] = cause

    with pytest.raises(ConfirmationError) as exc_info:
        orchestrator.run(config)

    error = exc_info.value
    assert error.contract_name == PRECONF_COMMITMENT_STORE
    assert error.cause is cause
    assert error.deployed == {
        USER_REGISTRY: USER_REGISTRY_ADDRESS,
        PROVIDER_REGISTRY: PROVIDER_REGISTRY_ADDRESS,
    }


def test_client_errors_get_contract_name(orchestrator, chain_client, config):
    chain_client.submission_failures[PROVIDER_REGISTRY] = SubmissionError("bad args")

    with pytest.raises(SubmissionError) as exc_info:
        orchestrator.run(config)

    assert exc_info.value.contract_name == PROVIDER_REGISTRY


def test_every_failure_is_a_deployment_error(orchestrator, chain_client, config):
    chain_client.confirmation_failures[PRECONF_COMMITMENT_STORE] = ValueError("boom")
    with pytest.raises(DeploymentError):
        orchestrator.run(config)


def test_rerun_redeploys_everything(chain_client, config):
    orchestrator = DeploymentOrchestrator(client=chain_client)
    orchestrator.run(config)
    orchestrator.run(config)

    assert len(chain_client.deployed_names) == 6
    assert len(orchestrator.handles) == 3
