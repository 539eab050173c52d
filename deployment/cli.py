import click
from ape import networks
from ape.cli import ConnectedProviderCommand, account_option, network_option

from deployment.chain import ChainClient
from deployment.config import DeploymentConfig
from deployment.deployer import ApeDeployer, is_local_network
from deployment.errors import DeploymentError
from deployment.options import (
    autosign_option,
    concurrent_option,
    confirmation_timeout_option,
    fee_percent_option,
    fee_recipient_option,
    min_stake_option,
    oracle_option,
    params_file_option,
    registry_option,
    verify_option,
)
from deployment.orchestrator import DeploymentOrchestrator, DeploymentResult
from deployment.registry import check_registry_filepath, registry_from_deployments
from deployment.utils import check_chain_id


def _report_failure(error: DeploymentError) -> int:
    click.secho(f"\nDeployment failed: {error}", fg="red", err=True)
    if error.cause is not None:
        click.secho(f"\tcaused by {error.cause!r}", fg="red", err=True)
    if error.deployed:
        # nothing is rolled back; these contracts exist on-chain
        click.secho("Contracts deployed before the failure:", fg="yellow", err=True)
        for name, address in error.deployed.items():
            click.secho(f"\t{name}: {address}", fg="yellow", err=True)
    return 1


def finalize(client: ChainClient, result: DeploymentResult, config: DeploymentConfig) -> None:
    """Writes the registry, if one is configured, and verifies the deployed contracts."""
    deployed = dict(result.addresses())
    try:
        if config.registry_filepath is not None:
            registry_from_deployments(
                handles=result.handles, output_filepath=config.registry_filepath
            )
        client.verify(result.handles)
    except DeploymentError as e:
        e.deployed = deployed
        raise
    except Exception as e:
        raise DeploymentError(
            f"post-deployment step failed: {e!r}", cause=e, deployed=deployed
        ) from e


def report(orchestrator: DeploymentOrchestrator, config: DeploymentConfig) -> int:
    """Runs the deployment and returns the process exit code."""
    try:
        result = orchestrator.run(config)
    except DeploymentError as e:
        return _report_failure(e)

    click.secho("\nPreConf deployment complete.", fg="green")
    for name, address in result.addresses().items():
        click.secho(f"\t{name}: {address}", fg="cyan")

    try:
        finalize(orchestrator.client, result, config)
    except DeploymentError as e:
        return _report_failure(e)
    return 0


@click.command(cls=ConnectedProviderCommand, name="deploy-preconf")
@network_option(required=True)
@account_option()
@params_file_option
@min_stake_option
@fee_recipient_option
@oracle_option
@fee_percent_option
@confirmation_timeout_option
@concurrent_option
@autosign_option
@verify_option
@registry_option
def cli(
    network,
    account,
    params_file,
    min_stake,
    fee_recipient,
    oracle,
    fee_percent,
    confirmation_timeout,
    concurrent,
    autosign,
    verify,
    registry_filepath,
):
    """Deploy UserRegistry, ProviderRegistry and PreConfCommitmentStore."""
    try:
        if params_file:
            config = DeploymentConfig.from_yaml(params_file)
        else:
            config = DeploymentConfig.default()
        config = config.override(
            min_stake=min_stake,
            fee_recipient=fee_recipient,
            oracle=oracle,
            fee_percent=fee_percent,
            confirmation_timeout=confirmation_timeout,
            registry_filepath=registry_filepath,
        )

        chain_id = networks.provider.chain_id
        check_chain_id(config.chain_id, chain_id, live=not is_local_network())
        check_registry_filepath(config.registry_filepath, chain_id)
        deployer = ApeDeployer(account=account, autosign=autosign, verify=verify)
    except DeploymentError as e:
        exit_code = _report_failure(e)
    else:
        if not autosign:
            click.confirm("Continue?", abort=True)
        with deployer:
            orchestrator = DeploymentOrchestrator(client=deployer, concurrent=concurrent)
            exit_code = report(orchestrator, config)

    if exit_code:
        raise click.exceptions.Exit(exit_code)


if __name__ == "__main__":
    cli()
