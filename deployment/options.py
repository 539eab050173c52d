from pathlib import Path

import click

from deployment.types import ChecksumAddress, MinInt, Percentage

params_file_option = click.option(
    "--params-file",
    "-p",
    help="Deployment parameters YAML; compiled-in defaults are used when omitted",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=False,
)

min_stake_option = click.option(
    "--min-stake",
    help="Minimum stake for users and providers, in wei",
    type=MinInt(0),
    required=False,
)

fee_recipient_option = click.option(
    "--fee-recipient",
    help="Address receiving registry fees",
    type=ChecksumAddress(),
    required=False,
)

oracle_option = click.option(
    "--oracle",
    help="Oracle address for the commitment store",
    type=ChecksumAddress(),
    required=False,
)

fee_percent_option = click.option(
    "--fee-percent",
    help="Registry fee percentage",
    type=Percentage(),
    required=False,
)

confirmation_timeout_option = click.option(
    "--confirmation-timeout",
    help="Seconds to wait for each deployment to be confirmed",
    type=click.FloatRange(min=0, min_open=True),
    required=False,
)

concurrent_option = click.option(
    "--concurrent/--sequential",
    help="Deploy both registries at once, or one after the other",
    default=True,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without asking for confirmation",
    is_flag=True,
    default=False,
)

verify_option = click.option(
    "--verify",
    help="Publish contract sources to the network explorer",
    is_flag=True,
    default=False,
)

registry_option = click.option(
    "--registry",
    "registry_filepath",
    help="Registry file to write deployed addresses to",
    type=click.Path(dir_okay=False, path_type=Path),
    required=False,
)
