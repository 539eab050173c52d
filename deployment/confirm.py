from typing import Any, Sequence

import click


def _confirm_deployment(contract_name: str) -> None:
    """Asks the user to confirm the deployment of a single contract."""
    click.confirm(f"Deploy {contract_name}?", abort=True)


def _confirm_resolution(
    constructor_args: Sequence[Any], arg_names: Sequence[str], contract_name: str
) -> None:
    """Asks the user to confirm the resolved constructor arguments for a single contract."""
    if len(constructor_args) == 0:
        print(f"\n(i) No constructor parameters for {contract_name}")
        _confirm_deployment(contract_name)
        return

    print(f"\nConstructor parameters for {contract_name}")
    for name, value in zip(arg_names, constructor_args):
        print(f"\t{name}={value}")
    _confirm_deployment(contract_name)
