import json
from collections import defaultdict
from pathlib import Path
from typing import List, NamedTuple, Optional

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from deployment.chain import DeployedContractHandle
from deployment.errors import ConfigurationError
from deployment.utils import _load_json

ChainId = int
ContractName = str


STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class RegistryEntry(NamedTuple):
    """Represents a single entry in a contract registry."""

    chain_id: ChainId
    name: ContractName
    address: ChecksumAddress
    abi: list
    tx_hash: str
    block_number: int
    deployer: str


def _get_entry(handle: DeployedContractHandle) -> RegistryEntry:
    receipt = handle.receipt
    if receipt is None:
        raise ValueError(f"No receipt available for {handle.name}; cannot register it.")
    return RegistryEntry(
        name=handle.name,
        address=to_checksum_address(handle.address),
        abi=list(receipt.abi),
        chain_id=receipt.chain_id,
        tx_hash=receipt.tx_hash,
        block_number=receipt.block_number,
        deployer=receipt.deployer,
    )


def read_registry(filepath: Path) -> List[RegistryEntry]:
    data = _load_json(filepath)
    registry_entries = list()
    for chain_id, entries in data.items():
        for contract_name, artifacts in entries.items():
            registry_entry = RegistryEntry(
                chain_id=int(chain_id),
                name=contract_name,
                address=artifacts["address"],
                abi=artifacts["abi"],
                tx_hash=artifacts["tx_hash"],
                block_number=artifacts["block_number"],
                deployer=artifacts["deployer"],
            )
            registry_entries.append(registry_entry)
    return registry_entries


def write_registry(entries: List[RegistryEntry], filepath: Path, silent: bool = False) -> Path:
    """Writes a contract registry to a file."""

    if not entries:
        print("No entries provided.")
        return filepath

    # common order keeps registry diffs readable
    entries = sorted(entries, key=lambda entry: (str(entry.chain_id), entry.name))

    data = defaultdict(dict)
    for entry in entries:
        entry_abi = list(entry.abi)
        entry_abi.sort(key=lambda d: (d["type"], d.get("name", "")))

        data[str(entry.chain_id)][entry.name] = {
            "address": entry.address,
            "abi": entry_abi,
            "tx_hash": entry.tx_hash,
            "block_number": int(entry.block_number),
            "deployer": entry.deployer,
        }

    filepath.parent.mkdir(parents=True, exist_ok=True)

    # merge into an existing registry unless that would overwrite a chain
    if filepath.exists():
        if not silent:
            print(f"Updating existing registry at {filepath}.")
        existing_data = _load_json(filepath)

        if any(chain_id in existing_data for chain_id in data):
            filepath = filepath.with_suffix(".unmerged.json")
            if not silent:
                print(
                    "Cannot merge registries with overlapping chain IDs.\n"
                    f"Writing to {filepath} to avoid overwriting existing data."
                )
        else:
            existing_data.update(data)
            data = existing_data
    elif not silent:
        print(f"Creating new registry at {filepath}.")

    with open(filepath, "w") as file:
        json.dump(data, file, **STANDARD_REGISTRY_JSON_FORMAT)

    return filepath


def registry_from_deployments(
    handles: List[DeployedContractHandle], output_filepath: Path
) -> Path:
    """Creates a contract registry from confirmed deployment handles."""
    entries = [_get_entry(handle) for handle in handles]
    output_filepath = write_registry(entries=entries, filepath=output_filepath)
    print(f"(i) Registry written to {output_filepath}!")
    return output_filepath


def check_registry_filepath(registry_filepath: Optional[Path], chain_id: ChainId) -> None:
    """
    Checks that the deployment has not already been published for
    the chain_id in the registry file.
    """
    if registry_filepath is None or not registry_filepath.exists():
        return

    try:
        entries = read_registry(registry_filepath)
    except (OSError, ValueError, KeyError, AttributeError, TypeError) as e:
        raise ConfigurationError(
            f"Cannot read registry {registry_filepath}: {e!r}", cause=e
        ) from e

    if any(entry.chain_id == chain_id for entry in entries):
        raise ConfigurationError(
            f"Deployment is already published for chain_id {chain_id} in {registry_filepath}."
        )
