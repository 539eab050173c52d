import json
from pathlib import Path
from typing import Dict, Optional

import yaml

from deployment.constants import ARTIFACTS_DIR
from deployment.errors import ConfigurationError


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def get_artifact_filepath(config: Dict) -> Optional[Path]:
    """
    Returns the filepath of the artifact file, or None when the params file
    does not ask for one.
    """
    artifact_config = config.get("artifacts") or {}
    if not isinstance(artifact_config, dict):
        raise ConfigurationError("Malformed 'artifacts' section in params file.")
    filename = artifact_config.get("filename")
    if not filename:
        return None
    artifact_dir = Path(artifact_config.get("dir", ARTIFACTS_DIR))
    return artifact_dir / filename


def check_chain_id(expected_chain_id: Optional[int], chain_id: int, live: bool) -> None:
    """
    Checks that the chain_id in the params file matches the connected network.
    Local networks are exempt since their chain id is arbitrary.
    """
    if expected_chain_id is None or not live:
        return
    if expected_chain_id != chain_id:
        raise ConfigurationError(
            f"chain_id in params file ({expected_chain_id}) does not match "
            f"chain_id of current network ({chain_id})."
        )
