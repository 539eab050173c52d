from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional, Tuple

import yaml
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from deployment.constants import (
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_FEE_PERCENT,
    DEFAULT_FEE_RECIPIENT,
    DEFAULT_MIN_STAKE,
    DEFAULT_ORACLE,
    MAX_FEE_PERCENT,
    NULL_ADDRESS,
)
from deployment.errors import ConfigurationError
from deployment.utils import _load_yaml, get_artifact_filepath

# params file constant name -> config field
CONSTANT_FIELDS = {
    "MIN_STAKE": "min_stake",
    "FEE_RECIPIENT": "fee_recipient",
    "ORACLE": "oracle",
    "FEE_PERCENT": "fee_percent",
}


def _validate_int(
    field: str, value: Any, min_value: int = 0, max_value: Optional[int] = None
) -> int:
    # wei amounts are commonly written as decimal strings to dodge float precision
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ConfigurationError(f"'{field}' must be an integer, got {value!r}.")
    if isinstance(value, str):
        try:
            value = int(value.strip(), 10)
        except ValueError:
            raise ConfigurationError(f"'{field}' must be a decimal integer, got {value!r}.")
    if value < min_value:
        raise ConfigurationError(f"'{field}' must be at least {min_value}, got {value}.")
    if max_value is not None and value > max_value:
        raise ConfigurationError(f"'{field}' must be at most {max_value}, got {value}.")
    return value


def _validate_address(field: str, value: Any) -> ChecksumAddress:
    if not isinstance(value, str):
        raise ConfigurationError(f"'{field}' must be an address string, got {value!r}.")
    try:
        address = to_checksum_address(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{field}' is not a valid ethereum address: {value!r}.")
    if address == NULL_ADDRESS:
        raise ConfigurationError(f"'{field}' cannot be the null address.")
    return address


def _validate_timeout(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"'confirmation_timeout' must be a number, got {value!r}.")
    if value <= 0:
        raise ConfigurationError(f"'confirmation_timeout' must be positive, got {value}.")
    return value


class DeploymentConfig(NamedTuple):
    """Validated, immutable parameters of a single PreConf deployment run."""

    min_stake: int
    fee_recipient: ChecksumAddress
    oracle: ChecksumAddress
    fee_percent: int
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    chain_id: Optional[int] = None
    name: Optional[str] = None
    registry_filepath: Optional[Path] = None

    @classmethod
    def create(
        cls,
        min_stake: Any,
        fee_recipient: Any,
        oracle: Any,
        fee_percent: Any,
        confirmation_timeout: Any = DEFAULT_CONFIRMATION_TIMEOUT,
        chain_id: Any = None,
        name: Optional[str] = None,
        registry_filepath: Optional[Path] = None,
    ) -> "DeploymentConfig":
        """Validates and normalizes raw values into a config."""
        if chain_id is not None:
            chain_id = _validate_int("chain_id", chain_id, min_value=1)
        if registry_filepath is not None:
            registry_filepath = Path(registry_filepath)
        return cls(
            min_stake=_validate_int("min_stake", min_stake),
            fee_recipient=_validate_address("fee_recipient", fee_recipient),
            oracle=_validate_address("oracle", oracle),
            fee_percent=_validate_int("fee_percent", fee_percent, max_value=MAX_FEE_PERCENT),
            confirmation_timeout=_validate_timeout(confirmation_timeout),
            chain_id=chain_id,
            name=name,
            registry_filepath=registry_filepath,
        )

    @classmethod
    def default(cls) -> "DeploymentConfig":
        return cls.create(
            min_stake=DEFAULT_MIN_STAKE,
            fee_recipient=DEFAULT_FEE_RECIPIENT,
            oracle=DEFAULT_ORACLE,
            fee_percent=DEFAULT_FEE_PERCENT,
        )

    @classmethod
    def from_dict(cls, config: Dict) -> "DeploymentConfig":
        """
        Loads a config from params file contents. Constants that are not
        set fall back to the compiled-in defaults.
        """
        if not isinstance(config, dict):
            raise ConfigurationError("Malformed parameters YAML.")

        deployment = config.get("deployment") or {}
        constants = config.get("constants") or {}
        if not isinstance(deployment, dict) or not isinstance(constants, dict):
            raise ConfigurationError("Malformed parameters YAML.")

        unknown = set(constants) - set(CONSTANT_FIELDS)
        if unknown:
            raise ConfigurationError(f"Unknown constant(s) in params file: {sorted(unknown)}.")

        values = cls.default()._asdict()
        for constant_name, field in CONSTANT_FIELDS.items():
            if constant_name in constants:
                values[field] = constants[constant_name]

        values.update(
            confirmation_timeout=deployment.get(
                "confirmation_timeout", DEFAULT_CONFIRMATION_TIMEOUT
            ),
            chain_id=deployment.get("chain_id"),
            name=deployment.get("name"),
            registry_filepath=get_artifact_filepath(config),
        )
        return cls.create(**values)

    @classmethod
    def from_yaml(cls, filepath: Path) -> "DeploymentConfig":
        print(f"Loading deployment parameters from {filepath}...")
        try:
            config = _load_yaml(filepath)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read params file {filepath}: {e}", cause=e) from e
        return cls.from_dict(config)

    def override(self, **values) -> "DeploymentConfig":
        """Returns a re-validated copy with every non-None value replaced."""
        overrides = {field: value for field, value in values.items() if value is not None}
        unknown = set(overrides) - set(self._fields)
        if unknown:
            raise ConfigurationError(f"Unknown config field(s): {sorted(unknown)}.")
        return self.create(**self._replace(**overrides)._asdict())

    def user_registry_args(self) -> Tuple[int, ChecksumAddress, int]:
        return self.min_stake, self.fee_recipient, self.fee_percent

    def provider_registry_args(self) -> Tuple[int, ChecksumAddress, int]:
        return self.min_stake, self.fee_recipient, self.fee_percent
