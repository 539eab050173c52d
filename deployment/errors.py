from typing import Dict, Optional


class DeploymentError(Exception):
    """Raised when a deployment run cannot complete."""

    def __init__(
        self,
        message: str,
        contract_name: Optional[str] = None,
        cause: Optional[BaseException] = None,
        deployed: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.contract_name = contract_name
        self.cause = cause
        self.deployed = dict(deployed or {})

    def __str__(self) -> str:
        if self.contract_name:
            return f"{self.contract_name}: {self.message}"
        return self.message


class ConfigurationError(DeploymentError, ValueError):
    """Raised when a deployment configuration value is malformed or out of range."""


class SubmissionError(DeploymentError):
    """Raised when a deployment transaction is rejected before inclusion."""


class ConfirmationError(DeploymentError):
    """Raised when a deployment transaction reverts or is dropped."""


class ConfirmationTimeout(ConfirmationError):
    """Raised when a deployment is not confirmed within the allowed time."""


class DependencyError(DeploymentError):
    """Raised when an upstream address is needed but its deployment is not confirmed."""
