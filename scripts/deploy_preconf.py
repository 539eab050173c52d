#!/usr/bin/python3
"""
Deploys the PreConf contracts: UserRegistry and ProviderRegistry, then
PreConfCommitmentStore wired to both registries and the oracle.

    ape run deploy_preconf --network ethereum:local:test --autosign
    ape run deploy_preconf --network ethereum:sepolia:infura \
        --params-file deployment/constructor_params/preconf/sepolia.yml
"""

from deployment.cli import cli

if __name__ == "__main__":
    cli()
