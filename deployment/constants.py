from pathlib import Path

import deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(deployment.__file__).parent
CONSTRUCTOR_PARAMS_DIR = DEPLOYMENT_DIR / "constructor_params"
ARTIFACTS_DIR = DEPLOYMENT_DIR / "artifacts"

#
# Networks
#

LOCAL_NETWORKS = ["local"]

NULL_ADDRESS = "0x" + "0" * 40

#
# Contracts
#

USER_REGISTRY = "UserRegistry"
PROVIDER_REGISTRY = "ProviderRegistry"
PRECONF_COMMITMENT_STORE = "PreConfCommitmentStore"

#
# Defaults
#

DEFAULT_MIN_STAKE = 1_000_000_000_000_000_000  # 1 ETH in wei
DEFAULT_FEE_RECIPIENT = "0x388C818CA8B9251b393131C08a736A67ccB19297"
DEFAULT_ORACLE = "0x388C818CA8B9251b393131C08a736A67ccB19297"
DEFAULT_FEE_PERCENT = 15

MAX_FEE_PERCENT = 100

# seconds
DEFAULT_CONFIRMATION_TIMEOUT = 300
