"""Typed configuration loading and access.

The optional ``relctl.toml`` file holds network endpoints and release policy.
Every value has a default, so a missing file means "use the defaults"; CLI
flags override whatever the file provides.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_float, get_str, get_str_list, get_table

__all__ = [
    "Config",
    "ConfigError",
    "NetworkConfig",
    "ReleasePolicyConfig",
    "TimeoutsConfig",
    "CORE_UNITS",
    "DEFAULT_RPC_URL",
    "REGISTRY_ADDRESS",
    "load_config",
    "load_config_or_default",
]

# Well-known address of the on-chain Registry contract.
REGISTRY_ADDRESS = "0x000000000000000000000000000000000000ce10"
DEFAULT_RPC_URL = "http://localhost:8545"

GOVERNANCE_UNIT = "Governance"
PROXY_SUFFIX = "Proxy"

# Units registered by name in the Registry. Only these can be release roots.
CORE_UNITS: tuple[str, ...] = (
    "Accounts",
    "Attestations",
    "BlockchainParameters",
    "DoubleSigningSlasher",
    "DowntimeSlasher",
    "Election",
    "EpochRewards",
    "Escrow",
    "Exchange",
    "ExchangeBRL",
    "ExchangeEUR",
    "FeeCurrencyWhitelist",
    "Freezer",
    "GasPriceMinimum",
    "GoldToken",
    "Governance",
    "GovernanceApproverMultiSig",
    "GovernanceSlasher",
    "GrandaMento",
    "LockedGold",
    "MetaTransactionWalletDeployer",
    "Random",
    "Registry",
    "Reserve",
    "ReserveSpenderMultiSig",
    "SortedOracles",
    "StableToken",
    "StableTokenBRL",
    "StableTokenEUR",
    "TransferWhitelist",
    "Validators",
)


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class NetworkConfig:
    rpc_url: str = DEFAULT_RPC_URL
    registry_address: str = REGISTRY_ADDRESS
    # None: use the node's first unlocked account.
    from_address: str | None = None


@dataclass(frozen=True, slots=True)
class ReleasePolicyConfig:
    governance: str = GOVERNANCE_UNIT
    proxy_suffix: str = PROXY_SUFFIX
    require_version: bool = True
    core_units: tuple[str, ...] = CORE_UNITS


@dataclass(frozen=True, slots=True)
class TimeoutsConfig:
    """Seconds."""

    rpc: float = 30.0
    receipt: float = 5 * 60.0
    poll_interval: float = 1.0


@dataclass(frozen=True, slots=True)
class Config:
    network: NetworkConfig = field(default_factory=NetworkConfig)
    release: ReleasePolicyConfig = field(default_factory=ReleasePolicyConfig)
    timeouts: TimeoutsConfig = field(default_factory=TimeoutsConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML)."""
        network: StrDict = get_table(data, "network") or {}
        release: StrDict = get_table(data, "release") or {}
        timeouts: StrDict = get_table(data, "timeouts") or {}

        require_version = get_bool(release, "require_version")
        core_units = get_str_list(release, "core_units")

        return cls(
            network=NetworkConfig(
                rpc_url=get_str(network, "rpc_url") or DEFAULT_RPC_URL,
                registry_address=get_str(network, "registry_address") or REGISTRY_ADDRESS,
                from_address=get_str(network, "from"),
            ),
            release=ReleasePolicyConfig(
                governance=get_str(release, "governance") or GOVERNANCE_UNIT,
                proxy_suffix=get_str(release, "proxy_suffix") or PROXY_SUFFIX,
                require_version=True if require_version is None else require_version,
                core_units=tuple(core_units) if core_units else CORE_UNITS,
            ),
            timeouts=TimeoutsConfig(
                rpc=get_float(timeouts, "rpc") or 30.0,
                receipt=get_float(timeouts, "receipt") or 5 * 60.0,
                poll_interval=get_float(timeouts, "poll_interval") or 1.0,
            ),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to relctl.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path | None) -> Result[Config, ConfigError]:
    """Load config if a path is given and exists, else return defaults.

    An explicitly passed file that fails to parse is still an error.
    """
    if path is None or not path.exists():
        return Ok(Config())
    return load_config(path)
