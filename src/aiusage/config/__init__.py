"""Configuration management for aiusage."""

from aiusage.config.credentials import (
    API_KEY_ENV_VARS,
    STORED_CREDENTIAL_TYPES,
    check_credential_permissions,
    check_provider_credentials,
    credential_path,
    delete_credential,
    delete_stored_credential,
    env_credential,
    find_api_key,
    get_all_credential_status,
    load_stored_credential,
    read_credential,
    store_credential,
    write_credential,
)
from aiusage.config.keyring import (
    delete_from_keyring,
    get_from_keyring,
    keyring_key,
    store_in_keyring,
    use_keyring,
)
from aiusage.config.paths import (
    config_dir,
    config_file,
    credentials_dir,
    ensure_directories,
)
from aiusage.config.settings import (
    Config,
    CredentialsConfig,
    DisplayConfig,
    FetchConfig,
    PollConfig,
    ProviderConfig,
    get_config,
    load_config,
    reload_config,
    save_config,
)

__all__ = [
    # paths
    "config_dir",
    "credentials_dir",
    "config_file",
    "ensure_directories",
    # settings
    "Config",
    "CredentialsConfig",
    "DisplayConfig",
    "FetchConfig",
    "PollConfig",
    "ProviderConfig",
    "get_config",
    "load_config",
    "reload_config",
    "save_config",
    # credentials
    "API_KEY_ENV_VARS",
    "STORED_CREDENTIAL_TYPES",
    "credential_path",
    "write_credential",
    "read_credential",
    "delete_credential",
    "check_credential_permissions",
    "store_credential",
    "load_stored_credential",
    "delete_stored_credential",
    "env_credential",
    "find_api_key",
    "check_provider_credentials",
    "get_all_credential_status",
    # keyring
    "use_keyring",
    "keyring_key",
    "store_in_keyring",
    "get_from_keyring",
    "delete_from_keyring",
]
