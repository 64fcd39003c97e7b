#!/usr/bin/env python3
"""
GCVE Secrets and Configuration Loading
Purpose: Load gcve-config.yaml and resolve passwords from environment variables,
a secrets file, the config file or an interactive prompt
"""

import getpass
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from gcve_errors import ConfigurationError

DEFAULT_CONFIG = Path("config") / "gcve-config.yaml"
SECRETS_FILE = Path("config") / "gcve-secrets.yaml"

VCENTER_PASSWORD_ENV = "GCVE_VCENTER_PASSWORD"

# Keys a section must carry when a script asks for it
REQUIRED_KEYS = {
    "vcenter": ["hostname", "username"],
}


class SecretsManager:
    """Manage secrets from multiple sources with priority order"""

    def __init__(self, project_dir: Path):
        self.project_dir = project_dir
        self.secrets_file = project_dir / SECRETS_FILE
        self._secrets_cache = None

    def get_secret(
        self,
        key: str,
        config_value: Optional[str] = None,
        env_var: Optional[str] = None,
        required: bool = True
    ) -> Optional[str]:
        """
        Get secret value with priority order:
        1. Environment variable (if env_var specified)
        2. Secrets file (gcve-secrets.yaml)
        3. Config file value (if config_value provided)
        4. Prompt user (if required=True)
        """
        if env_var:
            env_value = os.environ.get(env_var)
            if env_value:
                return env_value

        secrets = self._load_secrets_file()
        if secrets and secrets.get(key):
            return secrets[key]

        if config_value:
            return config_value

        if required:
            return self.prompt(key)

        return None

    @staticmethod
    def prompt(key: str) -> str:
        """Ask for a secret on the terminal"""
        return getpass.getpass(f"Enter {key.replace('_', ' ')}: ")

    def _load_secrets_file(self) -> Optional[Dict[str, Any]]:
        """Load secrets from gcve-secrets.yaml (cached)"""
        if self._secrets_cache is not None:
            return self._secrets_cache

        if not self.secrets_file.exists():
            return None

        try:
            with open(self.secrets_file, 'r', encoding='utf-8') as f:
                self._secrets_cache = yaml.safe_load(f) or {}
            return self._secrets_cache
        except (OSError, yaml.YAMLError) as e:
            print(f"WARNING: Failed to load secrets file: {e}")
            return None

    def get_vcenter_password(self, config_value: Optional[str] = None) -> str:
        """Get vCenter password"""
        password = self.get_secret(
            key="vcenter_password",
            config_value=config_value,
            env_var=VCENTER_PASSWORD_ENV,
            required=True
        )
        assert password is not None  # required=True guarantees non-None
        return password

    def has_secrets_file(self) -> bool:
        """Check if secrets file exists"""
        return self.secrets_file.exists()

    def get_secrets_info(self) -> str:
        """Get information about secrets sources"""
        lines = []
        lines.append("Secrets Priority Order:")
        lines.append(f"  1. Environment variable ({VCENTER_PASSWORD_ENV})")
        lines.append(f"  2. Secrets file ({SECRETS_FILE})")
        lines.append(f"  3. Config file ({DEFAULT_CONFIG})")
        lines.append("  4. Interactive prompt")
        lines.append("")

        if self.has_secrets_file():
            lines.append(f"✓ Secrets file found: {self.secrets_file}")
        else:
            lines.append(f"⚠ Secrets file not found: {self.secrets_file}")
            lines.append(f"  Create from: {self.secrets_file}.example")

        lines.append("")
        lines.append("Environment variables:")
        for var in [VCENTER_PASSWORD_ENV, "GOOGLE_APPLICATION_CREDENTIALS"]:
            if os.environ.get(var):
                lines.append(f"  ✓ {var} is set")
            else:
                lines.append(f"    {var} not set")

        return "\n".join(lines)


def load_config(config_file: Path, sections: List[str]) -> Dict[str, Any]:
    """Load the YAML config and check the sections a script needs"""
    if not config_file.exists():
        raise ConfigurationError(f"Config file not found: {config_file}")

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config: {e}") from e

    # Report all errors at once
    errors = []
    for section in sections:
        if not isinstance(config.get(section), dict):
            errors.append(f"Missing '{section}' section in config file")
            continue
        for key in REQUIRED_KEYS.get(section, []):
            if key not in config[section]:
                errors.append(f"Missing '{section}.{key}' in config file")

    if errors:
        raise ConfigurationError(
            "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )

    return config

