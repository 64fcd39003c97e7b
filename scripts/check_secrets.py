#!/usr/bin/env python3
"""
Check Secrets Status
Purpose: Display where the GCVE scripts will take their credentials from
"""

import sys
from pathlib import Path

# Add scripts directory to path
sys.path.insert(0, str(Path(__file__).parent))

# pylint: disable=wrong-import-position
from gcve_secrets import SecretsManager


def main():
    """
    Print the credential source priority and which sources are present.

    vCenter passwords go through SecretsManager; Google APIs use Application
    Default Credentials, so GOOGLE_APPLICATION_CREDENTIALS is listed too.
    """
    script_dir = Path(__file__).resolve().parent
    project_dir = script_dir.parent

    secrets_mgr = SecretsManager(project_dir)

    print("\n" + "=" * 60)
    print("GCVE Secrets Status")
    print("=" * 60 + "\n")

    print(secrets_mgr.get_secrets_info())

    print("\n" + "=" * 60 + "\n")


if __name__ == "__main__":
    main()
