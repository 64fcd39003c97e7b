#!/usr/bin/env python3
"""
Content Library Sync
Purpose: Import OVA and ISO files from a Cloud Storage bucket into a vCenter
content library, skipping anything the library already holds

Usage:
    python scripts/sync_content_library.py [--bucket NAME] [--prefix PATH] [--library NAME]
                                           [--stage-locally [--stage-dir DIR]]
                                           [--auto-grant] [--leave-public | --always-revoke]

Examples:
  # Import by public URL, making objects public for the duration of the import
  python scripts/sync_content_library.py --bucket gcve-images --auto-grant

  # Copy through local disk (required for uniform bucket-level access buckets)
  python scripts/sync_content_library.py --bucket gcve-images --stage-locally --stage-dir /data/tmp
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict

import requests
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

# Add scripts directory to path for sibling imports
sys.path.insert(0, str(Path(__file__).parent))

# pylint: disable=wrong-import-position
from console import Colors, print_message, set_log_file
from content_library import ContentLibrary
from content_sync import ContentSync
from gcs_objects import GcsObjectStore
from gcve_connect import connect_vcenter
from gcve_errors import ConfigurationError, GcveError
from gcve_secrets import DEFAULT_CONFIG, SecretsManager, load_config

# Errors that end a run with an ERROR line instead of a traceback
RUN_ERRORS = (GcveError, HttpError, GoogleAuthError, requests.RequestException)


def resolve_options(args: argparse.Namespace, section: Dict[str, Any]) -> Dict[str, Any]:
    """Command line flags win over the content_sync config section"""
    def pick(name: str, default=None):
        value = getattr(args, name, None)
        return value if value is not None else section.get(name, default)

    options = {
        "bucket": pick("bucket"),
        "prefix": pick("prefix"),
        "library": pick("library"),
        "auto_grant": bool(pick("auto_grant", False)),
        # always_revoke overrides leave_public from either source
        "leave_public": bool(pick("leave_public", False)) and not pick("always_revoke", False),
        "stage_locally": bool(pick("stage_locally", False)),
        "stage_dir": pick("stage_dir"),
    }

    missing = [name for name in ("bucket", "library") if not options[name]]
    if missing:
        raise ConfigurationError(
            "Missing required option(s): "
            + ", ".join(f"--{name} (or content_sync.{name})" for name in missing)
        )
    if options["stage_dir"]:
        options["stage_dir"] = Path(options["stage_dir"])

    return options


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Import OVA/ISO objects from Cloud Storage into a vCenter content library",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help=f"Path to YAML config file (default: {DEFAULT_CONFIG})")
    parser.add_argument("-b", "--bucket", help="Cloud Storage bucket name")
    parser.add_argument("-p", "--prefix", help="Only consider objects under this prefix")
    parser.add_argument("-l", "--library", help="Target content library name")
    parser.add_argument("--auto-grant", action="store_true", default=None,
                        help="Temporarily make non-public objects publicly readable")
    parser.add_argument("--leave-public", action="store_true", default=None,
                        help="Do not revoke public read granted by --auto-grant")
    parser.add_argument("--always-revoke", action="store_true", default=None,
                        help="Always revoke public read granted by --auto-grant (overrides --leave-public)")
    parser.add_argument("--stage-locally", action="store_true", default=None,
                        help="Download each object and upload it instead of importing by URL")
    parser.add_argument("--stage-dir", help="Directory for staged downloads (default: system temp)")
    parser.add_argument("--retries", type=int, default=3, help="vCenter connection attempts (default: 3)")
    parser.add_argument("--log-file", type=Path, help="Also append output to this file")
    return parser


def main() -> int:
    args = build_parser().parse_args()
    set_log_file(args.log_file)

    script_dir = Path(__file__).resolve().parent
    project_dir = script_dir.parent
    config_file = args.config if args.config else project_dir / DEFAULT_CONFIG

    print_message(Colors.GREEN, "=" * 80)
    print_message(Colors.GREEN, "Content Library Sync")
    print_message(Colors.GREEN, "=" * 80 + "\n")

    try:
        config = load_config(config_file, ["vcenter"])
        options = resolve_options(args, config.get("content_sync") or {})

        strategy = "stage locally" if options["stage_locally"] else "import by public URL"
        print_message(Colors.BLUE, f"Source:   gs://{options['bucket']}/{options['prefix'] or ''}")
        print_message(Colors.BLUE, f"Library:  {options['library']}")
        print_message(Colors.BLUE, f"Strategy: {strategy}\n")

        result = connect_vcenter(config["vcenter"], SecretsManager(project_dir), attempts=args.retries)
        if not result.ok:
            print_message(Colors.RED, f"ERROR: Could not connect to vCenter: {result.error}")
            return 1

        with result.handle as conn:
            library = ContentLibrary.find(conn.session, conn.base_url, options["library"])
            sync = ContentSync(
                store=GcsObjectStore.from_default_credentials(),
                library=library,
                bucket=options["bucket"],
                prefix=options["prefix"],
                stage_locally=options["stage_locally"],
                stage_dir=options["stage_dir"],
                auto_grant=options["auto_grant"],
                leave_public=options["leave_public"],
            )
            report = sync.run()

    except RUN_ERRORS as e:
        print_message(Colors.RED, f"ERROR: {e}")
        return 1

    print()
    print_message(Colors.GREEN, "=" * 80)
    print_message(Colors.GREEN, "SUMMARY")
    print_message(Colors.GREEN, "=" * 80)
    print(f"  Imported: {len(report.created)}")
    print(f"  Skipped:  {len(report.skipped)} (already in library)")
    print(f"  Failed:   {len(report.failed)}")
    for name in report.failed:
        print_message(Colors.RED, f"    ✗ {name}")

    return 0 if not report.failed else 1


if __name__ == "__main__":
    sys.exit(main())
