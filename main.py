"""Gallery site index builder and synchronizer entrypoint."""

import argparse
import sys
import traceback

from gallery_site_sync import config
from gallery_site_sync.pipeline import SiteIndexService


def parse_cli_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Build the gallery site index and upload the changes since the last run."
    )
    parser.add_argument(
        "--ignore-existing",
        dest="ignore_existing",
        action="store_true",
        help="Ignore the previous snapshot and republish every item.",
    )
    parser.add_argument(
        "--no-limit",
        dest="no_limit",
        action="store_true",
        help="Lift the per-run upload quota.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="JSON config file (defaults to GALLERY_SYNC_CONFIG_PATH or sync_config.json).",
    )
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> int:
    app_config = config.load_app_config(args.config)
    run_state = config.build_run_state(ignore_existing=args.ignore_existing, no_limit=args.no_limit)
    if args.ignore_existing:
        print("⚠️ Ignoring the previous snapshot; every item will be queued as new")
    if args.no_limit:
        print("⚠️ Upload quota lifted for this run")
    report = SiteIndexService(app_config, run_state).run()
    print(
        f"✅ Done: {report.photos} photo(s), {report.entries} entries, "
        f"{report.drain.delivered} uploaded, {report.drain.remaining} still queued"
    )
    return 0


def main(argv=None) -> int:
    args = parse_cli_args(argv)
    try:
        return run(args)
    except Exception as exc:
        print(f"Error: {exc}")
        print(traceback.format_exc())
        return 1


if __name__ == "__main__":
    sys.exit(main())
