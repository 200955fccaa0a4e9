#!/usr/bin/env python3
# scripts/run_job.py
"""
Run maintenance jobs once from the command line.

Run: python scripts/run_job.py [job] [--all] [--list]

Examples:
    python scripts/run_job.py notify_overdue_tasks
    python scripts/run_job.py delete-unlinked-images
    python scripts/run_job.py --all
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

from src.sittr.core.errors import SittrError
from src.sittr.main import configure_logging
from src.sittr.services.jobs import JOB_CONFIGS, run_all_jobs, run_job


def list_jobs():
    print("\nAvailable jobs:")
    for name, config in JOB_CONFIGS.items():
        status = "✅" if config.enabled else "❌"
        print(f"  {status} {name} ({config.slug}): {config.description}")
        print(f"     Schedule: {config.schedule}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run Sittr maintenance jobs")
    parser.add_argument("job", nargs="?", help="Job key or route slug")
    parser.add_argument("--all", action="store_true", help="Run every enabled job")
    parser.add_argument("--list", action="store_true", help="List registered jobs")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    load_dotenv()
    configure_logging(args.log_level)

    if args.list:
        list_jobs()
        return 0

    if args.all:
        results = run_all_jobs()
        print(json.dumps(results, indent=2))
        return 0 if all(r["result"].get("success") for r in results) else 1

    if not args.job:
        parser.print_help()
        return 2

    try:
        result = run_job(args.job)
    except SittrError as e:
        logging.getLogger("run_job").error(f"❌ {e}")
        return 1
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
