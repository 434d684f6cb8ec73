"""
Entry point for the Medicare Part D coverage gap estimator.

Usage:
    python main.py            # launches the web app at localhost:5000
    python main.py --cli      # runs the terminal interface
    python main.py --refills  # runs the refill cost estimator in the terminal
"""

import argparse
import logging

import config as cfg


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Medicare Part D Coverage Gap Estimator",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--cli",
        action="store_true",
        help="Run in terminal mode instead of launching the web app",
    )
    mode.add_argument(
        "--refills",
        action="store_true",
        help="Run the prescription refill cost estimator in the terminal",
    )
    parser.add_argument(
        "--no-pdf",
        action="store_true",
        help="Skip writing the PDF report in terminal mode",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log debug output (phase transitions, requests)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cli:
        from cli import run_cli
        run_cli(pdf_path=None if args.no_pdf else cfg.PDF_PATH)
    elif args.refills:
        from cli import run_refills_cli
        run_refills_cli()
    else:
        from app import run_web
        run_web()


if __name__ == "__main__":
    main()
