from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from apn_client.config.settings import require_portal_credentials, settings
from apn_client.scraping.apn_playwright import PlaywrightPortalClient
from apn_client.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


def _write_json(data: object, output: str | None) -> None:
    text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    if not output:
        sys.stdout.write(text + "\n")
        return
    p = Path(output)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text + "\n", encoding="utf-8")
    logger.info("Wrote %s", p)


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--headful", action="store_true", help="Show the browser window for debugging.")
    common.add_argument(
        "--browser",
        choices=["chromium", "firefox", "webkit"],
        default=None,
        help="Browser engine (defaults to APN_BROWSER).",
    )
    common.add_argument("--output", type=str, default=None, help="Write JSON here instead of stdout.")

    parser = argparse.ArgumentParser(prog="apn-client", description="Automate the APN partner portal.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("users-export", parents=[common], help="Export all active users.")

    p_deactivate = sub.add_parser(
        "users-deactivate",
        parents=[common],
        help="DANGEROUS: Deactivate exactly one user matched by name (irreversible).",
    )
    p_deactivate.add_argument("--name", type=str, required=True)
    p_deactivate.add_argument(
        "--i-understand-this-is-irreversible",
        action="store_true",
        help="Required safety flag. Without this, the command refuses to run.",
    )

    sub.add_parser("opportunities-export", parents=[common], help="Export all opportunities.")

    p_state = sub.add_parser(
        "opportunities-change-state",
        parents=[common],
        help="Move one opportunity to another state.",
    )
    p_state.add_argument("--id", dest="opportunity_id", type=str, required=True)
    p_state.add_argument("--state", dest="target_state", type=str, required=True)
    p_state.add_argument(
        "--partial-match",
        action="store_true",
        help="Match id and state by substring (first hit wins) instead of exact text.",
    )

    sub.add_parser("certifications-export", parents=[common], help="Export certification records.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    What it does:
    - One subcommand per portal workflow; exports are written as JSON.

    Behavior:
    - Credentials come from APN_USERNAME / APN_PASSWORD.
    - users-deactivate refuses to run without --i-understand-this-is-irreversible,
      checked before the browser is launched.
    - The browser is always closed on exit.
    """
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level)

    if args.cmd == "users-deactivate" and not args.i_understand_this_is_irreversible:
        raise RuntimeError("Refusing to deactivate without --i-understand-this-is-irreversible")

    username, password = require_portal_credentials()

    overrides = {}
    if args.browser:
        overrides["browser_engine"] = args.browser
    if args.headful:
        overrides["launch_options"] = {"headless": False}
    portal = PlaywrightPortalClient.from_settings(settings, **overrides)

    try:
        portal.authenticate(username, password)

        if args.cmd == "users-export":
            _write_json(portal.users.all_active(), args.output)
            return

        if args.cmd == "users-deactivate":
            portal.users.deactivate_by_name(args.name)
            _write_json({"deactivated": args.name}, args.output)
            return

        if args.cmd == "opportunities-export":
            _write_json(portal.opportunities.all(), args.output)
            return

        if args.cmd == "opportunities-change-state":
            result = portal.opportunities.change_state(
                args.opportunity_id, args.target_state, partial_match=args.partial_match
            )
            _write_json({"id": args.opportunity_id, "state": args.target_state, "result": result}, args.output)
            return

        if args.cmd == "certifications-export":
            _write_json(portal.certifications.all(), args.output)
            return

    finally:
        portal.end()


if __name__ == "__main__":
    main()
