#!/usr/bin/env python3
"""
Dev helper: send a test contact form submission to a running Contact API.

Builds a submission body, optionally fills the honeypot field or breaks a
field on purpose, and POSTs it to /api/contact.

Usage
-----
# Basic valid submission against localhost:8000
python scripts/send_test_submission.py

# Exercise the spam drop (expects 200 and no email)
python scripts/send_test_submission.py --honeypot

# Exercise a validation failure (expects 400 InvalidName)
python scripts/send_test_submission.py --name A

# Check which providers the server picked up
python scripts/send_test_submission.py --status

# Target a different backend URL
python scripts/send_test_submission.py --url https://staging.example.com
"""

import argparse
import json
import sys
import textwrap

import httpx


# ---------------------------------------------------------------------------
# Payload builder
# ---------------------------------------------------------------------------

def _build_payload(args: argparse.Namespace) -> dict:
    payload = {
        "name": args.name,
        "email": args.email,
        "subject": args.subject,
        "message": args.message,
    }
    if args.honeypot:
        payload["company"] = "Totally Real Company LLC"
    return payload


# ---------------------------------------------------------------------------
# Pretty printer
# ---------------------------------------------------------------------------

def _print_response(response: httpx.Response) -> None:
    status = response.status_code
    symbol = "OK" if status == 200 else "FAIL"
    print(f"\n[{symbol}] HTTP {status}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> int:
    parser = argparse.ArgumentParser(
        prog="send_test_submission.py",
        description="Send a test contact form submission to the Contact API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              python scripts/send_test_submission.py
              python scripts/send_test_submission.py --honeypot
              python scripts/send_test_submission.py --status
        """),
    )
    parser.add_argument(
        "--url",
        default="http://localhost:8000",
        help="Backend base URL (default: http://localhost:8000)",
    )
    parser.add_argument("--name", default="Test Visitor", help='Submitter name (default: "Test Visitor")')
    parser.add_argument("--email", default="visitor@example.com", help="Submitter email address")
    parser.add_argument("--subject", default="Test submission", help="Subject line")
    parser.add_argument(
        "--message",
        default="Hello! This is a test message sent from send_test_submission.py.",
        help="Message body (at least 10 characters to pass validation)",
    )
    parser.add_argument(
        "--honeypot",
        action="store_true",
        help="Fill the hidden 'company' field so the server drops the submission.",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Query /api/contact/status instead of submitting.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the payload JSON without sending it.",
    )

    args = parser.parse_args()

    base = f"{args.url.rstrip('/')}/api/contact"

    try:
        if args.status:
            _print_response(httpx.get(f"{base}/status", timeout=30))
            return 0

        payload = _build_payload(args)
        print(f"Endpoint : {base}")
        print(f"From     : {args.name} <{args.email}>")
        print(f"Honeypot : {'filled' if args.honeypot else 'empty'}")

        if args.dry_run:
            print("\n[DRY RUN] Payload:")
            print(json.dumps(payload, indent=2))
            return 0

        response = httpx.post(base, json=payload, timeout=30)
        _print_response(response)
        return 0 if response.status_code == 200 else 1
    except httpx.ConnectError:
        print(
            f"\nERROR: Could not connect to {base}\n"
            "Is the backend running? Start it with:\n"
            "  cd backend && uvicorn contact_api.main:app --reload",
            file=sys.stderr,
        )
        return 1
    except httpx.HTTPError as exc:
        print(f"\nERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
