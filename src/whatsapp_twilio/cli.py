from __future__ import annotations

import argparse
import logging
import sys

from .errors import WhatsAppError
from .whatsapp import WhatsApp


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="whatsapp-send",
        description="Send a WhatsApp message with the Twilio credentials from the environment.",
    )
    parser.add_argument("to", type=str, help="Recipient in E.164 format, e.g. +14155550123")
    parser.add_argument("body", type=str)
    parser.add_argument("--template-id", default=None, help="Content template SID (HX...)")
    parser.add_argument("--template-vars", default=None, help='JSON object, e.g. \'{"1": "12/1"}\'')
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: list[str] | None = None, whatsapp: WhatsApp | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    try:
        wa = whatsapp or WhatsApp()
        receipt = wa.send_message(
            args.to,
            args.body,
            template_id=args.template_id,
            template_vars=args.template_vars,
        )
    except WhatsAppError as exc:
        print(f"error [{exc.kind.value} {exc.code}]: {exc.message}", file=sys.stderr)
        return 1

    print(receipt.sid)
    return 0


if __name__ == "__main__":
    sys.exit(main())
