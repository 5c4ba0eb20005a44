"""Print a session cookie for calling the API locally.

Usage:
    python -m scripts.make_session_cookie --email rep@example.com
    curl -b "beyond_ai_session=$(python -m scripts.make_session_cookie --email rep@example.com)" ...
"""

import argparse

from sales_assistant.core.security import encode_session_cookie


def main() -> None:
    parser = argparse.ArgumentParser(description="Encode a session cookie value")
    parser.add_argument("--email", required=True, help="Session user email")
    parser.add_argument("--name", default=None, help="Optional display name")
    args = parser.parse_args()

    extra = {"name": args.name} if args.name else {}
    print(encode_session_cookie(args.email, **extra))


if __name__ == "__main__":
    main()
