"""Run utterances through one matching session and print each turn as JSON.

Usage:
    # One turn per argument
    python -m matching "I want a 3 bedroom apartment in Lekki under 10 million"

    # One turn per stdin line
    printf 'Looking in Ikoyi\nbudget 20 million, 4 bedrooms\n' | python -m matching

    # Use a different listings file
    CATALOG_PATH=path/to/properties.json python -m matching "..."
"""

import argparse
import json
import logging
import sys

from matching.config import settings
from matching.pipeline import create_pipeline


def main():
    parser = argparse.ArgumentParser(
        description="Match property listings against conversational turns",
        prog="python -m matching",
    )
    parser.add_argument("utterances", nargs="*", help="User turns (default: read stdin lines)")
    parser.add_argument("--session", default="cli", help="Session id (default: cli)")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose or settings.debug else logging.INFO,
        format="%(asctime)s %(name)-20s %(levelname)-7s %(message)s",
        stream=sys.stderr,
    )

    pipeline = create_pipeline(settings)
    utterances = args.utterances or (line.strip() for line in sys.stdin)

    history: list[dict[str, str]] = []
    for text in utterances:
        if not text:
            continue
        result = pipeline.process_turn(args.session, text, history)
        history.append({"role": "user", "content": text})
        print(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
