#!/usr/bin/env python3
"""
Example: Generate a meeting protocol (.docx) from exported meeting data.

The input is the JSON bundle produced by the meeting workflow:
    {"meeting": {...}, "agenda_items": [...], "vote_records": [...],
     "votes_by_item": {...}, "protocol_hash": "...", "locale": "ru"}

Usage:
    python examples/generate_protocol.py examples/sample_meeting.json -o out/
    python examples/generate_protocol.py data.json --locale uz --honor-thresholds
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from meeting_protocol.config import config
from meeting_protocol.errors import ProtocolGenerationError
from meeting_protocol.models import ProtocolInput
from meeting_protocol.pipeline import ProtocolGenerator


async def run(input_path: Path, output_dir: Path, locale: str | None, honor_thresholds: bool) -> int:
    """Load the bundle, generate the protocol and save it."""
    with open(input_path, encoding='utf-8') as f:
        payload = json.load(f)

    payload.setdefault('locale', locale or config.PROTOCOL_LOCALE)
    if locale:
        payload['locale'] = locale
    data = ProtocolInput.model_validate(payload)

    generator = ProtocolGenerator(
        company=config.company_profile(),
        max_concurrent_renders=config.MAX_CONCURRENT_RENDERS,
        honor_item_thresholds=honor_thresholds or config.HONOR_ITEM_THRESHOLDS,
        tz_name=config.DISPLAY_TIMEZONE,
    )

    try:
        document = await generator.generate(data)
    except ProtocolGenerationError as e:
        print(f"Protocol generation failed: {e}", file=sys.stderr)
        return 1

    path = document.save(output_dir)
    print(f"Saved {path} ({document.size} bytes)")
    if document.unsigned_voter_ids:
        print(f"Unsigned voters: {', '.join(document.unsigned_voter_ids)}")
    return 0


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Generate a general meeting protocol as a .docx document'
    )
    parser.add_argument(
        'input',
        type=Path,
        help='Path to the exported meeting JSON bundle'
    )
    parser.add_argument(
        '--output', '-o',
        type=Path,
        default=Path('.'),
        help='Directory to write the document into (default: current directory)'
    )
    parser.add_argument(
        '--locale', '-l',
        choices=['ru', 'uz'],
        help='Document language (overrides the bundle)'
    )
    parser.add_argument(
        '--honor-thresholds',
        action='store_true',
        help="Decide items by their own threshold policy instead of a simple majority"
    )

    args = parser.parse_args()

    sys.exit(asyncio.run(run(
        input_path=args.input,
        output_dir=args.output,
        locale=args.locale,
        honor_thresholds=args.honor_thresholds,
    )))


if __name__ == '__main__':
    main()
