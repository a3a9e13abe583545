#!/usr/bin/env python3
"""
roster_share.py - Share-link helpers and CLI for encoded rosters

Wraps the roster codec with the pieces a viewer needs to share a roster:
a share location (the URL whose fragment carries the encoded roster),
share URL building, clipboard placement, and length estimates for
URL budget warnings.

Usage:
  # Encode a roster export (JSON or YAML) to share text
  python roster_share.py encode roster.json
  python roster_share.py encode roster.yaml --url -q

  # Decode share text, a share URL, or a file holding either
  python roster_share.py decode "AhAAB..."
  python roster_share.py decode "https://example.org/roster/#AhAAB..." -j

  # Inspect encoded text
  python roster_share.py info share.txt

  # Compare estimated and exact encoded length
  python roster_share.py estimate roster.json
"""

import argparse
import json
import logging
import math
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence
from urllib.parse import urlparse

import yaml

from bit_stream import SYMBOL_BITS
from roster_codec import (
    CharaRecord, PlaceholderProvider,
    encode_roster, decode_roster, decode_roster_result,
    record_bit_length, VERSION_BITS, COUNT_BITS, MAX_CHARAS,
)
from roster_config import RosterConfig, ConfigError, load_config


log = logging.getLogger(__name__)


@dataclass
class ShareLocation:
    """
    Address of the viewer page. The encoded roster lives in the fragment.

    Mirrors what a browser exposes as origin, pathname, search and hash,
    without the leading '?' and '#'.
    """
    origin: str
    path: str = '/'
    query: str = ''
    fragment: str = ''

    @classmethod
    def parse(cls, url: str) -> 'ShareLocation':
        parts = urlparse(url)
        origin = f"{parts.scheme}://{parts.netloc}" if parts.scheme else ''
        return cls(origin=origin, path=parts.path or '/',
                   query=parts.query, fragment=parts.fragment)

    @classmethod
    def from_config(cls, config: RosterConfig) -> 'ShareLocation':
        return cls(origin=config.share_origin, path=config.share_path)

    @property
    def href(self) -> str:
        url = self.origin + self.path
        if self.query:
            url += '?' + self.query
        if self.fragment:
            url += '#' + self.fragment
        return url

    def get_encoded(self) -> Optional[str]:
        """Encoded roster in the fragment, or None when there is none."""
        return self.fragment or None

    def set_encoded(self, encoded: str) -> None:
        self.fragment = encoded

    def clear(self) -> None:
        """Drop the fragment, keeping path and query."""
        self.fragment = ''


def save_roster_to_location(records: Sequence[CharaRecord],
                            location: ShareLocation) -> str:
    """Encode the roster into the location fragment. Returns the text."""
    encoded = encode_roster(records)
    location.set_encoded(encoded)
    return encoded


def load_roster_from_location(location: ShareLocation,
                              placeholders: Optional[PlaceholderProvider] = None
                              ) -> List[CharaRecord]:
    encoded = location.get_encoded()
    if encoded is None:
        return []
    return decode_roster(encoded, placeholders)


def share_url_for(encoded: str, location: ShareLocation) -> str:
    return f"{location.origin}{location.path}#{encoded}"


def build_share_url(records: Sequence[CharaRecord], location: ShareLocation) -> str:
    """Full share URL: origin + path + '#' + encoded roster."""
    return share_url_for(encode_roster(records), location)


def copy_share_url(records: Sequence[CharaRecord], location: ShareLocation,
                   clipboard: Callable[[str], Any]) -> bool:
    """
    Build the share URL and hand it to `clipboard`.

    Returns True on success, False if encoding or the clipboard fails.
    No retries.
    """
    try:
        clipboard(build_share_url(records, location))
        return True
    except Exception as e:
        log.warning("Copy to clipboard failed: %s", e)
        return False


def estimate_encoded_length(records: Sequence[Any],
                            config: Optional[RosterConfig] = None) -> int:
    """Rough share text length for URL budget warnings (no encoding done)."""
    config = config or RosterConfig()
    total_bits = (config.estimate_header_bits
                  + len(records) * config.estimate_bits_per_chara)
    return math.ceil(total_bits / SYMBOL_BITS)


def exact_encoded_length(records: Sequence[CharaRecord]) -> int:
    """Length encode_roster would produce for these records."""
    total_bits = VERSION_BITS + COUNT_BITS
    total_bits += sum(record_bit_length(r) for r in list(records)[:MAX_CHARAS])
    return math.ceil(total_bits / SYMBOL_BITS)


# =============================================================================
# CLI
# =============================================================================

def load_roster_file(path: Path) -> List[CharaRecord]:
    """Load a roster export: a list of charas, or a mapping with 'charas'."""
    content = path.read_text()
    if path.suffix == '.json':
        data = json.loads(content)
    else:
        data = yaml.safe_load(content)

    if isinstance(data, dict):
        data = data.get('charas')
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of charas or a 'charas' list")

    return [CharaRecord.from_dict(item) for item in data]


def extract_encoded(value: str) -> str:
    """Share text from an inline string, a share URL, or a file holding either."""
    try:
        candidate = Path(value)
        if candidate.is_file():
            value = candidate.read_text()
    except (OSError, ValueError):
        pass  # Too long or otherwise not a path
    value = value.strip()
    if '#' in value:
        value = value.rsplit('#', 1)[1]
    return value


def _dump(data: Any, as_json: bool) -> str:
    if as_json:
        return json.dumps(data, indent=2)
    return yaml.dump(data, default_flow_style=False, sort_keys=False)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Encode/decode chara rosters to/from URL-safe share text'
    )
    parser.add_argument('--config', type=Path, help='Settings file (YAML)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # Encode command
    enc = subparsers.add_parser('encode', help='Encode roster to share text')
    enc.add_argument('input', type=Path, help='Roster file (JSON/YAML)')
    enc.add_argument('-o', '--output', type=Path, help='Output file (default: stdout)')
    enc.add_argument('--strict', action='store_true', help='Reject values wider than their field')
    enc.add_argument('--url', action='store_true', help='Print full share URL')
    enc.add_argument('-q', '--quiet', action='store_true', help='Only output share text')

    # Decode command
    dec = subparsers.add_parser('decode', help='Decode share text to roster')
    dec.add_argument('input', help='Share text, share URL, or file holding either')
    dec.add_argument('-o', '--output', type=Path, help='Output file (default: stdout)')
    dec.add_argument('-j', '--json', action='store_true', help='Output as JSON')

    # Info command
    inf = subparsers.add_parser('info', help='Show info about share text')
    inf.add_argument('input', help='Share text, share URL, or file holding either')

    # Estimate command
    est = subparsers.add_parser('estimate', help='Estimate share text length')
    est.add_argument('input', type=Path, help='Roster file (JSON/YAML)')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    placeholders = PlaceholderProvider(rarity=config.placeholder_rarity)

    if args.command in ('encode', 'estimate'):
        if not args.input.exists():
            print(f"Error: {args.input} not found", file=sys.stderr)
            sys.exit(1)
        try:
            records = load_roster_file(args.input)
        except (ValueError, TypeError, AttributeError, yaml.YAMLError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

    if args.command == 'encode':
        strict = args.strict or config.strict
        try:
            encoded = encode_roster(records, strict=strict)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

        output = encoded
        if args.url:
            output = share_url_for(encoded, ShareLocation.from_config(config))

        if args.output:
            args.output.write_text(output)
            if not args.quiet:
                print(f"Encoded to {args.output}", file=sys.stderr)
        else:
            if not args.quiet:
                print(f"# Charas: {min(len(records), MAX_CHARAS)}", file=sys.stderr)
                if len(records) > MAX_CHARAS:
                    print(f"# Truncated from {len(records)}", file=sys.stderr)
                print(f"# Length: {len(encoded)} chars", file=sys.stderr)
                print(file=sys.stderr)
            print(output)

    elif args.command == 'decode':
        records = decode_roster(extract_encoded(args.input), placeholders)
        content = _dump([r.to_dict() for r in records], args.json)

        if args.output:
            args.output.write_text(content)
            print(f"Decoded {len(records)} charas to {args.output}", file=sys.stderr)
        else:
            print(content)

    elif args.command == 'info':
        encoded = extract_encoded(args.input)
        result = decode_roster_result(encoded, placeholders)
        print(f"Length: {len(encoded)} chars")
        print(f"Version: {result.version}")
        print(f"Declared count: {result.count}")
        print(f"Decoded count: {len(result.records)}")
        for warning in result.warnings:
            print(f"Warning: {warning}")
        for error in result.errors:
            print(f"Error: {error}")

    elif args.command == 'estimate':
        print(f"Charas: {len(records)}")
        print(f"Estimated length: {estimate_encoded_length(records, config)} chars")
        print(f"Exact length: {exact_encoded_length(records)} chars")

    return 0


if __name__ == '__main__':
    sys.exit(main())
