"""guest-matcher – CLI to match RSVP confirmations against a guest list."""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from guestmatch.config import DEFAULT_CONFIG, FuzzyConfig
from guestmatch.confirmation import ConfirmationService
from guestmatch.matching import GuestMatcher
from guestmatch.phone import CountryCodeRule, PhoneNormalizer
from guestmatch.reader import load_guests, read_confirmations
from guestmatch.reporter import (
    print_summary,
    write_csv_report,
    write_guest_list,
    write_html_report,
)
from guestmatch.store import InMemoryGuestStore


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        description='Match RSVP confirmations against a wedding guest list.',
        prog='guest_matcher.py',
    )
    parser.add_argument(
        '--guests', required=True, type=Path,
        help='Guest list (CSV, or JSON array exported from the database)',
    )
    parser.add_argument(
        '--name',
        help='Look up a single name and list the candidate guests',
    )
    parser.add_argument(
        '--phone',
        help='Phone number for --name lookups',
    )
    parser.add_argument(
        '--confirmations', type=Path,
        help='CSV file with RSVP confirmations (batch mode)',
    )
    parser.add_argument(
        '--output', type=Path,
        help='Path for the CSV report (batch mode)',
    )
    parser.add_argument(
        '--guests-out', type=Path,
        help='Write the updated guest list to this CSV file',
    )
    parser.add_argument(
        '--html', action='store_true',
        help='Also write an HTML report next to the CSV report',
    )
    parser.add_argument(
        '--summary', action='store_true',
        help='Print a summary to stdout',
    )
    parser.add_argument(
        '--threshold', type=float, default=DEFAULT_CONFIG.similarity_threshold,
        help='Minimum similarity for a match, 0–100 (default: %(default)s)',
    )
    parser.add_argument(
        '--min-name-length', type=int, default=DEFAULT_CONFIG.min_name_length,
        help='Shortest accepted name after normalization (default: %(default)s)',
    )
    parser.add_argument(
        '--conflict-penalty', type=float, default=DEFAULT_CONFIG.conflict_penalty,
        help='Similarity deducted when the phone on file differs (default: %(default)s)',
    )
    parser.add_argument(
        '--country-code', action='append', type=CountryCodeRule.parse, default=None,
        metavar='PREFIX:DIGITS',
        help='Country code to strip from phones of that total length, '
             'repeatable (default: 52:12)',
    )
    parser.add_argument(
        '--no-country-code', action='store_true',
        help='Compare phone digits without stripping any country code',
    )
    parser.add_argument(
        '--verbose', action='store_true',
        help='Log matching diagnostics',
    )
    return parser


def build_config(args: argparse.Namespace) -> FuzzyConfig:
    """Derive the matching configuration from command line options."""
    if args.no_country_code:
        rules = ()
    elif args.country_code:
        rules = tuple(args.country_code)
    else:
        rules = DEFAULT_CONFIG.phone_normalizer.rules
    return dataclasses.replace(
        DEFAULT_CONFIG,
        similarity_threshold=args.threshold,
        min_name_length=args.min_name_length,
        conflict_penalty=args.conflict_penalty,
        phone_normalizer=PhoneNormalizer(rules=rules),
    )


def lookup_name(matcher: GuestMatcher, guests: list, name: str, phone: str | None) -> int:
    """Print the best match and the candidates above the threshold."""
    best = matcher.find_best_match(name, guests, phone)
    found = best is not None and best.similarity >= matcher.config.similarity_threshold
    if not found:
        print(f"No match for {name!r}")
    else:
        method = best.match_method.value if best.match_method else best.match_type.value
        conflict = ' (phone conflict)' if best.has_conflict else ''
        print(f"Best match: {best.guest.name!r} [{best.guest.id}] "
              f"{best.similarity:.2f}% via {method}{conflict}")

    candidates = matcher.find_multiple_matches(name, guests, max_results=5)
    for i, match in enumerate(candidates, start=1):
        print(f"  {i}. {match.guest.name!r} {match.similarity:.2f}% ({match.match_type.value})")
    return 0 if found else 1


def process_confirmations(
    service: ConfirmationService,
    confirmations_path: Path,
    output_path: Path,
    html: bool,
    summary: bool,
) -> None:
    """Run a batch of confirmations through the service and report on them."""
    outcomes = [service.process(p) for p in read_confirmations(confirmations_path)]

    write_csv_report(outcomes, output_path)

    if html:
        html_path = output_path.with_suffix('.html')
        write_html_report(outcomes, html_path, confirmations_path.stem)

    if summary:
        print_summary(outcomes, confirmations_path.name)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s: %(message)s',
    )

    if not args.name and not args.confirmations:
        parser.error('Either --name or --confirmations is required.')

    if args.confirmations and not args.output:
        parser.error('--output is required with --confirmations.')

    if args.phone and not args.name:
        parser.error('--phone can only be used with --name.')

    matcher = GuestMatcher(build_config(args))
    guests = load_guests(args.guests)

    if args.name:
        return lookup_name(matcher, guests, args.name, args.phone)

    store = InMemoryGuestStore(guests)
    service = ConfirmationService(store, matcher)
    process_confirmations(
        service, args.confirmations, args.output, args.html, args.summary,
    )

    if args.guests_out:
        write_guest_list(store.all(), args.guests_out)
    return 0


if __name__ == '__main__':
    sys.exit(main())
