"""Report generation for processed confirmations (CSV, HTML, summary)."""

import csv
import logging
from pathlib import Path
from typing import Sequence

from jinja2 import Environment, FileSystemLoader

from guestmatch import GuestRecord
from guestmatch.confirmation import Action, ConfirmationOutcome

log = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / 'templates'

CSV_COLUMNS = [
    'Search_Name',
    'Search_Phone',
    'Attending',
    'Guests',
    'Action',
    'Status_Code',
    'Guest_ID',
    'Guest_Name',
    'Similarity',
    'Match_Type',
    'Match_Method',
    'Phone_Match',
    'Phone_Conflict',
    'Matches_Count',
    'Message',
]

GUEST_COLUMNS = [
    'ID',
    'Name',
    'Phone',
    'Relation',
    'Status',
    'Confirmed',
    'Guests_Confirmed',
    'Confirmed_At',
    'Comments',
    'Auto_Created',
    'Notes',
]


def _yes_no(value: bool) -> str:
    return 'yes' if value else 'no'


def _outcome_to_row(outcome: ConfirmationOutcome) -> dict:
    """Convert an outcome to a flat dict for CSV/HTML output."""
    req = outcome.request
    guest = outcome.guest
    info = outcome.match_info
    return {
        'Search_Name': req.name if req else '',
        'Search_Phone': (req.phone or '') if req else '',
        'Attending': _yes_no(req.will_attend) if req else '',
        'Guests': str(req.number_of_guests) if req else '',
        'Action': outcome.action.value,
        'Status_Code': str(outcome.status_code),
        'Guest_ID': guest.id if guest else '',
        'Guest_Name': guest.name if guest else '',
        'Similarity': f'{info.similarity:.2f}' if info else '',
        'Match_Type': info.match_type.value if info else '',
        'Match_Method': info.match_method.value if info and info.match_method else '',
        'Phone_Match': _yes_no(info.phone_match) if info else '',
        'Phone_Conflict': _yes_no(info.has_conflict) if info else '',
        'Matches_Count': str(info.matches_count) if info else '',
        'Message': '; '.join([outcome.message, *outcome.errors]),
        # Drives row highlighting in HTML
        '_flag': _row_flag(outcome),
    }


def _row_flag(outcome: ConfirmationOutcome) -> str:
    info = outcome.match_info
    if outcome.action is Action.ERROR:
        return 'error'
    if info and info.has_conflict:
        return 'conflict'
    if outcome.action is Action.CREATED:
        return 'ambiguous' if info else 'created'
    return ''


def write_csv_report(outcomes: Sequence[ConfirmationOutcome], output_path: Path) -> None:
    """Write processed confirmations as a CSV report.

    Uses UTF-8 with BOM (utf-8-sig) and semicolon delimiter so the file
    opens cleanly in spreadsheet programs with a Spanish locale.

    Args:
        outcomes: Processed confirmations.
        output_path: Path for the output CSV file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.DictWriter(
            f, fieldnames=CSV_COLUMNS, delimiter=';', extrasaction='ignore',
        )
        writer.writeheader()
        for outcome in outcomes:
            writer.writerow(_outcome_to_row(outcome))

    log.info("CSV report written: %s (%d rows)", output_path, len(outcomes))


def write_html_report(
    outcomes: Sequence[ConfirmationOutcome],
    output_path: Path,
    title: str = '',
) -> None:
    """Write processed confirmations as an HTML report using Jinja2.

    Args:
        outcomes: Processed confirmations.
        output_path: Path for the output HTML file.
        title: Name of the confirmation batch (for the report title).
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=True,
    )
    template = env.get_template('report.html')

    html = template.render(
        title=title,
        rows=[_outcome_to_row(o) for o in outcomes],
        stats=compute_stats(outcomes),
        columns=CSV_COLUMNS,
    )

    output_path.write_text(html, encoding='utf-8')
    log.info("HTML report written: %s", output_path)


def compute_stats(outcomes: Sequence[ConfirmationOutcome]) -> dict:
    """Compute summary statistics from processed confirmations."""
    updated = [o for o in outcomes if o.action is Action.UPDATED]
    created = [o for o in outcomes if o.action is Action.CREATED]
    return {
        'total': len(outcomes),
        'updated': len(updated),
        'created': len(created),
        'ambiguous': sum(1 for o in created if o.match_info is not None),
        'errors': sum(1 for o in outcomes if o.action is Action.ERROR),
        'exact': sum(1 for o in updated if o.match_info.was_exact_match),
        'phone': sum(1 for o in updated if o.match_info.phone_match),
        'conflicts': sum(1 for o in updated if o.match_info.has_conflict),
        'attending': sum(
            1 for o in outcomes if o.success and o.request.will_attend
        ),
        'attendees': sum(
            o.request.number_of_guests
            for o in outcomes if o.success and o.request.will_attend
        ),
    }


def print_summary(outcomes: Sequence[ConfirmationOutcome], title: str = '') -> None:
    """Print a summary of processed confirmations to stdout.

    Args:
        outcomes: Processed confirmations.
        title: Name of the confirmation batch.
    """
    stats = compute_stats(outcomes)

    print(f"\n=== Confirmation report: {title} ===")
    print(f"Confirmations processed:   {stats['total']:>5}")
    print(f"Existing guests updated:   {stats['updated']:>5}")
    print(f"  - exact name:            {stats['exact']:>5}")
    print(f"  - by phone:              {stats['phone']:>5}")
    print(f"  - phone conflicts:       {stats['conflicts']:>5}")
    print(f"New guests created:        {stats['created']:>5}")
    print(f"  - ambiguous name:        {stats['ambiguous']:>5}")
    print(f"Rejected:                  {stats['errors']:>5}")
    print("---")
    print(f"Attending:                 {stats['attending']:>5}")
    print(f"Total attendees:           {stats['attendees']:>5}")
    print()


def write_guest_list(guests: Sequence[GuestRecord], output_path: Path) -> None:
    """Write the (updated) guest list as CSV, readable by ``load_guests``.

    Args:
        guests: Guests to export.
        output_path: Path for the output CSV file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.DictWriter(f, fieldnames=GUEST_COLUMNS, delimiter=';')
        writer.writeheader()
        for guest in guests:
            att = guest.attendance
            writer.writerow({
                'ID': guest.id,
                'Name': guest.name,
                'Phone': guest.phone or '',
                'Relation': guest.relation,
                'Status': guest.status,
                'Confirmed': _yes_no(att.confirmed) if att else '',
                'Guests_Confirmed': str(att.number_of_guests_confirmed) if att else '',
                'Confirmed_At': att.confirmed_at.isoformat() if att and att.confirmed_at else '',
                'Comments': (att.comments or '') if att else '',
                'Auto_Created': _yes_no(guest.auto_created),
                'Notes': guest.notes,
            })

    log.info("Guest list written: %s (%d guests)", output_path, len(guests))
