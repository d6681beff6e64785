# studio_calendar/printing.py

import logging
import sys
from abc import ABC, abstractmethod
from typing import TextIO

from studio_calendar.render import EMPTY_MARKER, PrintListing, build_print_listing, event_summary
from studio_calendar.timeutils import format_korean_date, parse_date

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class PrintSurface(ABC):
    """Non-interactive output medium for a print request."""

    @abstractmethod
    def print_listing(self, listing: PrintListing) -> None:
        ...


class TextPrintSurface(PrintSurface):
    def __init__(self, stream: TextIO = None):
        self.stream = stream or sys.stdout

    def print_listing(self, listing: PrintListing) -> None:
        lines = [listing.title, "=" * len(listing.title)]
        if not listing.events:
            lines.append(EMPTY_MARKER)
        current_date = None
        for event in listing.events:
            if event.date != current_date:
                current_date = event.date
                lines.append("")
                lines.append(f"[{format_korean_date(parse_date(event.date))}]")
            headline, detail = event_summary(event)
            lines.append(f"  {headline}")
            lines.append(f"    {detail}")
        self.stream.write("\n".join(lines) + "\n")
        self.stream.flush()


def print_view(state, surface: PrintSurface) -> PrintListing:
    """Sends the current filtered view to the print surface; the live view is left alone."""
    listing = build_print_listing(state)
    logger.info("Printing '%s' (%d events)", listing.title, len(listing.events))
    surface.print_listing(listing)
    return listing
