import io
import unittest
from datetime import date

from studio_calendar.models import Event
from studio_calendar.printing import PrintSurface, TextPrintSurface, print_view
from studio_calendar.render import EMPTY_MARKER
from studio_calendar.store import ClientState


class RecordingSurface(PrintSurface):
    def __init__(self):
        self.listings = []

    def print_listing(self, listing):
        self.listings.append(listing)


class TestPrintView(unittest.TestCase):

    def setUp(self):
        self.state = ClientState(today=date(2024, 5, 3))
        self.state.set_view("week")
        self.state.events = [
            Event(id="e2", date="2024-05-03", time="13:00", serviceType="본식", reserverType="신부",
                  assignee="김민지", brideName="한지우"),
            Event(id="e1", date="2024-05-02", time="09:00", serviceType="촬영", reserverType="신랑",
                  assignee="박서연"),
            Event(id="e3", date="2024-05-10", time="09:00", serviceType="본식", reserverType="신부",
                  assignee="김민지"),
        ]

    def test_01_surface_receives_listing(self):
        surface = RecordingSurface()
        listing = print_view(self.state, surface)
        self.assertEqual(surface.listings, [listing])
        self.assertEqual([e.id for e in listing.events], ["e1", "e2"])
        self.assertEqual(self.state.current_view, "week")

    def test_02_text_surface_groups_by_day(self):
        out = io.StringIO()
        print_view(self.state, TextPrintSurface(out))
        lines = out.getvalue().splitlines()
        self.assertEqual(lines[0], "2024-04-28 ~ 2024-05-04 주간 일정")
        self.assertEqual(set(lines[1]), {"="})
        self.assertIn("[2024년 5월 2일 (목)]", lines)
        self.assertIn("[2024년 5월 3일 (금)]", lines)
        self.assertIn("  13:00 · 본식 · 김민지", lines)
        self.assertIn("    예약자: 신부 (한지우)", lines)
        self.assertLess(lines.index("[2024년 5월 2일 (목)]"), lines.index("[2024년 5월 3일 (금)]"))

    def test_03_empty_listing_prints_marker(self):
        self.state.select_staff("이도윤")
        out = io.StringIO()
        listing = print_view(self.state, TextPrintSurface(out))
        self.assertEqual(listing.events, [])
        self.assertIn(EMPTY_MARKER, out.getvalue())
        self.assertTrue(out.getvalue().startswith("2024-04-28 ~ 2024-05-04 주간 일정 - 이도윤"))


if __name__ == "__main__":
    unittest.main()
