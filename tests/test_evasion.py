import random
import unittest

from fakes import FakePage, anchor

from ebook_resolver.browser.evasion import HumanBehavior, simulate_human_approach
from ebook_resolver.config import EvasionConfig
from ebook_resolver.errors import BrowserError

TARGET = anchor(5, "GET", "https://libgen.li/get.php?md5=abc&key=1")


class TestHumanBehavior(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.delays = []

        async def fake_sleep(seconds):
            self.delays.append(seconds)

        self.sleep = fake_sleep

    async def test_wanders_scrolls_and_approaches_target(self):
        page = FakePage()
        behavior = HumanBehavior(EvasionConfig(waypoints=2), rng=random.Random(3), sleep=self.sleep)
        await behavior.approach(page, TARGET)

        # two waypoints plus the final approach
        self.assertEqual(len(page.pointer_moves), 3)
        self.assertEqual(len(page.scrolls), 1)
        self.assertTrue(200 <= page.scrolls[0] <= 500)
        self.assertEqual(page.scrolled_into_view, [TARGET.index])

        x, y = page.pointer_moves[-1]
        self.assertAlmostEqual(x, 120, delta=4.0)
        self.assertAlmostEqual(y, 210, delta=4.0)

        self.assertTrue(self.delays)
        self.assertTrue(all(0.15 <= d <= 0.6 for d in self.delays))

    async def test_failed_step_does_not_stop_sequence(self):
        page = FakePage()
        page.scroll_into_view_error = BrowserError("detached")
        behavior = HumanBehavior(EvasionConfig(), rng=random.Random(1), sleep=self.sleep)
        await behavior.approach(page, TARGET)

        self.assertEqual(page.scrolled_into_view, [])
        self.assertEqual(len(page.pointer_moves), EvasionConfig().waypoints + 1)

    async def test_missing_bounding_box_skips_final_move(self):
        page = FakePage()
        page.box = None
        behavior = HumanBehavior(EvasionConfig(waypoints=2), rng=random.Random(2), sleep=self.sleep)
        await behavior.approach(page, TARGET)

        self.assertEqual(len(page.pointer_moves), 2)

    async def test_disabled(self):
        page = FakePage()
        behavior = HumanBehavior(EvasionConfig(enabled=False), sleep=self.sleep)
        await behavior.approach(page, TARGET)

        self.assertEqual(page.pointer_moves, [])
        self.assertEqual(self.delays, [])

    async def test_module_helper(self):
        page = FakePage()
        config = EvasionConfig(dwell_min_ms=0, dwell_max_ms=0)
        await simulate_human_approach(page, TARGET, config, rng=random.Random(4))

        self.assertEqual(len(page.pointer_moves), config.waypoints + 1)


class TestEvasionConfig(unittest.TestCase):
    def test_rejects_inverted_ranges(self):
        with self.assertRaises(ValueError):
            EvasionConfig(scroll_min_px=500, scroll_max_px=200)
        with self.assertRaises(ValueError):
            EvasionConfig(dwell_min_ms=900, dwell_max_ms=100)


if __name__ == "__main__":
    unittest.main()
