import unittest

import feedparser

from awardpool.extraction.feed_candidates import (
    FeedCandidateExtractor,
    matches_keywords,
    names_from_title,
)

FEED_URL = "https://example.com/cinema/rss"

RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel>
<title>Cinema</title><link>https://example.com</link><description>news</description>
<item>
  <title>Oscar 2025: Indicados a Melhor Filme – Duna: Parte 2, Oppenheimer, Barbie</title>
  <description>Confira a lista do Oscar 2025</description>
  <link>https://example.com/1</link>
</item>
<item>
  <title>Best Picture nominees: Oppenheimer, Poor Things, and Barbie</title>
  <description>Academy Awards 2025 coverage</description>
  <link>https://example.com/2</link>
</item>
<item>
  <title>Box office weekend: Barbie, Oppenheimer, Wonka</title>
  <description>Weekend numbers</description>
  <link>https://example.com/3</link>
</item>
<item>
  <title>Oscar nominees announced</title>
  <description>Oscar 2025</description>
  <link>https://example.com/4</link>
</item>
</channel></rss>
"""


class TestNamesFromTitle(unittest.TestCase):
    def test_names_after_trigger_and_separator(self):
        self.assertEqual(
            names_from_title("Oscar 2025: Indicados a Melhor Filme – Duna: Parte 2, Oppenheimer, Barbie"),
            ["Duna: Parte 2", "Oppenheimer", "Barbie"],
        )

    def test_conjunction_only_splits_after_a_comma(self):
        self.assertEqual(
            names_from_title("Best Picture nominees: Oppenheimer, Barbie, Romeo and Juliet"),
            ["Oppenheimer", "Barbie", "Romeo and Juliet"],
        )
        self.assertEqual(
            names_from_title("Best Picture nominees: Oppenheimer, Poor Things, and Barbie"),
            ["Oppenheimer", "Poor Things", "Barbie"],
        )
        self.assertEqual(
            names_from_title("Indicados a Melhor Filme: Ainda Estou Aqui, Conclave, e Emilia Pérez"),
            ["Ainda Estou Aqui", "Conclave", "Emilia Pérez"],
        )

    def test_headline_without_list(self):
        self.assertEqual(names_from_title("Oscar nominees announced"), [])
        self.assertEqual(names_from_title("Box office: Barbie, Oppenheimer"), [])


class TestKeywords(unittest.TestCase):
    def test_case_insensitive_substring(self):
        self.assertTrue(matches_keywords("Oscar 2025 list", ["OSCAR"]))
        self.assertFalse(matches_keywords("Box office", ["oscar"]))
        self.assertTrue(matches_keywords("anything", []))


class TestFeedCandidateExtractor(unittest.TestCase):
    def setUp(self):
        self.feed = feedparser.parse(RSS)

    def test_keyword_filter_and_dedup(self):
        cands = FeedCandidateExtractor().extract(self.feed, ["oscar", "academy"], source_url=FEED_URL, category_id=7)
        names = [c.name for c in cands]
        self.assertEqual(names, ["Duna: Parte 2", "Oppenheimer", "Barbie", "Poor Things"])
        self.assertTrue(all(c.category_id == 7 for c in cands))
        self.assertTrue(all(c.category_label is None for c in cands))
        self.assertTrue(all(c.source_url == FEED_URL for c in cands))

    def test_no_keywords_lets_every_entry_through(self):
        names = [c.name for c in FeedCandidateExtractor().extract(self.feed, [])]
        # The box-office entry has no trigger word, so it still contributes nothing
        self.assertNotIn("Wonka", names)
        self.assertIn("Poor Things", names)

    def test_keyword_misses_everything(self):
        self.assertEqual(FeedCandidateExtractor().extract(self.feed, ["grammy"]), [])


if __name__ == "__main__":
    unittest.main()
