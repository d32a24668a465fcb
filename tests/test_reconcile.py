import unittest
from unittest import mock

from awardpool.contracts.import_summary import validate_import_summary
from awardpool.extraction.fetcher import FetchFailure, FetchResult, SourceFetcher, parse_document
from awardpool.ingestion.source_types import SOURCE_KIND_FEED, SOURCE_KIND_HTML, Source
from awardpool.pipeline.reconcile import ImportAbortedError, ReconciliationEngine, import_from_sources
from awardpool.storage.memory_store import InMemoryNomineeStore


ARTICLE_1 = """
<article>
  <h2>Best Picture</h2>
  <ul><li>Oppenheimer</li><li>Barbie (Read our review)</li><li>Poor Things</li></ul>
  <h2>Best Actor</h2>
  <ul><li>Cillian Murphy - Oppenheimer</li><li>Paul Giamatti - The Holdovers</li></ul>
</article>
"""

ARTICLE_2 = """
<article>
  <h3>Best Film Editing</h3>
  <ul><li>Oppenheimer</li><li>Anatomy of a Fall</li></ul>
</article>
"""

ARTICLE_3 = """
<article>
  <h2>Best Picture</h2>
  <ul><li>OPPENHEIMER</li><li>Killers of the Flower Moon</li></ul>
  <h2>Best Actor</h2>
  <ul><li>Bradley Cooper – Maestro</li></ul>
</article>
"""

FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel><title>Cinema</title><link>https://example.com</link><description>x</description>
<item><title>Oscar 2025: indicados a Melhor Filme - Oppenheimer, Zona de Interesse</title><link>https://example.com/f1</link></item>
<item><title>Oscar 2024: indicados a Melhor Filme - Tár, Argentina, 1985</title><link>https://example.com/f2</link></item>
</channel></rss>
"""

URL_1 = "https://news.example.com/oscars-2025/nominees"
URL_2 = "https://film.example.com/oscars-2025/editing"
URL_3 = "https://mag.example.com/oscars-2025/list"
FEED_URL = "https://example.com/rss"


class FakeFetcher:
    """Serves canned documents; anything else is an HTTP error."""

    def __init__(self, pages, failures=None):
        self.pages = pages
        self.failures = failures or {}
        self.fetched = []

    def fetch(self, url, kind=SOURCE_KIND_HTML):
        self.fetched.append(url)
        if url in self.failures:
            return FetchResult(url=url, kind=kind, failure=FetchFailure(self.failures[url]))
        body = self.pages[url].encode("utf-8")
        return FetchResult(url=url, kind=kind, document=parse_document(body, kind), status_code=200)


class ReconcileTestCase(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryNomineeStore(settings={"ceremony_year": 2025})
        self.editing = self.store.add_category("Best Editing", 2025)
        self.fetcher = FakeFetcher({URL_1: ARTICLE_1, URL_2: ARTICLE_2, URL_3: ARTICLE_3, FEED_URL: FEED})
        self.engine = ReconciliationEngine(self.store, fetcher=self.fetcher)

    def names(self, label, year=2025):
        cat = self.store.find_category(label, year)
        self.assertIsNotNone(cat, label)
        return self.store.nominee_names(cat.id, year)


class TestImportRun(ReconcileTestCase):
    def test_imports_across_sources_with_first_spelling_winning(self):
        summary = self.engine.run([Source(URL_1), Source(URL_2), Source(URL_3)])
        self.assertEqual(summary.processed_sources, [URL_1, URL_2, URL_3])
        self.assertEqual(summary.skipped_sources, [])
        self.assertEqual(self.names("Best Picture"), ["Oppenheimer", "Poor Things", "Killers of the Flower Moon"])
        self.assertEqual(self.names("Best Actor"), ["Cillian Murphy", "Paul Giamatti", "Bradley Cooper"])
        self.assertEqual(summary.total_imported, 8)
        self.assertEqual(validate_import_summary(summary.to_dict()), [])

    def test_secondary_title_stored_in_meta(self):
        self.engine.run([Source(URL_1)])
        cat = self.store.find_category("Best Actor", 2025)
        murphy = [n for n in self.store.list_nominees(cat.id, 2025) if n.name == "Cillian Murphy"][0]
        self.assertEqual(murphy.meta, {"film_title": "Oppenheimer"})

    def test_idempotent_second_run(self):
        sources = [Source(URL_1), Source(URL_2), Source(URL_3)]
        first = self.engine.run(sources)
        count = len(self.store.nominees)
        second = ReconciliationEngine(self.store, fetcher=self.fetcher).run(sources)
        self.assertGreater(first.total_imported, 0)
        self.assertEqual(second.total_imported, 0)
        self.assertEqual(len(self.store.nominees), count)
        self.assertTrue(all(c.imported_count == 0 for c in second.per_category))

    def test_partial_failure_isolation(self):
        self.fetcher.failures[URL_2] = "http_status:500"
        summary = self.engine.run([Source(URL_1), Source(URL_2), Source(URL_3)])
        self.assertEqual(summary.processed_sources, [URL_1, URL_3])
        self.assertEqual([(s.url, s.reason) for s in summary.skipped_sources], [(URL_2, "http_status:500")])
        self.assertIn("Killers of the Flower Moon", self.names("Best Picture"))
        self.assertIn("Cillian Murphy", self.names("Best Actor"))
        self.assertEqual(self.store.nominee_names(self.editing.id, 2025), [])

    def test_every_source_failing_still_returns_summary(self):
        self.fetcher.failures.update({URL_1: "timeout", URL_2: "unreachable"})
        summary = self.engine.run([Source(URL_1), Source(URL_2)])
        self.assertEqual(summary.total_imported, 0)
        self.assertEqual([s.reason for s in summary.skipped_sources], ["timeout", "unreachable"])
        self.assertEqual(summary.processed_sources, [])

    def test_synonym_resolution_uses_existing_category(self):
        summary = self.engine.run([Source(URL_2)])
        self.assertEqual(self.store.nominee_names(self.editing.id, 2025), ["Oppenheimer", "Anatomy of a Fall"])
        self.assertIsNone(self.store.find_category("Best Film Editing", 2025))
        self.assertEqual([c.category_id for c in summary.per_category], [self.editing.id])
        self.assertEqual(summary.to_dict()["detected_categories"], [{"label": "Best Film Editing", "count": 2}])

    def test_noise_rejected(self):
        self.engine.run([Source(URL_1)])
        names = self.names("Best Picture")
        self.assertIn("Oppenheimer", names)
        self.assertNotIn("Barbie", names)
        self.assertFalse(any("review" in n.lower() for n in names))

    def test_existing_nominees_are_not_duplicated(self):
        cat = self.store.add_category("Best Picture", 2025)
        self.store.add_nominee(cat.id, "oppenheimer", 2025)
        summary = self.engine.run([Source(URL_1)])
        self.assertEqual(self.store.nominee_names(cat.id, 2025), ["oppenheimer", "Poor Things"])
        entry = [c for c in summary.per_category if c.category_id == cat.id][0]
        self.assertEqual(entry.imported_count, 1)

    def test_year_isolation(self):
        old = self.store.add_category("Best Picture", 2024)
        self.store.add_nominee(old.id, "Oppenheimer", 2024)
        self.engine.run([Source(URL_1)])
        new = self.store.find_category("Best Picture", 2025)
        self.assertNotEqual(new.id, old.id)
        self.assertIn("Oppenheimer", self.store.nominee_names(new.id, 2025))
        self.assertEqual(self.store.nominee_names(old.id, 2024), ["Oppenheimer"])

    def test_duplicate_sources_fetched_once(self):
        self.engine.run([Source(URL_1), Source(URL_1 + "/?utm_source=x")])
        self.assertEqual(self.fetcher.fetched, [URL_1])

    def test_extractor_crash_is_parse_error(self):
        class Exploding:
            def run(self, document, source_url):
                raise RuntimeError("bad markup")

        engine = ReconciliationEngine(self.store, fetcher=self.fetcher, html_extractor=Exploding())
        summary = engine.run([Source(URL_1)])
        self.assertEqual([(s.url, s.reason) for s in summary.skipped_sources], [(URL_1, "parse_error")])

    def test_cancellation_between_sources(self):
        checks = []

        def should_cancel():
            checks.append(1)
            return len(checks) > 1

        summary = self.engine.run([Source(URL_1), Source(URL_2)], should_cancel=should_cancel)
        self.assertTrue(summary.cancelled)
        self.assertEqual(summary.processed_sources, [URL_1])
        self.assertEqual(self.fetcher.fetched, [URL_1])
        self.assertGreater(summary.total_imported, 0)


class TestStoreFailures(ReconcileTestCase):
    def test_resolution_failure_is_recorded_per_category(self):
        self.store.fail_on("insert_category")
        summary = self.engine.run([Source(URL_1), Source(URL_2)])
        by_name = {c.category: c for c in summary.per_category}
        self.assertEqual(by_name["Best Picture"].error, "resolution_failed")
        self.assertEqual(by_name["Best Picture"].imported_count, 0)
        self.assertEqual(by_name["Best Actor"].error, "resolution_failed")
        # The synonym-matched category needs no insert and still imports
        self.assertEqual(by_name["Best Editing"].imported_count, 2)
        self.assertEqual(validate_import_summary(summary.to_dict()), [])

    def test_insert_failure_isolated_to_category(self):
        self.store.fail_on("insert_nominees", [self.editing.id])
        summary = self.engine.run([Source(URL_1), Source(URL_2)])
        by_id = {c.category_id: c for c in summary.per_category}
        self.assertEqual(by_id[self.editing.id].error, "insert_failed")
        self.assertEqual(by_id[self.editing.id].imported_count, 0)
        self.assertEqual(summary.total_imported, 4)

    def test_lookup_failure_isolated_to_category(self):
        self.store.fail_on("list_nominees", [self.editing.id])
        summary = self.engine.run([Source(URL_2), Source(URL_1)])
        by_id = {c.category_id: c for c in summary.per_category}
        self.assertEqual(by_id[self.editing.id].error, "lookup_failed")
        self.assertEqual(summary.total_imported, 4)

    def test_unreadable_year_aborts(self):
        self.store.fail_on("get_setting")
        with self.assertRaises(ImportAbortedError):
            self.engine.run([Source(URL_1)])
        self.assertEqual(self.fetcher.fetched, [])

    def test_missing_year_setting_falls_back_to_explicit_year(self):
        store = InMemoryNomineeStore()
        summary = ReconciliationEngine(store, fetcher=self.fetcher).run([Source(URL_2)], ceremony_year=2026)
        self.assertEqual(summary.ceremony_year, 2026)
        self.assertIsNotNone(store.find_category("Best Film Editing", 2026))


class TestTargetCategory(ReconcileTestCase):
    def test_html_candidates_filtered_to_target(self):
        summary = self.engine.run([Source(URL_1), Source(URL_2)], self.editing.id)
        self.assertEqual([c.category_id for c in summary.per_category], [self.editing.id])
        self.assertEqual(self.store.nominee_names(self.editing.id, 2025), ["Oppenheimer", "Anatomy of a Fall"])
        self.assertIsNone(self.store.find_category("Best Picture", 2025))

    def test_unknown_target_aborts(self):
        with self.assertRaises(ImportAbortedError):
            self.engine.run([Source(URL_1)], 999)

    def test_target_from_another_year_aborts(self):
        old = self.store.add_category("Best Picture", 2024)
        with self.assertRaises(ImportAbortedError):
            self.engine.run([Source(URL_1)], old)


class TestFeedSources(ReconcileTestCase):
    def setUp(self):
        super().setUp()
        self.picture = self.store.add_category("Melhor Filme", 2025)

    def test_feed_uses_bound_category_and_year_keyword(self):
        # "grammy" matches nothing; the appended ceremony year picks the 2025 entry
        feed = Source(FEED_URL, kind=SOURCE_KIND_FEED, keywords=("grammy",), category_id=self.picture.id)
        summary = self.engine.run([feed])
        self.assertEqual(summary.processed_sources, [FEED_URL])
        self.assertEqual(self.store.nominee_names(self.picture.id, 2025), ["Oppenheimer", "Zona de Interesse"])

    def test_feed_without_keywords_takes_every_entry(self):
        feed = Source(FEED_URL, kind=SOURCE_KIND_FEED, category_id=self.picture.id)
        self.engine.run([feed])
        self.assertIn("Tár", self.store.nominee_names(self.picture.id, 2025))

    def test_one_feed_bound_to_several_categories(self):
        directing = self.store.add_category("Melhor Direção", 2025)
        summary = self.engine.run([
            Source(FEED_URL, kind=SOURCE_KIND_FEED, category_id=self.picture.id),
            Source(FEED_URL, kind=SOURCE_KIND_FEED, category_id=directing.id),
            Source(FEED_URL, kind=SOURCE_KIND_FEED, category_id=directing.id),
        ])
        self.assertEqual(self.fetcher.fetched, [FEED_URL])
        self.assertEqual(summary.processed_sources, [FEED_URL, FEED_URL])
        self.assertEqual(summary.skipped_sources, [])
        self.assertEqual(
            [(c.category, c.imported_count) for c in summary.per_category],
            [("Melhor Filme", 4), ("Melhor Direção", 4)],
        )
        self.assertEqual(
            self.store.nominee_names(directing.id, 2025),
            self.store.nominee_names(self.picture.id, 2025),
        )

    def test_feed_without_category_is_skipped_before_fetch(self):
        summary = self.engine.run([Source(FEED_URL, kind=SOURCE_KIND_FEED)])
        self.assertEqual([(s.url, s.reason) for s in summary.skipped_sources], [(FEED_URL, "no_target_category")])
        self.assertEqual(self.fetcher.fetched, [])

    def test_run_target_overrides_feed_binding(self):
        feed = Source(FEED_URL, kind=SOURCE_KIND_FEED, category_id=self.picture.id)
        self.engine.run([feed], self.editing.id)
        self.assertIn("Oppenheimer", self.store.nominee_names(self.editing.id, 2025))
        self.assertEqual(self.store.nominee_names(self.picture.id, 2025), [])


class TestImportFromSources(unittest.TestCase):
    @mock.patch("awardpool.extraction.fetcher.requests.get")
    def test_http_500_through_real_fetcher(self, get):
        ok = mock.MagicMock(status_code=200, reason="OK", encoding="utf-8")
        ok.iter_content.return_value = [ARTICLE_2.encode("utf-8")]
        bad = mock.MagicMock(status_code=500, reason="Server Error")
        get.side_effect = lambda url, **kw: bad if "broken" in url else ok

        store = InMemoryNomineeStore(settings={"ceremony_year": "2025"})
        summary = import_from_sources(
            store,
            [Source("http://film.example.com/a"), Source("https://broken.example.com/b")],
            fetcher=SourceFetcher(sleep=lambda s: None),
        )
        self.assertEqual(summary.processed_sources, ["http://film.example.com/a"])
        self.assertEqual(summary.skipped_sources[0].reason, "http_status:500")
        self.assertEqual(summary.total_imported, 2)
        self.assertEqual(summary.ceremony_year, 2025)


if __name__ == "__main__":
    unittest.main()
